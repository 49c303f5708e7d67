"""Alerts - Emisión deduplicada y ciclo de vida de alertas.

Estructura:
- emitter.py   → Una alerta por edificio por ciclo, logro del campus, cooldown
- lifecycle.py → Conjunto visible, cola pendiente y auto-dismiss
- publisher.py → Reenvío opcional de eventos a Redis Pub/Sub
"""

from .emitter import (
    AchievementGate,
    AlertCooldown,
    AlertEmitter,
    EvaluationContext,
    always_gate,
    never_gate,
    probabilistic_gate,
)
from .lifecycle import (
    AlertLifecycleManager,
    LifecycleEvent,
    LifecycleEventKind,
)

__all__ = [
    "AchievementGate",
    "AlertCooldown",
    "AlertEmitter",
    "EvaluationContext",
    "always_gate",
    "never_gate",
    "probabilistic_gate",
    "AlertLifecycleManager",
    "LifecycleEvent",
    "LifecycleEventKind",
]
