"""Emisor de alertas con deduplicación por ciclo y cooldown entre ciclos.

Garantías por ciclo de evaluación:
- Como máximo UNA alerta por edificio (gana la primera regla)
- Como máximo UN logro (achievement) del campus
- Edificios sin datos nunca generan alerta
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Set, Tuple

from ..aggregation.campus_metrics import CampusMetric
from ..aggregation.delta_analyzer import DeltaRecord
from ..classification import (
    ACHIEVEMENT_METRIC,
    ClassificationStrategy,
    DeltaRuleStrategy,
    metric_value,
)
from ..classification.messages import AlertContent, render, render_achievement
from ..core.domain.alert import Alert, AlertType
from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import BuildingSnapshot

logger = logging.getLogger(__name__)

# Decide si se emite el logro del campus: (categoría, métrica) -> bool
AchievementGate = Callable[[Category, float], bool]

DEFAULT_ACHIEVEMENT_PROBABILITY = 0.2
DEFAULT_COOLDOWN_SECONDS = 300

# (auto_dismiss, duración en segundos) por tipo de alerta
LIFECYCLE_BY_TYPE: Dict[AlertType, Tuple[bool, Optional[float]]] = {
    AlertType.CRITICAL: (False, None),
    AlertType.WARNING: (True, 12),
    AlertType.SUCCESS: (True, 10),
    AlertType.ACHIEVEMENT: (True, 12),
    AlertType.INFO: (True, 10),
}
# Alertas de mayor consumidor: todas se auto-descartan
HIGHEST_CONSUMER_DURATION = 10


def probabilistic_gate(
    probability: float = DEFAULT_ACHIEVEMENT_PROBABILITY,
    seed: Optional[int] = None,
) -> AchievementGate:
    """Gate aleatorio reproducible: aprueba con `probability`."""
    rng = random.Random(seed)
    lock = threading.Lock()

    def gate(category: Category, metric: float) -> bool:
        with lock:
            return rng.random() < probability

    return gate


def always_gate(category: Category, metric: float) -> bool:
    return True


def never_gate(category: Category, metric: float) -> bool:
    return False


class AlertCooldown:
    """Evita repetir la misma alerta (categoría, edificio, severidad).

    Con `cooldown_seconds <= 0` no suprime nada.
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._last: Dict[Tuple[str, str, str], float] = {}
        self._lock = threading.Lock()

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown

    def allow(self, category: str, building: str, severity: str) -> bool:
        """True si puede emitirse; en ese caso registra la emisión."""
        if self._cooldown <= 0:
            return True
        key = (str(category), str(building), str(severity))
        now = self._clock()
        with self._lock:
            last = self._last.get(key)
            if last is not None and now - last < self._cooldown:
                return False
            self._last[key] = now
            return True

    def clear(self, category: Optional[str] = None) -> None:
        with self._lock:
            if category is None:
                self._last.clear()
                return
            for key in [k for k in self._last if k[0] == str(category)]:
                del self._last[key]


@dataclass
class EvaluationContext:
    """Entradas de un ciclo de evaluación de una categoría.

    `alerted` es propiedad del ciclo: se crea vacío y se descarta al final.
    `absent` son los edificios sin ninguna lectura.
    """

    category: Category
    snapshots: List[BuildingSnapshot]
    deltas: Mapping[str, DeltaRecord] = field(default_factory=dict)
    campus_metric: Optional[CampusMetric] = None
    timestamp: int = 0
    absent: Set[str] = field(default_factory=set)
    alerted: Set[str] = field(default_factory=set)

    def __post_init__(self):
        self.category = Category.parse(self.category)
        if not self.timestamp:
            self.timestamp = int(time.time() * 1000)


class AlertEmitter:
    """Convierte clasificaciones en alertas listas para el ciclo de vida."""

    def __init__(
        self,
        strategy: Optional[ClassificationStrategy] = None,
        achievement_gate: Optional[AchievementGate] = None,
        cooldown: Optional[AlertCooldown] = None,
    ):
        self._strategy = strategy or DeltaRuleStrategy()
        self._gate = achievement_gate or probabilistic_gate()
        self._cooldown = cooldown

    @property
    def strategy(self) -> ClassificationStrategy:
        return self._strategy

    def emit(self, context: EvaluationContext) -> List[Alert]:
        """Evalúa todos los edificios del contexto y devuelve las alertas.

        Args:
            context: Entradas del ciclo (se actualiza `context.alerted`)

        Returns:
            Alertas de edificios en orden de evaluación, más el logro
            del campus al final si corresponde
        """
        category = context.category
        alerts: List[Alert] = []

        for snapshot in self._strategy.select(context.snapshots):
            name = snapshot.name
            if name in context.alerted or name in context.absent:
                continue

            delta = context.deltas.get(name)
            classification = self._strategy.classify(category, snapshot, delta, context.campus_metric)
            if not classification.should_alert:
                continue

            content = render(category, classification, snapshot, delta)
            if content is None:
                continue

            severity = classification.severity.value
            if self._cooldown is not None and not self._cooldown.allow(category.value, name, severity):
                logger.debug("[ALERTS] cooldown category=%s building=%s severity=%s", category.value, name, severity)
                continue

            highest = classification.rule.startswith("utilization")
            alerts.append(self._build(context, AlertType(severity), content, building=name, highest=highest))
            context.alerted.add(name)

        achievement = self._achievement(context, len(alerts))
        if achievement is not None:
            alerts.append(achievement)

        if alerts:
            logger.info(
                "[ALERTS] category=%s emitted=%d types=%s",
                category.value,
                len(alerts),
                ",".join(a.type.value for a in alerts),
            )
        return alerts

    def _achievement(self, context: EvaluationContext, building_alerts: int) -> Optional[Alert]:
        if building_alerts >= 2 or context.campus_metric is None:
            return None
        metric = metric_value(context.campus_metric)
        if metric <= ACHIEVEMENT_METRIC:
            return None
        if not self._gate(context.category, metric):
            return None
        if self._cooldown is not None and not self._cooldown.allow(
            context.category.value, "summary", AlertType.ACHIEVEMENT.value
        ):
            return None
        content = render_achievement(context.category, metric)
        return self._build(context, AlertType.ACHIEVEMENT, content, building=None)

    @staticmethod
    def _build(
        context: EvaluationContext,
        alert_type: AlertType,
        content: AlertContent,
        building: Optional[str],
        highest: bool = False,
    ) -> Alert:
        category = context.category.value
        if highest:
            auto_dismiss, duration = True, HIGHEST_CONSUMER_DURATION
        else:
            auto_dismiss, duration = LIFECYCLE_BY_TYPE[alert_type]
        scope = building if building is not None else "summary"
        return Alert(
            id=f"{alert_type.value}-{category}-{scope}-{context.timestamp}",
            type=alert_type,
            title=content.title,
            message=content.message,
            category=category,
            auto_dismiss=auto_dismiss,
            building=building,
            value=content.value,
            unit=content.unit,
            category_color=get_category_config(context.category).color,
            duration=duration,
            action=content.action if not auto_dismiss else None,
        )
