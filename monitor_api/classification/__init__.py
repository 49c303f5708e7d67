"""Classification - Severidad por edificio y mensajes de alerta.

Estrategias:
- delta       → utilización + delta contra la lectura previa (por defecto)
- utilization → solo el mayor consumidor, por utilización
"""

from .models import Classification, Severity
from .rule_classifier import ClassificationStrategy, DeltaRuleStrategy, classify, metric_value
from .thresholds import (
    ACHIEVEMENT_METRIC,
    CAMPUS_SUCCESS_METRIC,
    CategoryThresholds,
    UtilizationLimits,
    get_thresholds,
    get_utilization_limits,
)
from .utilization_classifier import UtilizationOnlyStrategy

STRATEGIES = {
    DeltaRuleStrategy.name: DeltaRuleStrategy,
    UtilizationOnlyStrategy.name: UtilizationOnlyStrategy,
}


def get_strategy(name: str = "delta") -> ClassificationStrategy:
    """Instancia una estrategia por nombre.

    Raises:
        ValueError: si la estrategia no existe
    """
    try:
        return STRATEGIES[(name or "delta").strip().lower()]()
    except KeyError:
        raise ValueError(f"Unknown classifier strategy: {name!r}") from None


__all__ = [
    "Classification",
    "Severity",
    "ClassificationStrategy",
    "DeltaRuleStrategy",
    "UtilizationOnlyStrategy",
    "classify",
    "metric_value",
    "ACHIEVEMENT_METRIC",
    "CAMPUS_SUCCESS_METRIC",
    "CategoryThresholds",
    "UtilizationLimits",
    "get_thresholds",
    "get_utilization_limits",
    "STRATEGIES",
    "get_strategy",
]
