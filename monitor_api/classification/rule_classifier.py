"""Clasificador por reglas de utilización + delta.

Tabla de decisión con precedencia estricta (gana la primera regla):
1. CRITICAL: utilización >= critical Y subiendo
2. WARNING:  utilización >= warning O Δ% >= spike
3. SUCCESS:  Δ% <= recovery O métrica del campus >= 10
4. NONE

Si el delta no es utilizable (menos de dos lecturas, NaN) las reglas que
dependen de él se omiten y solo se evalúa la utilización.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Union

from ..aggregation.campus_metrics import CampusMetric
from ..aggregation.delta_analyzer import DeltaRecord
from ..core.domain.category import Category
from ..core.domain.reading import BuildingSnapshot
from ..core.numeric import format_number, safe_float
from .models import Classification, Severity
from .thresholds import CAMPUS_SUCCESS_METRIC, CategoryThresholds, get_thresholds

logger = logging.getLogger(__name__)

MetricInput = Union[CampusMetric, float, int, None]


def metric_value(campus_metric: MetricInput) -> float:
    """Valor numérico de la métrica del campus (0 si no hay)."""
    if isinstance(campus_metric, CampusMetric):
        return safe_float(campus_metric.value)
    return safe_float(campus_metric)


class ClassificationStrategy(Protocol):
    """Contrato de una estrategia de clasificación."""

    name: str

    def select(self, snapshots: Sequence[BuildingSnapshot]) -> List[BuildingSnapshot]:
        """Edificios que la estrategia evalúa en este ciclo."""
        ...

    def classify(
        self,
        category: "str | Category",
        snapshot: BuildingSnapshot,
        delta: Optional[DeltaRecord],
        campus_metric: MetricInput = None,
    ) -> Classification:
        ...


class DeltaRuleStrategy:
    """Estrategia por defecto: utilización + delta contra la lectura previa."""

    name = "delta"

    def select(self, snapshots: Sequence[BuildingSnapshot]) -> List[BuildingSnapshot]:
        return list(snapshots)

    def classify(
        self,
        category: "str | Category",
        snapshot: BuildingSnapshot,
        delta: Optional[DeltaRecord],
        campus_metric: MetricInput = None,
    ) -> Classification:
        """Clasifica un edificio. Nunca lanza.

        Args:
            category: Categoría del recurso
            snapshot: Snapshot normalizado del edificio
            delta: Delta inmediato (None o incompleto = solo utilización)
            campus_metric: % de ahorro/reducción del campus

        Returns:
            Classification con la severidad y la regla que disparó
        """
        category = Category.parse(category)
        th = get_thresholds(category)
        level = safe_float(snapshot.usage if th.absolute else snapshot.percentage)
        in_scope = th.applies_to(snapshot.name)

        if delta is None or not delta.is_usable:
            return self._utilization_only(snapshot.name, th, level, in_scope)

        pct = delta.pct_change
        meta = {"level": level, "pct_change": pct, "prev": delta.prev, "latest": delta.latest}

        if in_scope and level >= th.critical and th.is_rising(pct, delta.prev, delta.latest):
            return Classification(
                building=snapshot.name,
                severity=Severity.CRITICAL,
                rule="critical_rising",
                reason=f"Level {format_number(level)} >= {format_number(th.critical)} and rising ({format_number(pct)}%)",
                metadata=meta,
            )

        if in_scope and level >= th.warning:
            return Classification(
                building=snapshot.name,
                severity=Severity.WARNING,
                rule="warning_utilization",
                reason=f"Level {format_number(level)} >= {format_number(th.warning)}",
                metadata=meta,
            )

        if in_scope and pct >= th.spike_pct:
            return Classification(
                building=snapshot.name,
                severity=Severity.WARNING,
                rule="warning_spike",
                reason=f"Change {format_number(pct)}% >= spike {format_number(th.spike_pct)}%",
                metadata=meta,
            )

        if pct <= th.recovery_pct:
            return Classification(
                building=snapshot.name,
                severity=Severity.SUCCESS,
                rule="success_recovery",
                reason=f"Change {format_number(pct)}% <= recovery {format_number(th.recovery_pct)}%",
                metadata=meta,
            )

        metric = metric_value(campus_metric)
        if metric >= CAMPUS_SUCCESS_METRIC:
            return Classification(
                building=snapshot.name,
                severity=Severity.SUCCESS,
                rule="success_campus",
                reason=f"Campus metric {format_number(metric)}% >= {CAMPUS_SUCCESS_METRIC}%",
                metadata=meta,
            )

        return Classification.none(snapshot.name)

    @staticmethod
    def _utilization_only(
        building: str,
        th: CategoryThresholds,
        level: float,
        in_scope: bool,
    ) -> Classification:
        meta = {"level": level, "delta_available": False}
        if in_scope and level >= th.critical:
            return Classification(
                building=building,
                severity=Severity.CRITICAL,
                rule="fallback_critical",
                reason=f"Level {format_number(level)} >= {format_number(th.critical)} (no delta)",
                metadata=meta,
            )
        if in_scope and level >= th.warning:
            return Classification(
                building=building,
                severity=Severity.WARNING,
                rule="fallback_warning",
                reason=f"Level {format_number(level)} >= {format_number(th.warning)} (no delta)",
                metadata=meta,
            )
        return Classification.none(building, reason="Sin delta utilizable")


_DEFAULT_STRATEGY = DeltaRuleStrategy()


def classify(
    category: "str | Category",
    snapshot: BuildingSnapshot,
    delta: Optional[DeltaRecord],
    campus_metric: MetricInput = None,
) -> Classification:
    """Atajo sobre la estrategia por defecto."""
    return _DEFAULT_STRATEGY.classify(category, snapshot, delta, campus_metric)
