"""Estrategia de mayor consumidor: solo utilización, sin delta.

Marca únicamente al edificio de mayor uso del campus en cada ciclo.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..aggregation.delta_analyzer import DeltaRecord
from ..core.domain.category import Category
from ..core.domain.reading import BuildingSnapshot
from ..core.numeric import format_number, safe_float
from .models import Classification, Severity
from .rule_classifier import MetricInput
from .thresholds import get_utilization_limits


class UtilizationOnlyStrategy:
    name = "utilization"

    def select(self, snapshots: Sequence[BuildingSnapshot]) -> List[BuildingSnapshot]:
        """El primer edificio con el mayor uso (empates: el primero)."""
        if not snapshots:
            return []
        highest = snapshots[0]
        for snapshot in snapshots[1:]:
            if snapshot.usage > highest.usage:
                highest = snapshot
        return [highest]

    def classify(
        self,
        category: "str | Category",
        snapshot: BuildingSnapshot,
        delta: Optional[DeltaRecord] = None,
        campus_metric: MetricInput = None,
    ) -> Classification:
        category = Category.parse(category)
        limits = get_utilization_limits(category)

        if limits.absolute:
            level = safe_float(snapshot.usage)
            warning = limits.limit_for(snapshot.name)
            critical = warning * limits.critical_factor
        else:
            level = safe_float(snapshot.percentage)
            warning = limits.warning
            critical = limits.critical

        meta = {"level": level, "warning": warning, "critical": critical}
        if level >= critical:
            severity, rule = Severity.CRITICAL, "utilization_critical"
        elif level >= warning:
            severity, rule = Severity.WARNING, "utilization_warning"
        else:
            severity, rule = Severity.INFO, "utilization_info"

        return Classification(
            building=snapshot.name,
            severity=severity,
            rule=rule,
            reason=f"Highest consumer at {format_number(level)} (warning {format_number(warning)}, critical {format_number(critical)})",
            metadata=meta,
        )
