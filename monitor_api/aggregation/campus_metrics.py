"""Métrica agregada del campus: % de ahorro (electricidad/agua) o de
reducción (residuos de comida).

Positivo = el campus consumió/desperdició MENOS que en el periodo de
referencia.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..core.domain.category import Category
from ..core.domain.reading import BuildingSnapshot, Reading
from ..core.numeric import round_half_up, safe_float
from .delta_analyzer import baseline_trend, efficiency_tier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CampusMetric:
    value: int
    trend: str
    trend_label: str
    source: str  # immediate | baseline | efficiency_tier

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "trend": self.trend,
            "trend_label": self.trend_label,
            "source": self.source,
        }


def _average_percentage(snapshots: Sequence[BuildingSnapshot]) -> float:
    if not snapshots:
        return 0.0
    return sum(s.percentage for s in snapshots) / len(snapshots)


def efficiency_metric(category: Category, snapshots: Sequence[BuildingSnapshot]) -> CampusMetric:
    """Estimación determinista cuando no hay historial suficiente."""
    savings = efficiency_tier(category, _average_percentage(snapshots))
    return CampusMetric(value=savings, trend="down", trend_label="from baseline", source="efficiency_tier")


def immediate_metric(
    snapshots: Sequence[BuildingSnapshot],
    histories: Mapping[str, Sequence[Reading]],
) -> CampusMetric:
    """Total de la última lectura vs. la anterior, sumando todos los edificios."""
    prev_total = 0.0
    latest_total = 0.0
    counted = 0

    for snapshot in snapshots:
        history = histories.get(snapshot.name) or []
        if len(history) >= 2:
            prev_total += safe_float(history[-2].value)
            latest_total += safe_float(history[-1].value)
            counted += 1
        elif len(history) == 1:
            single = safe_float(history[0].value)
            prev_total += single
            latest_total += single
            counted += 1

    if counted == 0:
        prev_total = latest_total = sum(s.usage for s in snapshots)

    value = int(round_half_up((prev_total - latest_total) / prev_total * 100)) if prev_total > 0 else 0
    trend = "down" if latest_total <= prev_total else "up"
    label = f"{abs(value)}% {'less' if trend == 'down' else 'more'}"
    return CampusMetric(value=value, trend=trend, trend_label=label, source="immediate")


def baseline_metric(
    snapshots: Sequence[BuildingSnapshot],
    histories: Mapping[str, Sequence[Reading]],
) -> CampusMetric | None:
    """Promedio actual del campus contra el baseline histórico promedio.

    None si ningún edificio tiene historial suficiente.
    """
    baselines = []
    recents = []
    for snapshot in snapshots:
        trend = baseline_trend(histories.get(snapshot.name) or [])
        if trend is not None:
            baselines.append(trend.baseline_mean)
            recents.append(trend.recent_mean)

    if not baselines:
        return None

    avg_baseline = sum(baselines) / len(baselines)
    avg_recent = sum(recents) / len(recents)
    current_avg = sum(s.usage for s in snapshots) / len(snapshots)

    # Reutiliza la misma regla de clamp y tendencia que el modo por edificio
    combined = baseline_trend(
        [Reading(building="campus", timestamp=0, value=avg_baseline)] * 20
        + [Reading(building="campus", timestamp=0, value=avg_recent)] * 5,
        current=current_avg,
        baseline=(25, 5),
        recent=5,
        min_history=0,
    )
    return CampusMetric(
        value=combined.savings_pct,
        trend=combined.trend,
        trend_label=combined.trend_label,
        source="baseline",
    )


def campus_metric(
    category: "str | Category",
    snapshots: Sequence[BuildingSnapshot],
    histories: Mapping[str, Sequence[Reading]],
) -> CampusMetric:
    """Calcula la métrica del campus para una categoría. Nunca lanza."""
    category = Category.parse(category)
    try:
        if category == Category.WATER:
            metric = baseline_metric(snapshots, histories)
            if metric is not None:
                return metric
            return efficiency_metric(category, snapshots)
        return immediate_metric(snapshots, histories)
    except Exception as e:
        logger.warning("[EVAL] campus metric fallback category=%s err=%s", category.value, e)
        return efficiency_metric(category, snapshots)
