"""Analizador de deltas entre lecturas.

Dos modos:
- Inmediato: últimas dos lecturas de un edificio
- Baseline: media de una ventana antigua vs. el valor actual, para
  estimar ahorro/empeoramiento en un horizonte más largo

Convención de signo: pct_change > 0 significa que el uso SUBIÓ.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..core.domain.category import Category
from ..core.domain.reading import Reading
from ..core.numeric import compute_pct_change, mean, round_half_up, safe_float


@dataclass(frozen=True)
class DeltaRecord:
    building: str
    prev: float
    latest: float
    delta: float
    pct_change: float
    is_complete: bool = True

    @property
    def is_usable(self) -> bool:
        """True si el delta puede alimentar reglas que dependen de él."""
        return (
            self.is_complete
            and math.isfinite(self.prev)
            and math.isfinite(self.latest)
            and math.isfinite(self.pct_change)
        )

    @classmethod
    def from_values(cls, building: str, prev: float, latest: float) -> "DeltaRecord":
        return cls(
            building=building,
            prev=prev,
            latest=latest,
            delta=latest - prev,
            pct_change=compute_pct_change(latest, prev),
        )

    @classmethod
    def empty(cls, building: str, value: float = 0.0) -> "DeltaRecord":
        return cls(
            building=building,
            prev=value,
            latest=value,
            delta=0.0,
            pct_change=0.0,
            is_complete=False,
        )


@dataclass(frozen=True)
class TrendRecord:
    baseline_mean: float
    recent_mean: float
    current: float
    savings_pct: int
    trend: str  # down = mejora (menos uso), up = empeora
    trend_pct: int

    @property
    def trend_label(self) -> str:
        if self.trend == "stable":
            return "stable"
        return f"{self.trend_pct}% {'less' if self.trend == 'down' else 'more'}"


# Rango realista del ahorro reportado contra baseline
SAVINGS_CLAMP: Tuple[int, int] = (5, 30)
DEFAULT_BASELINE_SAVINGS = 12

# (límite superior de % medio de capacidad, ahorro estimado)
EFFICIENCY_TIERS = {
    Category.WATER: ((70, 25), (85, 18), (95, 12), (110, 8)),
    Category.ELECTRICITY: ((60, 18), (75, 12)),
}
EFFICIENCY_TIER_FLOOR = {
    Category.WATER: 5,
    Category.ELECTRICITY: 8,
    Category.FOOD: 18,
}


def immediate_delta(building: str, readings: Sequence[Reading]) -> DeltaRecord:
    """Delta entre las dos lecturas más recientes (orden viejo → nuevo).

    Con una sola lectura devuelve prev = latest; sin lecturas, un registro
    en cero. En ambos casos `is_complete` es False.
    """
    if not readings:
        return DeltaRecord.empty(building)
    if len(readings) == 1:
        return DeltaRecord.empty(building, safe_float(readings[-1].value))

    prev = safe_float(readings[-2].value)
    latest = safe_float(readings[-1].value)
    return DeltaRecord.from_values(building, prev, latest)


def baseline_trend(
    readings: Sequence[Reading],
    current: Optional[float] = None,
    baseline: Tuple[int, int] = (20, 10),
    recent: int = 5,
    min_history: int = 15,
) -> Optional[TrendRecord]:
    """Compara la media de posiciones `baseline` atrás contra el valor actual.

    Solo aplica con más de `min_history` lecturas; si no, devuelve None y el
    llamador usa `efficiency_tier`. `current` por defecto es la última lectura.
    """
    if len(readings) <= min_history:
        return None

    values = [safe_float(r.value) for r in readings]
    start, end = baseline
    baseline_values = values[-start:-end] if end else values[-start:]
    recent_values = values[-recent:]

    baseline_mean = mean(baseline_values)
    recent_mean = mean(recent_values)
    if current is None:
        current = values[-1]

    if baseline_mean > 0:
        raw_savings = int(round_half_up((baseline_mean - current) / baseline_mean * 100))
        low, high = SAVINGS_CLAMP
        savings = max(low, min(raw_savings, high))
    else:
        savings = DEFAULT_BASELINE_SAVINGS

    trend_pct = abs(int(round_half_up(compute_pct_change(current, recent_mean))))
    if current < recent_mean:
        trend = "down"
    elif current > recent_mean:
        trend = "up"
    else:
        trend = "stable"

    return TrendRecord(
        baseline_mean=baseline_mean,
        recent_mean=recent_mean,
        current=current,
        savings_pct=int(savings),
        trend=trend,
        trend_pct=int(trend_pct),
    )


def efficiency_tier(category: "str | Category", avg_percentage: float) -> int:
    """Ahorro estimado a partir del % medio de capacidad/objetivo.

    Menor % de capacidad = mejor eficiencia = mayor ahorro estimado.
    """
    category = Category.parse(category)
    for upper, savings in EFFICIENCY_TIERS.get(category, ()):
        if avg_percentage < upper:
            return savings
    return EFFICIENCY_TIER_FLOOR[category]
