"""Tablas de umbrales por categoría.

Valores fijos: el dashboard y los tests dependen de ellos exactamente.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core.domain.category import Category

# Métrica del campus (% ahorro/reducción) que habilita success por sí sola
CAMPUS_SUCCESS_METRIC = 10
# Métrica del campus por encima de la cual se considera un logro
ACHIEVEMENT_METRIC = 25


@dataclass(frozen=True)
class CategoryThresholds:
    """Umbrales de la estrategia por delta.

    Para electricidad y agua `critical`/`warning` son % de capacidad u
    objetivo; para comida son kg absolutos (`absolute=True`).
    """

    critical: float
    warning: float
    spike_pct: float
    recovery_pct: float
    critical_rise_pct: float
    rise_inclusive: bool = False  # >= en vez de > para critical_rise_pct
    rise_on_any_increase: bool = True  # latest > prev también cuenta como subida
    absolute: bool = False
    building_pattern: Optional[str] = None  # solo estos edificios llegan a critical/warning

    def applies_to(self, building: str) -> bool:
        if self.building_pattern is None:
            return True
        return re.search(self.building_pattern, building or "", re.IGNORECASE) is not None

    def is_rising(self, pct_change: float, prev: float, latest: float) -> bool:
        if self.rise_inclusive:
            rising = pct_change >= self.critical_rise_pct
        else:
            rising = pct_change > self.critical_rise_pct
        return rising or (self.rise_on_any_increase and latest > prev)


@dataclass(frozen=True)
class UtilizationLimits:
    """Umbrales de la estrategia de mayor consumidor (solo utilización).

    Electricidad/agua: % de capacidad. Comida: kg, con límite por edificio
    y `critical_factor` sobre ese límite.
    """

    critical: float = 90
    warning: float = 75
    absolute: bool = False
    building_limits: Dict[str, float] = field(default_factory=dict)
    default_limit: float = 0.0
    critical_factor: float = 1.2

    def limit_for(self, building: str) -> float:
        return self.building_limits.get(building, self.default_limit)


DELTA_THRESHOLDS: Dict[Category, CategoryThresholds] = {
    Category.ELECTRICITY: CategoryThresholds(
        critical=95,
        warning=85,
        spike_pct=25,
        recovery_pct=-15,
        critical_rise_pct=5,
    ),
    Category.WATER: CategoryThresholds(
        critical=120,
        warning=105,
        spike_pct=30,
        recovery_pct=-15,
        critical_rise_pct=10,
    ),
    Category.FOOD: CategoryThresholds(
        critical=40,
        warning=32,
        spike_pct=35,
        recovery_pct=-20,
        critical_rise_pct=10,
        rise_inclusive=True,
        rise_on_any_increase=False,
        absolute=True,
        building_pattern=r"Cafeteria",
    ),
}

UTILIZATION_LIMITS: Dict[Category, UtilizationLimits] = {
    Category.ELECTRICITY: UtilizationLimits(),
    Category.WATER: UtilizationLimits(),
    Category.FOOD: UtilizationLimits(
        absolute=True,
        building_limits={"Cafeteria": 35},
        default_limit=10,
    ),
}


def get_thresholds(category: "str | Category") -> CategoryThresholds:
    return DELTA_THRESHOLDS[Category.parse(category)]


def get_utilization_limits(category: "str | Category") -> UtilizationLimits:
    return UTILIZATION_LIMITS[Category.parse(category)]
