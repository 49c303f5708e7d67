"""Normalización del snapshot del store a `BuildingSnapshot`.

Único punto donde se decide uso, capacidad, porcentaje y estado de cada
edificio; el resto del pipeline solo consume `BuildingSnapshot`.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import BuildingSnapshot, BuildingStatus, LatestValue
from ..core.numeric import round_half_up, safe_float

# Residuo por comida servida por encima del cual el comedor está en warning (kg)
FOOD_WASTE_PER_MEAL_WARNING = 0.07


def _status_for(category: Category, usage: float, capacity: float, percentage: int) -> BuildingStatus:
    if category == Category.ELECTRICITY:
        return BuildingStatus.WARNING if percentage > 75 else BuildingStatus.NORMAL
    if category == Category.WATER:
        if percentage > 110:
            return BuildingStatus.WARNING
        if percentage < 85:
            return BuildingStatus.GOOD
        return BuildingStatus.NORMAL

    # Redondeado a 3 decimales antes de comparar, como se muestra
    waste_per_meal = round_half_up(usage / capacity, 3) if capacity and usage > 0 else 0.0
    return BuildingStatus.WARNING if waste_per_meal > FOOD_WASTE_PER_MEAL_WARNING else BuildingStatus.GOOD


def build_snapshot(
    category: "str | Category",
    building: str,
    latest: Optional[LatestValue],
    capacity: Optional[float] = None,
) -> BuildingSnapshot:
    """Construye el snapshot de un edificio. Ausente = uso 0."""
    category = Category.parse(category)
    config = get_category_config(category)
    if capacity is None:
        capacity = float(config.capacities.get(building, 0))

    usage = safe_float(latest.value) if latest is not None else 0.0
    # El dashboard muestra kWh y L enteros, kg con un decimal
    usage = round_half_up(usage, 1 if category == Category.FOOD else 0)

    percentage = int(round_half_up(usage / capacity * 100)) if capacity else 0

    return BuildingSnapshot(
        name=building,
        usage=usage,
        capacity_or_target=capacity,
        percentage=percentage,
        status=_status_for(category, usage, capacity, percentage),
        timestamp=latest.timestamp if latest is not None else None,
    )


def build_snapshots(
    category: "str | Category",
    latest: Mapping[str, LatestValue],
) -> List[BuildingSnapshot]:
    """Un snapshot por edificio configurado, siempre en el mismo orden."""
    config = get_category_config(category)
    return [
        build_snapshot(config.category, building, latest.get(building), capacity)
        for building, capacity in config.capacities.items()
    ]


def snapshot_totals(snapshots: List[BuildingSnapshot]) -> Dict[str, object]:
    """Totales del campus: actual, pico, fuente del pico y promedio."""
    total = sum(s.usage for s in snapshots)
    peak, peak_source = 0.0, ""
    for s in snapshots:
        if s.usage > peak:
            peak, peak_source = s.usage, s.name
    return {
        "current": total,
        "peak": peak,
        "peak_source": peak_source,
        "average": total / len(snapshots) if snapshots else 0.0,
    }
