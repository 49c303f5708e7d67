"""Categorías de recursos monitorizados y su configuración estática."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class Category(str, Enum):
    ELECTRICITY = "electricity"
    WATER = "water"
    FOOD = "food"

    @classmethod
    def parse(cls, value: "str | Category") -> "Category":
        """Normaliza un nombre de categoría.

        Raises:
            ValueError: si la categoría no existe
        """
        if isinstance(value, Category):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown category: {value!r}") from None


@dataclass(frozen=True)
class CategoryConfig:
    """Unidad, precisión de display, color y edificios de una categoría.

    `capacities` es la capacidad (kWh) para electricidad, el objetivo (L)
    para agua y las comidas servidas para residuos de comida.
    """

    category: Category
    name: str
    unit: str
    decimals: int
    color: str
    capacities: Dict[str, float] = field(default_factory=dict)
    history_window: int = 2

    @property
    def buildings(self) -> Tuple[str, ...]:
        return tuple(self.capacities)


CATEGORY_CONFIGS: Dict[Category, CategoryConfig] = {
    Category.ELECTRICITY: CategoryConfig(
        category=Category.ELECTRICITY,
        name="Electricity",
        unit="kWh",
        decimals=2,
        color="#f59e0b",
        capacities={"Hostel-A": 200, "Library": 150, "Cafeteria": 250, "Labs": 180},
    ),
    Category.WATER: CategoryConfig(
        category=Category.WATER,
        name="Water",
        unit="L",
        decimals=0,
        color="#3b82f6",
        capacities={"Hostel-A": 2200, "Library": 800, "Cafeteria": 3800, "Labs": 900},
        # Ventana larga para la comparación contra baseline histórico
        history_window=30,
    ),
    Category.FOOD: CategoryConfig(
        category=Category.FOOD,
        name="Food Waste",
        unit="kg",
        decimals=2,
        color="#10b981",
        capacities={"Cafeteria": 450, "Hostel-A": 200, "Labs": 50},
    ),
}

UNIT_DECIMALS: Dict[str, int] = {"kWh": 2, "kg": 2, "L": 0}


def get_category_config(category: "str | Category") -> CategoryConfig:
    return CATEGORY_CONFIGS[Category.parse(category)]
