"""Costos, CO₂ y equivalencias para enriquecer mensajes y el dashboard.

Solo presentación: nada de esto participa en la clasificación.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from ..core.domain.category import Category
from ..core.numeric import round_half_up, safe_float

CURRENCY = "₹"


@dataclass(frozen=True)
class CostConfig:
    price_per_unit: float
    co2_per_unit: float  # kg de CO₂ por unidad
    unit: str
    currency: str = CURRENCY


COST_CONFIGS: Dict[Category, CostConfig] = {
    Category.ELECTRICITY: CostConfig(price_per_unit=8, co2_per_unit=0.82, unit="kWh"),
    Category.WATER: CostConfig(price_per_unit=0.05, co2_per_unit=0.0003, unit="L"),
    Category.FOOD: CostConfig(price_per_unit=150, co2_per_unit=2.5, unit="kg"),
}

# Conversiones de equivalencias
KWH_PER_AC_HOUR = 1.5
KWH_PER_BULB_HOUR = 0.1
LITERS_PER_SHOWER = 75
LITERS_PER_BUCKET = 10
LITERS_PER_BOTTLE = 1
KG_PER_MEAL = 0.4
KG_PER_PERSON_MEAL = 0.5
KG_PER_PERSON_DAY = 0.4
MEALS_PER_KG = 3
CO2_KG_PER_TREE_YEAR = 20
CO2_KG_PER_CAR_DAY = 4.6

PROJECTION_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "day": {"daily": 1, "monthly": 30, "yearly": 365},
    "week": {"daily": 1 / 7, "monthly": 4.3, "yearly": 52},
    "month": {"daily": 1 / 30, "monthly": 1, "yearly": 12},
}

# (umbral de costo, mensaje), de mayor a menor
COST_COMPARISONS = {
    Category.ELECTRICITY: (
        (10000, "Equivalent to 50+ households monthly bill"),
        (5000, "Equivalent to 25+ households monthly bill"),
        (1000, "Equivalent to 5 households monthly bill"),
        (500, "Equivalent to 2-3 households monthly bill"),
        (0, "Less than 1 household monthly bill"),
    ),
    Category.WATER: (
        (5000, "Equivalent to 100+ households daily usage"),
        (1000, "Equivalent to 20+ households daily usage"),
        (500, "Equivalent to 10 households daily usage"),
        (100, "Equivalent to 2-3 households daily usage"),
        (0, "Less than 1 household daily usage"),
    ),
    Category.FOOD: (
        (10000, "Could feed 200+ meals"),
        (5000, "Could feed 100+ meals"),
        (1000, "Could feed 20+ meals"),
        (500, "Could feed 10+ meals"),
        (0, "Could feed a few meals"),
    ),
}


def _config(category) -> Optional[CostConfig]:
    try:
        return COST_CONFIGS[Category.parse(category)]
    except ValueError:
        return None


def format_currency(amount: float, currency: str = CURRENCY) -> str:
    """Monto sin decimales con separador de miles ("₹12,345")."""
    return f"{currency}{int(round_half_up(amount)):,}"


def calculate_cost(category, value) -> dict:
    """Costo de `value` unidades del recurso."""
    config = _config(category)
    if config is None:
        return {"cost": 0.0, "currency": CURRENCY, "formatted": f"{CURRENCY}0"}
    cost = safe_float(value) * config.price_per_unit
    return {"cost": cost, "currency": config.currency, "formatted": format_currency(cost, config.currency)}


def format_co2(co2_kg: float) -> str:
    """g por debajo de 1 kg, toneladas desde 1000 kg."""
    if co2_kg < 1:
        return f"{round_half_up(co2_kg * 1000):.0f} g"
    if co2_kg < 1000:
        return f"{round_half_up(co2_kg, 1):.1f} kg"
    return f"{round_half_up(co2_kg / 1000, 2):.2f} tonnes"


def calculate_co2(category, value) -> dict:
    config = _config(category)
    if config is None:
        return {"co2": 0.0, "formatted": "0 kg"}
    co2_kg = safe_float(value) * config.co2_per_unit
    return {"co2": co2_kg, "formatted": format_co2(co2_kg)}


def calculate_equivalents(category, value) -> Dict[str, dict]:
    """Equivalencias ambientales de `value` unidades.

    Siempre incluye árboles, días de auto y horas de bombilla; agua agrega
    botellas y duchas, comida agrega comidas y persona-días.
    """
    value = safe_float(value)
    category_key = Category.parse(category)
    co2_kg = calculate_co2(category_key, value)["co2"]
    bulb_kwh = value if category_key == Category.ELECTRICITY else 0.0

    equivalents = {
        "trees": {"value": int(round_half_up(co2_kg / CO2_KG_PER_TREE_YEAR)), "label": "trees needed yearly"},
        "cars": {"value": int(round_half_up(co2_kg / CO2_KG_PER_CAR_DAY)), "label": "car-days of emissions"},
        "bulbs": {"value": int(round_half_up(bulb_kwh / KWH_PER_BULB_HOUR)), "label": "hours of 100W bulb"},
    }
    if category_key == Category.WATER:
        equivalents["bottles"] = {"value": int(round_half_up(value / LITERS_PER_BOTTLE)), "label": "water bottles"}
        equivalents["showers"] = {"value": int(round_half_up(value / LITERS_PER_SHOWER)), "label": "showers"}
    if category_key == Category.FOOD:
        equivalents["meals"] = {"value": int(round_half_up(value * MEALS_PER_KG)), "label": "meals wasted"}
        equivalents["people"] = {"value": int(round_half_up(value / KG_PER_PERSON_DAY)), "label": "person-days of waste"}
    return equivalents


def calculate_savings(category, current_value, savings_percent) -> dict:
    """Lo que se ahorró dado el consumo actual y el % de ahorro.

    saved = current × pct / (100 − pct)
    """
    pct = safe_float(savings_percent)
    if pct <= 0 or pct >= 100:
        return {
            "amount": 0.0,
            "formatted": f"{CURRENCY}0",
            "co2_avoided": "0 kg",
            "saved_value": 0.0,
            "message": "No savings yet",
        }

    saved_value = safe_float(current_value) * pct / (100 - pct)
    cost = calculate_cost(category, saved_value)
    co2 = calculate_co2(category, saved_value)
    decimals = 1 if Category.parse(category) == Category.FOOD else 0
    return {
        "amount": cost["cost"],
        "formatted": cost["formatted"],
        "co2_avoided": co2["formatted"],
        "saved_value": round_half_up(saved_value, decimals),
        "message": f"Saved {cost['formatted']} this period",
    }


def calculate_projections(category, current_value, period: str = "day") -> dict:
    """Proyección diaria, mensual y anual desde un valor del periodo dado."""
    multipliers = PROJECTION_MULTIPLIERS.get(period, PROJECTION_MULTIPLIERS["day"])
    value = safe_float(current_value)
    projections = {}
    for horizon, factor in multipliers.items():
        projected = value * factor
        projections[horizon] = {
            "value": projected,
            "cost": calculate_cost(category, projected),
            "co2": calculate_co2(category, projected),
        }
    return projections


def cost_comparison(category, cost) -> str:
    """Comparación legible del costo contra hogares o comidas."""
    try:
        bands = COST_COMPARISONS[Category.parse(category)]
    except ValueError:
        bands = COST_COMPARISONS[Category.ELECTRICITY]
    cost = safe_float(cost)
    for threshold, message in bands:
        if cost >= threshold:
            return message
    return "Minimal cost"
