"""Plantillas de título/mensaje por (categoría, severidad).

Los números se formatean como en el dashboard: redondeo half-up y sin
ceros finales. Las cantidades derivadas (horas de AC, duchas, comidas)
forman parte del contrato de los mensajes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from ..aggregation.delta_analyzer import DeltaRecord
from ..core.domain.alert import AlertAction
from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import BuildingSnapshot
from ..core.numeric import format_number as fmt
from ..core.numeric import round_half_up
from .equivalents import (
    COST_CONFIGS,
    KG_PER_MEAL,
    KG_PER_PERSON_MEAL,
    KWH_PER_AC_HOUR,
    LITERS_PER_BOTTLE,
    LITERS_PER_BUCKET,
    LITERS_PER_SHOWER,
)
from .models import Classification, Severity
from .thresholds import get_thresholds


@dataclass(frozen=True)
class AlertContent:
    title: str
    message: str
    value: Optional[Union[float, str]] = None
    unit: Optional[str] = None
    action: Optional[AlertAction] = None


@dataclass(frozen=True)
class MessageInputs:
    """Valores que alimentan una plantilla."""

    building: str
    latest: float
    prev: float
    snapshot: BuildingSnapshot

    @property
    def delta(self) -> float:
        return self.latest - self.prev


def _inputs(category: Category, snapshot: BuildingSnapshot, delta: Optional[DeltaRecord]) -> MessageInputs:
    usable = delta is not None and delta.is_usable
    if category == Category.FOOD:
        # Residuo: el valor actual sale del snapshot, el previo del historial
        latest = snapshot.usage
        prev = delta.prev if usable else latest
    else:
        latest = delta.latest if usable else snapshot.usage
        prev = delta.prev if usable else latest
    return MessageInputs(building=snapshot.name, latest=latest, prev=prev, snapshot=snapshot)


def _int(value: float) -> int:
    return int(round_half_up(value))


# =============================================================================
# Electricidad
# =============================================================================

def _electricity_critical(m: MessageInputs) -> AlertContent:
    extra = abs(m.delta)
    ac_hours = fmt(round_half_up(extra / KWH_PER_AC_HOUR, 1), 1)
    using = f"{fmt(extra, 1)} kWh MORE" if extra > 0 else "max power"
    return AlertContent(
        title="⚡ Power Overload Alert!",
        message=(
            f"{m.building} consumed {fmt(m.latest, 1)} kWh (up from {fmt(m.prev, 1)} kWh). "
            f"You're using {using}! That's {ac_hours} extra ACs running. "
            "Turn off non-essential equipment NOW!"
        ),
        value=fmt(m.latest, 1),
        unit="kWh",
        action=AlertAction(label="Check Systems", target=f"electricity:{m.building}:systems"),
    )


def _electricity_warning(m: MessageInputs) -> AlertContent:
    extra = fmt(m.delta, 1) if m.delta > 0 else "0"
    extra_cost = _int(m.delta * COST_CONFIGS[Category.ELECTRICITY].price_per_unit) if m.delta > 0 else 0
    return AlertContent(
        title="🔋 High Power Consumption",
        message=(
            f"{m.building} is consuming {fmt(m.latest, 1)} kWh (was {fmt(m.prev, 1)} kWh). "
            f"That's {extra} kWh more than last cycle! Extra cost: ₹{extra_cost}. "
            "Consider switching off lights & ACs in unused areas."
        ),
    )


def _electricity_success(m: MessageInputs) -> AlertContent:
    saved = abs(m.delta)
    config = COST_CONFIGS[Category.ELECTRICITY]
    saved_cost = _int(saved * config.price_per_unit)
    co2 = fmt(round_half_up(saved * config.co2_per_unit, 1), 1)
    return AlertContent(
        title="🌟 Excellent Energy Savings!",
        message=(
            f"{m.building} consumed only {fmt(m.latest, 1)} kWh (down from {fmt(m.prev, 1)} kWh)! "
            f"You saved {fmt(saved, 1)} kWh, ₹{saved_cost}, and {co2} kg CO₂. Amazing work! 🎉"
        ),
    )


# =============================================================================
# Agua
# =============================================================================

def _water_critical(m: MessageInputs) -> AlertContent:
    extra = abs(m.delta)
    bottles = _int(extra / LITERS_PER_BOTTLE)
    showers = _int(extra / LITERS_PER_SHOWER)
    return AlertContent(
        title="💧 Water Usage Critical!",
        message=(
            f"{m.building} consumed {fmt(m.latest, 0)} L (up from {fmt(m.prev, 0)} L). "
            f"That's {fmt(extra, 0)} L MORE water! Equivalent to {bottles} bottles or "
            f"{showers} showers wasted! Check for leaks immediately!"
        ),
        value=fmt(m.latest, 0),
        unit="L",
        action=AlertAction(label="Inspect Now", target=f"water:{m.building}:inspection"),
    )


def _water_warning(m: MessageInputs) -> AlertContent:
    extra = _int(m.delta) if m.delta > 0 else 0
    buckets = _int(extra / LITERS_PER_BUCKET)
    extra_cost = _int(extra * COST_CONFIGS[Category.WATER].price_per_unit)
    return AlertContent(
        title="💦 High Water Usage Detected",
        message=(
            f"{m.building} used {fmt(m.latest, 0)} L (was {fmt(m.prev, 0)} L). "
            f"That's {extra} L more, enough to fill {buckets} buckets! Extra cost: ₹{extra_cost}. "
            "Fix any dripping taps and use water wisely."
        ),
    )


def _water_success(m: MessageInputs) -> AlertContent:
    saved = abs(m.delta)
    bottles = _int(saved / LITERS_PER_BOTTLE)
    saved_cost = _int(saved * COST_CONFIGS[Category.WATER].price_per_unit)
    return AlertContent(
        title="🌊 Amazing Water Conservation!",
        message=(
            f"{m.building} used only {fmt(m.latest, 0)} L (down from {fmt(m.prev, 0)} L)! "
            f"You saved {fmt(saved, 0)} L, that's {bottles} water bottles! Saved ₹{saved_cost}. "
            "Every drop counts! 💙"
        ),
    )


# =============================================================================
# Residuos de comida
# =============================================================================

def _food_critical(m: MessageInputs) -> AlertContent:
    meals = _int(m.latest / KG_PER_MEAL)
    people = _int(m.latest / KG_PER_PERSON_MEAL)
    money = _int(m.latest * COST_CONFIGS[Category.FOOD].price_per_unit)
    return AlertContent(
        title="🍽️ Excessive Food Waste!",
        message=(
            f"{m.building} wasted {fmt(m.latest, 1)} kg today (up from {fmt(m.prev, 1)} kg). "
            f"That's {fmt(m.delta, 1)} kg MORE! Could have fed {people} people or saved {meals} meals. "
            f"Money lost: ₹{money}! Review portion sizes NOW!"
        ),
        value=fmt(m.latest, 1),
        unit="kg",
        action=AlertAction(label="View Solutions", target=f"food:{m.building}:waste-reduction"),
    )


def _food_warning(m: MessageInputs) -> AlertContent:
    extra = m.delta if m.delta > 0 else 0.0
    meals_lost = _int(extra / KG_PER_MEAL)
    over_target = m.latest - get_thresholds(Category.FOOD).warning
    return AlertContent(
        title="🥗 Food Waste Rising",
        message=(
            f"{m.building} wasted {fmt(m.latest, 1)} kg (was {fmt(m.prev, 1)} kg). "
            f"That's {meals_lost} meals wasted! You're {fmt(over_target, 1)} kg over the target. "
            "Small portions = less waste. Let's do better!"
        ),
    )


def _food_success(m: MessageInputs) -> AlertContent:
    reduced = abs(m.delta)
    meals_saved = _int(reduced / KG_PER_MEAL)
    money_saved = _int(reduced * COST_CONFIGS[Category.FOOD].price_per_unit)
    return AlertContent(
        title="🌱 Outstanding Waste Reduction!",
        message=(
            f"{m.building} wasted only {fmt(m.latest, 1)} kg (down from {fmt(m.prev, 1)} kg)! "
            f"You reduced waste by {fmt(reduced, 1)} kg, saved {meals_saved} meals worth ₹{money_saved}! "
            "You're a sustainability hero! 🎉"
        ),
    )


TEMPLATES: Dict[Tuple[Category, Severity], Callable[[MessageInputs], AlertContent]] = {
    (Category.ELECTRICITY, Severity.CRITICAL): _electricity_critical,
    (Category.ELECTRICITY, Severity.WARNING): _electricity_warning,
    (Category.ELECTRICITY, Severity.SUCCESS): _electricity_success,
    (Category.WATER, Severity.CRITICAL): _water_critical,
    (Category.WATER, Severity.WARNING): _water_warning,
    (Category.WATER, Severity.SUCCESS): _water_success,
    (Category.FOOD, Severity.CRITICAL): _food_critical,
    (Category.FOOD, Severity.WARNING): _food_warning,
    (Category.FOOD, Severity.SUCCESS): _food_success,
}


# =============================================================================
# Mayor consumidor
# =============================================================================

_HIGHEST_TAILS = {
    Severity.CRITICAL: "Critical level! Take immediate action.",
    Severity.WARNING: "High usage detected. Monitor closely.",
    Severity.INFO: "Usage within normal range.",
}
_HIGHEST_FOOD_TAILS = {
    Severity.CRITICAL: "Critical waste levels! Immediate action needed.",
    Severity.WARNING: "High waste detected. Review portion sizes.",
    Severity.INFO: "Waste within acceptable range.",
}


def _highest_consumer(category: Category, severity: Severity, snapshot: BuildingSnapshot) -> AlertContent:
    usage = snapshot.usage
    if category == Category.FOOD:
        per_meal = usage / snapshot.capacity_or_target * 1000 if snapshot.capacity_or_target else 0.0
        return AlertContent(
            title="🍽️ Highest Food Waste Source",
            message=(
                f"{snapshot.name} has the most food waste at {usage:.1f} kg "
                f"({_int(per_meal)}g per meal). {_HIGHEST_FOOD_TAILS[severity]}"
            ),
            value=f"{usage:.1f}",
            unit="kg",
        )

    if category == Category.WATER:
        title, noun, unit, basis = "💧 Highest Water Consumer", "water", "L", "target"
    else:
        title, noun, unit, basis = "⚡ Highest Electricity Consumer", "electricity", "kWh", "capacity"
    return AlertContent(
        title=title,
        message=(
            f"{snapshot.name} is consuming the most {noun} at {fmt(usage, 2)} {unit} "
            f"({snapshot.percentage}% of {basis}). {_HIGHEST_TAILS[severity]}"
        ),
        value=usage,
        unit=unit,
    )


def render(
    category: "str | Category",
    classification: Classification,
    snapshot: BuildingSnapshot,
    delta: Optional[DeltaRecord] = None,
) -> Optional[AlertContent]:
    """Título y mensaje para una clasificación. None si no hay alerta."""
    category = Category.parse(category)
    if not classification.should_alert:
        return None
    if classification.rule.startswith("utilization"):
        return _highest_consumer(category, classification.severity, snapshot)
    template = TEMPLATES.get((category, classification.severity))
    if template is None:
        return None
    return template(_inputs(category, snapshot, delta))


_ACHIEVEMENT_TITLES = {
    Category.ELECTRICITY: "🏆 Electricity Savings Milestone",
    Category.WATER: "🏆 Water Savings Milestone",
    Category.FOOD: "🏆 Food Waste Milestone",
}


def render_achievement(category: "str | Category", metric: float) -> AlertContent:
    category = Category.parse(category)
    if category == Category.FOOD:
        label = "reduction in food waste"
    else:
        label = f"saved on {get_category_config(category).name.lower()}"
    return AlertContent(
        title=_ACHIEVEMENT_TITLES[category],
        message=f"Incredible! Campus achieved {fmt(metric, 1)}% {label}. Together we're changing the world!",
    )
