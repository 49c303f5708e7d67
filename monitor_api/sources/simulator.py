"""Generador de lecturas sintéticas para demo y desarrollo.

El estado (último valor por categoría/edificio) es explícito y lo posee
el loop de simulación; la política para cambios pequeños es inyectable.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import Reading
from ..core.numeric import round_half_up
from .base import ReadingSource, ReadingSourceError

logger = logging.getLogger(__name__)

# (categoría, edificio, último valor, nuevo valor) -> publicar?
SmallChangePolicy = Callable[[Category, str, float, float], bool]

DEFAULT_SMALL_CHANGE_PCT = 2.0
DEFAULT_SMALL_CHANGE_PROBABILITY = 0.5


@dataclass(frozen=True)
class BaseProfile:
    """Valor base por tipo de edificio y amplitud de la variación."""

    hostel: float
    cafeteria: float
    other: float
    spread: float  # variación total relativa: ±spread/2
    decimals: int

    def base_for(self, building: str) -> float:
        if "Hostel" in building:
            return self.hostel
        if "Cafeteria" in building:
            return self.cafeteria
        return self.other


PROFILES: Dict[Category, BaseProfile] = {
    Category.ELECTRICITY: BaseProfile(hostel=120, cafeteria=200, other=80, spread=0.3, decimals=2),
    Category.WATER: BaseProfile(hostel=2500, cafeteria=4000, other=600, spread=0.25, decimals=0),
    # Comida: el orden de bases difiere (la cafetería domina)
    Category.FOOD: BaseProfile(hostel=2, cafeteria=10, other=0.5, spread=0.8, decimals=2),
}


@dataclass
class SimulatorState:
    """Último valor publicado por (categoría, edificio)."""

    last_values: Dict[Tuple[Category, str], float] = field(default_factory=dict)

    def get(self, category: Category, building: str) -> Optional[float]:
        return self.last_values.get((category, building))

    def set(self, category: Category, building: str, value: float) -> None:
        self.last_values[(category, building)] = value


def probabilistic_policy(
    probability: float = DEFAULT_SMALL_CHANGE_PROBABILITY,
    seed: Optional[int] = None,
) -> SmallChangePolicy:
    rng = random.Random(seed)

    def policy(category: Category, building: str, last: float, new: float) -> bool:
        return rng.random() < probability

    return policy


def always_push(category: Category, building: str, last: float, new: float) -> bool:
    return True


def never_push(category: Category, building: str, last: float, new: float) -> bool:
    return False


def generate_reading(
    category: "str | Category",
    building: str,
    ts: int,
    rng: random.Random,
) -> Reading:
    """Una lectura sintética alrededor del valor base del edificio."""
    category = Category.parse(category)
    profile = PROFILES[category]
    base = profile.base_for(building)
    value = round_half_up(base + (rng.random() - 0.5) * base * profile.spread, profile.decimals)

    meta = {}
    if category == Category.FOOD and "Cafeteria" in building:
        meta = {"mealsServed": int(round_half_up(100 + rng.random() * 200))}

    return Reading(
        building=building,
        timestamp=int(ts),
        value=value,
        unit=get_category_config(category).unit,
        meta=meta,
    )


class ReadingSimulator:
    """Publica una lectura por (categoría, edificio) en cada tick."""

    def __init__(
        self,
        source: ReadingSource,
        state: Optional[SimulatorState] = None,
        rng: Optional[random.Random] = None,
        small_change_policy: Optional[SmallChangePolicy] = None,
        small_change_pct: float = DEFAULT_SMALL_CHANGE_PCT,
        buildings: Optional[Iterable[str]] = None,
        categories: Iterable[Category] = tuple(Category),
    ):
        self._source = source
        self.state = state or SimulatorState()
        self._rng = rng or random.Random()
        self._policy = small_change_policy or probabilistic_policy()
        self._small_change_pct = small_change_pct
        # None: los edificios configurados para cada categoría
        self._buildings = tuple(buildings) if buildings is not None else None
        self._categories = tuple(categories)

    def _buildings_for(self, category: Category) -> Tuple[str, ...]:
        if self._buildings is not None:
            return self._buildings
        return get_category_config(category).buildings

    def _is_small_change(self, last: Optional[float], new: float) -> bool:
        if last is None:
            return False
        if last == 0:
            return new == 0
        return abs(new - last) / abs(last) * 100 < self._small_change_pct

    def tick(self, ts: Optional[int] = None) -> List[Reading]:
        """Genera y publica lecturas.

        Returns:
            Lecturas publicadas (las omitidas por la política no aparecen)
        """
        if ts is None:
            ts = int(time.time() * 1000)

        pushed: List[Reading] = []
        for category in self._categories:
            for building in self._buildings_for(category):
                reading = generate_reading(category, building, ts, self._rng)
                last = self.state.get(category, building)
                if self._is_small_change(last, reading.value) and not self._policy(
                    category, building, last, reading.value
                ):
                    logger.debug("[SIM] skip small change %s/%s", category.value, building)
                    continue
                self._source.append(category, reading)
                self.state.set(category, building, reading.value)
                pushed.append(reading)

        logger.info("[SIM] tick ts=%d pushed=%d", ts, len(pushed))
        return pushed

    async def run(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        """Tick inmediato y luego cada `interval_seconds` hasta `stop_event`."""
        logger.info("[SIM] started interval=%ss", interval_seconds)
        while not stop_event.is_set():
            try:
                await asyncio.to_thread(self.tick)
            except ReadingSourceError as e:
                logger.warning("[SIM] tick failed: %s", e)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("[SIM] stopped")
