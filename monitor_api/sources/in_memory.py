"""Store de lecturas en memoria, thread-safe y con historial acotado."""

from __future__ import annotations

import bisect
import logging
import threading
from typing import Dict, List, Tuple

from ..core.domain.category import Category
from ..core.domain.reading import LatestValue, Reading
from .base import UpdateNotifier

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 500


class InMemoryReadingStore(UpdateNotifier):
    """Historial por (categoría, edificio) + snapshot del último valor."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        super().__init__()
        self._max_history = max(1, int(max_history))
        self._history: Dict[Tuple[Category, str], List[Reading]] = {}
        self._latest: Dict[Category, Dict[str, LatestValue]] = {c: {} for c in Category}
        self._lock = threading.Lock()

    def append(self, category: "str | Category", reading: Reading) -> None:
        """Agrega una lectura y actualiza el snapshot.

        El historial queda ordenado por timestamp aunque lleguen lecturas
        atrasadas; el snapshot solo avanza, nunca retrocede.

        Raises:
            ValueError: categoría desconocida
        """
        category = Category.parse(category)
        with self._lock:
            history = self._history.setdefault((category, reading.building), [])
            if history and reading.timestamp < history[-1].timestamp:
                index = bisect.bisect_right([r.timestamp for r in history], reading.timestamp)
                history.insert(index, reading)
            else:
                history.append(reading)
            if len(history) > self._max_history:
                del history[: len(history) - self._max_history]

            current = self._latest[category].get(reading.building)
            if current is None or reading.timestamp >= current.timestamp:
                self._latest[category][reading.building] = LatestValue(
                    value=reading.value,
                    timestamp=reading.timestamp,
                    unit=reading.unit,
                )
        logger.debug(
            "[STORE] append category=%s building=%s value=%s",
            category.value,
            reading.building,
            reading.value,
        )
        self._notify_update(category)

    def fetch_latest_snapshot(self, category: "str | Category") -> Dict[str, LatestValue]:
        category = Category.parse(category)
        with self._lock:
            return dict(self._latest[category])

    def fetch_all_latest(self) -> Dict[str, Dict[str, LatestValue]]:
        with self._lock:
            return {c.value: dict(values) for c, values in self._latest.items()}

    def fetch_recent_readings(
        self, category: "str | Category", building: str, limit: int
    ) -> List[Reading]:
        category = Category.parse(category)
        if limit <= 0:
            return []
        with self._lock:
            history = self._history.get((category, building))
            if not history:
                return []
            return history[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
            self._latest = {c: {} for c in Category}
