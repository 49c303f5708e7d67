"""Contrato de las fuentes de lecturas consumidas por el motor."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Protocol

from ..core.domain.category import Category
from ..core.domain.reading import LatestValue, Reading

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Category], None]


class ReadingSourceError(Exception):
    """Fallo del backend de lecturas (BD, red, etc.)."""


class ReadingSource(Protocol):
    def fetch_latest_snapshot(self, category: "str | Category") -> Dict[str, LatestValue]:
        """Último valor por edificio. Edificios ausentes no aparecen."""
        ...

    def fetch_all_latest(self) -> Dict[str, Dict[str, LatestValue]]:
        ...

    def fetch_recent_readings(
        self, category: "str | Category", building: str, limit: int
    ) -> List[Reading]:
        """Últimas `limit` lecturas, de la más vieja a la más nueva."""
        ...

    def append(self, category: "str | Category", reading: Reading) -> None:
        ...

    def on_update(self, callback: UpdateCallback) -> Callable[[], None]:
        ...


class UpdateNotifier:
    """Registro de callbacks `on_update` compartido por las implementaciones."""

    def __init__(self):
        self._callbacks: List[UpdateCallback] = []
        self._callbacks_lock = threading.Lock()

    def on_update(self, callback: UpdateCallback) -> Callable[[], None]:
        with self._callbacks_lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._callbacks_lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def _notify_update(self, category: Category) -> None:
        with self._callbacks_lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(category)
            except Exception:
                logger.exception("[STORE] on_update callback failed category=%s", category.value)
