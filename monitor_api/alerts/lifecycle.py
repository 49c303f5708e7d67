"""Ciclo de vida de alertas: Pending → Visible → {Dismissed | Expired}.

El conjunto visible se re-deriva en cada cambio como las primeras
`max_visible` alertas seguidas; el resto espera en orden FIFO y sube
cuando se libera un lugar. La cuenta regresiva de auto-dismiss empieza
al volverse visible.

Dos mecanismos de expiración, ambos idempotentes:
- Timer asyncio (`call_later`) cuando hay un event loop asociado
- `expire_due(now)` con el reloj inyectado (loop del servicio y tests)

Todas las mutaciones pasan por un único lock. Los observadores se
notifican fuera del lock.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

from ..core.domain.alert import Alert

logger = logging.getLogger(__name__)

DEFAULT_MAX_VISIBLE = 3
DEFAULT_MAX_PENDING = 20
DEFAULT_DURATION_SECONDS = 5.0


class LifecycleEventKind(str, Enum):
    VISIBLE = "visible"
    DISMISSED = "dismissed"
    EXPIRED = "expired"
    DROPPED = "dropped"


@dataclass(frozen=True)
class LifecycleEvent:
    kind: LifecycleEventKind
    alert: Alert
    at: float

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "alert": self.alert.to_dict(), "at": self.at}


LifecycleObserver = Callable[[LifecycleEvent], None]


@dataclass
class _Tracked:
    alert: Alert
    visible_since: Optional[float] = None
    expires_at: Optional[float] = None
    timer: Optional[asyncio.TimerHandle] = None

    @property
    def is_visible(self) -> bool:
        return self.visible_since is not None


class AlertLifecycleManager:
    """Único dueño del conjunto de alertas activas."""

    def __init__(
        self,
        max_visible: int = DEFAULT_MAX_VISIBLE,
        max_pending: int = DEFAULT_MAX_PENDING,
        clock: Callable[[], float] = time.monotonic,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        default_duration: float = DEFAULT_DURATION_SECONDS,
    ):
        self._max_visible = max(1, int(max_visible))
        self._max_pending = max(0, int(max_pending))
        self._clock = clock
        self._loop = loop
        self._default_duration = default_duration
        self._tracked: "OrderedDict[str, _Tracked]" = OrderedDict()
        self._observers: List[LifecycleObserver] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Configuración
    # ------------------------------------------------------------------

    @property
    def max_visible(self) -> int:
        return self._max_visible

    def attach_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Asocia el event loop donde se programan los timers."""
        self._loop = loop

    def subscribe(self, observer: LifecycleObserver) -> Callable[[], None]:
        """Registra un observador. Devuelve la función para desuscribirlo."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def visible(self) -> List[Alert]:
        with self._lock:
            return [t.alert for t in self._tracked.values() if t.is_visible]

    def pending(self) -> List[Alert]:
        with self._lock:
            return [t.alert for t in self._tracked.values() if not t.is_visible]

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            tracked = self._tracked.get(alert_id)
            return tracked.alert if tracked else None

    def expires_at(self, alert_id: str) -> Optional[float]:
        with self._lock:
            tracked = self._tracked.get(alert_id)
            return tracked.expires_at if tracked else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracked)

    # ------------------------------------------------------------------
    # Mutaciones
    # ------------------------------------------------------------------

    def submit(self, alerts: Iterable[Alert]) -> List[Alert]:
        """Agrega alertas en orden. Ids ya seguidos se ignoran.

        Returns:
            Alertas que se volvieron visibles con esta llamada
        """
        events: List[LifecycleEvent] = []
        with self._lock:
            now = self._clock()
            for alert in alerts:
                if alert.id in self._tracked:
                    continue
                if self._pending_count() >= self._max_pending and self._visible_count() >= self._max_visible:
                    logger.warning("[ALERTS] pending queue full, dropping id=%s", alert.id)
                    events.append(LifecycleEvent(LifecycleEventKind.DROPPED, alert, now))
                    continue
                self._tracked[alert.id] = _Tracked(alert=alert)
                events.extend(self._refresh(now))
        self._notify(events)
        return [e.alert for e in events if e.kind == LifecycleEventKind.VISIBLE]

    def dismiss(self, alert_id: str) -> bool:
        """Descarta una alerta de inmediato. Ids desconocidos: no-op (False)."""
        events: List[LifecycleEvent] = []
        with self._lock:
            tracked = self._tracked.pop(alert_id, None)
            if tracked is None:
                return False
            now = self._clock()
            self._cancel_timer(tracked)
            events.append(LifecycleEvent(LifecycleEventKind.DISMISSED, tracked.alert, now))
            events.extend(self._refresh(now))
        logger.info("[ALERTS] dismissed id=%s", alert_id)
        self._notify(events)
        return True

    def expire_due(self, now: Optional[float] = None) -> List[Alert]:
        """Expira toda alerta visible cuya cuenta regresiva terminó.

        Returns:
            Alertas expiradas
        """
        events: List[LifecycleEvent] = []
        with self._lock:
            if now is None:
                now = self._clock()
            due = [
                alert_id
                for alert_id, t in self._tracked.items()
                if t.expires_at is not None and t.expires_at <= now
            ]
            for alert_id in due:
                tracked = self._tracked.pop(alert_id)
                self._cancel_timer(tracked)
                events.append(LifecycleEvent(LifecycleEventKind.EXPIRED, tracked.alert, now))
            if due:
                events.extend(self._refresh(now))
        self._notify(events)
        return [e.alert for e in events if e.kind == LifecycleEventKind.EXPIRED]

    def clear(self) -> None:
        """Descarta todo sin notificar (apagado del servicio)."""
        with self._lock:
            for tracked in self._tracked.values():
                self._cancel_timer(tracked)
            self._tracked.clear()

    # ------------------------------------------------------------------
    # Internos (llamar con el lock tomado)
    # ------------------------------------------------------------------

    def _visible_count(self) -> int:
        return sum(1 for t in self._tracked.values() if t.is_visible)

    def _pending_count(self) -> int:
        return sum(1 for t in self._tracked.values() if not t.is_visible)

    def _refresh(self, now: float) -> List[LifecycleEvent]:
        """Re-deriva el conjunto visible: las primeras `max_visible`."""
        events: List[LifecycleEvent] = []
        for index, tracked in enumerate(self._tracked.values()):
            if index >= self._max_visible:
                break
            if tracked.is_visible:
                continue
            tracked.visible_since = now
            if tracked.alert.auto_dismiss:
                duration = tracked.alert.duration
                if duration is None or duration <= 0:
                    duration = self._default_duration
                tracked.expires_at = now + duration
                self._schedule_timer(tracked, duration)
            events.append(LifecycleEvent(LifecycleEventKind.VISIBLE, tracked.alert, now))
        return events

    def _schedule_timer(self, tracked: _Tracked, delay: float) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        alert_id = tracked.alert.id

        if self._in_loop_thread(loop):
            tracked.timer = loop.call_later(delay, self._on_timer, alert_id)
            return

        def arm() -> None:
            with self._lock:
                current = self._tracked.get(alert_id)
                if current is tracked and tracked.timer is None:
                    tracked.timer = loop.call_later(delay, self._on_timer, alert_id)

        loop.call_soon_threadsafe(arm)

    def _cancel_timer(self, tracked: _Tracked) -> None:
        timer, tracked.timer = tracked.timer, None
        if timer is None:
            return
        loop = self._loop
        if loop is None or loop.is_closed() or self._in_loop_thread(loop):
            timer.cancel()
        else:
            loop.call_soon_threadsafe(timer.cancel)

    @staticmethod
    def _in_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _on_timer(self, alert_id: str) -> None:
        events: List[LifecycleEvent] = []
        with self._lock:
            tracked = self._tracked.pop(alert_id, None)
            if tracked is None:
                return
            tracked.timer = None
            now = self._clock()
            events.append(LifecycleEvent(LifecycleEventKind.EXPIRED, tracked.alert, now))
            events.extend(self._refresh(now))
        logger.debug("[ALERTS] expired id=%s", alert_id)
        self._notify(events)

    def _notify(self, events: List[LifecycleEvent]) -> None:
        if not events:
            return
        with self._lock:
            observers = list(self._observers)
        for event in events:
            for observer in observers:
                try:
                    observer(event)
                except Exception:
                    logger.exception("[ALERTS] observer failed kind=%s id=%s", event.kind.value, event.alert.id)
