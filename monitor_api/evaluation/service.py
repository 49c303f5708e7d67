"""Servicio de evaluación: orquesta un ciclo por categoría.

Flujo de un ciclo:
    fuente → snapshots → deltas → métrica del campus → clasificación
    → emisión deduplicada → ciclo de vida

Las categorías no comparten estado mutable y se evalúan en paralelo;
solo el `AlertLifecycleManager` es compartido (y serializa por lock).
Si la fuente falla, el ciclo de esa categoría se omite y se conserva el
resultado anterior.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Callable, Dict, List, Optional, Set, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..aggregation import (
    BucketedPoint,
    CampusMetric,
    DeltaRecord,
    bucket_readings,
    build_snapshots,
    campus_metric,
    immediate_delta,
    snapshot_totals,
    weekday_profile,
)
from ..alerts import AlertEmitter, AlertLifecycleManager, EvaluationContext
from ..core.domain.alert import Alert
from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import BuildingSnapshot
from ..sources.base import ReadingSource, ReadingSourceError

logger = logging.getLogger(__name__)

DEFAULT_SERIES_LIMIT = 50
UPDATE_DEBOUNCE_SECONDS = 0.05


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Zona horaria para etiquetas HH:MM. UTC si no existe."""
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[EVAL] unknown timezone %r, using UTC", name)
        return timezone.utc


@dataclass
class CycleResult:
    """Resultado de evaluar una categoría."""

    category: Category
    timestamp: int
    snapshots: List[BuildingSnapshot]
    deltas: Dict[str, DeltaRecord]
    campus_metric: CampusMetric
    alerts: List[Alert] = field(default_factory=list)
    totals: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "timestamp": self.timestamp,
            "buildings": [s.to_dict() for s in self.snapshots],
            "deltas": {
                name: {
                    "prev": d.prev,
                    "latest": d.latest,
                    "delta": d.delta,
                    "pct_change": d.pct_change,
                    "is_complete": d.is_complete,
                }
                for name, d in self.deltas.items()
            },
            "campus_metric": self.campus_metric.to_dict(),
            "totals": dict(self.totals),
            "alerts": [a.to_dict() for a in self.alerts],
        }


ResultObserver = Callable[[CycleResult], None]


class EvaluationService:
    def __init__(
        self,
        source: ReadingSource,
        lifecycle: AlertLifecycleManager,
        emitter: Optional[AlertEmitter] = None,
        bucket_ms: int = 5 * 60 * 1000,
        tz: tzinfo = timezone.utc,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self._source = source
        self._lifecycle = lifecycle
        self._emitter = emitter or AlertEmitter()
        self._bucket_ms = bucket_ms
        self._tz = tz
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))

        self._results: Dict[Category, CycleResult] = {}
        self._series: Dict[Tuple[Category, str], List[BucketedPoint]] = {}
        self._observers: List[ResultObserver] = []
        self._lock = threading.Lock()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._scheduled: Set[Category] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def lifecycle(self) -> AlertLifecycleManager:
        return self._lifecycle

    @property
    def source(self) -> ReadingSource:
        return self._source

    def subscribe(self, observer: ResultObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def last_result(self, category: "str | Category") -> Optional[CycleResult]:
        with self._lock:
            return self._results.get(Category.parse(category))

    # ------------------------------------------------------------------
    # Evaluación
    # ------------------------------------------------------------------

    def evaluate_category(self, category: "str | Category") -> Optional[CycleResult]:
        """Ejecuta un ciclo completo para una categoría.

        Returns:
            El nuevo resultado, o el anterior (posiblemente None) si la
            fuente falló
        """
        category = Category.parse(category)
        config = get_category_config(category)

        try:
            latest = self._source.fetch_latest_snapshot(category)
            histories = {
                building: self._source.fetch_recent_readings(category, building, config.history_window)
                for building in config.buildings
            }
        except ReadingSourceError:
            logger.exception("[EVAL] source failure, keeping previous cycle category=%s", category.value)
            return self.last_result(category)
        except Exception:
            logger.exception("[EVAL] unexpected source error, keeping previous cycle category=%s", category.value)
            return self.last_result(category)

        timestamp = self._clock_ms()
        snapshots = build_snapshots(category, latest)
        deltas = {building: immediate_delta(building, histories[building]) for building in config.buildings}
        metric = campus_metric(category, snapshots, histories)

        context = EvaluationContext(
            category=category,
            snapshots=snapshots,
            deltas=deltas,
            campus_metric=metric,
            timestamp=timestamp,
            absent={b for b in config.buildings if b not in latest},
        )
        alerts = self._emitter.emit(context)
        self._lifecycle.submit(alerts)

        result = CycleResult(
            category=category,
            timestamp=timestamp,
            snapshots=snapshots,
            deltas=deltas,
            campus_metric=metric,
            alerts=alerts,
            totals=snapshot_totals(snapshots),
        )
        with self._lock:
            self._results[category] = result
            observers = list(self._observers)

        logger.info(
            "[EVAL] category=%s buildings=%d alerts=%d metric=%s(%s)",
            category.value,
            len(snapshots),
            len(alerts),
            metric.value,
            metric.source,
        )
        for observer in observers:
            try:
                observer(result)
            except Exception:
                logger.exception("[EVAL] result observer failed category=%s", category.value)
        return result

    async def run_cycle(self) -> Dict[str, Optional[CycleResult]]:
        """Evalúa todas las categorías en paralelo."""
        categories = list(Category)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.evaluate_category, c) for c in categories)
        )
        self._lifecycle.expire_due()
        return {c.value: r for c, r in zip(categories, results)}

    async def run(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        """Ciclo periódico: evaluar, expirar, esperar."""
        logger.info("[EVAL] loop started interval=%ss", interval_seconds)
        while not stop_event.is_set():
            await self.run_cycle()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("[EVAL] loop stopped")

    # ------------------------------------------------------------------
    # Re-evaluación por actualizaciones de la fuente
    # ------------------------------------------------------------------

    def bind_updates(self, loop: asyncio.AbstractEventLoop) -> Callable[[], None]:
        """Re-evalúa una categoría cuando la fuente reporta lecturas nuevas.

        Ráfagas de actualizaciones de una misma categoría se agrupan en
        una sola evaluación.
        """
        self._loop = loop
        return self._source.on_update(self._on_source_update)

    def _on_source_update(self, category: Category) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        with self._lock:
            if category in self._scheduled:
                return
            self._scheduled.add(category)
        loop.call_soon_threadsafe(self._spawn_evaluation, category)

    def _spawn_evaluation(self, category: Category) -> None:
        task = asyncio.ensure_future(self._evaluate_scheduled(category))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _evaluate_scheduled(self, category: Category) -> None:
        await asyncio.sleep(UPDATE_DEBOUNCE_SECONDS)
        with self._lock:
            self._scheduled.discard(category)
        await asyncio.to_thread(self.evaluate_category, category)

    async def drain(self) -> None:
        """Espera las re-evaluaciones en curso (apagado y tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Series para gráficos
    # ------------------------------------------------------------------

    def chart_series(
        self,
        category: "str | Category",
        building: str,
        limit: int = DEFAULT_SERIES_LIMIT,
        bucket_ms: Optional[int] = None,
    ) -> List[BucketedPoint]:
        """Serie agrupada en buckets para un edificio.

        Si la fuente falla se devuelve la última serie calculada.
        """
        category = Category.parse(category)
        config = get_category_config(category)
        key = (category, building)
        try:
            readings = self._source.fetch_recent_readings(category, building, limit)
        except ReadingSourceError:
            logger.exception("[EVAL] series fetch failed category=%s building=%s", category.value, building)
            with self._lock:
                return list(self._series.get(key, []))

        points = bucket_readings(
            readings,
            bucket_ms=bucket_ms or self._bucket_ms,
            decimals=config.decimals,
            tz=self._tz,
            now_ms=self._clock_ms(),
        )
        with self._lock:
            self._series[key] = points
        return points

    def weekly_profile(self, category: "str | Category", limit: int = DEFAULT_SERIES_LIMIT) -> List[dict]:
        """Promedio por día de la semana sobre todos los edificios."""
        category = Category.parse(category)
        readings = []
        for building in get_category_config(category).buildings:
            readings.extend(self._source.fetch_recent_readings(category, building, limit))
        return weekday_profile(readings, self._tz)
