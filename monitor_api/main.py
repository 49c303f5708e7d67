from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI, WebSocket

from common.config import Settings, get_settings
from common.db import create_db_engine

from .alerts import AlertCooldown, AlertEmitter, AlertLifecycleManager, probabilistic_gate
from .alerts.publisher import AlertEventPublisher, RedisConnection
from .classification import get_strategy
from .endpoints import alerts_router, health_router, readings_router
from .evaluation import EvaluationService, resolve_timezone
from .sources import InMemoryReadingStore, ReadingSimulator, ReadingSource, SqlReadingStore
from .transports.websocket import BroadcastHub, websocket_endpoint

logger = logging.getLogger(__name__)


def _build_source(settings: Settings) -> ReadingSource:
    if settings.store_backend == "sql":
        return SqlReadingStore(create_db_engine(settings.database_url))
    if settings.store_backend != "memory":
        logger.warning("[APP] unknown STORE_BACKEND=%r, using memory", settings.store_backend)
    return InMemoryReadingStore()


def create_app(
    settings: Optional[Settings] = None,
    source: Optional[ReadingSource] = None,
    clock: Optional[Callable[[], float]] = None,
) -> FastAPI:
    """Construye la app con todas sus piezas cableadas.

    Args:
        settings: Configuración; por defecto la del entorno
        source: Fuente de lecturas ya construida (tests)
        clock: Reloj monotónico para el ciclo de vida y el cooldown
    """
    settings = settings or get_settings()
    source = source or _build_source(settings)

    lifecycle_kwargs = {} if clock is None else {"clock": clock}
    lifecycle = AlertLifecycleManager(
        max_visible=settings.max_visible_alerts,
        max_pending=settings.max_pending_alerts,
        **lifecycle_kwargs,
    )
    emitter = AlertEmitter(
        strategy=get_strategy(settings.classifier_strategy),
        achievement_gate=probabilistic_gate(settings.achievement_probability, settings.achievement_seed),
        cooldown=AlertCooldown(settings.alert_cooldown_seconds, **lifecycle_kwargs),
    )
    service = EvaluationService(
        source,
        lifecycle,
        emitter=emitter,
        bucket_ms=settings.bucket_ms,
        tz=resolve_timezone(settings.display_timezone),
    )

    hub = BroadcastHub()
    lifecycle.subscribe(hub.on_lifecycle_event)
    service.subscribe(hub.on_cycle_result)

    redis_connection: Optional[RedisConnection] = None
    if settings.redis_url:
        redis_connection = RedisConnection(settings.redis_url)
        if redis_connection.connect():
            lifecycle.subscribe(AlertEventPublisher(redis_connection))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        loop = asyncio.get_running_loop()
        lifecycle.attach_loop(loop)
        hub.attach_loop(loop)
        unbind = service.bind_updates(loop)

        stop_event = asyncio.Event()
        tasks: List[asyncio.Task] = []
        if settings.evaluation_interval_seconds > 0:
            tasks.append(asyncio.create_task(service.run(settings.evaluation_interval_seconds, stop_event)))
        if settings.simulator_enabled:
            simulator = ReadingSimulator(source)
            tasks.append(asyncio.create_task(simulator.run(settings.simulator_interval_seconds, stop_event)))

        logger.info(
            "[APP] started store=%s strategy=%s tasks=%d",
            settings.store_backend,
            settings.classifier_strategy,
            len(tasks),
        )
        try:
            yield
        finally:
            stop_event.set()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            unbind()
            await service.drain()
            lifecycle.clear()
            lifecycle.attach_loop(None)
            if redis_connection is not None:
                redis_connection.disconnect()
            logger.info("[APP] stopped")

    app = FastAPI(title="Campus Resource Monitor", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.hub = hub

    app.include_router(health_router)
    app.include_router(readings_router)
    app.include_router(alerts_router)

    @app.websocket("/ws")
    async def ws(websocket: WebSocket):
        await websocket_endpoint(websocket, hub, lifecycle)

    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    import uvicorn

    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
