from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # El store se usa desde el loop y desde el threadpool de FastAPI.
        connect_args["check_same_thread"] = False

    logger.info("[DB] Crear engine url=%s", url.split("@")[-1])
    engine = create_engine(url, pool_pre_ping=True, future=True, connect_args=connect_args)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return engine

