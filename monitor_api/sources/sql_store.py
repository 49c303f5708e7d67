"""Store de lecturas sobre SQLAlchemy (SQLite por defecto).

Tablas:
- readings: historial append-only
- latest:   último valor por (categoría, edificio)
"""

from __future__ import annotations

import json
import logging
from typing import Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.domain.category import Category
from ..core.domain.reading import LatestValue, Reading
from ..core.numeric import safe_float
from .base import ReadingSourceError, UpdateNotifier

logger = logging.getLogger(__name__)


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS readings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        category VARCHAR(32) NOT NULL,
        building VARCHAR(64) NOT NULL,
        ts BIGINT NOT NULL,
        value FLOAT NOT NULL,
        unit VARCHAR(16) NOT NULL DEFAULT '',
        meta TEXT
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS ix_readings_series
    ON readings (category, building, ts)
    """,
    """
    CREATE TABLE IF NOT EXISTS latest (
        category VARCHAR(32) NOT NULL,
        building VARCHAR(64) NOT NULL,
        ts BIGINT NOT NULL,
        value FLOAT NOT NULL,
        unit VARCHAR(16) NOT NULL DEFAULT '',
        PRIMARY KEY (category, building)
    )
    """,
)


class SqlReadingStore(UpdateNotifier):
    """Implementación de `ReadingSource` con SQL plano vía `text()`."""

    def __init__(self, engine: Engine, create_schema: bool = True):
        super().__init__()
        self._engine = engine
        if create_schema:
            self.ensure_schema()

    def ensure_schema(self) -> None:
        try:
            with self._engine.begin() as conn:
                for statement in _SCHEMA:
                    conn.execute(text(statement))
            logger.info("[STORE] schema ready")
        except SQLAlchemyError as e:
            raise ReadingSourceError(f"schema creation failed: {e}") from e

    def append(self, category: "str | Category", reading: Reading) -> None:
        category = Category.parse(category)
        params = {
            "category": category.value,
            "building": reading.building,
            "ts": int(reading.timestamp),
            "value": float(reading.value),
            "unit": reading.unit or "",
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    text(
                        """
                        INSERT INTO readings (category, building, ts, value, unit, meta)
                        VALUES (:category, :building, :ts, :value, :unit, :meta)
                        """
                    ),
                    {**params, "meta": json.dumps(reading.meta or {})},
                )
                conn.execute(
                    text(
                        """
                        INSERT INTO latest (category, building, ts, value, unit)
                        VALUES (:category, :building, :ts, :value, :unit)
                        ON CONFLICT (category, building) DO UPDATE SET
                            ts = excluded.ts,
                            value = excluded.value,
                            unit = excluded.unit
                        WHERE excluded.ts >= latest.ts
                        """
                    ),
                    params,
                )
        except SQLAlchemyError as e:
            logger.error("[STORE] append failed category=%s building=%s err=%s", category.value, reading.building, e)
            raise ReadingSourceError(f"append failed: {e}") from e

        self._notify_update(category)

    def fetch_latest_snapshot(self, category: "str | Category") -> Dict[str, LatestValue]:
        category = Category.parse(category)
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text("SELECT building, ts, value, unit FROM latest WHERE category = :category"),
                    {"category": category.value},
                ).fetchall()
        except SQLAlchemyError as e:
            raise ReadingSourceError(f"fetch latest failed: {e}") from e

        return {
            r.building: LatestValue(value=safe_float(r.value), timestamp=int(r.ts), unit=r.unit or "")
            for r in rows
        }

    def fetch_all_latest(self) -> Dict[str, Dict[str, LatestValue]]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(text("SELECT category, building, ts, value, unit FROM latest")).fetchall()
        except SQLAlchemyError as e:
            raise ReadingSourceError(f"fetch latest failed: {e}") from e

        result: Dict[str, Dict[str, LatestValue]] = {c.value: {} for c in Category}
        for r in rows:
            result.setdefault(r.category, {})[r.building] = LatestValue(
                value=safe_float(r.value), timestamp=int(r.ts), unit=r.unit or ""
            )
        return result

    def fetch_recent_readings(
        self, category: "str | Category", building: str, limit: int
    ) -> List[Reading]:
        category = Category.parse(category)
        if limit <= 0:
            return []
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text(
                        """
                        SELECT building, ts, value, unit, meta
                        FROM readings
                        WHERE category = :category AND building = :building
                        ORDER BY ts DESC, id DESC
                        LIMIT :limit
                        """
                    ),
                    {"category": category.value, "building": building, "limit": int(limit)},
                ).fetchall()
        except SQLAlchemyError as e:
            raise ReadingSourceError(f"fetch readings failed: {e}") from e

        readings = [
            Reading(
                building=r.building,
                timestamp=int(r.ts),
                value=safe_float(r.value),
                unit=r.unit or "",
                meta=json.loads(r.meta) if r.meta else {},
            )
            for r in rows
        ]
        readings.reverse()
        return readings
