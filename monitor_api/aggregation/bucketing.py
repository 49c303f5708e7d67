"""Agregación de lecturas en ventanas de tiempo fijas para gráficos.

Cada lectura cae en `bucket_start = floor(ts / bucket_ms) * bucket_ms` y
el valor del bucket es el promedio de sus lecturas. Solo se materializan
buckets con al menos una lectura.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..core.domain.category import UNIT_DECIMALS
from ..core.numeric import round_half_up, safe_float

DEFAULT_BUCKET_MS = 5 * 60 * 1000

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass
class Bucket:
    bucket_start: int
    sum: float = 0.0
    count: int = 0

    @property
    def average(self) -> float:
        return self.sum / self.count if self.count else 0.0


@dataclass(frozen=True)
class BucketedPoint:
    time: str
    value: float
    raw_value: float
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "time": self.time,
            "value": self.value,
            "raw_value": self.raw_value,
            "timestamp": self.timestamp,
        }


def _extract(item: Any) -> Tuple[Any, Any]:
    """Devuelve (timestamp, value) de una lectura, punto o mapping."""
    if isinstance(item, dict):
        ts = item.get("ts", item.get("timestamp"))
        value = item.get("raw_value", item.get("value"))
        return ts, value
    if isinstance(item, BucketedPoint):
        return item.timestamp, item.raw_value
    return getattr(item, "timestamp", None), getattr(item, "value", None)


def format_bucket_time(bucket_start: int, tz: tzinfo = timezone.utc) -> str:
    return datetime.fromtimestamp(bucket_start / 1000, tz=tz).strftime("%H:%M")


def bucket_readings(
    readings: Iterable[Any],
    bucket_ms: int = DEFAULT_BUCKET_MS,
    decimals: Optional[int] = None,
    unit: Optional[str] = None,
    tz: tzinfo = timezone.utc,
    now_ms: Optional[int] = None,
) -> List[BucketedPoint]:
    """Agrupa lecturas en buckets de `bucket_ms` y promedia cada bucket.

    Valores no numéricos o ausentes cuentan como 0 (con pérdida, pero
    visibles en el promedio). Un timestamp ausente cae en `now_ms`.
    El resultado sale ordenado por `bucket_start` ascendente.
    """
    if bucket_ms <= 0:
        bucket_ms = DEFAULT_BUCKET_MS
    if decimals is None:
        decimals = UNIT_DECIMALS.get(unit or "", 2)

    buckets: Dict[int, Bucket] = {}
    for item in readings:
        raw_ts, raw_value = _extract(item)
        if raw_ts is None:
            raw_ts = now_ms if now_ms is not None else int(time.time() * 1000)
        ts = int(safe_float(raw_ts))
        bucket_start = (ts // bucket_ms) * bucket_ms

        bucket = buckets.get(bucket_start)
        if bucket is None:
            bucket = buckets[bucket_start] = Bucket(bucket_start=bucket_start)
        bucket.sum += safe_float(raw_value)
        bucket.count += 1

    points: List[BucketedPoint] = []
    for bucket_start in sorted(buckets):
        avg = buckets[bucket_start].average
        value = round_half_up(avg, decimals)
        if decimals == 0:
            value = int(value)
        points.append(
            BucketedPoint(
                time=format_bucket_time(bucket_start, tz),
                value=value,
                raw_value=avg,
                timestamp=bucket_start,
            )
        )
    return points


def weekday_profile(readings: Iterable[Any], tz: tzinfo = timezone.utc) -> List[dict]:
    """Promedio por día de la semana (Mon..Sun).

    Se omiten lecturas sin timestamp o con valor 0/ausente. Días sin datos
    devuelven waste=0 y count=0.
    """
    totals: Dict[str, List[float]] = {day: [0.0, 0] for day in WEEKDAYS}

    for item in readings:
        raw_ts, raw_value = _extract(item)
        value = safe_float(raw_value)
        if not raw_ts or not value:
            continue
        day = WEEKDAYS[datetime.fromtimestamp(safe_float(raw_ts) / 1000, tz=tz).weekday()]
        totals[day][0] += value
        totals[day][1] += 1

    return [
        {
            "day": day,
            "value": round_half_up(total / count, 1) if count else 0,
            "count": int(count),
        }
        for day, (total, count) in totals.items()
    ]
