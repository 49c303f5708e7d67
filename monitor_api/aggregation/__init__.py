"""Aggregation - Buckets de series, deltas y métricas del campus.

Todo el paquete es puro y fail-soft: valores inválidos se convierten a 0,
nunca se lanza dentro del camino de agregación.
"""

from .bucketing import (
    DEFAULT_BUCKET_MS,
    BucketedPoint,
    bucket_readings,
    format_bucket_time,
    weekday_profile,
)
from .campus_metrics import CampusMetric, campus_metric
from .delta_analyzer import (
    DeltaRecord,
    TrendRecord,
    baseline_trend,
    efficiency_tier,
    immediate_delta,
)
from .snapshots import build_snapshot, build_snapshots, snapshot_totals

__all__ = [
    "DEFAULT_BUCKET_MS",
    "BucketedPoint",
    "bucket_readings",
    "format_bucket_time",
    "weekday_profile",
    "CampusMetric",
    "campus_metric",
    "DeltaRecord",
    "TrendRecord",
    "baseline_trend",
    "efficiency_tier",
    "immediate_delta",
    "build_snapshot",
    "build_snapshots",
    "snapshot_totals",
]
