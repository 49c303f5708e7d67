"""Endpoints de lecturas: snapshot, historial, series y edificios."""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..aggregation import build_snapshots, campus_metric, snapshot_totals
from ..classification.equivalents import (
    calculate_co2,
    calculate_cost,
    calculate_equivalents,
    calculate_projections,
    calculate_savings,
    cost_comparison,
)
from ..core.domain.category import Category, get_category_config
from ..core.domain.reading import LatestValue, Reading
from ..evaluation.service import EvaluationService
from ..schemas import (
    BucketedPointOut,
    BuildingsOut,
    LatestValueOut,
    ReadingIn,
    ReadingOut,
)
from ..sources.base import ReadingSource, ReadingSourceError
from .deps import get_service, get_source, parse_category

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["readings"])


def _latest_out(values: Dict[str, LatestValue]) -> Dict[str, LatestValueOut]:
    return {
        building: LatestValueOut(value=v.value, ts=v.timestamp, unit=v.unit)
        for building, v in values.items()
    }


def _unavailable(e: ReadingSourceError) -> HTTPException:
    logger.error("[STORE] request failed: %s", e)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Reading store unavailable")


@router.get("/latest", response_model=Dict[str, Dict[str, LatestValueOut]])
def latest_all(source: ReadingSource = Depends(get_source)):
    try:
        return {category: _latest_out(values) for category, values in source.fetch_all_latest().items()}
    except ReadingSourceError as e:
        raise _unavailable(e)


@router.get("/latest/{category}", response_model=Dict[str, LatestValueOut])
def latest_by_category(
    category: Category = Depends(parse_category),
    source: ReadingSource = Depends(get_source),
):
    try:
        return _latest_out(source.fetch_latest_snapshot(category))
    except ReadingSourceError as e:
        raise _unavailable(e)


@router.get("/readings/{category}/{building}", response_model=List[ReadingOut])
def recent_readings(
    building: str,
    category: Category = Depends(parse_category),
    limit: int = Query(default=50, ge=1, le=1000),
    source: ReadingSource = Depends(get_source),
):
    try:
        readings = source.fetch_recent_readings(category, building, limit)
    except ReadingSourceError as e:
        raise _unavailable(e)
    return [ReadingOut(**r.to_dict()) for r in readings]


@router.post(
    "/readings/{category}/{building}",
    response_model=ReadingOut,
    status_code=status.HTTP_201_CREATED,
)
def append_reading(
    building: str,
    payload: ReadingIn,
    category: Category = Depends(parse_category),
    source: ReadingSource = Depends(get_source),
):
    reading = Reading(
        building=building,
        timestamp=payload.timestamp if payload.timestamp is not None else int(time.time() * 1000),
        value=payload.value,
        unit=payload.unit or get_category_config(category).unit,
        meta=dict(payload.meta),
    )
    try:
        source.append(category, reading)
    except ReadingSourceError as e:
        raise _unavailable(e)
    return ReadingOut(**reading.to_dict())


@router.get("/series/{category}/{building}", response_model=List[BucketedPointOut])
def chart_series(
    building: str,
    category: Category = Depends(parse_category),
    limit: int = Query(default=50, ge=1, le=1000),
    # Sin bucket_minutes se usa BUCKET_MINUTES del servicio
    bucket_minutes: Optional[int] = Query(default=None, ge=1, le=24 * 60),
    service: EvaluationService = Depends(get_service),
):
    bucket_ms = bucket_minutes * 60 * 1000 if bucket_minutes else None
    points = service.chart_series(category, building, limit=limit, bucket_ms=bucket_ms)
    return [BucketedPointOut(**p.to_dict()) for p in points]


@router.get("/weekly/{category}")
def weekly_profile(
    category: Category = Depends(parse_category),
    limit: int = Query(default=50, ge=1, le=1000),
    service: EvaluationService = Depends(get_service),
):
    try:
        return service.weekly_profile(category, limit=limit)
    except ReadingSourceError as e:
        raise _unavailable(e)


@router.get("/buildings/{category}", response_model=BuildingsOut)
def buildings(
    category: Category = Depends(parse_category),
    source: ReadingSource = Depends(get_source),
):
    """Snapshot normalizado de cada edificio + métrica y costos del campus."""
    config = get_category_config(category)
    try:
        latest = source.fetch_latest_snapshot(category)
        histories = {
            b: source.fetch_recent_readings(category, b, config.history_window)
            for b in config.buildings
        }
    except ReadingSourceError as e:
        raise _unavailable(e)

    snapshots = build_snapshots(category, latest)
    metric = campus_metric(category, snapshots, histories)
    totals = snapshot_totals(snapshots)
    total = totals["current"]
    cost = calculate_cost(category, total)
    projections = calculate_projections(category, total)

    return {
        "category": category.value,
        "buildings": [s.to_dict() for s in snapshots],
        "campus_metric": metric.to_dict(),
        "totals": totals,
        "cost": {
            "cost": cost["formatted"],
            "co2": calculate_co2(category, total)["formatted"],
            "savings": calculate_savings(category, total, metric.value)["formatted"],
            "savings_percent": metric.value,
            "comparison": cost_comparison(category, cost["cost"]),
            "projections": {horizon: p["cost"]["formatted"] for horizon, p in projections.items()},
        },
        "equivalents": calculate_equivalents(category, total),
    }
