"""Health and readiness endpoints."""

import time

from fastapi import APIRouter, Depends, HTTPException

from ..core.domain.category import Category
from ..sources.base import ReadingSource, ReadingSourceError
from .deps import get_source

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok mientras el proceso corre."""
    return {"status": "ok", "timestamp": int(time.time() * 1000)}


@router.get("/ready")
def ready(source: ReadingSource = Depends(get_source)):
    """Readiness probe: verifica que el store de lecturas responde."""
    try:
        source.fetch_latest_snapshot(Category.ELECTRICITY)
        return {"status": "ready"}
    except ReadingSourceError:
        raise HTTPException(status_code=503, detail="not ready")
