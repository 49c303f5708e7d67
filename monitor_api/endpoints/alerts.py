"""Endpoints de alertas: conjunto visible, descarte y evaluación manual."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..alerts.lifecycle import AlertLifecycleManager
from ..core.domain.category import Category
from ..evaluation.service import EvaluationService
from ..schemas import AlertListOut, DismissResult, EvaluateResult
from .deps import get_lifecycle, get_service, parse_category

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["alerts"])


@router.get("/alerts", response_model=AlertListOut)
def list_alerts(lifecycle: AlertLifecycleManager = Depends(get_lifecycle)):
    # Expiración perezosa: la respuesta nunca incluye alertas vencidas
    lifecycle.expire_due()
    return {
        "visible": [a.to_dict() for a in lifecycle.visible()],
        "pending": [a.to_dict() for a in lifecycle.pending()],
    }


@router.delete("/alerts/{alert_id}", response_model=DismissResult)
def dismiss_alert(alert_id: str, lifecycle: AlertLifecycleManager = Depends(get_lifecycle)):
    """Descarta una alerta. Ids desconocidos no son error (dismissed=false)."""
    return {"id": alert_id, "dismissed": lifecycle.dismiss(alert_id)}


@router.post("/evaluate/{category}", response_model=EvaluateResult)
def evaluate(
    category: Category = Depends(parse_category),
    service: EvaluationService = Depends(get_service),
):
    result = service.evaluate_category(category)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evaluation skipped: reading store unavailable",
        )
    return {
        "category": result.category.value,
        "timestamp": result.timestamp,
        "emitted": [a.to_dict() for a in result.alerts],
        "campus_metric": result.campus_metric.to_dict(),
        "buildings": [s.to_dict() for s in result.snapshots],
    }
