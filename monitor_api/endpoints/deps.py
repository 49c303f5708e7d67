"""Dependencias compartidas por los routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..alerts.lifecycle import AlertLifecycleManager
from ..core.domain.category import Category
from ..evaluation.service import EvaluationService
from ..sources.base import ReadingSource


def get_service(request: Request) -> EvaluationService:
    return request.app.state.service


def get_source(request: Request) -> ReadingSource:
    return request.app.state.service.source


def get_lifecycle(request: Request) -> AlertLifecycleManager:
    return request.app.state.service.lifecycle


def parse_category(category: str) -> Category:
    """Categoría del path. Desconocida → 404."""
    try:
        return Category.parse(category)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
