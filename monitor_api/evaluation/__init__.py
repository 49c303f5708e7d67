"""Evaluation - Orquestación de ciclos de evaluación por categoría."""

from .service import CycleResult, EvaluationService, resolve_timezone

__all__ = ["CycleResult", "EvaluationService", "resolve_timezone"]
