"""Módulo de endpoints HTTP.

Contiene los endpoints de la API del monitor organizados por función.
"""

from .alerts import router as alerts_router
from .health import router as health_router
from .readings import router as readings_router

__all__ = [
    "alerts_router",
    "health_router",
    "readings_router",
]
