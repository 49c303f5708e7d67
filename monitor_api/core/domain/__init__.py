"""Domain - Modelos y configuración de dominio."""

from .alert import Alert, AlertAction, AlertType
from .category import (
    CATEGORY_CONFIGS,
    Category,
    CategoryConfig,
    get_category_config,
)
from .reading import BuildingSnapshot, BuildingStatus, LatestValue, Reading

__all__ = [
    "Alert",
    "AlertAction",
    "AlertType",
    "CATEGORY_CONFIGS",
    "Category",
    "CategoryConfig",
    "get_category_config",
    "BuildingSnapshot",
    "BuildingStatus",
    "LatestValue",
    "Reading",
]
