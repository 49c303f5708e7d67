"""Modelos de dominio para lecturas y snapshots de edificios."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Reading:
    """Lectura cruda de un edificio para una categoría.

    Inmutable una vez registrada. `timestamp` en milisegundos epoch.
    """

    building: str
    timestamp: int
    value: float
    unit: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "building": self.building,
            "ts": self.timestamp,
            "value": self.value,
            "unit": self.unit,
            "meta": dict(self.meta),
        }


@dataclass(frozen=True)
class LatestValue:
    """Último valor conocido de un edificio (snapshot del store)."""

    value: float
    timestamp: int
    unit: str = ""


class BuildingStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    GOOD = "good"


@dataclass(frozen=True)
class BuildingSnapshot:
    """Forma normalizada de un edificio para un ciclo de evaluación.

    Se construye una sola vez por ciclo; el clasificador solo consume esto.
    """

    name: str
    usage: float
    capacity_or_target: float
    percentage: int
    status: BuildingStatus
    timestamp: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "usage": self.usage,
            "capacity_or_target": self.capacity_or_target,
            "percentage": self.percentage,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }
