"""Modelo de dominio de alertas emitidas al dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class AlertType(str, Enum):
    """Severidad visible de una alerta."""

    CRITICAL = "critical"
    WARNING = "warning"
    SUCCESS = "success"
    ACHIEVEMENT = "achievement"
    INFO = "info"


@dataclass(frozen=True)
class AlertAction:
    """Acción sugerida. `target` identifica qué abrir en la UI."""

    label: str
    target: str


@dataclass(frozen=True)
class Alert:
    id: str
    type: AlertType
    title: str
    message: str
    category: str
    auto_dismiss: bool
    building: Optional[str] = None
    value: Optional[Union[float, str]] = None
    unit: Optional[str] = None
    category_color: Optional[str] = None
    duration: Optional[float] = None
    action: Optional[AlertAction] = None

    @property
    def is_critical(self) -> bool:
        return self.type == AlertType.CRITICAL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "building": self.building,
            "value": self.value,
            "unit": self.unit,
            "category": self.category,
            "category_color": self.category_color,
            "auto_dismiss": self.auto_dismiss,
            "duration": self.duration,
            "action": (
                {"label": self.action.label, "target": self.action.target}
                if self.action
                else None
            ),
        }
