"""Modelos de resultado de clasificación de edificios."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    """Severidad asignada a un edificio en un ciclo de evaluación."""

    CRITICAL = "critical"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"  # Solo la estrategia de mayor consumidor
    NONE = "none"


@dataclass(frozen=True)
class Classification:
    """Resultado de clasificar un edificio.

    `rule` identifica la regla que disparó (útil para tests y logs),
    `reason` es una descripción legible.
    """

    building: str
    severity: Severity
    rule: str
    reason: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def should_alert(self) -> bool:
        return self.severity != Severity.NONE

    @classmethod
    def none(cls, building: str, reason: str = "Sin condiciones de alerta") -> "Classification":
        return cls(building=building, severity=Severity.NONE, rule="none", reason=reason)
