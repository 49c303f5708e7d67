from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class ReadingIn(BaseModel):
    value: float
    # ms epoch; si falta se usa la hora del servidor
    timestamp: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("value")
    @classmethod
    def value_must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("value must be a finite number")
        return v


class ReadingOut(BaseModel):
    building: str
    ts: int
    value: float
    unit: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)


class LatestValueOut(BaseModel):
    value: float
    ts: int
    unit: str = ""


class BucketedPointOut(BaseModel):
    time: str
    value: Union[int, float]
    raw_value: float
    timestamp: int


class BuildingSnapshotOut(BaseModel):
    name: str
    usage: float
    capacity_or_target: float
    percentage: int
    status: str
    timestamp: Optional[int] = None


class CampusMetricOut(BaseModel):
    value: int
    trend: str
    trend_label: str
    source: str


class CostSummaryOut(BaseModel):
    cost: str
    co2: str
    savings: str
    savings_percent: int
    comparison: str = ""
    # daily / monthly / yearly
    projections: Dict[str, str] = Field(default_factory=dict)


class EquivalentOut(BaseModel):
    value: int
    label: str


class BuildingsOut(BaseModel):
    category: str
    buildings: List[BuildingSnapshotOut] = Field(default_factory=list)
    campus_metric: CampusMetricOut
    totals: Dict[str, Any] = Field(default_factory=dict)
    cost: CostSummaryOut
    equivalents: Dict[str, EquivalentOut] = Field(default_factory=dict)


class AlertActionOut(BaseModel):
    label: str
    target: str


class AlertOut(BaseModel):
    id: str
    type: str
    title: str
    message: str
    category: str
    auto_dismiss: bool
    building: Optional[str] = None
    value: Optional[Union[float, str]] = None
    unit: Optional[str] = None
    category_color: Optional[str] = None
    duration: Optional[float] = None
    action: Optional[AlertActionOut] = None


class AlertListOut(BaseModel):
    visible: List[AlertOut] = Field(default_factory=list)
    pending: List[AlertOut] = Field(default_factory=list)


class DismissResult(BaseModel):
    id: str
    dismissed: bool


class EvaluateResult(BaseModel):
    category: str
    timestamp: int
    emitted: List[AlertOut] = Field(default_factory=list)
    campus_metric: CampusMetricOut
    buildings: List[BuildingSnapshotOut] = Field(default_factory=list)
