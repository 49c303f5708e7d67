"""Fixtures compartidas por los tests del monitor."""

from __future__ import annotations

from typing import Optional

import pytest

from monitor_api.aggregation import DeltaRecord
from monitor_api.core.domain.alert import Alert, AlertType
from monitor_api.core.domain.reading import BuildingSnapshot, BuildingStatus, Reading
from monitor_api.sources import InMemoryReadingStore


class FakeClock:
    """Reloj monotónico controlado a mano."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_snapshot(
    name: str,
    usage: float,
    percentage: int,
    capacity: float = 100.0,
    status: BuildingStatus = BuildingStatus.NORMAL,
) -> BuildingSnapshot:
    return BuildingSnapshot(
        name=name,
        usage=usage,
        capacity_or_target=capacity,
        percentage=percentage,
        status=status,
        timestamp=0,
    )


def make_delta(building: str, prev: float, latest: float) -> DeltaRecord:
    return DeltaRecord.from_values(building, prev, latest)


def make_alert(
    alert_id: str,
    alert_type: AlertType = AlertType.WARNING,
    auto_dismiss: bool = True,
    duration: Optional[float] = 5,
) -> Alert:
    return Alert(
        id=alert_id,
        type=alert_type,
        title=f"Alert {alert_id}",
        message="test",
        category="electricity",
        auto_dismiss=auto_dismiss,
        building="Library",
        duration=duration,
    )


def reading(building: str, ts: int, value: float, unit: str = "") -> Reading:
    return Reading(building=building, timestamp=ts, value=value, unit=unit)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryReadingStore:
    return InMemoryReadingStore()
