"""Tests del servicio de evaluación por categoría."""

import asyncio
from datetime import timezone
from unittest.mock import MagicMock, patch

import pytest

from monitor_api.alerts import AlertEmitter, AlertLifecycleManager, never_gate
from monitor_api.core.domain.alert import AlertType
from monitor_api.core.domain.category import Category
from monitor_api.evaluation import EvaluationService, resolve_timezone
from monitor_api.sources import ReadingSourceError

from conftest import reading


@pytest.fixture
def lifecycle(clock) -> AlertLifecycleManager:
    return AlertLifecycleManager(clock=clock)


@pytest.fixture
def service(store, lifecycle) -> EvaluationService:
    return EvaluationService(
        store,
        lifecycle,
        emitter=AlertEmitter(achievement_gate=never_gate),
        clock_ms=lambda: 1_700_000_000_000,
    )


def _seed_library_overload(store) -> None:
    # 100 → 145 kWh sobre capacidad 150: 97% y subiendo
    store.append(Category.ELECTRICITY, reading("Library", 1_000, 100, "kWh"))
    store.append(Category.ELECTRICITY, reading("Library", 2_000, 145, "kWh"))


class TestEvaluateCategory:
    def test_cycle_emits_and_submits(self, store, service, lifecycle):
        _seed_library_overload(store)

        result = service.evaluate_category("electricity")

        assert [a.id for a in result.alerts] == ["critical-electricity-Library-1700000000000"]
        assert [a.id for a in lifecycle.visible()] == ["critical-electricity-Library-1700000000000"]
        assert result.deltas["Library"].pct_change == pytest.approx(45.0)
        assert [s.name for s in result.snapshots] == ["Hostel-A", "Library", "Cafeteria", "Labs"]
        assert result.totals["peak_source"] == "Library"

    def test_buildings_without_data_never_alert(self, store, service):
        store.append(Category.WATER, reading("Library", 1_000, 700, "L"))
        store.append(Category.WATER, reading("Library", 2_000, 500, "L"))

        result = service.evaluate_category(Category.WATER)

        assert {a.building for a in result.alerts} <= {"Library"}

    def test_result_observers(self, store, service):
        observer = MagicMock()
        service.subscribe(observer)
        _seed_library_overload(store)

        result = service.evaluate_category(Category.ELECTRICITY)

        observer.assert_called_once_with(result)
        assert service.last_result("electricity") is result

    def test_source_failure_keeps_previous_result(self, store, service, lifecycle):
        """Si la fuente falla se omite el ciclo y se conserva el resultado previo."""
        _seed_library_overload(store)
        previous = service.evaluate_category(Category.ELECTRICITY)

        with patch.object(store, "fetch_latest_snapshot", side_effect=ReadingSourceError("down")):
            again = service.evaluate_category(Category.ELECTRICITY)

        assert again is previous
        assert len(lifecycle) == 1

    def test_source_failure_without_previous(self, lifecycle):
        source = MagicMock()
        source.fetch_latest_snapshot.side_effect = ReadingSourceError("down")
        service = EvaluationService(source, lifecycle)

        assert service.evaluate_category(Category.FOOD) is None
        assert len(lifecycle) == 0

    def test_result_serialization(self, store, service):
        _seed_library_overload(store)

        data = service.evaluate_category(Category.ELECTRICITY).to_dict()

        assert data["category"] == "electricity"
        assert data["alerts"][0]["type"] == AlertType.CRITICAL.value
        assert data["deltas"]["Library"]["latest"] == 145
        assert set(data["campus_metric"]) == {"value", "trend", "trend_label", "source"}


class TestChartSeries:
    def test_series_bucketed(self, store, service):
        store.append(Category.ELECTRICITY, reading("Library", 0, 10))
        store.append(Category.ELECTRICITY, reading("Library", 60_000, 20))

        points = service.chart_series(Category.ELECTRICITY, "Library")

        assert [(p.time, p.value) for p in points] == [("00:00", 15)]

    def test_series_falls_back_to_cache(self, store, service):
        store.append(Category.ELECTRICITY, reading("Library", 0, 10))
        cached = service.chart_series(Category.ELECTRICITY, "Library")

        with patch.object(store, "fetch_recent_readings", side_effect=ReadingSourceError("down")):
            points = service.chart_series(Category.ELECTRICITY, "Library")

        assert points == cached

    def test_weekly_profile(self, store, service):
        store.append(Category.FOOD, reading("Cafeteria", 86_400_000, 8))

        profile = service.weekly_profile(Category.FOOD)

        assert {p["day"]: p["value"] for p in profile}["Fri"] == 8


class TestTimezone:
    def test_utc_default(self):
        assert resolve_timezone(None) is timezone.utc
        assert resolve_timezone("UTC") is timezone.utc

    def test_unknown_zone_falls_back(self):
        assert resolve_timezone("Not/AZone") is timezone.utc


class TestAsyncCycles:
    @pytest.mark.asyncio
    async def test_run_cycle_all_categories(self, store, service):
        _seed_library_overload(store)

        results = await service.run_cycle()

        assert set(results) == {"electricity", "water", "food"}
        assert len(results["electricity"].alerts) == 1

    @pytest.mark.asyncio
    async def test_run_stops_on_event(self, service):
        stop = asyncio.Event()
        task = asyncio.create_task(service.run(60, stop))
        await asyncio.sleep(0.05)

        stop.set()
        await asyncio.wait_for(task, timeout=1)

        assert service.last_result(Category.WATER) is not None

    @pytest.mark.asyncio
    async def test_updates_trigger_reevaluation(self, store, service):
        unbind = service.bind_updates(asyncio.get_running_loop())

        _seed_library_overload(store)
        await asyncio.sleep(0.2)
        await service.drain()
        unbind()

        result = service.last_result(Category.ELECTRICITY)
        assert result is not None
        assert result.deltas["Library"].latest == 145
