"""Tests de emisión de alertas y ciclo de vida.

Tests principales:
1. Una alerta por edificio por ciclo
2. Logro del campus con gate inyectable
3. Cooldown entre ciclos
4. Auto-dismiss a los 5 segundos
5. Máximo de alertas visibles y promoción FIFO

Ejecutar:
    pytest tests/test_alerts.py -v
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
import redis

from monitor_api.aggregation import CampusMetric
from monitor_api.alerts import (
    AlertCooldown,
    AlertEmitter,
    AlertLifecycleManager,
    EvaluationContext,
    LifecycleEventKind,
    always_gate,
    never_gate,
    probabilistic_gate,
)
from monitor_api.alerts.publisher import AlertEventPublisher
from monitor_api.classification import UtilizationOnlyStrategy
from monitor_api.core.domain.alert import AlertType
from monitor_api.core.domain.category import Category

from conftest import make_alert, make_delta, make_snapshot


def _metric(value: int) -> CampusMetric:
    return CampusMetric(value=value, trend="down", trend_label=f"{value}% less", source="immediate")


def _critical_context(timestamp: int = 1000, **kwargs) -> EvaluationContext:
    return EvaluationContext(
        category=Category.ELECTRICITY,
        snapshots=[make_snapshot("Library", 145, 97, capacity=150)],
        deltas={"Library": make_delta("Library", 100, 145)},
        campus_metric=_metric(0),
        timestamp=timestamp,
        **kwargs,
    )


# =============================================================================
# EMISOR
# =============================================================================

class TestAlertEmitter:
    """Verifica la deduplicación y el armado de alertas."""

    def test_one_alert_per_building(self):
        """Un edificio repetido en el ciclo genera una sola alerta."""
        snapshot = make_snapshot("Library", 145, 97, capacity=150)
        context = EvaluationContext(
            category=Category.ELECTRICITY,
            snapshots=[snapshot, snapshot],
            deltas={"Library": make_delta("Library", 100, 145)},
            timestamp=1000,
        )

        alerts = AlertEmitter(achievement_gate=never_gate).emit(context)

        assert len(alerts) == 1
        assert context.alerted == {"Library"}

    def test_already_alerted_building_skipped(self):
        context = _critical_context(alerted={"Library"})

        assert AlertEmitter(achievement_gate=never_gate).emit(context) == []

    def test_absent_building_never_alerts(self):
        """Edificios sin datos no generan alerta aunque la métrica sea alta."""
        context = EvaluationContext(
            category=Category.ELECTRICITY,
            snapshots=[make_snapshot("Labs", 0, 0)],
            deltas={"Labs": make_delta("Labs", 0, 0)},
            campus_metric=_metric(15),
            timestamp=1000,
            absent={"Labs"},
        )

        assert AlertEmitter(achievement_gate=never_gate).emit(context) == []

    def test_critical_alert_shape(self):
        alert = AlertEmitter(achievement_gate=never_gate).emit(_critical_context())[0]

        assert alert.id == "critical-electricity-Library-1000"
        assert alert.type == AlertType.CRITICAL
        assert alert.auto_dismiss is False
        assert alert.duration is None
        assert alert.action is not None
        assert alert.category_color == "#f59e0b"
        assert alert.building == "Library"

    def test_warning_auto_dismisses_without_action(self):
        context = EvaluationContext(
            category=Category.ELECTRICITY,
            snapshots=[make_snapshot("Library", 130, 87, capacity=150)],
            deltas={"Library": make_delta("Library", 140, 130)},
            timestamp=1000,
        )

        alert = AlertEmitter(achievement_gate=never_gate).emit(context)[0]

        assert alert.type == AlertType.WARNING
        assert alert.auto_dismiss is True
        assert alert.duration == 12
        assert alert.action is None

    def test_highest_consumer_always_auto_dismisses(self):
        context = EvaluationContext(
            category=Category.ELECTRICITY,
            snapshots=[make_snapshot("Labs", 10, 5), make_snapshot("Library", 145, 97, capacity=150)],
            timestamp=1000,
        )

        alerts = AlertEmitter(strategy=UtilizationOnlyStrategy(), achievement_gate=never_gate).emit(context)

        assert len(alerts) == 1
        assert alerts[0].building == "Library"
        assert alerts[0].type == AlertType.CRITICAL
        assert alerts[0].auto_dismiss is True
        assert alerts[0].duration == 10

    def test_timestamp_defaults_to_now(self):
        context = EvaluationContext(category="water", snapshots=[])

        assert context.category == Category.WATER
        assert context.timestamp > 0


class TestAchievement:
    def test_achievement_emitted(self):
        context = EvaluationContext(
            category=Category.WATER,
            snapshots=[],
            campus_metric=_metric(30),
            timestamp=2000,
        )

        alerts = AlertEmitter(achievement_gate=always_gate).emit(context)

        assert len(alerts) == 1
        assert alerts[0].id == "achievement-water-summary-2000"
        assert alerts[0].type == AlertType.ACHIEVEMENT
        assert alerts[0].building is None
        assert alerts[0].duration == 12

    def test_metric_must_exceed_threshold(self):
        context = EvaluationContext(category=Category.WATER, snapshots=[], campus_metric=_metric(25), timestamp=1)

        assert AlertEmitter(achievement_gate=always_gate).emit(context) == []

    def test_gate_can_block(self):
        context = EvaluationContext(category=Category.WATER, snapshots=[], campus_metric=_metric(40), timestamp=1)

        assert AlertEmitter(achievement_gate=never_gate).emit(context) == []

    def test_no_achievement_with_two_building_alerts(self):
        context = EvaluationContext(
            category=Category.ELECTRICITY,
            snapshots=[
                make_snapshot("Library", 145, 97, capacity=150),
                make_snapshot("Labs", 175, 97, capacity=180),
            ],
            deltas={
                "Library": make_delta("Library", 100, 145),
                "Labs": make_delta("Labs", 150, 175),
            },
            campus_metric=_metric(30),
            timestamp=1,
        )

        alerts = AlertEmitter(achievement_gate=always_gate).emit(context)

        assert [a.type for a in alerts] == [AlertType.CRITICAL, AlertType.CRITICAL]

    def test_probabilistic_gate_is_reproducible(self):
        first = probabilistic_gate(0.5, seed=7)
        second = probabilistic_gate(0.5, seed=7)

        draws_a = [first(Category.WATER, 30) for _ in range(20)]
        draws_b = [second(Category.WATER, 30) for _ in range(20)]

        assert draws_a == draws_b

    def test_probabilistic_gate_bounds(self):
        assert not any(probabilistic_gate(0.0, seed=1)(Category.WATER, 30) for _ in range(20))
        assert all(probabilistic_gate(1.0, seed=1)(Category.WATER, 30) for _ in range(20))


class TestAlertCooldown:
    def test_same_alert_suppressed_until_cooldown(self, clock):
        emitter = AlertEmitter(achievement_gate=never_gate, cooldown=AlertCooldown(300, clock=clock))

        assert len(emitter.emit(_critical_context(1000))) == 1
        clock.advance(299)
        assert emitter.emit(_critical_context(2000)) == []
        clock.advance(1)
        assert len(emitter.emit(_critical_context(3000))) == 1

    def test_disabled_cooldown(self, clock):
        cooldown = AlertCooldown(0, clock=clock)

        assert cooldown.allow("water", "Library", "warning")
        assert cooldown.allow("water", "Library", "warning")

    def test_keys_are_independent(self, clock):
        cooldown = AlertCooldown(300, clock=clock)

        assert cooldown.allow("water", "Library", "warning")
        assert cooldown.allow("water", "Library", "critical")
        assert cooldown.allow("food", "Library", "warning")
        assert not cooldown.allow("water", "Library", "warning")

    def test_clear_category(self, clock):
        cooldown = AlertCooldown(300, clock=clock)
        cooldown.allow("water", "Library", "warning")
        cooldown.allow("food", "Labs", "warning")

        cooldown.clear("water")

        assert cooldown.allow("water", "Library", "warning")
        assert not cooldown.allow("food", "Labs", "warning")


# =============================================================================
# CICLO DE VIDA
# =============================================================================

class TestLifecycle:
    """Conjunto visible, cola pendiente y expiración."""

    def test_auto_dismiss_after_duration(self, clock):
        """Una alerta con duración 5 s desaparece a los 5 s."""
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("a1", duration=5)])

        clock.advance(4.5)
        assert lifecycle.expire_due() == []
        assert lifecycle.get("a1") is not None

        clock.advance(0.5)
        expired = lifecycle.expire_due()

        assert [a.id for a in expired] == ["a1"]
        assert lifecycle.get("a1") is None
        assert lifecycle.visible() == []

    def test_default_duration_when_missing(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("a1", duration=None)])

        assert lifecycle.expires_at("a1") == clock.now + 5

    def test_critical_never_expires(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("c1", AlertType.CRITICAL, auto_dismiss=False, duration=None)])

        clock.advance(3600)

        assert lifecycle.expire_due() == []
        assert [a.id for a in lifecycle.visible()] == ["c1"]

    def test_max_visible(self, clock):
        """De 5 alertas solo 3 son visibles; el resto queda pendiente en orden."""
        lifecycle = AlertLifecycleManager(max_visible=3, clock=clock)

        newly_visible = lifecycle.submit([make_alert(f"a{i}") for i in range(5)])

        assert [a.id for a in newly_visible] == ["a0", "a1", "a2"]
        assert [a.id for a in lifecycle.visible()] == ["a0", "a1", "a2"]
        assert [a.id for a in lifecycle.pending()] == ["a3", "a4"]

    def test_dismiss_promotes_pending(self, clock):
        lifecycle = AlertLifecycleManager(max_visible=3, clock=clock)
        lifecycle.submit([make_alert(f"a{i}") for i in range(5)])

        clock.advance(2)
        assert lifecycle.dismiss("a1") is True

        assert [a.id for a in lifecycle.visible()] == ["a0", "a2", "a3"]
        # La cuenta regresiva del promovido empieza al volverse visible
        assert lifecycle.expires_at("a3") == clock.now + 5
        assert lifecycle.expires_at("a4") is None

    def test_expiry_promotes_pending(self, clock):
        lifecycle = AlertLifecycleManager(max_visible=1, clock=clock)
        lifecycle.submit([make_alert("a0"), make_alert("a1")])

        clock.advance(5)
        lifecycle.expire_due()

        assert [a.id for a in lifecycle.visible()] == ["a1"]

    def test_dismiss_is_idempotent(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("a1")])

        assert lifecycle.dismiss("a1") is True
        assert lifecycle.dismiss("a1") is False
        assert lifecycle.dismiss("unknown") is False

    def test_duplicate_ids_ignored(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("a1")])
        lifecycle.submit([make_alert("a1")])

        assert len(lifecycle) == 1

    def test_full_queue_drops(self, clock):
        lifecycle = AlertLifecycleManager(max_visible=1, max_pending=1, clock=clock)
        events = []
        lifecycle.subscribe(events.append)

        lifecycle.submit([make_alert("a0"), make_alert("a1"), make_alert("a2")])

        assert len(lifecycle) == 2
        assert [(e.kind, e.alert.id) for e in events] == [
            (LifecycleEventKind.VISIBLE, "a0"),
            (LifecycleEventKind.DROPPED, "a2"),
        ]

    def test_observer_events(self, clock):
        lifecycle = AlertLifecycleManager(max_visible=1, clock=clock)
        events = []
        unsubscribe = lifecycle.subscribe(events.append)

        lifecycle.submit([make_alert("a0"), make_alert("a1")])
        lifecycle.dismiss("a0")
        unsubscribe()
        lifecycle.dismiss("a1")

        assert [(e.kind.value, e.alert.id) for e in events] == [
            ("visible", "a0"),
            ("dismissed", "a0"),
            ("visible", "a1"),
        ]

    def test_failing_observer_does_not_break_submit(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.subscribe(MagicMock(side_effect=RuntimeError("boom")))

        assert [a.id for a in lifecycle.submit([make_alert("a1")])] == ["a1"]

    def test_clear(self, clock):
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.submit([make_alert("a1"), make_alert("a2")])

        lifecycle.clear()

        assert len(lifecycle) == 0


class TestLifecycleTimers:
    """Expiración por timers del event loop."""

    @pytest.mark.asyncio
    async def test_timer_expires_alert(self):
        lifecycle = AlertLifecycleManager(loop=asyncio.get_running_loop())
        events = []
        lifecycle.subscribe(events.append)

        lifecycle.submit([make_alert("a1", duration=0.05)])
        await asyncio.sleep(0.2)

        assert lifecycle.get("a1") is None
        assert events[-1].kind == LifecycleEventKind.EXPIRED

    @pytest.mark.asyncio
    async def test_dismiss_cancels_timer(self):
        lifecycle = AlertLifecycleManager(loop=asyncio.get_running_loop())
        events = []
        lifecycle.subscribe(events.append)

        lifecycle.submit([make_alert("a1", duration=0.05)])
        lifecycle.dismiss("a1")
        await asyncio.sleep(0.2)

        assert [e.kind for e in events] == [LifecycleEventKind.VISIBLE, LifecycleEventKind.DISMISSED]

    @pytest.mark.asyncio
    async def test_submit_from_worker_thread(self):
        lifecycle = AlertLifecycleManager(loop=asyncio.get_running_loop())

        await asyncio.to_thread(lifecycle.submit, [make_alert("a1", duration=0.05)])
        await asyncio.sleep(0.2)

        assert len(lifecycle) == 0


# =============================================================================
# REDIS
# =============================================================================

class TestAlertEventPublisher:
    def test_publishes_json_event(self, clock):
        connection = MagicMock()
        connection.is_connected = True
        publisher = AlertEventPublisher(connection, channel="test:alerts")
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.subscribe(publisher)

        lifecycle.submit([make_alert("a1")])

        channel, payload = connection.client.publish.call_args[0]
        assert channel == "test:alerts"
        message = json.loads(payload)
        assert message["type"] == "alert"
        assert message["kind"] == "visible"
        assert message["alert"]["id"] == "a1"

    def test_disconnected_is_noop(self, clock):
        connection = MagicMock()
        connection.is_connected = False

        publisher = AlertEventPublisher(connection)
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.subscribe(publisher)
        lifecycle.submit([make_alert("a1")])

        connection.client.publish.assert_not_called()

    def test_redis_error_is_reported(self, clock):
        connection = MagicMock()
        connection.is_connected = True
        connection.client.publish.side_effect = redis.ConnectionError("down")
        publisher = AlertEventPublisher(connection)
        events = []
        lifecycle = AlertLifecycleManager(clock=clock)
        lifecycle.subscribe(events.append)
        lifecycle.submit([make_alert("a1")])

        assert publisher.publish(events[0]) is False
