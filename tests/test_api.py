"""Tests de la API HTTP y del WebSocket.

Ejecutar:
    pytest tests/test_api.py -v
"""

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from common.config import Settings
from monitor_api.core.domain.category import Category
from monitor_api.main import create_app
from monitor_api.sources import InMemoryReadingStore

from conftest import reading


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        store_backend="memory",
        redis_url=None,
        bucket_minutes=5,
        max_visible_alerts=3,
        max_pending_alerts=20,
        alert_cooldown_seconds=300,
        achievement_probability=0.0,
        achievement_seed=1,
        classifier_strategy="delta",
        simulator_enabled=False,
        simulator_interval_seconds=600,
        evaluation_interval_seconds=0,
        display_timezone="UTC",
        log_level="INFO",
        api_host="127.0.0.1",
        api_port=8000,
    )


@pytest.fixture
def client(settings, store):
    # Lecturas cargadas antes del arranque: no disparan re-evaluación
    store.append(Category.ELECTRICITY, reading("Library", 1_000, 100, "kWh"))
    store.append(Category.ELECTRICITY, reading("Library", 2_000, 145, "kWh"))
    app = create_app(settings, source=store)
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


# =============================================================================
# LECTURAS
# =============================================================================

class TestReadingsApi:
    def test_latest_by_category(self, client):
        data = client.get("/api/latest/electricity").json()

        assert data == {"Library": {"value": 145.0, "ts": 2000, "unit": "kWh"}}

    def test_latest_all(self, client):
        data = client.get("/api/latest").json()

        assert set(data) == {"electricity", "water", "food"}

    def test_unknown_category_is_404(self, client):
        assert client.get("/api/latest/gas").status_code == 404

    def test_recent_readings(self, client):
        data = client.get("/api/readings/electricity/Library", params={"limit": 1}).json()

        assert [r["value"] for r in data] == [145.0]

    def test_post_reading(self, client):
        response = client.post("/api/readings/water/Labs", json={"value": 640, "timestamp": 5_000})

        assert response.status_code == 201
        body = response.json()
        assert body["unit"] == "L"
        assert body["ts"] == 5_000
        assert client.get("/api/latest/water").json()["Labs"]["value"] == 640

    def test_post_invalid_value(self, client):
        response = client.post("/api/readings/water/Labs", json={"value": "lots"})

        assert response.status_code == 422

    def test_series(self, client):
        data = client.get("/api/series/electricity/Library").json()

        assert data[0]["time"] == "00:00"
        assert data[0]["value"] == 122.5

    def test_weekly(self, client):
        data = client.get("/api/weekly/food").json()

        assert len(data) == 7

    def test_buildings(self, client):
        data = client.get("/api/buildings/electricity").json()

        assert [b["name"] for b in data["buildings"]] == ["Hostel-A", "Library", "Cafeteria", "Labs"]
        assert data["totals"]["current"] == 145
        assert data["cost"]["cost"] == "₹1,160"
        assert data["campus_metric"]["source"] == "immediate"

    def test_buildings_cost_summary(self, client):
        data = client.get("/api/buildings/electricity").json()

        assert data["cost"]["comparison"] == "Equivalent to 5 households monthly bill"
        assert data["cost"]["projections"] == {"daily": "₹1,160", "monthly": "₹34,800", "yearly": "₹423,400"}
        assert data["equivalents"]["bulbs"]["value"] == 1450

    def test_buildings_water_equivalents(self, client):
        client.post("/api/readings/water/Labs", json={"value": 750, "timestamp": 5_000})

        equivalents = client.get("/api/buildings/water").json()["equivalents"]

        assert equivalents["bottles"] == {"value": 750, "label": "water bottles"}
        assert equivalents["showers"]["value"] == 10

    def test_series_uses_configured_bucket_size(self, settings):
        """Sin bucket_minutes en la query se usa BUCKET_MINUTES."""
        store = InMemoryReadingStore()
        store.append(Category.ELECTRICITY, reading("Labs", 0, 10, "kWh"))
        store.append(Category.ELECTRICITY, reading("Labs", 360_000, 20, "kWh"))
        app = create_app(replace(settings, bucket_minutes=10), source=store)

        with TestClient(app) as test_client:
            default = test_client.get("/api/series/electricity/Labs").json()
            explicit = test_client.get("/api/series/electricity/Labs", params={"bucket_minutes": 5}).json()

        assert [(p["timestamp"], p["value"]) for p in default] == [(0, 15)]
        assert [p["timestamp"] for p in explicit] == [0, 300_000]

    def test_water_series_values_are_integers(self, client):
        client.post("/api/readings/water/Labs", json={"value": 640.4, "timestamp": 0})

        data = client.get("/api/series/water/Labs").json()

        assert data[0]["value"] == 640
        assert isinstance(data[0]["value"], int)


# =============================================================================
# ALERTAS
# =============================================================================

class TestAlertsApi:
    def test_evaluate_then_list_and_dismiss(self, client):
        evaluated = client.post("/api/evaluate/electricity").json()

        assert [a["type"] for a in evaluated["emitted"]] == ["critical"]
        alert_id = evaluated["emitted"][0]["id"]
        assert evaluated["emitted"][0]["action"]["target"] == "electricity:Library:systems"

        listed = client.get("/api/alerts").json()
        assert alert_id in [a["id"] for a in listed["visible"]]

        assert client.delete(f"/api/alerts/{alert_id}").json() == {"id": alert_id, "dismissed": True}
        assert client.delete(f"/api/alerts/{alert_id}").json() == {"id": alert_id, "dismissed": False}

    def test_empty_alerts(self, client):
        assert client.get("/api/alerts").json() == {"visible": [], "pending": []}


# =============================================================================
# WEBSOCKET
# =============================================================================

class TestWebSocket:
    def test_connected_and_ping(self, client):
        with client.websocket_connect("/ws") as ws:
            hello = ws.receive_json()
            assert hello == {"type": "connected", "visible": []}

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            ws.send_json({"type": "bogus"})
            assert ws.receive_json()["type"] == "error"

    def test_dismiss_over_socket(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "dismiss", "id": "missing"})

            assert ws.receive_json() == {"type": "dismissed", "id": "missing", "dismissed": False}
