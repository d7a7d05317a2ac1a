import pytest
import httpx
from datetime import timedelta
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from src.common.exceptions import UpstreamError
from src.traffic.application.builder import TrafficApplicationBuilder
from src.traffic.domain import Feature, Snapshot, TrafficRecord, utc_now
from src.traffic.infrastructure.live_provider import TomTomLiveDataProvider
from src.traffic.presentation.api import create_app

def _build(config, repository=None, provider=None):
    builder = TrafficApplicationBuilder(config)
    builder.build_registry().build_snapshot_builder().build_persistence(repository).build_live_provider(provider)
    service = builder.build_service()
    return builder, create_app(service)

@pytest.fixture
def app_factory(config):
    builders = []

    def factory(repository=None, provider=None):
        builder, app = _build(config, repository, provider)
        builders.append(builder)
        return app

    yield factory
    for builder in builders:
        builder.shutdown()

@pytest.fixture
def client(app_factory):
    return TestClient(app_factory())

def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

def test_live_snapshot_default_city(client):
    response = client.get("/api/traffic/live")
    assert response.status_code == 200
    body = response.json()
    assert body["city"] == "Bangalore"
    assert body["source"] == "simulated"
    assert body["incidents"] == []
    assert len(body["features"]) == 120
    feature = body["features"][0]
    assert set(feature) == {"id", "coordinates", "speedKph", "densityVpkm", "congestion"}
    assert 0.0 <= feature["congestion"] <= 1.0
    assert body["timestamp"].endswith("Z")

def test_live_snapshot_alias(client):
    response = client.get("/api/traffic/live", params={"city": "bom"})
    assert response.status_code == 200
    assert response.json()["city"] == "Mumbai"

@pytest.mark.parametrize("path", ["/api/traffic/live", "/api/traffic/history", "/api/traffic/predict"])
def test_unsupported_city_rejected(client, path):
    response = client.get(path, params={"city": "Paris"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "Paris" in error["message"]

@pytest.mark.parametrize("horizon", ["0", "121", "abc", "-5"])
def test_invalid_horizon_rejected(client, horizon):
    response = client.get("/api/traffic/predict", params={"city": "Delhi", "horizonMinutes": horizon})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

def test_history_from_memory(client):
    client.get("/api/traffic/live", params={"city": "Delhi"})
    response = client.get("/api/traffic/history", params={"city": "Delhi"})
    assert response.status_code == 200
    body = response.json()
    assert body["city"] == "Delhi"
    assert body["count"] == 1
    assert "from" in body and "to" in body
    assert len(body["segments"]) == 120
    assert body["segments"][0]["samples"] == 1

def test_history_points_format(client):
    client.get("/api/traffic/live", params={"city": "Mumbai"})
    response = client.get("/api/traffic/history", params={"city": "Mumbai", "format": "points"})
    assert response.status_code == 200
    body = response.json()
    assert body["format"] == "points"
    assert len(body["points"]) == 120
    assert {"id", "coordinates", "speedKph", "densityVpkm", "congestion", "samples"} <= set(body["points"][0])

def test_history_malformed_timestamp(client):
    response = client.get("/api/traffic/history", params={"city": "Delhi", "from": "not-a-date"})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

def test_history_inverted_window(client):
    response = client.get(
        "/api/traffic/history",
        params={"city": "Delhi", "from": "2024-05-01T09:00:00Z", "to": "2024-05-01T08:00:00Z"},
    )
    assert response.status_code == 400

def test_predict_cold_start_uses_fallback(client):
    response = client.get("/api/traffic/predict", params={"city": "Bangalore", "horizonMinutes": "30"})
    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["mode"] == "fallback-simulated"
    assert body["horizonMinutes"] == 30
    assert len(body["features"]) == 120

def test_predict_trend_from_store(app_factory):
    now = utc_now()
    coords = ((77.2, 28.6), (77.205, 28.605))
    # Newest first, as the store returns them
    records = [
        TrafficRecord(
            segment_id="seg_7",
            coordinates=coords,
            avg_speed=speed,
            congestion_level=0.5,
            timestamp=now - timedelta(minutes=age),
            city="Delhi",
        )
        for speed, age in [(45.0, 5), (40.0, 10), (35.0, 15), (30.0, 20)]
    ]
    repository = MagicMock()
    repository.find.return_value = records
    repository.insert_many.side_effect = lambda rows: len(rows)

    client = TestClient(app_factory(repository=repository))
    response = client.get("/api/traffic/predict", params={"city": "Delhi", "horizonMinutes": "15"})

    assert response.status_code == 200
    body = response.json()
    assert body["meta"] == {"mode": "trend", "segments": 1}
    assert body["stepMinutes"] == 5
    series = body["timeSeries"]
    assert len(series) == 1 and series[0]["id"] == "seg_7"
    speeds = [p["speedKph"] for p in series[0]["points"]]
    assert len(speeds) == 3
    assert speeds[0] < speeds[1] < speeds[2]
    assert body["features"][0]["speedKph"] == speeds[-1]

def test_live_provider_failure_falls_back_to_simulation(app_factory):
    provider = MagicMock()
    provider.fetch.side_effect = UpstreamError("timed out", code="UPSTREAM_FETCH_FAILED")

    client = TestClient(app_factory(provider=provider))
    response = client.get("/api/traffic/live", params={"city": "Delhi"})

    assert response.status_code == 200
    assert response.json()["source"] == "simulated"
    provider.fetch.assert_called_once_with("Delhi")

def test_live_provider_snapshot_served(app_factory):
    snapshot = Snapshot(
        city="Mumbai",
        timestamp=utc_now(),
        features=(Feature(
            id="tomtom_19.076_72.8777",
            coordinates=((72.8777, 19.076), (72.8787, 19.077)),
            speed_kph=22.0,
            density_vpkm=3.64,
            congestion=0.6,
        ),),
        source="external",
    )
    provider = MagicMock()
    provider.fetch.return_value = snapshot

    client = TestClient(app_factory(provider=provider))
    body = client.get("/api/traffic/live", params={"city": "Mumbai"}).json()

    assert body["source"] == "external"
    assert len(body["features"]) == 1
    assert body["features"][0]["speedKph"] == 22.0

def test_self_test_reports_every_city(client):
    response = client.get("/api/traffic/self-test")
    assert response.status_code == 200
    body = response.json()
    assert body["mode"] == "simulated"
    assert body["tickCount"] == 0
    assert set(body["cities"]) == {"Bangalore", "Mumbai", "Delhi"}
    assert all(city["lastTickTimestamp"] is None for city in body["cities"].values())

@pytest.mark.asyncio
async def test_live_snapshot_async_client(app_factory):
    transport = httpx.ASGITransport(app=app_factory())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/traffic/live", params={"city": "Delhi"})
    assert response.status_code == 200
    assert response.json()["city"] == "Delhi"

@pytest.mark.parametrize("payload", [
    {"flowSegmentData": ["x"]},
    {"flowSegmentData": {"currentSpeed": 30, "coordinates": [[1, 2]]}},
])
def test_malformed_provider_body_falls_back_to_simulation(app_factory, payload):
    response = MagicMock()
    response.ok = True
    response.json.return_value = payload
    session = MagicMock()
    session.get.return_value = response
    provider = TomTomLiveDataProvider("key", session=session)

    client = TestClient(app_factory(provider=provider))
    result = client.get("/api/traffic/live", params={"city": "Delhi"})

    assert result.status_code == 200
    assert result.json()["source"] == "simulated"
    assert len(result.json()["features"]) == 120
