import pytest
from pydantic import ValidationError
from src.common.schemas import (
    HistoryResponse, PredictionMeta, PredictionResponse, SelfTestResponse, TrafficFeature, TrafficSnapshot
)

LINE = [[77.5, 12.9], [77.505, 12.905]]

# --- Feature / Snapshot Tests ---
def test_feature_serializes_camel_case():
    feature = TrafficFeature(id="seg_0", coordinates=LINE, speed_kph=32.5, density_vpkm=12.0, congestion=0.4)
    assert feature.model_dump(by_alias=True) == {
        "id": "seg_0", "coordinates": LINE, "speedKph": 32.5, "densityVpkm": 12.0, "congestion": 0.4,
    }

def test_feature_accepts_aliases():
    feature = TrafficFeature(id="seg_0", coordinates=LINE, speedKph=10, densityVpkm=3, congestion=1.0)
    assert feature.speed_kph == 10

def test_feature_invalid_congestion():
    with pytest.raises(ValidationError):
        TrafficFeature(id="seg_0", coordinates=LINE, speed_kph=10, density_vpkm=3, congestion=1.2)

def test_feature_negative_speed():
    with pytest.raises(ValidationError):
        TrafficFeature(id="seg_0", coordinates=LINE, speed_kph=-1, density_vpkm=3, congestion=0.5)

def test_snapshot_invalid_source():
    with pytest.raises(ValidationError):
        TrafficSnapshot(city="Delhi", timestamp="2024-05-01T08:00:00.000Z", features=[], source="mock")

# --- History Tests ---
def test_history_from_alias():
    history = HistoryResponse(city="Delhi", from_="a", to="b", count=0, segments=[])
    dumped = history.model_dump(by_alias=True)
    assert dumped["from"] == "a"
    assert "from_" not in dumped

# --- Prediction Tests ---
@pytest.mark.parametrize("horizon", [0, 121])
def test_prediction_horizon_bounds(horizon):
    with pytest.raises(ValidationError):
        PredictionResponse(
            city="Delhi", timestamp="t", horizon_minutes=horizon, features=[], time_series=[],
            meta=PredictionMeta(mode="trend"),
        )

def test_prediction_invalid_mode():
    with pytest.raises(ValidationError):
        PredictionMeta(mode="magic")

# --- Self-test ---
def test_self_test_shape():
    result = SelfTestResponse(
        server_timestamp="t", mode="simulated", tick_count=3,
        cities={"Delhi": {"last_tick_timestamp": None}},
    )
    dumped = result.model_dump(by_alias=True)
    assert dumped["tickCount"] == 3
    assert dumped["cities"]["Delhi"] == {"lastTickTimestamp": None}
