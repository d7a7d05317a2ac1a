import pytest
from datetime import timedelta
from unittest.mock import MagicMock
from src.common.exceptions import ValidationError
from src.traffic.application.history import HistoryAggregator, to_points

READINGS = [
    [("seg_0", 40.0, 20.0, 0.4), ("seg_1", 60.0, 10.0, 0.2)],
    [("seg_0", 50.0, 30.0, 0.5), ("seg_1", 62.0, 12.0, 0.25)],
    [("seg_0", 45.0, 25.0, 0.6), ("seg_1", 64.0, 14.0, 0.3)],
]

@pytest.fixture
def populated(registry, t0, snapshot_factory):
    state = registry.get("Bangalore")
    for i, readings in enumerate(READINGS):
        state.append(snapshot_factory("Bangalore", t0 + timedelta(minutes=i), readings))
    return registry

def test_memory_fallback_when_store_empty(populated, empty_repository, t0):
    aggregator = HistoryAggregator(populated, empty_repository)
    result = aggregator.get_history("Bangalore", t0, t0 + timedelta(minutes=2))

    assert result.count == 3
    by_id = {s.id: s for s in result.segments}
    assert by_id["seg_0"].avg_speed_kph == pytest.approx((40 + 50 + 45) / 3, abs=0.01)
    assert by_id["seg_0"].avg_density_vpkm == pytest.approx(25.0)
    assert by_id["seg_0"].avg_congestion == pytest.approx(0.5)
    assert by_id["seg_1"].avg_speed_kph == pytest.approx(62.0)
    assert by_id["seg_1"].samples == 3
    assert result.from_ == "2024-05-01T08:00:00.000Z"
    assert result.to == "2024-05-01T08:02:00.000Z"
    empty_repository.find.assert_called_once()

def test_memory_range_filters(populated, t0):
    aggregator = HistoryAggregator(populated)
    result = aggregator.get_history("Bangalore", t0 + timedelta(minutes=1), t0 + timedelta(minutes=5))
    assert result.count == 2

def test_store_failure_falls_back_to_memory(populated, t0):
    repo = MagicMock()
    repo.find.side_effect = RuntimeError("connection refused")
    result = HistoryAggregator(populated, repo).get_history("Bangalore", t0, t0 + timedelta(minutes=2))
    assert result.count == 3

def test_store_rows_preferred(populated, t0, record_factory):
    repo = MagicMock()
    repo.find.return_value = [
        record_factory("Bangalore", "seg_9", t0 + timedelta(minutes=1), 30.0, 0.2),
        record_factory("Bangalore", "seg_9", t0, 50.0, 0.4),
    ]
    aggregator = HistoryAggregator(populated, repo, db_limit=50)
    result = aggregator.get_history("Bangalore", t0, t0 + timedelta(minutes=2))

    assert result.count == 2
    assert len(result.segments) == 1
    seg = result.segments[0]
    assert seg.id == "seg_9"
    assert seg.avg_speed_kph == 40.0
    assert seg.avg_congestion == 0.3
    assert seg.avg_density_vpkm is None
    assert result.from_ == "2024-05-01T08:00:00.000Z"
    assert result.to == "2024-05-01T08:01:00.000Z"
    repo.find.assert_called_once_with("Bangalore", t0, t0 + timedelta(minutes=2), limit=50)

def test_no_range_queries_latest_rows(populated, empty_repository):
    HistoryAggregator(populated, empty_repository, db_limit=25).get_history("Bangalore")
    empty_repository.find.assert_called_once_with("Bangalore", None, None, limit=25)

def test_default_window_is_last_hour(populated, empty_repository):
    aggregator = HistoryAggregator(populated, empty_repository)
    from_ts, to_ts = aggregator.resolve_window(None, None)
    assert to_ts - from_ts == timedelta(minutes=60)

def test_only_to_given(populated, t0):
    aggregator = HistoryAggregator(populated, default_window_minutes=1)
    result = aggregator.get_history("Bangalore", None, t0 + timedelta(minutes=2))
    assert result.count == 2

def test_inverted_range_rejected(populated, t0):
    with pytest.raises(ValidationError):
        HistoryAggregator(populated).get_history("Bangalore", t0 + timedelta(minutes=5), t0)

def test_both_paths_share_shape(populated, t0, record_factory):
    repo = MagicMock()
    repo.find.return_value = [record_factory("Bangalore", "seg_0", t0, 40.0)]
    from_store = HistoryAggregator(populated, repo).get_history("Bangalore", t0, t0 + timedelta(minutes=2))
    from_memory = HistoryAggregator(populated).get_history("Bangalore", t0, t0 + timedelta(minutes=2))

    store_json = from_store.model_dump(by_alias=True)
    memory_json = from_memory.model_dump(by_alias=True)
    assert set(store_json) == set(memory_json) == {"city", "from", "to", "count", "segments"}
    assert set(store_json["segments"][0]) == set(memory_json["segments"][0])

def test_points_format(populated, t0):
    history = HistoryAggregator(populated).get_history("Bangalore", t0, t0 + timedelta(minutes=2))
    points = to_points(history).model_dump(by_alias=True)
    assert points["format"] == "points"
    assert points["count"] == 3
    assert set(points["points"][0]) == {"id", "coordinates", "speedKph", "densityVpkm", "congestion", "samples"}
