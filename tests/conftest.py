import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from src.common.config import ConfigManager
from src.traffic.application.city_state import CityRegistry
from src.traffic.application.snapshot_builder import SnapshotBuilder
from src.traffic.domain import Feature, Snapshot, TrafficRecord

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)

@pytest.fixture
def t0():
    return T0

@pytest.fixture
def registry():
    return CityRegistry(base_seed=42)

@pytest.fixture
def zero_noise_builder():
    return SnapshotBuilder(noise=lambda: 0.0, clock=lambda: T0)

@pytest.fixture
def empty_repository():
    repo = MagicMock()
    repo.find.return_value = []
    repo.insert_many.side_effect = lambda records: len(records)
    return repo

@pytest.fixture
def config():
    cfg = ConfigManager().defaults()
    cfg.scheduler.enabled = False
    cfg.simulation.seed = 42
    return cfg

def make_snapshot(city, timestamp, readings, source="simulated"):
    """readings: list of (segment_id, speed, density, congestion)."""
    features = tuple(
        Feature(
            id=seg_id,
            coordinates=((77.5, 12.9), (77.505, 12.905)),
            speed_kph=speed,
            density_vpkm=density,
            congestion=congestion,
        )
        for seg_id, speed, density, congestion in readings
    )
    return Snapshot(city=city, timestamp=timestamp, features=features, source=source)

def make_record(city, segment_id, timestamp, speed, congestion=0.4):
    return TrafficRecord(
        segment_id=segment_id,
        coordinates=((77.2, 28.6), (77.205, 28.605)),
        avg_speed=speed,
        congestion_level=congestion,
        timestamp=timestamp,
        city=city,
    )

def minutes(n):
    return timedelta(minutes=n)

@pytest.fixture
def snapshot_factory():
    return make_snapshot

@pytest.fixture
def record_factory():
    return make_record
