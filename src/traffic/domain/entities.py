"""
Domain entities for the traffic state engine.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

Point = Tuple[float, float]  # (lng, lat)
LineString = Tuple[Point, Point]

SOURCE_SIMULATED = "simulated"
SOURCE_EXTERNAL = "external"

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def to_iso(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def coordinates_to_list(coordinates) -> List[List[float]]:
    return [[float(p[0]), float(p[1])] for p in coordinates]

@dataclass(frozen=True)
class Segment:
    """
    Synthetic road-network edge. Immutable once generated for a city.
    """
    id: str
    coordinates: LineString
    base_speed_kph: float
    base_density_vpkm: float

@dataclass(frozen=True)
class Feature:
    """
    One reading for a segment.
    """
    id: str
    coordinates: LineString
    speed_kph: float
    density_vpkm: float
    congestion: float  # 0.0 to 1.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coordinates": coordinates_to_list(self.coordinates),
            "speedKph": self.speed_kph,
            "densityVpkm": self.density_vpkm,
            "congestion": self.congestion,
        }

@dataclass(frozen=True)
class Snapshot:
    """
    One timestamped reading over all segments of a city.
    """
    city: str
    timestamp: datetime
    features: Tuple[Feature, ...]
    source: str = SOURCE_SIMULATED
    incidents: Tuple = ()  # reserved, always empty

    def to_dict(self) -> dict:
        return {
            "city": self.city,
            "timestamp": to_iso(self.timestamp),
            "features": [f.to_dict() for f in self.features],
            "incidents": list(self.incidents),
            "source": self.source,
        }

@dataclass(frozen=True)
class TrafficRecord:
    """
    Persisted row: one per feature per snapshot.
    """
    segment_id: str
    coordinates: LineString
    avg_speed: float
    congestion_level: float
    timestamp: datetime
    city: str

@dataclass
class Sample:
    """
    A single observation used by the trend predictor.
    """
    timestamp: datetime
    speed_kph: float
    density_vpkm: float
    coordinates: Optional[LineString] = None

def records_from_snapshot(snapshot: Snapshot) -> List[TrafficRecord]:
    """Flattens a snapshot into one persisted record per feature."""
    return [
        TrafficRecord(
            segment_id=f.id,
            coordinates=f.coordinates,
            avg_speed=f.speed_kph if f.speed_kph is not None else 0.0,
            congestion_level=f.congestion,
            timestamp=snapshot.timestamp,
            city=snapshot.city,
        )
        for f in snapshot.features
    ]
