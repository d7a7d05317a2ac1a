from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Coordinates = List[List[float]]

def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(word.capitalize() for word in rest)

class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, as the HTTP contract expects."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class TrafficFeature(CamelModel):
    """
    One reading for a road segment.
    """
    id: str = Field(..., description="Segment identifier")
    coordinates: Coordinates = Field(..., description="Two [lng, lat] points")
    speed_kph: Optional[float] = Field(None, ge=0, description="Current speed in km/h")
    density_vpkm: Optional[float] = Field(None, ge=0, description="Vehicles per km")
    congestion: float = Field(..., ge=0.0, le=1.0, description="Congestion level (0.0 - 1.0)")

class TrafficSnapshot(CamelModel):
    """
    One timestamped reading over all segments of a city.
    """
    city: str
    timestamp: str = Field(..., description="ISO-8601 build time")
    features: List[TrafficFeature]
    incidents: List[dict] = Field(default_factory=list, description="Reserved, always empty")
    source: Literal["simulated", "external"]

class SegmentAggregate(CamelModel):
    id: str
    coordinates: Coordinates
    avg_speed_kph: Optional[float] = None
    avg_density_vpkm: Optional[float] = Field(None, description="Only available from the in-memory buffer")
    avg_congestion: Optional[float] = None
    samples: int = 0

class HistoryResponse(CamelModel):
    """
    Per-segment averages over a time window.
    """
    city: str
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    count: int = Field(..., ge=0, description="Rows (store) or snapshots (memory) aggregated")
    segments: List[SegmentAggregate]

class HistoryPoint(CamelModel):
    id: str
    coordinates: Coordinates
    speed_kph: Optional[float] = None
    density_vpkm: Optional[float] = None
    congestion: Optional[float] = None
    samples: int = 0

class HistoryPointsResponse(CamelModel):
    city: str
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    count: int
    format: Literal["points"] = "points"
    points: List[HistoryPoint]

class PredictionPoint(CamelModel):
    timestamp: str
    speed_kph: float
    density_vpkm: float
    congestion: float = Field(..., ge=0.0, le=1.0)

class SegmentSeries(CamelModel):
    id: str
    coordinates: Coordinates
    points: List[PredictionPoint]

class PredictionMeta(CamelModel):
    mode: Literal["trend", "fallback-simulated"]
    segments: int = 0

class PredictionResponse(CamelModel):
    """
    Short-horizon forecast: final-step features plus a per-segment time series.
    """
    city: str
    timestamp: str
    horizon_minutes: int = Field(..., ge=1, le=120)
    step_minutes: int = 5
    features: List[TrafficFeature]
    time_series: List[SegmentSeries]
    meta: PredictionMeta

class CityTick(CamelModel):
    last_tick_timestamp: Optional[str] = None

class SelfTestResponse(CamelModel):
    """
    Scheduler introspection.
    """
    server_timestamp: str
    mode: Literal["simulated", "external"]
    tick_count: int
    cities: Dict[str, CityTick]

class ErrorBody(BaseModel):
    code: str
    message: str

class ErrorResponse(BaseModel):
    error: ErrorBody
