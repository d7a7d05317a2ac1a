"""
Domain module initialization.
"""
from .entities import (
    Segment,
    Feature,
    Snapshot,
    TrafficRecord,
    Sample,
    SOURCE_SIMULATED,
    SOURCE_EXTERNAL,
    records_from_snapshot,
    to_iso,
    utc_now,
)
from .cities import (
    BoundingBox,
    CITY_BBOX,
    SUPPORTED_CITIES,
    DEFAULT_CITY,
    normalize_city,
    validate_city,
)
from .repositories import TrafficRepository, LiveDataProvider
