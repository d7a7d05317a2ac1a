"""
Supported cities, their bounding boxes and input normalization.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ...common.exceptions import ValidationError

@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

CITY_BBOX: Dict[str, BoundingBox] = {
    "Bangalore": BoundingBox(min_lat=12.85, max_lat=13.12, min_lng=77.45, max_lng=77.75),
    "Mumbai": BoundingBox(min_lat=18.88, max_lat=19.30, min_lng=72.75, max_lng=72.99),
    "Delhi": BoundingBox(min_lat=28.40, max_lat=28.88, min_lng=76.90, max_lng=77.40),
}

SUPPORTED_CITIES: Tuple[str, ...] = tuple(CITY_BBOX.keys())
DEFAULT_CITY = "Bangalore"

_ALIASES = {
    "bangalore": "Bangalore",
    "blr": "Bangalore",
    "mumbai": "Mumbai",
    "bom": "Mumbai",
    "delhi": "Delhi",
    "ncr": "Delhi",
}

def _lookup(raw) -> Optional[str]:
    return _ALIASES.get(str(raw).strip().lower())

def normalize_city(raw) -> str:
    """Maps any input onto a canonical city; unknown or missing input yields the default."""
    if raw is None or str(raw).strip() == "":
        return DEFAULT_CITY
    return _lookup(raw) or DEFAULT_CITY

def validate_city(raw) -> str:
    """
    Like normalize_city, but unknown names are rejected instead of defaulted.
    Missing or blank input still means the default city.
    """
    if raw is None or str(raw).strip() == "":
        return DEFAULT_CITY
    city = _lookup(raw)
    if city is None:
        raise ValidationError(
            f"Unsupported city {raw!r}; must be one of: {', '.join(SUPPORTED_CITIES)}", field="city"
        )
    return city
