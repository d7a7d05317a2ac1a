"""
Synthetic road-network generation.
"""
import math
from typing import List

from .rng import Mulberry32
from ..domain import Segment, CITY_BBOX, DEFAULT_CITY

SEGMENTS_PER_CITY = 120
ENDPOINT_SPREAD_DEG = 0.01  # ~1 km between the two endpoints

def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t

def generate_segments(city: str, seed: int, count: int = SEGMENTS_PER_CITY) -> List[Segment]:
    """
    Builds `count` segments inside the city's bounding box from a seeded sequence.
    Same (city, seed) always yields identical geometry and base values.
    """
    bbox = CITY_BBOX.get(city, CITY_BBOX[DEFAULT_CITY])
    rng = Mulberry32(seed)
    segments = []
    for i in range(count):
        lat1 = _lerp(bbox.min_lat, bbox.max_lat, rng())
        lng1 = _lerp(bbox.min_lng, bbox.max_lng, rng())
        lat2 = lat1 + (rng() - 0.5) * ENDPOINT_SPREAD_DEG
        lng2 = lng1 + (rng() - 0.5) * ENDPOINT_SPREAD_DEG

        segments.append(Segment(
            id=f"seg_{i}",
            coordinates=((lng1, lat1), (lng2, lat2)),
            base_speed_kph=float(30 + math.floor(rng() * 40)),
            base_density_vpkm=float(10 + math.floor(rng() * 40)),
        ))
    return segments

def city_seed(base_seed: int, city: str) -> int:
    """Per-city seed so cities sharing a base seed still get distinct networks."""
    return base_seed + len(city) * 9973
