"""
Builds one simulated snapshot (a reading per segment) for a city.
"""
import random
from datetime import datetime
from typing import Callable, Optional, Sequence

from . import patterns
from ..domain import Feature, Segment, Snapshot, SOURCE_SIMULATED, utc_now

SPEED_DENSITY_FLOOR = 5.0
NOISE_AMPLITUDE = 0.3  # noise in [-0.15, 0.15)

NoiseSource = Callable[[], float]

def default_noise() -> float:
    return (random.random() - 0.5) * NOISE_AMPLITUDE

def clamp01(v: float) -> float:
    return max(0.0, min(1.0, v))

def derive_congestion(speed_kph: float, density_vpkm: float) -> float:
    """Density pressure and speed deficit against an 80 kph / 80 vpkm scale, clamped to [0, 1]."""
    raw = (density_vpkm / 80 + (1 - speed_kph / 80)) / 2
    return clamp01(round(raw, 3))

def simulate_feature(segment: Segment, pattern: float, noise: float) -> Feature:
    density = max(SPEED_DENSITY_FLOOR, segment.base_density_vpkm * (0.6 + pattern + noise))
    speed = max(
        SPEED_DENSITY_FLOOR,
        segment.base_speed_kph * (1.25 - 0.65 * (density / (segment.base_density_vpkm + 30))),
    )
    return Feature(
        id=segment.id,
        coordinates=segment.coordinates,
        speed_kph=round(speed, 2),
        density_vpkm=round(density, 2),
        congestion=derive_congestion(speed, density),
    )

class SnapshotBuilder:
    """
    Applies the time-of-day pattern plus per-segment noise to base segment values.
    Pure apart from the noise source and clock, both of which are injectable.
    """

    def __init__(
        self,
        noise: Optional[NoiseSource] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.noise = noise or default_noise
        self.clock = clock or utc_now

    def build(self, city: str, segments: Sequence[Segment]) -> Snapshot:
        now = self.clock()
        pattern = patterns.intensity(patterns.minute_of_day(now))
        features = tuple(simulate_feature(seg, pattern, self.noise()) for seg in segments)
        return Snapshot(city=city, timestamp=now, features=features, source=SOURCE_SIMULATED)
