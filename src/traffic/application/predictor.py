"""
Short-horizon per-segment forecasts.

Each segment's recent samples (store first, then the in-memory buffer) are fit
with ordinary least squares of value over minutes since the first sample, and
the line is projected forward in fixed steps. Flat series fall back to their
mean. With no history at all, a drift heuristic over a simulated snapshot is used.
"""
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from . import patterns
from .city_state import CityRegistry, CityState
from .snapshot_builder import SPEED_DENSITY_FLOOR, derive_congestion
from ..domain import Sample, TrafficRepository, to_iso, utc_now
from ...common.logging import log_execution_time
from ...common.schemas import (
    PredictionMeta, PredictionPoint, PredictionResponse, SegmentSeries, TrafficFeature
)

logger = logging.getLogger(__name__)

MODE_TREND = "trend"
MODE_FALLBACK = "fallback-simulated"
FLAT_TOLERANCE = 1e-6

def project_series(
    samples: Sequence[Sample],
    value: Callable[[Sample], float],
    now: datetime,
    step_minutes: int,
    steps: int,
) -> List[float]:
    """
    Future values at now + i*step for i in 1..steps.
    A single sample, or a series with near-zero variance and slope, repeats the mean.
    """
    if not samples:
        return []
    ys = np.array([value(s) for s in samples], dtype=float)
    if len(samples) == 1:
        return [float(ys[0])] * steps

    t0 = samples[0].timestamp
    xs = np.array([(s.timestamp - t0).total_seconds() / 60.0 for s in samples], dtype=float)
    x_mean = xs.mean()
    y_mean = ys.mean()
    den = float(np.sum((xs - x_mean) ** 2))
    slope = float(np.sum((xs - x_mean) * (ys - y_mean)) / den) if den != 0 else 0.0
    intercept = y_mean - slope * x_mean

    variance = float(np.mean((ys - y_mean) ** 2))
    use_mean = variance < FLAT_TOLERANCE and abs(slope) < FLAT_TOLERANCE

    now_x = (now - t0).total_seconds() / 60.0
    last_x = float(xs[-1])
    result = []
    for i in range(1, steps + 1):
        if use_mean:
            v = y_mean
        else:
            v = intercept + slope * max(now_x + i * step_minutes, last_x)
        if not np.isfinite(v):
            v = y_mean
        result.append(float(v))
    return result

def infer_density(speed_kph: float) -> float:
    # Store rows carry no density; same inverse-speed approximation as the live feed
    return round(80 / max(SPEED_DENSITY_FLOOR, speed_kph), 2)

class TrendPredictor:
    """
    Projects speed and density per segment, deriving congestion at each step.
    """

    def __init__(
        self,
        registry: CityRegistry,
        repository: Optional[TrafficRepository] = None,
        step_minutes: int = 5,
        samples_per_segment: int = 10,
        db_scan_limit: int = 1000,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.registry = registry
        self.repository = repository
        self.step_minutes = step_minutes
        self.samples_per_segment = samples_per_segment
        self.db_scan_limit = db_scan_limit
        self.rng = rng or random.Random()
        self.clock = clock or utc_now

    @log_execution_time(logger)
    def predict(self, city: str, horizon_minutes: int) -> PredictionResponse:
        state = self.registry.get(city)
        steps = max(1, horizon_minutes // self.step_minutes)

        samples = self._collect_from_store(state.city)
        if not samples:
            samples = state.recent_samples(self.samples_per_segment)
            logger.info(f"Predictor for {state.city} using in-memory history ({len(samples)} segments)")
        else:
            logger.info(f"Predictor for {state.city} using store history ({len(samples)} segments)")

        if not samples:
            logger.warning(f"Predictor has no history for {state.city}; using simulated fallback")
            return self.predict_fallback(state, horizon_minutes)

        return self._predict_trend(state, samples, horizon_minutes, steps)

    def _collect_from_store(self, city: str) -> Dict[str, List[Sample]]:
        if self.repository is None:
            return {}
        try:
            records = self.repository.find(city, limit=self.db_scan_limit)
        except Exception as e:
            logger.warning(f"Predictor store history failed for {city}, will use memory: {e}")
            return {}

        by_id: Dict[str, List[Sample]] = {}
        # Records arrive newest first; keep the first N per segment
        for r in records:
            series = by_id.setdefault(r.segment_id, [])
            if len(series) < self.samples_per_segment:
                series.append(Sample(
                    timestamp=r.timestamp,
                    speed_kph=float(r.avg_speed),
                    density_vpkm=infer_density(float(r.avg_speed)),
                    coordinates=r.coordinates,
                ))
        return {seg_id: sorted(series, key=lambda s: s.timestamp) for seg_id, series in by_id.items()}

    def _predict_trend(
        self,
        state: CityState,
        samples: Dict[str, List[Sample]],
        horizon_minutes: int,
        steps: int,
    ) -> PredictionResponse:
        now = self.clock()
        series_out = []
        features = []

        for seg_id, seg_samples in samples.items():
            coordinates = self._coordinates(state, seg_id, seg_samples)
            speeds = project_series(seg_samples, lambda s: s.speed_kph, now, self.step_minutes, steps)
            densities = project_series(seg_samples, lambda s: s.density_vpkm, now, self.step_minutes, steps)

            points = []
            for i in range(steps):
                speed = max(SPEED_DENSITY_FLOOR, round(speeds[i], 2))
                density = max(SPEED_DENSITY_FLOOR, round(densities[i], 2))
                points.append(PredictionPoint(
                    timestamp=to_iso(now + timedelta(minutes=(i + 1) * self.step_minutes)),
                    speed_kph=speed,
                    density_vpkm=density,
                    congestion=derive_congestion(speed, density),
                ))

            series_out.append(SegmentSeries(id=seg_id, coordinates=coordinates, points=points))
            last = points[-1]
            features.append(TrafficFeature(
                id=seg_id,
                coordinates=coordinates,
                speed_kph=last.speed_kph,
                density_vpkm=last.density_vpkm,
                congestion=last.congestion,
            ))

        return PredictionResponse(
            city=state.city,
            timestamp=to_iso(now),
            horizon_minutes=horizon_minutes,
            step_minutes=self.step_minutes,
            features=features,
            time_series=series_out,
            meta=PredictionMeta(mode=MODE_TREND, segments=len(features)),
        )

    @staticmethod
    def _coordinates(state: CityState, seg_id: str, seg_samples: Sequence[Sample]) -> list:
        coords = seg_samples[-1].coordinates if seg_samples else None
        if not coords:
            segment = state.segment(seg_id)
            coords = segment.coordinates if segment else ()
        return [[float(p[0]), float(p[1])] for p in coords]

    def predict_fallback(self, state: CityState, horizon_minutes: int) -> PredictionResponse:
        """
        Drifts the latest buffered snapshot (or the segments' base values) towards
        the traffic pattern expected at the horizon.
        """
        now = self.clock()
        pattern = patterns.intensity(patterns.minute_of_day(now) + horizon_minutes)
        at_horizon = to_iso(now + timedelta(minutes=horizon_minutes))

        latest = state.last_snapshot
        if latest is not None:
            base = [(f.id, f.coordinates, f.speed_kph, f.density_vpkm) for f in latest.features if f.speed_kph is not None]
        else:
            base = [(s.id, s.coordinates, s.base_speed_kph, s.base_density_vpkm) for s in state.segments]

        features = []
        series_out = []
        for seg_id, coords, speed, density in base:
            drift_density = density * (0.9 + 0.3 * pattern)
            predicted_density = max(SPEED_DENSITY_FLOOR, drift_density + (self.rng.random() - 0.5) * 2)
            predicted_speed = max(SPEED_DENSITY_FLOOR, speed * (1.05 - 0.3 * pattern) + (self.rng.random() - 0.5) * 2)
            speed_out = round(predicted_speed, 2)
            density_out = round(predicted_density, 2)
            congestion = derive_congestion(predicted_speed, predicted_density)
            line = [[float(p[0]), float(p[1])] for p in coords]

            features.append(TrafficFeature(
                id=seg_id, coordinates=line, speed_kph=speed_out,
                density_vpkm=density_out, congestion=congestion,
            ))
            series_out.append(SegmentSeries(id=seg_id, coordinates=line, points=[
                PredictionPoint(timestamp=at_horizon, speed_kph=speed_out, density_vpkm=density_out, congestion=congestion)
            ]))

        return PredictionResponse(
            city=state.city,
            timestamp=to_iso(now),
            horizon_minutes=horizon_minutes,
            step_minutes=self.step_minutes,
            features=features,
            time_series=series_out,
            meta=PredictionMeta(mode=MODE_FALLBACK, segments=len(features)),
        )
