"""
Facade over the traffic state engine used by the HTTP layer.
"""
import logging
from typing import Callable, Optional, Union

from .city_state import CityRegistry
from .history import HistoryAggregator, to_points
from .predictor import TrendPredictor
from .scheduler import TrafficScheduler
from .snapshot_builder import SnapshotBuilder
from . import validation
from ..domain import LiveDataProvider, Snapshot, to_iso
from ...common.exceptions import UpstreamError
from ...common.schemas import (
    CityTick, HistoryPointsResponse, HistoryResponse, PredictionResponse, SelfTestResponse
)

logger = logging.getLogger(__name__)

class TrafficService:
    """
    Validates raw request input and routes it to the live, history and
    prediction paths. Owns no state of its own beyond its collaborators.
    """

    def __init__(
        self,
        registry: CityRegistry,
        builder: SnapshotBuilder,
        history: HistoryAggregator,
        predictor: TrendPredictor,
        scheduler: TrafficScheduler,
        persist: Optional[Callable[[Snapshot], object]] = None,
        live_provider: Optional[LiveDataProvider] = None,
    ):
        self.registry = registry
        self.builder = builder
        self.history = history
        self.predictor = predictor
        self.scheduler = scheduler
        self.persist = persist
        self.live_provider = live_provider

    def _record(self, snapshot: Snapshot):
        self.registry.get(snapshot.city).append(snapshot)
        if self.persist is not None:
            try:
                self.persist(snapshot)
            except Exception as e:
                logger.warning(f"Persistence submit failed for {snapshot.city}: {e}")

    def get_live_snapshot(self, raw_city: Optional[str]) -> Snapshot:
        city = validation.parse_city(raw_city)

        if self.live_provider is not None:
            try:
                snapshot = self.live_provider.fetch(city)
                self._record(snapshot)
                return snapshot
            except UpstreamError as e:
                logger.warning(f"Live provider failed for {city} ({e.code}), falling back to simulation: {e}")

        state = self.registry.get(city)
        snapshot = state.last_snapshot
        if snapshot is None:
            snapshot = self.builder.build(city, state.segments)
            self._record(snapshot)
        return snapshot

    def get_history(
        self,
        raw_city: Optional[str],
        raw_from: Optional[str] = None,
        raw_to: Optional[str] = None,
        format: Optional[str] = None,
    ) -> Union[HistoryResponse, HistoryPointsResponse]:
        city = validation.parse_city(raw_city)
        from_ts = validation.parse_timestamp(raw_from, "from")
        to_ts = validation.parse_timestamp(raw_to, "to")

        result = self.history.get_history(city, from_ts, to_ts)
        if (format or "").strip().lower() == "points":
            return to_points(result)
        return result

    def predict(self, raw_city: Optional[str], raw_horizon=None) -> PredictionResponse:
        horizon = validation.parse_horizon(raw_horizon)
        city = validation.parse_city(raw_city)
        result = self.predictor.predict(city, horizon)
        logger.info(
            f"Prediction served for {city}: horizon={horizon}m mode={result.meta.mode} "
            f"points_per_series={len(result.time_series[0].points) if result.time_series else 0}"
        )
        return result

    def self_test(self) -> SelfTestResponse:
        metrics = self.scheduler.metrics()
        return SelfTestResponse(
            server_timestamp=to_iso(metrics["server_timestamp"]),
            mode=metrics["mode"],
            tick_count=metrics["tick_count"],
            cities={
                city: CityTick(last_tick_timestamp=to_iso(ts) if ts else None)
                for city, ts in metrics["city_last_tick"].items()
            },
        )
