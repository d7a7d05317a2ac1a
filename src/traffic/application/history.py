"""
Historical aggregates per segment, preferring the persisted store.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .city_state import CityRegistry
from ..domain import TrafficRecord, TrafficRepository, to_iso, utc_now
from ...common.exceptions import ValidationError
from ...common.logging import log_execution_time
from ...common.schemas import (
    HistoryResponse, HistoryPointsResponse, HistoryPoint, SegmentAggregate
)

logger = logging.getLogger(__name__)

@dataclass
class _Accumulator:
    id: str
    coordinates: list
    speed_sum: float = 0.0
    density_sum: float = 0.0
    congestion_sum: float = 0.0
    density_n: int = 0
    n: int = 0

    def to_aggregate(self) -> SegmentAggregate:
        return SegmentAggregate(
            id=self.id,
            coordinates=self.coordinates,
            avg_speed_kph=round(self.speed_sum / self.n, 2) if self.n else None,
            avg_density_vpkm=round(self.density_sum / self.density_n, 2) if self.density_n else None,
            avg_congestion=round(self.congestion_sum / self.n, 3) if self.n else None,
            samples=self.n,
        )

def _line(coordinates) -> list:
    return [[float(p[0]), float(p[1])] for p in coordinates or []]

def aggregate_records(records: Iterable[TrafficRecord]) -> List[SegmentAggregate]:
    """Mean speed and congestion per segment id. Density is not persisted."""
    by_id: Dict[str, _Accumulator] = {}
    for r in records:
        acc = by_id.get(r.segment_id)
        if acc is None:
            acc = by_id[r.segment_id] = _Accumulator(id=r.segment_id, coordinates=_line(r.coordinates))
        acc.speed_sum += r.avg_speed
        acc.congestion_sum += r.congestion_level
        acc.n += 1
    return [acc.to_aggregate() for acc in by_id.values()]

def aggregate_snapshots(snapshots) -> List[SegmentAggregate]:
    """Mean speed, density and congestion per segment id across buffered snapshots."""
    by_id: Dict[str, _Accumulator] = {}
    for snapshot in snapshots:
        for f in snapshot.features:
            if f.speed_kph is None:
                continue
            acc = by_id.get(f.id)
            if acc is None:
                acc = by_id[f.id] = _Accumulator(id=f.id, coordinates=_line(f.coordinates))
            acc.speed_sum += f.speed_kph
            acc.congestion_sum += f.congestion
            if f.density_vpkm is not None:
                acc.density_sum += f.density_vpkm
                acc.density_n += 1
            acc.n += 1
    return [acc.to_aggregate() for acc in by_id.values()]

def to_points(history: HistoryResponse) -> HistoryPointsResponse:
    """Reshapes aggregates into the flat `format=points` variant."""
    return HistoryPointsResponse(
        city=history.city,
        from_=history.from_,
        to=history.to,
        count=history.count,
        points=[
            HistoryPoint(
                id=s.id,
                coordinates=s.coordinates,
                speed_kph=s.avg_speed_kph,
                density_vpkm=s.avg_density_vpkm,
                congestion=s.avg_congestion,
                samples=s.samples,
            )
            for s in history.segments
        ],
    )

class HistoryAggregator:
    """
    Answers range queries from the persisted store when it has matching rows,
    otherwise from the in-memory buffer. Both paths share one response shape.
    """

    def __init__(
        self,
        registry: CityRegistry,
        repository: Optional[TrafficRepository] = None,
        default_window_minutes: int = 60,
        db_limit: int = 50,
    ):
        self.registry = registry
        self.repository = repository
        self.default_window = timedelta(minutes=default_window_minutes)
        self.db_limit = db_limit

    def resolve_window(self, from_ts: Optional[datetime], to_ts: Optional[datetime]) -> Tuple[datetime, datetime]:
        to_resolved = to_ts or utc_now()
        from_resolved = from_ts or (to_resolved - self.default_window)
        if from_resolved > to_resolved:
            raise ValidationError("from must not be after to", field="from")
        return from_resolved, to_resolved

    @log_execution_time(logger)
    def get_history(self, city: str, from_ts: Optional[datetime] = None, to_ts: Optional[datetime] = None) -> HistoryResponse:
        window = self.resolve_window(from_ts, to_ts)

        history = self._from_store(city, from_ts, to_ts)
        if history is not None:
            logger.info(f"History for {city} served from store ({history.count} rows)")
            return history

        history = self._from_memory(city, *window)
        logger.info(f"History for {city} served from memory ({history.count} snapshots)")
        return history

    def _from_store(self, city: str, from_ts: Optional[datetime], to_ts: Optional[datetime]) -> Optional[HistoryResponse]:
        if self.repository is None:
            return None
        try:
            # No explicit range: the most recent rows, whatever their age
            records = self.repository.find(city, from_ts, to_ts, limit=self.db_limit)
        except Exception as e:
            logger.warning(f"Store history failed for {city}, falling back to memory: {e}")
            return None
        if not records:
            return None

        timestamps = [r.timestamp for r in records]
        return HistoryResponse(
            city=city,
            from_=to_iso(min(timestamps)),
            to=to_iso(max(timestamps)),
            count=len(records),
            segments=aggregate_records(records),
        )

    def _from_memory(self, city: str, from_ts: datetime, to_ts: datetime) -> HistoryResponse:
        snapshots = self.registry.get(city).between(from_ts, to_ts)
        return HistoryResponse(
            city=city,
            from_=to_iso(from_ts),
            to=to_iso(to_ts),
            count=len(snapshots),
            segments=aggregate_snapshots(snapshots),
        )
