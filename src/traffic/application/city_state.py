"""
Per-city mutable state and the registry that owns it.
"""
import threading
from collections import deque
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .segment_generator import generate_segments, city_seed
from ..domain import (
    Segment, Snapshot, Sample, SUPPORTED_CITIES, normalize_city, utc_now
)

DEFAULT_HISTORY_CAPACITY = 500

class CityState:
    """
    Segments, a bounded rolling history (oldest evicted first) and the last snapshot.
    Writers are serialized by a per-city lock; readers get copies.
    """

    def __init__(self, city: str, segments: Sequence[Segment], capacity: int = DEFAULT_HISTORY_CAPACITY):
        self.city = city
        self.segments: Tuple[Segment, ...] = tuple(segments)
        self.capacity = capacity
        self._history: deque = deque(maxlen=capacity)
        self._last_snapshot: Optional[Snapshot] = None
        self._last_tick: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def last_snapshot(self) -> Optional[Snapshot]:
        with self._lock:
            return self._last_snapshot

    @property
    def last_tick(self) -> Optional[datetime]:
        with self._lock:
            return self._last_tick

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def append(self, snapshot: Snapshot, from_tick: bool = False):
        """Records a snapshot as the latest one and pushes it onto the history."""
        with self._lock:
            self._history.append(snapshot)
            self._last_snapshot = snapshot
            if from_tick:
                self._last_tick = utc_now()

    def history(self) -> List[Snapshot]:
        """Chronological copy of the buffered snapshots."""
        with self._lock:
            return list(self._history)

    def between(self, from_ts: datetime, to_ts: datetime) -> List[Snapshot]:
        with self._lock:
            return [s for s in self._history if from_ts <= s.timestamp <= to_ts]

    def recent_samples(self, per_segment: int) -> Dict[str, List[Sample]]:
        """
        Walks the history newest-first collecting up to `per_segment` samples for
        each segment, stopping once every known segment is full.
        Returned series are in chronological order.
        """
        with self._lock:
            snapshots = list(self._history)
        by_id: Dict[str, List[Sample]] = {}
        segment_ids = [seg.id for seg in self.segments]

        for snapshot in reversed(snapshots):
            for f in snapshot.features:
                if f.speed_kph is None:
                    continue
                series = by_id.setdefault(f.id, [])
                if len(series) < per_segment:
                    series.append(Sample(
                        timestamp=snapshot.timestamp,
                        speed_kph=f.speed_kph,
                        density_vpkm=f.density_vpkm,
                        coordinates=f.coordinates,
                    ))
            if all(len(by_id.get(seg_id, ())) >= per_segment for seg_id in segment_ids):
                break

        return {
            seg_id: sorted(series, key=lambda s: s.timestamp)
            for seg_id, series in by_id.items()
        }

    def segment(self, segment_id: str) -> Optional[Segment]:
        for seg in self.segments:
            if seg.id == segment_id:
                return seg
        return None

class CityRegistry:
    """
    Owns one CityState per supported city, created up front.
    """

    def __init__(self, base_seed: int, capacity: int = DEFAULT_HISTORY_CAPACITY, cities: Sequence[str] = SUPPORTED_CITIES):
        self.base_seed = base_seed
        self.capacity = capacity
        self._states: Dict[str, CityState] = {}
        self._lock = threading.Lock()
        for city in cities:
            self.get(city)

    def get(self, city: str) -> CityState:
        """State for a city; unknown names normalize to the default city."""
        name = normalize_city(city)
        with self._lock:
            state = self._states.get(name)
            if state is None:
                segments = generate_segments(name, city_seed(self.base_seed, name))
                state = CityState(name, segments, capacity=self.capacity)
                self._states[name] = state
            return state

    def cities(self) -> List[str]:
        with self._lock:
            return list(self._states.keys())

    def __iter__(self) -> Iterator[CityState]:
        with self._lock:
            return iter(list(self._states.values()))
