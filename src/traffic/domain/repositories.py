"""
Domain repositories and collaborator contracts for the traffic module.
"""
from datetime import datetime
from typing import List, Optional, Protocol, Sequence
from .entities import Snapshot, TrafficRecord

class TrafficRepository(Protocol):
    """
    Persisted store of traffic records.
    """
    def insert_many(self, records: Sequence[TrafficRecord]) -> int:
        """Best-effort, unordered insert. Returns the number of rows written."""
        ...

    def find(
        self,
        city: str,
        from_ts: Optional[datetime] = None,
        to_ts: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[TrafficRecord]:
        """Records for a city, newest first."""
        ...

class LiveDataProvider(Protocol):
    """
    Supplies real readings for a city. Raises UpstreamError on any failure.
    """
    def fetch(self, city: str) -> Snapshot:
        ...
