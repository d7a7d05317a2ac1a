import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..domain import TrafficRepository, TrafficRecord
from ...common.database import TrafficRecordDB
from ...common.exceptions import PersistenceError

logger = logging.getLogger(__name__)

def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)

class SQLTrafficRepository(TrafficRepository):
    """
    Stores traffic records in a relational database via SQLAlchemy.
    Inserts are unordered and non-atomic: a rejected row does not abort the rest.
    """
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_row(record: TrafficRecord) -> TrafficRecordDB:
        return TrafficRecordDB(
            segment_id=record.segment_id,
            coordinates=[[float(p[0]), float(p[1])] for p in record.coordinates],
            avg_speed=record.avg_speed,
            congestion_level=record.congestion_level,
            timestamp=_as_utc(record.timestamp),
            city=record.city,
        )

    @staticmethod
    def _to_record(row: TrafficRecordDB) -> TrafficRecord:
        coords = row.coordinates or []
        return TrafficRecord(
            segment_id=row.segment_id,
            coordinates=tuple(tuple(p) for p in coords),
            avg_speed=float(row.avg_speed),
            congestion_level=float(row.congestion_level),
            timestamp=_as_utc(row.timestamp),
            city=row.city,
        )

    def insert_many(self, records: Sequence[TrafficRecord]) -> int:
        if not records:
            return 0
        try:
            with self.session_factory() as session:
                session.add_all([self._to_row(r) for r in records])
                session.commit()
            return len(records)
        except SQLAlchemyError as e:
            logger.warning(f"Bulk insert failed ({e.__class__.__name__}), retrying row by row")

        inserted = 0
        failures = 0
        for record in records:
            try:
                with self.session_factory() as session:
                    session.add(self._to_row(record))
                    session.commit()
                inserted += 1
            except SQLAlchemyError:
                failures += 1
        if inserted == 0:
            raise PersistenceError(f"Insert failed for all {failures} records")
        if failures:
            logger.warning(f"Inserted {inserted} records, {failures} rejected")
        return inserted

    def find(
        self,
        city: str,
        from_ts: Optional[datetime] = None,
        to_ts: Optional[datetime] = None,
        limit: int = 50,
    ) -> List[TrafficRecord]:
        stmt = select(TrafficRecordDB).where(TrafficRecordDB.city == city)
        if from_ts is not None:
            stmt = stmt.where(TrafficRecordDB.timestamp >= _as_utc(from_ts))
        if to_ts is not None:
            stmt = stmt.where(TrafficRecordDB.timestamp <= _as_utc(to_ts))
        stmt = stmt.order_by(TrafficRecordDB.timestamp.desc(), TrafficRecordDB.id.desc()).limit(limit)

        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Query failed for {city}: {e}") from e
        return [self._to_record(row) for row in rows]
