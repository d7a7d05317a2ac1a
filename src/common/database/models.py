from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Index
from .database import Base

# --- Traffic Records (one row per segment per snapshot) ---

class TrafficRecordDB(Base):
    __tablename__ = "traffic_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    segment_id = Column(String, nullable=False, index=True)
    coordinates = Column(JSON, nullable=False)  # LineString as [[lng, lat], [lng, lat]]
    avg_speed = Column(Float, nullable=False)
    congestion_level = Column(Float, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    city = Column(String, nullable=False, default="Bangalore", index=True)

    __table_args__ = (
        Index("ix_traffic_records_city_timestamp", "city", "timestamp"),
    )
