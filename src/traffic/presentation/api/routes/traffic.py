"""
Endpoints for live, historical and predicted traffic.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from ..dependencies import get_service
from ....application.service import TrafficService
from .....common.schemas import (
    ErrorResponse, HistoryResponse, PredictionResponse, TrafficSnapshot
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/traffic", responses={400: {"model": ErrorResponse}})

@router.get("/live", response_model=TrafficSnapshot)
def live(
    city: Optional[str] = Query(None, description="Bangalore | Mumbai | Delhi"),
    service: TrafficService = Depends(get_service),
):
    """Latest snapshot for a city, suitable for map overlays."""
    snapshot = service.get_live_snapshot(city)
    logger.debug(f"Live snapshot served for {snapshot.city}: {len(snapshot.features)} features ({snapshot.source})")
    return snapshot.to_dict()

@router.get("/history", responses={200: {"model": HistoryResponse}})
def history(
    city: Optional[str] = Query(None, description="Bangalore | Mumbai | Delhi"),
    from_: Optional[str] = Query(None, alias="from", description="ISO-8601 start"),
    to: Optional[str] = Query(None, description="ISO-8601 end"),
    format: Optional[str] = Query(None, description="'points' for the flat shape"),
    service: TrafficService = Depends(get_service),
):
    """
    Per-segment averages over a window (default: the last 60 minutes).
    Persisted records are preferred; the in-memory buffer is the fallback.
    """
    result = service.get_history(city, from_, to, format)
    return result.model_dump(by_alias=True)

@router.get("/predict", response_model=PredictionResponse)
def predict(
    city: Optional[str] = Query(None, description="Bangalore | Mumbai | Delhi"),
    horizon_minutes: Optional[str] = Query(None, alias="horizonMinutes", description="1..120, default 15"),
    service: TrafficService = Depends(get_service),
):
    """Trend-based forecast in 5-minute steps up to the horizon."""
    return service.predict(city, horizon_minutes)
