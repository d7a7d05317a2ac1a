"""
Operational endpoints: health and scheduler self-test.
"""
import logging
from fastapi import APIRouter, Depends

from ..dependencies import get_service
from ....application.service import TrafficService
from ....domain import to_iso, utc_now
from .....common.schemas import SelfTestResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

@router.get("/health")
def health():
    return {"status": "ok", "timestamp": to_iso(utc_now())}

@router.get("/traffic/self-test", response_model=SelfTestResponse)
def self_test(service: TrafficService = Depends(get_service)):
    """Scheduler mode, global tick count and last tick per city."""
    result = service.self_test()
    logger.info(f"Self-test accessed: mode={result.mode} tick_count={result.tick_count}")
    return result
