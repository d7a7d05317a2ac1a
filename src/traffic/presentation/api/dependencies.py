from fastapi import HTTPException, Request
from ...application.service import TrafficService

def get_service(request: Request) -> TrafficService:
    service = getattr(request.app.state, "traffic_service", None)
    if service is None:
        raise HTTPException(500, "Traffic service not initialized")
    return service
