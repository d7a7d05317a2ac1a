"""
API package.
"""
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routes import health, traffic
from ...application.service import TrafficService
from ....common.exceptions import TrafficError, ValidationError

logger = logging.getLogger(__name__)

def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": message}})

def create_app(service: Optional[TrafficService] = None) -> FastAPI:
    """
    Builds the HTTP app around an already wired TrafficService.
    """
    app = FastAPI(title="Traffic State API")
    app.state.traffic_service = service

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins for development
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return _error(400, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return _error(400, ValidationError.code, "Invalid request parameters")

    @app.exception_handler(TrafficError)
    async def handle_traffic_error(request: Request, exc: TrafficError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return _error(500, "INTERNAL", exc.message)

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(traffic.router, tags=["traffic"])
    return app
