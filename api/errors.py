"""
Mapping of domain errors to HTTP responses and centralized exception handlers.
"""
import logging
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.metrics import error_counter
from weather_cache.errors import (
    AuthenticationError,
    ConfigurationError,
    InvalidArgument,
    InvalidRequest,
    LocationNotFound,
    RateLimitExceeded,
    UpstreamError,
    UpstreamUnavailable,
    WeatherCacheError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: Dict[Type[WeatherCacheError], int] = {
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    LocationNotFound: status.HTTP_404_NOT_FOUND,
    RateLimitExceeded: status.HTTP_429_TOO_MANY_REQUESTS,
    UpstreamError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    UpstreamUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: WeatherCacheError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(WeatherCacheError)
    async def handle_weather_cache_error(request: Request, exc: WeatherCacheError):
        status_code = status_for(exc)
        error_counter.labels(error_type=exc.code, component="api").inc()
        logger.warning(
            f"{request.url.path} failed: {exc}",
            extra={"status": exc.code},
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": exc.code, "message": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            content = {"error": True, "message": f"Route {request.url.path} not found"}
        elif isinstance(exc.detail, dict):
            content = exc.detail
        else:
            content = {"error": True, "message": exc.detail}
        return JSONResponse(
            status_code=exc.status_code, content=content, headers=exc.headers
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal_server_error", "message": "Internal server error"},
        )
