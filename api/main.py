"""
FastAPI application for the weather caching proxy.
"""
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from utils.metrics import (
    get_content_type,
    get_metrics,
    health_check_counter,
    rate_limited_counter,
    request_counter,
    request_duration,
    set_app_info,
)
from weather_cache.pipeline import WeatherPipeline

from .config import Settings, build_pipeline, load_env_file
from .errors import register_error_handlers
from .logging_config import log_request, setup_logging
from .rate_limit import RateLimiter, get_client_ip
from .routes import router as weather_router

APP_VERSION = "1.0.0"
RATE_LIMIT_EXEMPT_PATHS = ("/health", "/metrics")
KNOWN_ENDPOINTS = ("/", "/health", "/metrics", "/api/cache/stats", "/api/cache/flush")

load_env_file()
setup_logging(os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


class CacheInfo(BaseModel):
    type: str
    enabled: bool


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str
    cache: CacheInfo


def endpoint_label(path: str) -> str:
    """Normalize a request path for metric labels (remove dynamic parts)."""
    if path.startswith("/api/weather/"):
        if path.endswith("/current"):
            return "/api/weather/{location}/current"
        if path.endswith("/forecast"):
            return "/api/weather/{location}/forecast"
        return "/api/weather/{location}"
    if path in KNOWN_ENDPOINTS:
        return path
    return "other"


def create_app(
    settings: Optional[Settings] = None, pipeline: Optional[WeatherPipeline] = None
) -> FastAPI:
    """
    Create the FastAPI app.
    When no pipeline is injected, one is built from settings at startup and
    its cache store is closed at shutdown.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Weather cache API starting up")

        owned_pipeline = None
        if app.state.pipeline is None:
            problems = settings.validate()
            if problems:
                for problem in problems:
                    logger.error(f"Configuration error: {problem}")
                raise RuntimeError(f"Invalid configuration: {'; '.join(problems)}")
            owned_pipeline = build_pipeline(settings)
            app.state.pipeline = owned_pipeline

        logger.info(
            f"Configuration: base_url={settings.weather_api_base_url}, "
            f"cache_expiration={settings.cache_expiration}s, "
            f"rate_limit={settings.rate_limit_max_requests}/"
            f"{settings.rate_limit_window_ms}ms"
        )
        set_app_info(version=APP_VERSION, environment=settings.environment)
        logger.info("Weather cache API startup complete")

        yield

        logger.info("Weather cache API shutting down")
        if owned_pipeline is not None:
            owned_pipeline.cache.close()
            app.state.pipeline = None
        logger.info("Weather cache API shutdown complete")

    app = FastAPI(
        title="Weather Cache API",
        description="Caching proxy for the Visual Crossing weather API",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_ms / 1000,
    )

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        if request.url.path in RATE_LIMIT_EXEMPT_PATHS:
            return await call_next(request)

        limiter: RateLimiter = request.app.state.rate_limiter
        decision = limiter.check(get_client_ip(request))
        if not decision.allowed:
            rate_limited_counter.inc()
            return JSONResponse(
                status_code=429,
                headers=limiter.headers(decision),
                content={
                    "status": 429,
                    "error": "Too many requests",
                    "message": (
                        f"You have exceeded the rate limit of {limiter.max_requests} "
                        f"requests per {int(limiter.window_seconds)} seconds"
                    ),
                },
            )

        response = await call_next(request)
        response.headers.update(limiter.headers(decision))
        return response

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers[
                "Strict-Transport-Security"
            ] = "max-age=31536000; includeSubDomains"
        return response

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Collect Prometheus metrics and a request log line per HTTP request."""
        if request.url.path == "/metrics":
            return await call_next(request)

        request_id = str(uuid.uuid4())
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        endpoint = endpoint_label(request.url.path)
        request_counter.labels(
            method=request.method, endpoint=endpoint, status_code=response.status_code
        ).inc()
        request_duration.labels(method=request.method, endpoint=endpoint).observe(
            duration
        )

        log_request(
            logger,
            request_id,
            int(duration * 1000),
            str(response.status_code),
            f"{request.method} {request.url.path}",
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(weather_router)

    @app.get("/")
    async def index():
        """API documentation index."""
        return {
            "message": "Welcome to the Weather API",
            "endpoints": {
                "health": "/health",
                "weather": "/api/weather/:location",
                "current": "/api/weather/:location/current",
                "forecast": "/api/weather/:location/forecast",
                "cache_stats": "/api/cache/stats",
                "metrics": "/metrics",
            },
            "alternativeUsage": "python -m console.weather_cli",
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        health_check_counter.labels(status="ok").inc()
        return HealthResponse(
            status="UP",
            message="Weather API is running",
            timestamp=datetime.now(timezone.utc).isoformat(),
            cache=CacheInfo(
                type="in-memory-ttl",
                enabled=request.app.state.pipeline is not None,
            ),
        )

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return Response(content=get_metrics(), media_type=get_content_type())

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = app.state.settings.port
    uvicorn.run("api.main:app", host="0.0.0.0", port=port, log_level="info", reload=False)
