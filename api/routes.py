"""
Weather and cache routes. Thin adapters over the lookup pipeline.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel

from weather_cache.errors import ConfigurationError
from weather_cache.pipeline import WeatherPipeline
from weather_cache.views import current_view, forecast_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class CacheStatsResponse(BaseModel):
    keys: int
    hits: int
    misses: int
    hit_rate: float


class FlushResponse(BaseModel):
    ok: bool
    message: str


def get_pipeline(request: Request) -> WeatherPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise ConfigurationError("Weather service is not initialized")
    return pipeline


@router.get("/weather/{location}")
def get_weather(
    location: str,
    unit_group: Optional[str] = Query(None, alias="unitGroup"),
    include: Optional[str] = None,
    elements: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Full weather record for a location."""
    params: Dict[str, Any] = {}
    if unit_group:
        params["unitGroup"] = unit_group
    if include:
        params["include"] = include
    if elements:
        params["elements"] = elements
    # A half-open date range is ignored rather than rejected
    if start_date and end_date:
        params["startDate"] = start_date
        params["endDate"] = end_date

    return pipeline.fetch(location, params)


@router.get("/weather/{location}/current")
def get_current_weather(
    location: str,
    unit_group: Optional[str] = Query(None, alias="unitGroup"),
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Current conditions only."""
    params = {"include": "current", "unitGroup": unit_group or "metric"}
    return current_view(pipeline.fetch(location, params))


@router.get("/weather/{location}/forecast")
def get_forecast(
    location: str,
    unit_group: Optional[str] = Query(None, alias="unitGroup"),
    days: Optional[str] = None,
    pipeline: WeatherPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Daily forecast, optionally limited to the first ``days`` entries."""
    params = {"include": "days", "unitGroup": unit_group or "metric"}
    return forecast_view(pipeline.fetch(location, params), days)


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(pipeline: WeatherPipeline = Depends(get_pipeline)):
    return CacheStatsResponse(**pipeline.stats().to_dict())


@router.post("/cache/flush", response_model=FlushResponse)
def flush_cache(pipeline: WeatherPipeline = Depends(get_pipeline)):
    pipeline.flush()
    logger.info("Cache flushed via API")
    return FlushResponse(ok=True, message="Cache flushed")
