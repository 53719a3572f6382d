"""
Centralized configuration loaded from environment variables.
"""
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from weather_cache.cache import DEFAULT_TTL_SECONDS, CacheStore
from weather_cache.pipeline import WeatherPipeline
from weather_cache.provider import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, VisualCrossingProvider

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "ABC123XYZ456"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={value}, using {default}")
        return default
    return value


def load_env_file(env_file: Optional[Path] = None) -> bool:
    """Load a .env file into the process environment if one exists."""
    path = env_file or Path.cwd() / ".env"
    if not path.is_file():
        return False
    return load_dotenv(path, override=False)


class Settings:
    """Application settings read from the environment at construction time."""

    def __init__(self):
        self.weather_api_key: str = os.getenv("WEATHER_API_KEY", "").strip()
        self.weather_api_base_url: str = (
            os.getenv("WEATHER_API_BASE_URL") or DEFAULT_BASE_URL
        ).strip()
        self.cache_expiration: int = _int_env("CACHE_EXPIRATION", DEFAULT_TTL_SECONDS)
        self.upstream_timeout: int = _int_env("UPSTREAM_TIMEOUT", DEFAULT_TIMEOUT)

        self.rate_limit_window_ms: int = _int_env("RATE_LIMIT_WINDOW_MS", 60000)
        self.rate_limit_max_requests: int = _int_env("RATE_LIMIT_MAX_REQUESTS", 30)

        self.port: int = _int_env("PORT", 9090)
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.environment: str = os.getenv("DEPLOYMENT_ENV", "local")
        self.cors_origins: List[str] = os.getenv("CORS_ORIGINS", "*").split(",")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> List[str]:
        """Return a list of configuration problems; empty when usable."""
        problems = []
        if not self.weather_api_key:
            problems.append("WEATHER_API_KEY is not configured")
        elif self.weather_api_key == PLACEHOLDER_API_KEY:
            problems.append("WEATHER_API_KEY is still the placeholder value")
        return problems


def build_pipeline(settings: Settings, check_period: Optional[float] = None) -> WeatherPipeline:
    """Build a cache store and lookup pipeline from validated settings."""
    cache = CacheStore(default_ttl=settings.cache_expiration, check_period=check_period)
    provider = VisualCrossingProvider(
        base_url=settings.weather_api_base_url, timeout=settings.upstream_timeout
    )
    return WeatherPipeline(
        cache, provider, settings.weather_api_key, cache_ttl=settings.cache_expiration
    )
