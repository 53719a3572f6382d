"""
Domain errors raised by the weather cache core.

Adapters switch on the exception class (or its ``code``), never on the message.
"""
from typing import Optional


class WeatherCacheError(Exception):
    """Base class for every error the core raises."""

    code = "weather_cache_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(WeatherCacheError):
    code = "invalid_argument"


class InvalidRequest(WeatherCacheError):
    """Upstream rejected the request as malformed (HTTP 400)."""

    code = "invalid_request"


class AuthenticationError(WeatherCacheError):
    code = "authentication_error"


class LocationNotFound(WeatherCacheError):
    code = "location_not_found"

    def __init__(self, location: str):
        super().__init__(f"Location not found: {location}")
        self.location = location


class RateLimitExceeded(WeatherCacheError):
    code = "rate_limit_exceeded"


class UpstreamError(WeatherCacheError):
    """Upstream answered, but not with a usable weather record."""

    code = "upstream_error"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(WeatherCacheError):
    """The request was sent but no response came back (network error or timeout)."""

    code = "upstream_unavailable"


class ConfigurationError(WeatherCacheError):
    code = "configuration_error"
