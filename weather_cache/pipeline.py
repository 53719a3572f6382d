"""
Cache-aside lookup pipeline: cache key derivation, upstream fetch on miss,
and translation of upstream failures into domain errors.
"""
import copy
import logging
import threading
import time
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import requests

from utils.metrics import error_counter, upstream_calls, upstream_duration

from .cache import CacheStore
from .errors import (
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
from .provider import UpstreamProvider, parse_coordinates

logger = logging.getLogger(__name__)

KEY_PREFIX = "weather"
DEFAULT_UNIT_GROUP = "metric"
SUPPORTED_PARAMS = ("unitGroup", "include", "elements", "startDate", "endDate")

# Raised by requests before anything goes on the wire
_UNSENDABLE_ERRORS = (
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.InvalidHeader,
    requests.exceptions.URLRequired,
)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def normalize_location(location: str) -> str:
    location = location.strip()
    coordinates = parse_coordinates(location)
    if coordinates is not None:
        # "51.5, -0.12" and "51.5,-0.12" are the same point
        return ",".join(part.strip() for part in location.split(","))
    return location


def normalize_params(params: Optional[Mapping]) -> Dict[str, Any]:
    """Drop absent values and check parameter names and the date range pairing."""
    if params is None:
        return {}
    if not isinstance(params, Mapping):
        raise InvalidArgument("params must be a mapping")

    cleaned = {name: value for name, value in params.items() if _is_present(value)}

    unknown = sorted(str(name) for name in cleaned if name not in SUPPORTED_PARAMS)
    if unknown:
        raise InvalidArgument(f"Unsupported parameter(s): {', '.join(unknown)}")

    if ("startDate" in cleaned) != ("endDate" in cleaned):
        raise InvalidArgument("startDate and endDate must be supplied together")

    for name, value in cleaned.items():
        try:
            str(value).encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidArgument(f"{name} must be valid UTF-8 text") from e

    return cleaned


def generate_cache_key(location: str, params: Optional[Mapping] = None) -> str:
    """
    Build the canonical cache key for a lookup.
    Parameters are sorted by name; absent or empty values are ignored.
    """
    cleaned = {
        name: value for name, value in (params or {}).items() if _is_present(value)
    }
    key = f"{KEY_PREFIX}:{quote(normalize_location(location), safe=',')}"
    if cleaned:
        query = urlencode(sorted((str(name), str(value)) for name, value in cleaned.items()))
        key = f"{key}:{query}"
    return key


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])

    text = (response.text or "").strip()
    if text:
        return text[:200]
    return response.reason or f"HTTP {response.status_code}"


def classify_status(status_code: int, message: str, location: str) -> WeatherCacheError:
    """Map a non-2xx upstream status to a domain error."""
    if status_code == 400:
        return InvalidRequest(f"Invalid request: {message}")
    if status_code in (401, 403):
        return AuthenticationError("Invalid API key or authentication error")
    if status_code == 404:
        return LocationNotFound(location)
    if status_code == 429:
        return RateLimitExceeded("API rate limit exceeded")
    return UpstreamError(f"Weather API error: {message}", status_code=status_code)


def classify_request_exception(
    exc: requests.RequestException, location: str
) -> WeatherCacheError:
    """Map a requests exception to a domain error."""
    response = exc.response
    if response is not None:
        return classify_status(response.status_code, _error_message(response), location)

    if isinstance(exc, _UNSENDABLE_ERRORS):
        return ConfigurationError(f"Weather API request could not be built: {exc}")

    return UpstreamUnavailable(
        "No response from weather service. Please try again later."
    )


class WeatherPipeline:
    """
    Cache-aside orchestrator for weather lookups.

    Concurrent misses for the same key share one upstream call when
    ``single_flight`` is on. Failures are handed to every waiter of that call
    but are never cached.
    """

    def __init__(
        self,
        cache: CacheStore,
        provider: UpstreamProvider,
        api_key: str,
        cache_ttl: Optional[int] = None,
        single_flight: bool = True,
    ):
        if not api_key or not str(api_key).strip():
            raise ConfigurationError("Weather API key is not configured")

        self.cache = cache
        self.provider = provider
        self.api_key = api_key
        self.cache_ttl = cache_ttl if cache_ttl is not None else cache.default_ttl
        self.single_flight = single_flight

        self._inflight: Dict[str, Future] = {}
        self._inflight_lock = threading.Lock()

    def fetch(self, location: str, params: Optional[Mapping] = None) -> Dict[str, Any]:
        """Return the weather record for a location, from cache when possible."""
        if not isinstance(location, str) or not location.strip():
            raise InvalidArgument("location required")
        try:
            location.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidArgument("location must be valid UTF-8 text") from e

        params = normalize_params(params)
        location = location.strip()
        cache_key = generate_cache_key(location, params)

        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(
                f"Cache hit for {cache_key}",
                extra={"cache_key": cache_key, "status": "hit"},
            )
            return cached

        logger.info(
            f"Cache miss for {cache_key}, fetching from API",
            extra={"cache_key": cache_key, "status": "miss"},
        )

        if not self.single_flight:
            return self._fetch_and_store(cache_key, location, params)
        return self._fetch_coalesced(cache_key, location, params)

    def stats(self):
        return self.cache.stats()

    def flush(self) -> bool:
        return self.cache.flush()

    def _fetch_coalesced(
        self, cache_key: str, location: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        with self._inflight_lock:
            future = self._inflight.get(cache_key)
            is_leader = future is None
            if is_leader:
                future = Future()
                self._inflight[cache_key] = future

        if not is_leader:
            logger.info(
                f"Joining in-flight upstream request for {cache_key}",
                extra={"cache_key": cache_key, "status": "coalesced"},
            )
            return copy.deepcopy(future.result())

        try:
            record = self._fetch_and_store(cache_key, location, params)
            future.set_result(copy.deepcopy(record))
            return record
        except Exception as e:
            future.set_exception(e)
            raise
        finally:
            if not future.done():
                future.set_exception(
                    UpstreamUnavailable("Upstream request was interrupted")
                )
            with self._inflight_lock:
                self._inflight.pop(cache_key, None)

    def _fetch_and_store(
        self, cache_key: str, location: str, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        request_params = {
            **params,
            "key": self.api_key,
            "unitGroup": params.get("unitGroup") or DEFAULT_UNIT_GROUP,
        }

        start_time = time.time()
        try:
            response = self.provider.get_timeline(location, request_params)
        except requests.RequestException as e:
            error = self._record_failure(classify_request_exception(e, location), cache_key)
            raise error from e
        finally:
            upstream_duration.observe(time.time() - start_time)

        if response.status_code != 200:
            error = UpstreamError(
                f"API error: {response.reason or response.status_code}",
                status_code=response.status_code,
            )
            raise self._record_failure(error, cache_key)

        try:
            record = response.json()
        except ValueError as e:
            error = UpstreamError(
                "Weather API returned a malformed document",
                status_code=response.status_code,
            )
            raise self._record_failure(error, cache_key) from e

        if not isinstance(record, dict):
            error = UpstreamError(
                "Weather API returned an unexpected document",
                status_code=response.status_code,
            )
            raise self._record_failure(error, cache_key)

        self.cache.set(cache_key, record, self.cache_ttl)
        upstream_calls.labels(outcome="success").inc()

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Fetched and cached {cache_key}",
            extra={"cache_key": cache_key, "duration_ms": duration_ms, "status": "stored"},
        )
        return record

    def _record_failure(self, error: WeatherCacheError, cache_key: str) -> WeatherCacheError:
        upstream_calls.labels(outcome=error.code).inc()
        error_counter.labels(error_type=error.code, component="pipeline").inc()
        logger.warning(
            f"Upstream lookup failed for {cache_key}: {error}",
            extra={"cache_key": cache_key, "status": error.code},
        )
        return error
