"""
Prometheus metrics for the weather cache proxy.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Application info metric
app_info = Info(
    "weathercache_app",
    "Application information for the weather cache proxy",
)

# Request metrics
request_counter = Counter(
    "weathercache_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

request_duration = Histogram(
    "weathercache_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

rate_limited_counter = Counter(
    "weathercache_rate_limited_total",
    "Total number of requests rejected by the rate limiter",
)

# Cache metrics
cache_hits = Counter("weathercache_cache_hits_total", "Total cache hits")
cache_misses = Counter("weathercache_cache_misses_total", "Total cache misses")

cache_evictions = Counter(
    "weathercache_cache_evictions_total",
    "Cache entries removed from the store",
    ["reason"],
)

cache_keys = Gauge("weathercache_cache_keys", "Current number of cache entries")
cache_hit_rate = Gauge("weathercache_cache_hit_rate", "Lifetime cache hit rate (0-1)")

# Upstream metrics
upstream_calls = Counter(
    "weathercache_upstream_calls_total",
    "Total number of calls to the upstream weather provider",
    ["outcome"],
)

upstream_duration = Histogram(
    "weathercache_upstream_duration_seconds",
    "Upstream weather provider call duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Error metrics
error_counter = Counter(
    "weathercache_errors_total",
    "Total number of domain errors",
    ["error_type", "component"],
)

health_check_counter = Counter(
    "weathercache_health_checks_total",
    "Total number of health check requests",
    ["status"],
)


def set_app_info(version: str, environment: str = "production"):
    """Set application information."""
    app_info.info(
        {"version": version, "environment": environment, "application": "weathercache"}
    )


def get_metrics() -> bytes:
    """Get all metrics in Prometheus format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
