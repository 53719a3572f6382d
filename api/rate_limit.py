"""
Per-client sliding-window rate limiting.
"""
import threading
import time
from collections import defaultdict
from typing import Callable, Dict, List, NamedTuple

from fastapi import Request


class RateLimitDecision(NamedTuple):
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class RateLimiter:
    """Allow at most ``max_requests`` per client IP within ``window_seconds``."""

    def __init__(
        self,
        max_requests: int = 30,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = defaultdict(list)  # {ip: [timestamp, ...]}
        self._lock = threading.Lock()

    def check(self, client_ip: str) -> RateLimitDecision:
        """Record a request for client_ip and report whether it is allowed."""
        now = self._clock()
        with self._lock:
            # Clean old requests outside the window
            timestamps = [
                ts for ts in self._requests[client_ip] if now - ts < self.window_seconds
            ]

            allowed = len(timestamps) < self.max_requests
            if allowed:
                timestamps.append(now)
            self._requests[client_ip] = timestamps
            self._prune(now)

            oldest = timestamps[0] if timestamps else now
            reset_seconds = max(0, int(round(oldest + self.window_seconds - now)))
            remaining = max(0, self.max_requests - len(timestamps))

        return RateLimitDecision(allowed, self.max_requests, remaining, reset_seconds)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._requests)

    def _prune(self, now: float) -> None:
        # Caller holds the lock. Drop clients with no request inside the window.
        idle = [
            ip
            for ip, timestamps in self._requests.items()
            if not timestamps or now - timestamps[-1] >= self.window_seconds
        ]
        for ip in idle:
            del self._requests[ip]

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()

    def headers(self, decision: RateLimitDecision) -> Dict[str, str]:
        return {
            "RateLimit-Limit": str(decision.limit),
            "RateLimit-Remaining": str(decision.remaining),
            "RateLimit-Reset": str(decision.reset_seconds),
        }


def get_client_ip(request: Request) -> str:
    """Extract client IP from request."""
    # Check for X-Forwarded-For header (common in reverse proxies)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"
