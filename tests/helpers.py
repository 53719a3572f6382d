"""
Shared fixtures data and stubs for the weather cache tests.
"""
import json
import threading
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import requests

from weather_cache.provider import UpstreamProvider


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sample_record(days: int = 15, temp: float = 12) -> Dict[str, Any]:
    """A Visual Crossing timeline document for London."""
    start = date(2025, 10, 20)
    return {
        "queryCost": 1,
        "latitude": 51.5064,
        "longitude": -0.12721,
        "resolvedAddress": "London, England, United Kingdom",
        "address": "London",
        "timezone": "Europe/London",
        "tzoffset": 1.0,
        "currentConditions": {
            "datetime": "14:00:00",
            "temp": temp,
            "feelslike": 10.5,
            "humidity": 71.2,
            "conditions": "Partially cloudy",
            "windspeed": 14.8,
            "winddir": 240.0,
            "uvindex": 2,
        },
        "days": [
            {
                "datetime": (start + timedelta(days=i)).isoformat(),
                "tempmin": 8.0 + i % 3,
                "tempmax": 14.0 + i % 4,
                "conditions": "Rain, Partially cloudy",
                "precip": 1.2,
                "humidity": 80.1,
            }
            for i in range(days)
        ],
    }


def make_response(
    status_code: int = 200,
    payload: Any = None,
    text: Optional[str] = None,
    reason: str = "OK",
    url: str = "https://weather.example.test/timeline/London",
) -> requests.Response:
    """Build a real requests.Response so raise_for_status behaves as in production."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.url = url
    response.encoding = "utf-8"
    if payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
    return response


class StubProvider(UpstreamProvider):
    """
    Upstream provider returning canned outcomes in order.
    The last outcome repeats. Exceptions are raised, responses go through
    raise_for_status like the real provider.
    """

    def __init__(self, *outcomes: Any, delay: Optional[threading.Event] = None):
        self.outcomes: List[Any] = list(outcomes)
        self.calls: List[tuple] = []
        self.delay = delay
        self._lock = threading.Lock()

    def get_timeline(self, location: str, params: Dict[str, Any]) -> requests.Response:
        with self._lock:
            self.calls.append((location, dict(params)))
            outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]

        if self.delay is not None:
            self.delay.wait(timeout=5)

        if isinstance(outcome, BaseException):
            raise outcome
        outcome.raise_for_status()
        return outcome

    @property
    def call_count(self) -> int:
        return len(self.calls)
