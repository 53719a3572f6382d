"""
Upstream weather data provider using the Visual Crossing timeline API.
"""
import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = (
    "https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services/timeline"
)
DEFAULT_TIMEOUT = 10

# Characters encodeURIComponent leaves alone
_SAFE_PATH_CHARS = "-_.!~*'()"


class UpstreamProvider:
    """Interface the lookup pipeline calls on a cache miss.

    Implementations perform one HTTP round trip and either return the
    response or raise a ``requests.RequestException``. Classifying those
    exceptions is the pipeline's job.
    """

    def get_timeline(self, location: str, params: Dict[str, Any]) -> requests.Response:
        raise NotImplementedError


class VisualCrossingProvider(UpstreamProvider):
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/") if base_url else ""
        self.timeout = timeout

    def build_url(self, location: str) -> str:
        return f"{self.base_url}/{quote(location, safe=_SAFE_PATH_CHARS)}"

    def get_timeline(self, location: str, params: Dict[str, Any]) -> requests.Response:
        """
        Fetch the timeline document for a location.
        Raises requests.HTTPError for non-2xx responses.
        """
        url = self.build_url(location)
        logger.debug(f"Requesting upstream timeline for {location}")

        response = requests.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response


def parse_coordinates(location: str) -> Optional[Tuple[float, float]]:
    """Return (lat, lon) if the location string is in lat,lon format."""
    try:
        parts = location.split(",")
        if len(parts) == 2:
            return float(parts[0]), float(parts[1])
    except ValueError:
        pass
    return None
