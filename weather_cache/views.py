"""
Projections over a full weather record for the current and forecast endpoints.
"""
import math
from typing import Any, Dict, List, Optional


def _location_name(record: Dict[str, Any]) -> Optional[str]:
    return record.get("resolvedAddress") or record.get("address")


def _coordinates(record: Dict[str, Any]) -> Dict[str, Any]:
    return {"latitude": record.get("latitude"), "longitude": record.get("longitude")}


def parse_day_count(count: Any) -> Optional[int]:
    """Return a positive day count, or None when the value should be ignored."""
    if count is None or isinstance(count, bool):
        return None
    try:
        value = float(count)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value < 1:
        return None
    return int(value)


def truncate_days(days: List[Any], count: Any = None) -> List[Any]:
    """First ``count`` days, or all of them if ``count`` is not a positive number."""
    limit = parse_day_count(count)
    if limit is None:
        return list(days)
    return list(days[:limit])


def current_view(record: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "location": _location_name(record),
        "coordinates": _coordinates(record),
        "current": record.get("currentConditions"),
        "timezone": record.get("timezone"),
    }


def forecast_view(record: Dict[str, Any], days: Any = None) -> Dict[str, Any]:
    return {
        "location": _location_name(record),
        "coordinates": _coordinates(record),
        "timezone": record.get("timezone"),
        "days": truncate_days(record.get("days") or [], days),
    }
