"""City-level reverse geocoding through OpenStreetMap Nominatim."""
from __future__ import annotations

from typing import Any, Mapping

import requests

from skyglance.domain import PositionFix
from skyglance.data_sources import http_session
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/nominatim_client")

session = http_session.cached_session

NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
ADDRESS_KEYS = ("city", "town", "village", "county")


def fallback_location_name(fix: PositionFix) -> str:
    """Coordinates rounded to one decimal, e.g. '37.8°, -122.4°'."""
    return f"{fix.latitude:.1f}°, {fix.longitude:.1f}°"


def parse_location_name(data: Mapping[str, Any]) -> str:
    """Pick the most specific settlement name from a reverse-geocode address."""
    address = data["address"]
    for key in ADDRESS_KEYS:
        if address.get(key):
            return address[key]
    return "Unknown"


def lookup_location_name(fix: PositionFix, *, timeout: float = 10.0) -> str:
    """Return a display name for the fix; falls back to coordinates on any failure."""
    params = {
        "lat": fix.latitude,
        "lon": fix.longitude,
        "format": "json",
        "zoom": 10,
    }
    try:
        resp = session.get(NOMINATIM_REVERSE_URL, params=params, timeout=timeout)
        resp.raise_for_status()
        name = parse_location_name(resp.json())
    except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as exc:
        logger.warning("Reverse geocoding failed; using coordinates", extra={"error": str(exc)})
        return fallback_location_name(fix)

    logger.debug("Resolved location name", extra={"location_name": name})
    return name
