"""Daily pollen index per category from the Google Pollen API."""
from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Mapping, Optional

from skyglance.config import Settings
from skyglance.data_sources import http_session
from skyglance.domain import PollenRecord, PositionFix
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="data_sources/google_pollen")

session = http_session.live_session

POLLEN_FORECAST_URL = "https://pollen.googleapis.com/v1/forecast:lookup"

# API pollen type code -> PollenRecord field
POLLEN_TYPE_FIELDS = {"TREE": "tree", "GRASS": "grass", "WEED": "weed"}


def fetch_pollen_forecast(api_key: str, latitude: float, longitude: float, *, timeout: float = 10.0) -> dict:
    """Fetch a one-day pollen forecast for the coordinates."""
    params = {
        "key": api_key,
        "location.latitude": latitude,
        "location.longitude": longitude,
        "days": 1,
    }

    resp = session.get(POLLEN_FORECAST_URL, params=params, timeout=timeout)
    logger.debug("Pollen response %s -> %s", mask_secret_url(resp.url), resp.status_code)
    resp.raise_for_status()
    return resp.json()


def parse_pollen(data: Mapping[str, Any]) -> Optional[PollenRecord]:
    """Extract tree/grass/weed indices for the first forecast day.

    Categories missing from the listing (or without index info) read as 0; only
    a missing day or a missing category listing makes the record absent.
    """
    days = data.get("dailyInfo")
    if not days:
        logger.info("No pollen forecast days in response")
        return None

    type_info = days[0].get("pollenTypeInfo")
    if type_info is None:
        logger.info("No pollen type info in response")
        return None

    values: Dict[str, int] = {field: 0 for field in POLLEN_TYPE_FIELDS.values()}
    for entry in type_info:
        field = POLLEN_TYPE_FIELDS.get(entry.get("code"))
        if field is None:
            continue
        values[field] = (entry.get("indexInfo") or {}).get("value", 0)

    return PollenRecord(**values)


def pollen_enabled(settings: Settings) -> bool:
    return bool(settings.pollen_enabled and settings.pollen_api_key)


def load_pollen(fix: PositionFix, settings: Settings, _now: dt.datetime) -> Optional[PollenRecord]:
    """Adapter loader for the pollen source."""
    record = parse_pollen(
        fetch_pollen_forecast(
            settings.pollen_api_key,
            fix.latitude,
            fix.longitude,
            timeout=settings.http_timeout_seconds,
        )
    )
    if record:
        logger.info("Pollen received", extra=record.model_dump())
    return record
