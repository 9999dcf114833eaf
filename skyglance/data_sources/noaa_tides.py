"""Next high/low tide from the NOAA CO-OPS predictions API."""
from __future__ import annotations

import datetime as dt
from typing import Any, Mapping, Optional

from skyglance.config import Settings
from skyglance.data_sources import http_session
from skyglance.domain import PositionFix, TideKind, TideRecord, round_half_up
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/noaa_tides")

session = http_session.cached_session

NOAA_DATAGETTER_URL = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
PREDICTION_WINDOW = dt.timedelta(hours=48)
NOAA_TIME_FORMAT = "%Y-%m-%d %H:%M"


def _noaa_date(moment: dt.datetime) -> str:
    return moment.strftime("%Y%m%d")


def fetch_tide_predictions(station: str, now: dt.datetime, *, timeout: float = 15.0) -> dict:
    """Fetch hi/lo predictions for roughly the next 48 hours, timestamps in GMT."""
    start = now.astimezone(dt.timezone.utc)
    params = {
        "product": "predictions",
        "application": "skyglance",
        "begin_date": _noaa_date(start),
        "end_date": _noaa_date(start + PREDICTION_WINDOW),
        "datum": "MLLW",
        "station": station,
        "time_zone": "gmt",
        "units": "english",
        "interval": "hilo",
        "format": "json",
    }

    logger.debug("Fetching tide predictions", extra={"station": station})
    resp = session.get(NOAA_DATAGETTER_URL, params=params, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def parse_next_tide(data: Mapping[str, Any], now: dt.datetime) -> Optional[TideRecord]:
    """Return the first prediction strictly after `now`, or None when there is none."""
    predictions = data.get("predictions")
    if not predictions:
        error = data.get("error")
        logger.info("No tide predictions available", extra={"error": error})
        return None

    for prediction in predictions:
        when = dt.datetime.strptime(prediction["t"], NOAA_TIME_FORMAT).replace(tzinfo=dt.timezone.utc)
        if when > now:
            return TideRecord(
                time=when,
                kind=TideKind(prediction["type"]),
                height=round_half_up(float(prediction["v"]) * 10) / 10,
            )

    logger.info("No future tide predictions in window")
    return None


def tide_enabled(settings: Settings) -> bool:
    return bool(settings.show_tide and settings.tide_station)


def load_tide(_fix: PositionFix, settings: Settings, now: dt.datetime) -> Optional[TideRecord]:
    """Adapter loader for the tide source."""
    record = parse_next_tide(
        fetch_tide_predictions(settings.tide_station, now, timeout=settings.http_timeout_seconds),
        now,
    )
    if record:
        logger.info("Next tide", extra={"kind": record.kind.value, "time": record.time.isoformat()})
    return record
