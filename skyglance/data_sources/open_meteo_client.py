"""Fetch and normalize forecast and air-quality data from the Open-Meteo APIs."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Mapping, Optional
from zoneinfo import ZoneInfo

from skyglance.config import Settings
from skyglance.data_sources import http_session
from skyglance.domain import (
    AirQualityRecord,
    PositionFix,
    WeatherCurrent,
    WeatherDaily,
    WeatherRecord,
    WeatherSlot,
    round_half_up,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/open_meteo_client")

session = http_session.cached_session

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_AIR_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

CURRENT_VARS = ["temperature_2m", "wind_speed_10m", "weather_code", "uv_index"]
HOURLY_VARS = [
    "precipitation_probability",
    "precipitation",
    "wind_gusts_10m",
    "weather_code",
    "temperature_2m",
    "uv_index",
]
DAILY_VARS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "sunrise",
    "sunset",
    "wind_speed_10m_max",
    "weather_code",
    "precipitation_probability_max",
    "wind_gusts_10m_max",
]

# Alert thresholds assume these hourly units.
EXPECTED_HOURLY_UNITS = {
    "wind_gusts_10m": {"mph"},
    "precipitation_probability": {"%", "percent"},
}


def _iso_to_dt_with_tz(s: str, tz: ZoneInfo) -> dt.datetime:
    """Interpret an Open-Meteo local time string as being in `tz`."""
    return dt.datetime.fromisoformat(s).replace(tzinfo=tz)


def _warn_on_unexpected_units(units: Optional[Mapping[str, str]], *, context: str) -> None:
    """Log a warning if Open-Meteo returns units the alert thresholds were not written for."""
    if not units:
        return
    for field, allowed in EXPECTED_HOURLY_UNITS.items():
        actual = units.get(field)
        if actual and actual not in allowed:
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": field, "unit": actual, "allowed": sorted(allowed)},
            )


def fetch_forecast(latitude: float, longitude: float, *, temperature_unit: str = "fahrenheit",
                   timeout: float = 15.0) -> dict:
    """Fetch current, hourly (next 24h) and daily (2 days) forecast blocks."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": ",".join(CURRENT_VARS),
        "hourly": ",".join(HOURLY_VARS),
        "daily": ",".join(DAILY_VARS),
        "temperature_unit": temperature_unit,
        "wind_speed_unit": "mph",
        "precipitation_unit": "inch",
        "timezone": "auto",
        "forecast_days": 2,
        "forecast_hours": 24,
    }

    logger.debug("Fetching forecast", extra={"latitude": latitude, "longitude": longitude})
    resp = session.get(OPEN_METEO_WEATHER_URL, params=params, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def fetch_air_quality(latitude: float, longitude: float, *, timeout: float = 15.0) -> dict:
    """Fetch the current US AQI for the given coordinates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "current": "us_aqi",
        "timezone": "auto",
    }

    logger.debug("Fetching air quality", extra={"latitude": latitude, "longitude": longitude})
    resp = session.get(OPEN_METEO_AIR_URL, params=params, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def parse_forecast(data: Mapping[str, Any]) -> WeatherRecord:
    """Normalize an Open-Meteo forecast response.

    Raises KeyError/TypeError/ValidationError when a required block is missing
    or malformed; the adapter wrapper degrades those to Absent.
    """
    tz_name = data.get("timezone") or "UTC"
    tz = ZoneInfo(tz_name)

    current = data["current"]
    daily = data["daily"]
    hourly = data.get("hourly") or {}
    _warn_on_unexpected_units(data.get("hourly_units"), context="forecast_hourly")

    daily_codes = daily.get("weather_code") or []
    tomorrow_code = daily_codes[1] if len(daily_codes) > 1 else None

    times: List[str] = hourly.get("time") or []
    codes = hourly.get("weather_code") or [None] * len(times)
    precip = hourly.get("precipitation_probability") or [None] * len(times)
    gusts = hourly.get("wind_gusts_10m") or [None] * len(times)
    uv = hourly.get("uv_index") or [None] * len(times)

    slots: List[WeatherSlot] = []
    for i, t in enumerate(times):
        slots.append(
            WeatherSlot(
                time=_iso_to_dt_with_tz(t, tz),
                weather_code=codes[i] or 0,
                precipitation_probability=precip[i] or 0,
                wind_gust=gusts[i] or 0,
                uv_index=uv[i] or 0,
            )
        )

    return WeatherRecord(
        timezone=tz_name,
        current=WeatherCurrent(
            temperature=current["temperature_2m"],
            wind_speed=current["wind_speed_10m"],
            uv_index=current.get("uv_index") or 0,
            weather_code=current.get("weather_code") or 0,
        ),
        daily=WeatherDaily(
            temp_max=daily["temperature_2m_max"][0],
            temp_min=daily["temperature_2m_min"][0],
            sunrise=_iso_to_dt_with_tz(daily["sunrise"][0], tz),
            sunset=_iso_to_dt_with_tz(daily["sunset"][0], tz),
            wind_max=daily["wind_speed_10m_max"][0],
            weather_code_tomorrow=tomorrow_code,
        ),
        hourly=slots,
    )


def parse_air_quality(data: Mapping[str, Any]) -> AirQualityRecord:
    """Normalize an Open-Meteo air-quality response; a null AQI reads as 0."""
    aqi = data["current"].get("us_aqi") or 0
    return AirQualityRecord(aqi=round_half_up(aqi))


def load_weather(fix: PositionFix, settings: Settings, _now: dt.datetime) -> WeatherRecord:
    """Adapter loader for the forecast source."""
    data = fetch_forecast(
        fix.latitude,
        fix.longitude,
        temperature_unit=settings.open_meteo_temperature_unit,
        timeout=settings.http_timeout_seconds,
    )
    record = parse_forecast(data)
    logger.info(
        "Forecast received",
        extra={"timezone": record.timezone, "hourly_slots": len(record.hourly)},
    )
    return record


def load_air_quality(fix: PositionFix, settings: Settings, _now: dt.datetime) -> AirQualityRecord:
    """Adapter loader for the air-quality source."""
    record = parse_air_quality(
        fetch_air_quality(fix.latitude, fix.longitude, timeout=settings.http_timeout_seconds)
    )
    logger.info("AQI received", extra={"aqi": record.aqi})
    return record
