"""Map one cycle's records, alert and settings into the display payload."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from skyglance.config import Settings
from skyglance.domain import (
    AlertResult,
    CollectedSources,
    OutputPayload,
    TideKind,
    round_half_up,
)


def _epoch(moment: datetime) -> int:
    return int(moment.timestamp())


def _flag(value: bool) -> int:
    return 1 if value else 0


def build_payload(
    sources: CollectedSources,
    alert: AlertResult,
    settings: Settings,
    location_name: str,
) -> OutputPayload:
    """Pure transformation; absent sources keep the OutputPayload sentinel defaults."""
    fields: Dict[str, Any] = {
        "alert_active": _flag(alert.active),
        "alert_text": alert.text,
        "location_name": location_name,
        "config_temp_unit": 1 if settings.temp_unit == "C" else 0,
        "config_show_aqi": _flag(settings.show_aqi),
        "config_show_uv": _flag(settings.show_uv),
        "config_show_wind": _flag(settings.show_wind),
        "config_show_tide": _flag(settings.show_tide),
        "config_show_sunrise": _flag(settings.show_sunrise),
        "config_invert": _flag(settings.invert),
    }

    weather = sources.weather
    if weather is not None:
        current, daily = weather.current, weather.daily
        fields.update(
            temperature=round_half_up(current.temperature),
            wind_speed=round_half_up(current.wind_speed),
            uv_index=round_half_up(current.uv_index),
            weather_code=current.weather_code,
            temp_max=round_half_up(daily.temp_max),
            temp_min=round_half_up(daily.temp_min),
            sunrise=_epoch(daily.sunrise),
            sunset=_epoch(daily.sunset),
            wind_max=round_half_up(daily.wind_max),
            weather_code_tomorrow=daily.weather_code_tomorrow or 0,
        )

    if sources.air_quality is not None:
        fields["aqi"] = sources.air_quality.aqi

    tide = sources.tide
    if tide is not None:
        fields.update(
            tide_next_time=_epoch(tide.time),
            tide_next_type=1 if tide.kind is TideKind.HIGH else 0,
            tide_next_height=tide.height,
        )

    transit = sources.transit
    if transit is not None:
        fields.update(
            muni_next_1=transit.next_arrival_minutes,
            muni_next_2=transit.second_arrival_minutes,
        )

    pollen = sources.pollen
    if pollen is not None:
        fields.update(pollen_tree=pollen.tree, pollen_grass=pollen.grass, pollen_weed=pollen.weed)

    return OutputPayload(**fields)
