"""Deterministic alert detection.

Scans the forecast window and the point-in-time readings, classifies each
into ranked candidates, and reduces them to the single condition shown on the
display together with its active time range (e.g. "Thunderstorm 2PM-5PM").

Ranks (lower is more severe; half steps interleave with whole ranks):

    1    Thunderstorm            weather code 95-99
    2    Freezing Drizzle/Rain   56-57 / 66-67
    3    Snow / Heavy Snow       71-77, 85-86 (75, 77, 86 are heavy)
    4    Heavy Rain              63-65, 81-82
    5    Fog                     45, 48
    5.5  High/Extreme UV, High/Unhealthy AQI, High/Very High pollen
    6    Wind gusts              >= 20 mph
    7    Rain chance             >= 30%

Ranks 1-5 are mutually exclusive within an hour; 5.5-7 are evaluated
independently, so one hour may yield several candidates.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Tuple
from zoneinfo import ZoneInfo

from skyglance.domain import (
    AirQualityRecord,
    AlertResult,
    ClassifiedAlert,
    PollenRecord,
    WeatherRecord,
    WeatherSlot,
    round_half_up,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="alert_engine")

ALERT_WINDOW_HOURS = 24

UV_HIGH = 8
UV_EXTREME = 11
WIND_GUST_MPH = 20
PRECIP_PROBABILITY_PERCENT = 30
AQI_HIGH = 100
AQI_UNHEALTHY = 150
POLLEN_HIGH = 4
POLLEN_VERY_HIGH = 5

SECONDARY_RANK = 5.5

# Precedence order when categories tie at the maximum.
POLLEN_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("tree", "Tree"),
    ("grass", "Grass"),
    ("weed", "Weed"),
)


def _classify_weather_code(code: int) -> Tuple[float, str] | None:
    """Map a WMO weather code onto the severe-weather ranks (first match wins)."""
    if 95 <= code <= 99:
        return 1, "Thunderstorm"
    if 56 <= code <= 57:
        return 2, "Freezing Drizzle"
    if 66 <= code <= 67:
        return 2, "Freezing Rain"
    if 71 <= code <= 77 or 85 <= code <= 86:
        return 3, "Heavy Snow" if code in (75, 77, 86) else "Snow"
    if 63 <= code <= 65 or 81 <= code <= 82:
        return 4, "Heavy Rain"
    if code in (45, 48):
        return 5, "Fog"
    return None


def classify_slot(slot: WeatherSlot) -> List[ClassifiedAlert]:
    """Return every candidate contributed by one forecast hour."""
    found: List[ClassifiedAlert] = []

    by_code = _classify_weather_code(slot.weather_code)
    if by_code:
        rank, label = by_code
        found.append(ClassifiedAlert(priority=rank, text=label, time_slot=slot.time))

    if slot.uv_index >= UV_HIGH:
        label = "Extreme UV" if slot.uv_index >= UV_EXTREME else "High UV"
        found.append(ClassifiedAlert(priority=SECONDARY_RANK, text=label, time_slot=slot.time))

    if slot.wind_gust >= WIND_GUST_MPH:
        found.append(
            ClassifiedAlert(priority=6, text=f"Wind {round_half_up(slot.wind_gust)}mph", time_slot=slot.time)
        )

    if slot.precipitation_probability >= PRECIP_PROBABILITY_PERCENT:
        found.append(
            ClassifiedAlert(
                priority=7,
                text=f"Rain {round_half_up(slot.precipitation_probability)}%",
                time_slot=slot.time,
            )
        )

    return found


def _pollen_label(pollen: PollenRecord) -> str | None:
    peak = max(pollen.tree, pollen.grass, pollen.weed)
    if peak < POLLEN_HIGH:
        return None
    for field, name in POLLEN_CATEGORIES:
        if getattr(pollen, field) == peak:
            prefix = "Very High" if peak == POLLEN_VERY_HIGH else "High"
            return f"{prefix} {name} Pollen"
    return None


def point_candidates(
    air_quality: AirQualityRecord | None,
    pollen: PollenRecord | None,
    now: datetime,
) -> List[ClassifiedAlert]:
    """Candidates from current AQI and today's pollen, anchored at `now`."""
    found: List[ClassifiedAlert] = []

    if air_quality is not None and air_quality.aqi >= AQI_HIGH:
        label = "Unhealthy AQI" if air_quality.aqi >= AQI_UNHEALTHY else "High AQI"
        found.append(ClassifiedAlert(priority=SECONDARY_RANK, text=label, time_slot=now))

    if pollen is not None:
        label = _pollen_label(pollen)
        if label:
            found.append(ClassifiedAlert(priority=SECONDARY_RANK, text=label, time_slot=now))

    return found


def format_hour(moment: datetime) -> str:
    """12-hour clock without leading zero or minutes: 0 -> 12AM, 13 -> 1PM."""
    suffix = "PM" if moment.hour >= 12 else "AM"
    return f"{moment.hour % 12 or 12}{suffix}"


def format_range(start: datetime, last: datetime) -> str:
    """Render [start, last + 1h) as e.g. '2PM-5PM'.

    The hour is added as elapsed time, so a range ending across a DST change
    shows the wall-clock hour that actually follows `last`.
    """
    if last.tzinfo is None:
        end = last + timedelta(hours=1)
    else:
        end = (last.astimezone(timezone.utc) + timedelta(hours=1)).astimezone(last.tzinfo)
    return f"{format_hour(start)}-{format_hour(end)}"


def select_alert(candidates: Sequence[ClassifiedAlert]) -> AlertResult:
    """Pick the most severe candidate and span it across all hours with the same label and rank."""
    if not candidates:
        return AlertResult.inactive()

    ranked = sorted(candidates, key=lambda c: c.priority)
    top = ranked[0]
    last = max(
        c.time_slot for c in ranked if c.text == top.text and c.priority == top.priority
    )
    return AlertResult(active=True, text=f"{top.text} {format_range(top.time_slot, last)}")


def detect_alerts(
    weather: WeatherRecord | None,
    air_quality: AirQualityRecord | None,
    pollen: PollenRecord | None,
    *,
    now: datetime | None = None,
    window_hours: int = ALERT_WINDOW_HOURS,
) -> AlertResult:
    """Reduce the available records to at most one displayed condition.

    `now` must be timezone-aware. When a forecast is present, point readings are
    anchored at `now` in the forecast's timezone so their hours render locally.
    """
    now = now or datetime.now(timezone.utc)
    candidates: List[ClassifiedAlert] = []

    if weather is not None:
        now = now.astimezone(ZoneInfo(weather.timezone))
        for slot in weather.hourly[:window_hours]:
            if slot.time < now:
                continue
            candidates.extend(classify_slot(slot))

    candidates.extend(point_candidates(air_quality, pollen, now))

    result = select_alert(candidates)
    if result.active:
        logger.info("Alert selected", extra={"alert": result.text, "candidates": len(candidates)})
    else:
        logger.debug("No alert conditions in window")
    return result
