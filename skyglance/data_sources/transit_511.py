"""Live bus arrivals for one stop/route/direction from the 511.org StopMonitoring API."""
from __future__ import annotations

import datetime as dt
import json
import math
from typing import Any, List, Mapping, Optional

from skyglance.config import Settings
from skyglance.data_sources import http_session
from skyglance.domain import PositionFix, TransitRecord
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="data_sources/transit_511")

session = http_session.live_session

STOP_MONITORING_URL = "http://api.511.org/transit/StopMonitoring"

# 511 populates different fields depending on agency and vehicle state.
ARRIVAL_TIME_FIELDS = (
    "ExpectedArrivalTime",
    "AimedArrivalTime",
    "ExpectedDepartureTime",
    "AimedDepartureTime",
)


def _parse_timestamp(value: str) -> dt.datetime:
    """Parse a SIRI ISO-8601 timestamp (trailing Z allowed) into an aware datetime."""
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def fetch_stop_monitoring(api_key: str, agency: str, stop_code: str, *, timeout: float = 10.0) -> dict:
    """Fetch the raw StopMonitoring delivery for a stop."""
    params = {
        "api_key": api_key,
        "agency": agency,
        "stopCode": stop_code,
        "format": "json",
    }

    resp = session.get(STOP_MONITORING_URL, params=params, timeout=timeout)
    logger.debug("Stop monitoring response %s -> %s", mask_secret_url(resp.url), resp.status_code)
    resp.raise_for_status()
    # 511 prefixes its JSON with a byte-order mark.
    return json.loads(resp.content.decode("utf-8-sig"))


def _stop_visits(data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    delivery = data["ServiceDelivery"]["StopMonitoringDelivery"]
    if isinstance(delivery, list):
        delivery = delivery[0] if delivery else {}
    return delivery.get("MonitoredStopVisit") or []


def parse_arrivals(data: Mapping[str, Any], route: str, direction: str) -> Optional[TransitRecord]:
    """Minutes until the next two matching arrivals, or None when nothing matches.

    A journey matches when its LineRef equals `route` (case-insensitive) and its
    DirectionRef contains `direction`. Offsets are measured from the response
    timestamp, floored to whole minutes; already-departed vehicles are dropped.
    """
    visits = _stop_visits(data)
    if not visits:
        logger.info("No stop visits in response")
        return None

    response_time = _parse_timestamp(data["ServiceDelivery"]["ResponseTimestamp"])
    target_route = route.strip().upper()
    target_direction = direction or "IB"

    minutes: List[int] = []
    for visit in visits:
        journey = visit["MonitoredVehicleJourney"]
        if str(journey.get("LineRef") or "").upper() != target_route:
            continue
        if target_direction not in (journey.get("DirectionRef") or ""):
            continue

        call = journey.get("MonitoredCall") or {}
        stamp = next((call[name] for name in ARRIVAL_TIME_FIELDS if call.get(name)), None)
        if not stamp:
            continue

        offset = math.floor((_parse_timestamp(stamp) - response_time).total_seconds() / 60)
        if offset >= 0:
            minutes.append(offset)

    minutes.sort()
    if not minutes:
        logger.info("No matching arrivals", extra={"route": target_route, "direction": target_direction})
        return None

    return TransitRecord(
        next_arrival_minutes=minutes[0],
        second_arrival_minutes=minutes[1] if len(minutes) > 1 else -1,
    )


def transit_enabled(settings: Settings) -> bool:
    return bool(
        settings.muni_enabled
        and settings.muni_api_key
        and settings.muni_stop_code
        and settings.muni_route
    )


def load_transit(_fix: PositionFix, settings: Settings, _now: dt.datetime) -> Optional[TransitRecord]:
    """Adapter loader for the transit source."""
    data = fetch_stop_monitoring(
        settings.muni_api_key,
        settings.muni_agency,
        settings.muni_stop_code,
        timeout=settings.http_timeout_seconds,
    )
    record = parse_arrivals(data, settings.muni_route, settings.muni_direction)
    if record:
        logger.info(
            "Transit arrivals",
            extra={"next": record.next_arrival_minutes, "second": record.second_arrival_minutes},
        )
    return record
