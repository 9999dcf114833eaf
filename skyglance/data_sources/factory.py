"""Factory for the five source adapters used by every aggregation cycle."""

from __future__ import annotations

from typing import List

from skyglance.config import Settings
from skyglance.data_sources.base import CallableSourceAdapter, SourceAdapter
from skyglance.data_sources.google_pollen import load_pollen, pollen_enabled
from skyglance.data_sources.noaa_tides import load_tide, tide_enabled
from skyglance.data_sources.open_meteo_client import load_air_quality, load_weather
from skyglance.data_sources.transit_511 import load_transit, transit_enabled
from skyglance.domain import AirQualityRecord, SourceKind
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


def _air_quality_enabled(settings: Settings) -> bool:
    return settings.show_aqi


def _air_quality_off(_settings: Settings) -> AirQualityRecord:
    # A zero AQI is "no concern", not "no data".
    return AirQualityRecord(aqi=0)


def build_adapters() -> List[SourceAdapter]:
    """Instantiate one adapter per source kind."""
    adapters: List[SourceAdapter] = [
        CallableSourceAdapter(kind=SourceKind.WEATHER, loader=load_weather),
        CallableSourceAdapter(
            kind=SourceKind.AIR_QUALITY,
            loader=load_air_quality,
            enabled=_air_quality_enabled,
            when_disabled=_air_quality_off,
        ),
        CallableSourceAdapter(kind=SourceKind.TIDE, loader=load_tide, enabled=tide_enabled),
        CallableSourceAdapter(kind=SourceKind.TRANSIT, loader=load_transit, enabled=transit_enabled),
        CallableSourceAdapter(kind=SourceKind.POLLEN, loader=load_pollen, enabled=pollen_enabled),
    ]
    logger.debug("Built source adapters", extra={"kinds": [a.kind.value for a in adapters]})
    return adapters
