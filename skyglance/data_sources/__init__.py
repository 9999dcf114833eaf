"""Source adapters for forecast, air quality, tide, transit and pollen data."""

from .base import CallableSourceAdapter, SourceAdapter
from .factory import build_adapters
from .nominatim_client import fallback_location_name, lookup_location_name

__all__ = [
    "build_adapters",
    "CallableSourceAdapter",
    "SourceAdapter",
    "fallback_location_name",
    "lookup_location_name",
]
