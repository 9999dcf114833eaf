"""Shared requests sessions for the source clients.

Forecast, air-quality, tide and geocoding responses change slowly and go
through a requests-cache backed session. Transit and pollen calls carry API
keys and (for transit) live data, so they use an uncached session. Both retry
transient 5xx/connection failures with backoff via retry-requests.
"""
from __future__ import annotations

import requests
import requests_cache
from retry_requests import retry

from skyglance.config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http_session")

USER_AGENT = "skyglance/0.1"


def build_cached_session(cache_name: str, expire_after: int) -> requests.Session:
    """Return a retrying session whose GET responses are cached for `expire_after` seconds."""
    cache_session = requests_cache.CachedSession(cache_name, expire_after=expire_after)
    cache_session.headers["User-Agent"] = USER_AGENT
    return retry(cache_session, retries=5, backoff_factor=0.2)


def build_live_session() -> requests.Session:
    """Return a retrying session without response caching."""
    live = requests.Session()
    live.headers["User-Agent"] = USER_AGENT
    return retry(live, retries=3, backoff_factor=0.2)


cached_session = build_cached_session(settings.cache_name, settings.cache_expire_seconds)
live_session = build_live_session()
logger.info(
    "HTTP sessions ready",
    extra={"cache_name": settings.cache_name, "expire_after": settings.cache_expire_seconds},
)
