"""Position resolution with last-known-good carry-over."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol

import redis

from skyglance.config import Settings
from skyglance.domain import PositionFix
from skyglance.position_store import InMemoryPositionStore, PositionStore, RedisPositionStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="position")


class PositionProvider(Protocol):
    """Source of a fresh fix for the current cycle."""

    def get_fix(self, settings: Settings) -> Optional[PositionFix]:
        """Return a fix, or None when no fix can be acquired right now."""
        ...


class StaticPositionProvider(PositionProvider):
    """Uses SKYGLANCE_LATITUDE / SKYGLANCE_LONGITUDE when both are configured."""

    def get_fix(self, settings: Settings) -> Optional[PositionFix]:
        if settings.latitude is None or settings.longitude is None:
            return None
        return PositionFix(
            latitude=settings.latitude,
            longitude=settings.longitude,
            timestamp=datetime.now(timezone.utc),
        )


class PositionResolver:
    """Pick this cycle's fix: a reported or provided fix, else the stored one."""

    def __init__(self, store: PositionStore, provider: Optional[PositionProvider] = None) -> None:
        self.store = store
        self.provider = provider or StaticPositionProvider()

    def remember(self, fix: PositionFix) -> None:
        """Store `fix` unless the stored one is newer."""
        current = self.store.load()
        if current is not None and current.timestamp > fix.timestamp:
            logger.debug("Ignoring older fix", extra={"stored_at": current.timestamp.isoformat()})
            return
        self.store.save(fix)

    def resolve(self, settings: Settings, reported: Optional[PositionFix] = None) -> Optional[PositionFix]:
        """Return the fix for this cycle, or None if neither a new nor a cached fix exists."""
        fix = reported or self.provider.get_fix(settings)
        if fix is not None:
            self.remember(fix)
            return fix

        cached = self.store.load()
        if cached is not None:
            logger.info("Using cached location", extra={"acquired_at": cached.timestamp.isoformat()})
            return cached

        logger.warning("No location available")
        return None


def build_position_store(settings: Settings) -> PositionStore:
    """Initialize the backing position store based on configuration."""
    if settings.position_redis_url:
        try:
            client = redis.Redis.from_url(settings.position_redis_url)
            client.ping()
            logger.info("Using RedisPositionStore")
            return RedisPositionStore(client)
        except redis.RedisError as exc:
            logger.warning("Falling back to InMemoryPositionStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryPositionStore()
