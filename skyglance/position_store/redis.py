"""Redis-backed position store, so the last fix survives service restarts."""

from typing import Optional

from pydantic import ValidationError
from redis import RedisError

from skyglance.domain import PositionFix
from skyglance.position_store.base import PositionStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="position_store/redis_position_store")


class RedisPositionStore(PositionStore):
    """Stores the fix as JSON under a single key with no expiry."""

    def __init__(self, client, key: str = "skyglance:last_position") -> None:
        """Initialize with a Redis client and the key to store under."""
        logger.debug("Initializing RedisPositionStore")
        self.client = client
        self.key = key

    def load(self) -> Optional[PositionFix]:
        """Return the stored fix; unreadable or corrupt entries read as no fix."""
        try:
            raw = self.client.get(self.key)
        except RedisError as exc:
            logger.error("Failed to read position from Redis: %s", exc)
            return None
        if not raw:
            return None
        try:
            return PositionFix.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Discarding corrupt stored position: %s", exc)
            return None

    def save(self, fix: PositionFix) -> None:
        try:
            self.client.set(self.key, fix.model_dump_json().encode("utf-8"))
        except RedisError as exc:
            logger.error("Failed to write position to Redis: %s", exc)

    def clear(self) -> None:
        try:
            self.client.delete(self.key)
        except RedisError as exc:
            logger.error("Failed to clear position from Redis: %s", exc)
