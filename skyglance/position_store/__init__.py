"""Last-known-good position storage backends."""

from .base import PositionStore
from .memory import InMemoryPositionStore
from .redis import RedisPositionStore

__all__ = [
    "PositionStore",
    "InMemoryPositionStore",
    "RedisPositionStore",
]
