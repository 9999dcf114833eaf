"""In-process position store, the default when no Redis URL is configured."""

import threading
from typing import Optional

from skyglance.domain import PositionFix
from skyglance.position_store.base import PositionStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="position_store/in_memory_position_store")


class InMemoryPositionStore(PositionStore):
    """Thread-safe single-slot store; the fix is kept until replaced or cleared."""

    def __init__(self) -> None:
        logger.debug("Initializing InMemoryPositionStore")
        self._fix: Optional[PositionFix] = None
        self._lock = threading.Lock()

    def load(self) -> Optional[PositionFix]:
        with self._lock:
            return self._fix

    def save(self, fix: PositionFix) -> None:
        with self._lock:
            self._fix = fix

    def clear(self) -> None:
        with self._lock:
            self._fix = None
