"""Periodic refresh: a cold-start cycle, then one cycle every interval."""
from __future__ import annotations

import threading
from typing import Callable, Optional

from skyglance.config import Settings, load_settings
from skyglance.coordinator import AggregationCoordinator
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="scheduler")


class PeriodicRefresher:
    """Runs `coordinator.run_cycle` on a daemon thread until stopped."""

    def __init__(
        self,
        coordinator: AggregationCoordinator,
        interval_seconds: float,
        *,
        settings_loader: Callable[[], Settings] = load_settings,
    ) -> None:
        self.coordinator = coordinator
        self.interval_seconds = interval_seconds
        self.settings_loader = settings_loader
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> None:
        """Run a single cycle with a fresh settings snapshot."""
        try:
            self.coordinator.run_cycle(self.settings_loader())
        except Exception as exc:
            logger.error("Refresh cycle failed: %s", exc)

    def _run(self) -> None:
        self.tick()
        while not self._stop.wait(self.interval_seconds):
            self.tick()

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="refresher", daemon=True)
        self._thread.start()
        logger.info("Periodic refresh started", extra={"interval_seconds": self.interval_seconds})

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Periodic refresh stopped")

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())
