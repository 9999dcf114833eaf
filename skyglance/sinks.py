"""Destinations for finished payloads. Delivery is best effort: failures are logged and dropped."""
from __future__ import annotations

import threading
from typing import List, Optional, Protocol, Sequence

import requests

from skyglance.config import Settings
from skyglance.data_sources import http_session
from skyglance.domain import OutputPayload
from utils.logging_utils import get_tagged_logger, mask_secret_url

logger = get_tagged_logger(__name__, tag="sinks")


class PayloadSink(Protocol):
    def send(self, payload: OutputPayload) -> None:
        """Deliver a payload; must not raise."""
        ...


class LoggingSink(PayloadSink):
    def send(self, payload: OutputPayload) -> None:
        logger.info("Payload ready", extra={"payload": payload.to_message()})


class MemorySink(PayloadSink):
    """Keeps the latest payload for the display to poll."""

    def __init__(self) -> None:
        self._latest: Optional[OutputPayload] = None
        self._lock = threading.Lock()

    def send(self, payload: OutputPayload) -> None:
        with self._lock:
            self._latest = payload

    @property
    def latest(self) -> Optional[OutputPayload]:
        with self._lock:
            return self._latest


class WebhookSink(PayloadSink):
    """POSTs the payload as JSON to a URL."""

    def __init__(self, url: str, *, session: requests.Session | None = None, timeout: float = 10.0) -> None:
        self.url = url
        self.session = session or http_session.live_session
        self.timeout = timeout

    def send(self, payload: OutputPayload) -> None:
        try:
            resp = self.session.post(self.url, json=payload.to_message(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(
                "Dropping payload; webhook delivery failed",
                extra={"url": mask_secret_url(self.url), "error": str(exc)},
            )


class CompositeSink(PayloadSink):
    """Fans a payload out to several sinks in order."""

    def __init__(self, sinks: Sequence[PayloadSink]) -> None:
        self.sinks: List[PayloadSink] = list(sinks)

    def send(self, payload: OutputPayload) -> None:
        for sink in self.sinks:
            sink.send(payload)


def build_sink(settings: Settings, memory: MemorySink) -> PayloadSink:
    """Always keep the latest payload in memory; optionally log and forward it."""
    sinks: List[PayloadSink] = [memory, LoggingSink()]
    if settings.webhook_url:
        logger.info("Forwarding payloads to webhook", extra={"url": mask_secret_url(settings.webhook_url)})
        sinks.append(WebhookSink(settings.webhook_url, timeout=settings.http_timeout_seconds))
    return CompositeSink(sinks)
