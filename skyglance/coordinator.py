"""Aggregation cycle: fan out to the five sources, join, classify, build, send.

One cycle runs every adapter concurrently against the same PositionFix and
Settings snapshot and waits for all of them to settle. A slow source never
gets cancelled by a fast one, and a failing source only removes its own
fields from the payload. The Alert Engine and Payload Builder then run once
on the complete (possibly partial) set.
"""
from __future__ import annotations

from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from skyglance.alert_engine import detect_alerts
from skyglance.config import Settings, load_settings
from skyglance.data_sources import SourceAdapter, build_adapters, lookup_location_name
from skyglance.domain import CollectedSources, OutputPayload, PositionFix, SourceKind, SourceRecord
from skyglance.payload_builder import build_payload
from skyglance.position import PositionResolver
from skyglance.sinks import LoggingSink, PayloadSink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="coordinator")

LocationNamer = Callable[[PositionFix], str]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AggregationCoordinator:
    """Runs complete aggregation cycles."""

    def __init__(
        self,
        resolver: PositionResolver,
        *,
        adapters: Optional[Sequence[SourceAdapter]] = None,
        sink: Optional[PayloadSink] = None,
        location_namer: Optional[LocationNamer] = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.resolver = resolver
        self.adapters: List[SourceAdapter] = list(adapters if adapters is not None else build_adapters())
        self.sink = sink or LoggingSink()
        self.location_namer = location_namer or lookup_location_name
        self.clock = clock

    def collect(self, fix: PositionFix, settings: Settings, now: datetime) -> CollectedSources:
        """Run every adapter concurrently and wait for all of them to settle."""
        records: List[SourceRecord] = []
        with ThreadPoolExecutor(max_workers=max(1, len(self.adapters)), thread_name_prefix="source") as pool:
            futures: Dict[Future, SourceKind] = {
                pool.submit(adapter.load, fix, settings, now): adapter.kind for adapter in self.adapters
            }
            done, _pending = wait(futures, return_when=ALL_COMPLETED)

        for future in done:
            kind = futures[future]
            try:
                records.append(future.result())
            except Exception as exc:
                # adapters degrade source failures themselves; this is an adapter bug
                logger.error("Adapter raised; treating source as absent", extra={"source": kind.value, "error": repr(exc)})
                records.append(SourceRecord.absent(kind))

        sources = CollectedSources.from_records(records)
        logger.info(
            "Sources settled",
            extra={"absent": [k.value for k in sources.absent_kinds()]},
        )
        return sources

    def run_cycle(
        self,
        settings: Optional[Settings] = None,
        *,
        reported: Optional[PositionFix] = None,
        now: Optional[datetime] = None,
    ) -> Optional[OutputPayload]:
        """Run one full cycle; returns the payload sent, or None if no position was available."""
        settings = settings or load_settings()
        now = now or self.clock()
        logger.info("Starting refresh cycle")

        fix = self.resolver.resolve(settings, reported=reported)
        if fix is None:
            logger.warning("Failed to get location; no payload this cycle")
            return None

        sources = self.collect(fix, settings, now)
        alert = detect_alerts(
            sources.weather,
            sources.air_quality,
            sources.pollen,
            now=now,
            window_hours=settings.alert_window_hours,
        )
        payload = build_payload(sources, alert, settings, self.location_namer(fix))
        self.sink.send(payload)
        return payload
