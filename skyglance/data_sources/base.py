"""Adapter interface and the wrapper that turns fetch+parse callables into SourceRecords."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

import requests
from pydantic import ValidationError

from skyglance.config import Settings
from skyglance.domain import PositionFix, SourceKind, SourceRecord
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/base")

# Failures that mean "this source has no data this cycle".
DEGRADABLE_ERRORS = (
    requests.RequestException,
    ValueError,
    KeyError,
    TypeError,
    IndexError,
    AttributeError,
    ValidationError,
)

Loader = Callable[[PositionFix, Settings, datetime], Any]


def _always_enabled(_settings: Settings) -> bool:
    return True


class SourceAdapter(Protocol):
    """Anything that can turn a position fix into one SourceRecord, without raising."""

    kind: SourceKind

    def load(self, fix: PositionFix, settings: Settings, now: datetime) -> SourceRecord:
        """Return Present(value) or Absent; never raise for source-side failures."""
        ...


@dataclass
class CallableSourceAdapter(SourceAdapter):
    """Wrap a loader callable with the enable check and failure degradation."""

    kind: SourceKind
    loader: Loader
    enabled: Callable[[Settings], bool] = _always_enabled
    when_disabled: Optional[Callable[[Settings], Any]] = None

    def load(self, fix: PositionFix, settings: Settings, now: datetime) -> SourceRecord:
        """Run the loader, mapping disabled sources and degradable errors to their fallback."""
        if not self.enabled(settings):
            value = self.when_disabled(settings) if self.when_disabled else None
            logger.debug("Source disabled", extra={"source": self.kind.value, "fallback": value})
            return SourceRecord.of(self.kind, value)

        try:
            value = self.loader(fix, settings, now)
        except DEGRADABLE_ERRORS as exc:
            logger.warning(
                "Source unavailable; treating as absent",
                extra={"source": self.kind.value, "error": f"{type(exc).__name__}: {exc}"},
            )
            return SourceRecord.absent(self.kind)

        if value is None:
            logger.info("Source returned no usable data", extra={"source": self.kind.value})
        return SourceRecord.of(self.kind, value)
