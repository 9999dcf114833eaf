"""HTTP API the display uses to trigger a refresh or fetch the latest payload."""

import hmac
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from .config import load_settings, settings
from .coordinator import AggregationCoordinator
from .domain import OutputPayload, PositionFix
from .position import PositionResolver, build_position_store
from .sinks import MemorySink, build_sink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="api")


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured static key, if any."""
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if not hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        logger.debug("Invalid API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
health_router = APIRouter()

MEMORY_SINK = MemorySink()
COORDINATOR = AggregationCoordinator(
    PositionResolver(build_position_store(settings)),
    sink=build_sink(settings, MEMORY_SINK),
)


class PositionReport(BaseModel):
    """Fix reported by the display's own geolocation."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    timestamp: Optional[datetime] = None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Timestamps sent without an offset are read as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_fix(self) -> PositionFix:
        return PositionFix(
            latitude=self.latitude,
            longitude=self.longitude,
            timestamp=self.timestamp or datetime.now(timezone.utc),
        )


def _message_or_503(payload: Optional[OutputPayload]) -> Dict[str, Any]:
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No location available yet; report a position or configure a static one.",
        )
    return payload.to_message()


@router.post("/refresh")
def refresh(report: Optional[PositionReport] = None):
    """Run one aggregation cycle, optionally with a freshly reported position."""
    reported = report.to_fix() if report else None
    logger.info("Refresh requested", extra={"reported": reported is not None})
    return _message_or_503(COORDINATOR.run_cycle(load_settings(), reported=reported))


@router.get("/payload")
def latest_payload():
    """Return the last payload, running a cycle first if none exists yet."""
    payload = MEMORY_SINK.latest
    if payload is None:
        payload = COORDINATOR.run_cycle(load_settings())
    return _message_or_503(payload)


@health_router.get("/health")
def health():
    return {"status": "ok"}
