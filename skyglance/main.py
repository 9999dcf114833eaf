"""FastAPI application setup and the background refresh lifecycle."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import COORDINATOR, health_router, router as api_router
from .config import settings
from .scheduler import PeriodicRefresher
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="main")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Cold-start cycle plus periodic ticks while the server is up."""
    refresher = None
    if settings.refresh_interval_seconds > 0:
        refresher = PeriodicRefresher(COORDINATOR, settings.refresh_interval_seconds)
        refresher.start()
    else:
        logger.info("Periodic refresh disabled")
    yield
    if refresher:
        refresher.stop()


app = FastAPI(title="Skyglance", lifespan=lifespan)

app.include_router(api_router, prefix="/v1")
app.include_router(health_router, prefix="/v1")
