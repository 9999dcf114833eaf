import os
import sys

import uvicorn

from skyglance.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def run_once() -> int:
    """Run a single aggregation cycle and print the payload (no server)."""
    from skyglance.api import COORDINATOR

    payload = COORDINATOR.run_cycle()
    if payload is None:
        logger.error("No position available; set SKYGLANCE_LATITUDE and SKYGLANCE_LONGITUDE.")
        return 1
    print(payload.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="skyglance")

    if "--once" in sys.argv[1:]:
        sys.exit(run_once())

    uvicorn.run(
        "skyglance.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
