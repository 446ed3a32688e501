"""
Logging diagnostics endpoint.

Writes one line through every log level plus raw stdout/stderr so operators
can confirm which channels reach the log collector.
"""

import sys
from datetime import datetime, timezone

from fastapi import APIRouter
import structlog

from src.api.schemas import TestLogResponse

log = structlog.get_logger(__name__)

router = APIRouter(tags=["system"])


@router.get("/test-log", response_model=TestLogResponse)
async def test_log():
    log.info("test_log", channel="info")
    log.warning("test_log", channel="warning")
    log.error("test_log", channel="error")
    log.debug("test_log", channel="debug")

    sys.stdout.write("TEST LOG: stdout.write\n")
    sys.stderr.write("TEST LOG: stderr.write\n")

    return TestLogResponse(
        message="Test log endpoint - check the log collector for output",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
