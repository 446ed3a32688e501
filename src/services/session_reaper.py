"""Background eviction of finished analysis sessions."""

import asyncio
from typing import List, Optional

import structlog

from src.services.session_store import SessionStore

log = structlog.get_logger(__name__)


class SessionReaper:
    """Periodically evicts completed/error sessions past a maximum age."""

    def __init__(
        self,
        store: SessionStore,
        max_age_seconds: float,
        sweep_interval_seconds: float,
    ):
        self.store = store
        self.max_age_seconds = max_age_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop."""
        if self.running:
            log.warning("session_reaper_already_running")
            return

        self._task = asyncio.create_task(self._sweep_loop(), name="session-reaper")
        log.info(
            "session_reaper_started",
            max_age_seconds=self.max_age_seconds,
            sweep_interval_seconds=self.sweep_interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("session_reaper_stopped")

    def sweep(self) -> List[str]:
        """Run one eviction pass and return the evicted ids."""
        return self.store.evict_expired(self.max_age_seconds)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                log.error("session_sweep_failed", error=str(e), exc_info=e)
