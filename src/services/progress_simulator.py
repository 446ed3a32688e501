"""
Progress simulation for running analyses.

The analysis collaborator only reports completion as a single event, so
pollers would otherwise see progress jump from 0 to 100. The simulator runs
one cancellable asyncio task per session that nudges progress forward on a
fixed cadence and derives the stage from it:

    progress = min(100, progress + increment)
    stage    = min(4, floor(progress / 25) + 1)

A task ends when progress reaches 100, the session leaves running, or the
session disappears from the store. The analysis service also stops it
explicitly on every terminal transition. The simulator never writes status
or results.
"""

import asyncio
from typing import Dict, Set

import structlog

from src.domain.models.session import (
    MAX_PROGRESS,
    SessionStatus,
    stage_for_progress,
)
from src.services.session_store import SessionStore

log = structlog.get_logger(__name__)


class ProgressSimulator:
    """Owns the per-session progress tasks."""

    def __init__(
        self,
        store: SessionStore,
        interval_seconds: float = 1.0,
        increment: float = 0.56,
        real_stage_authoritative: bool = False,
    ):
        """
        Args:
            store: Session store holding the records to advance
            interval_seconds: Delay between ticks
            increment: Progress added per tick
            real_stage_authoritative: When True, a session stops getting
                progress-derived stages once a real stage was reported
                (otherwise the last writer wins)
        """
        self.store = store
        self.interval_seconds = interval_seconds
        self.increment = increment
        self.real_stage_authoritative = real_stage_authoritative
        self._tasks: Dict[str, asyncio.Task] = {}
        self._real_stage_reported: Set[str] = set()

    def start(self, session_id: str) -> None:
        """Schedule the progress task for a session (no-op if already active)."""
        if self.is_active(session_id):
            log.debug("progress_simulation_already_active", session_id=session_id)
            return

        task = asyncio.create_task(
            self._run(session_id), name=f"progress-{session_id}"
        )
        self._tasks[session_id] = task
        task.add_done_callback(
            lambda finished, sid=session_id: self._forget(sid, finished)
        )

        log.debug(
            "progress_simulation_started",
            session_id=session_id,
            interval_seconds=self.interval_seconds,
            increment=self.increment,
        )

    def stop(self, session_id: str) -> None:
        """Cancel the progress task for a session. Safe to call repeatedly."""
        task = self._tasks.pop(session_id, None)
        self._real_stage_reported.discard(session_id)
        if task is not None and not task.done():
            task.cancel()
            log.debug("progress_simulation_stopped", session_id=session_id)

    async def shutdown(self) -> None:
        """Cancel every live task and wait for them to unwind."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        self._real_stage_reported.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            log.info("progress_simulations_cancelled", count=len(tasks))

    def is_active(self, session_id: str) -> bool:
        task = self._tasks.get(session_id)
        return task is not None and not task.done()

    @property
    def active_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def mark_real_stage(self, session_id: str) -> None:
        """Record that the collaborator reported a real stage for this session."""
        self._real_stage_reported.add(session_id)

    def tick(self, session_id: str) -> bool:
        """
        Advance one step.

        Returns:
            True if the session should keep ticking
        """
        if session_id not in self.store:
            log.debug("progress_simulation_session_gone", session_id=session_id)
            return False

        session = self.store.get(session_id)
        if session.status != SessionStatus.RUNNING:
            return False

        session.progress = min(MAX_PROGRESS, session.progress + self.increment)
        if not (
            self.real_stage_authoritative
            and session_id in self._real_stage_reported
        ):
            session.current_stage = stage_for_progress(session.progress)

        if session.progress >= MAX_PROGRESS:
            log.info(
                "progress_simulation_saturated",
                session_id=session_id,
                current_stage=session.current_stage,
            )
            return False
        return True

    async def _run(self, session_id: str) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                if not self.tick(session_id):
                    break
        except asyncio.CancelledError:
            log.debug("progress_simulation_cancelled", session_id=session_id)
            raise

    def _forget(self, session_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(session_id) is task:
            del self._tasks[session_id]
            self._real_stage_reported.discard(session_id)
