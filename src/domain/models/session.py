"""Session domain models for analysis lifecycle management.

Core Models:
    - SessionStatus: Lifecycle state of an analysis session
    - AnalysisSession: Unit of work tracked in the in-memory session store

Session Lifecycle:
    1. Created pending (progress 0, stage 1)
    2. Moved to running by the analysis service (progress reset to 0)
    3. Progress/stage advanced by the progress simulator while running
    4. Finalized as completed (progress 100, results set) or error

Status Transitions:
    - pending -> running
    - running -> completed | error
    completed and error are terminal.

Field ownership while running:
    - ProgressSimulator writes progress and current_stage
    - AnalysisService writes status, completed_at, finished_at, results,
      error_message, and overrides current_stage from real stage callbacks

Retention age counts from finished_at (set on both terminal statuses), so a
long run is not evicted right after it finishes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import Field

from src.domain.models.results import AnalysisResults, CamelModel

MIN_STAGE = 1
MAX_STAGE = 4
MAX_PROGRESS = 100.0


class SessionStatus(str, Enum):
    """Analysis session lifecycle state."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)


def stage_for_progress(progress: float) -> int:
    """Map progress to one of four equal-width stage bands."""
    return min(MAX_STAGE, int(progress // 25) + 1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisSession(CamelModel):
    """One code analysis tracked from creation to a terminal state.

    Serialized with camelCase keys (sessionId, currentStage, ...) for
    polling clients.
    """

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    status: SessionStatus = SessionStatus.PENDING
    progress: float = Field(default=0.0, ge=0.0, le=MAX_PROGRESS)
    current_stage: int = Field(default=MIN_STAGE, ge=MIN_STAGE, le=MAX_STAGE)
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    results: Optional[AnalysisResults] = None
    error_message: Optional[str] = None
    stage_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def mark_finished(self, status: SessionStatus) -> None:
        """Move to a terminal status and stamp the finish time."""
        self.status = status
        self.finished_at = _utcnow()

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        """Seconds since the session finished, or since creation while live."""
        now = now or _utcnow()
        return (now - (self.finished_at or self.started_at)).total_seconds()
