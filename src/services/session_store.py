"""
In-memory session store.

Single source of truth for analysis session state within one process.
Sessions are volatile: nothing survives a restart.

Records are mutated in place by their owners (AnalysisService,
ProgressSimulator). The store does not enforce lifecycle rules; it only
guarantees unique ids and provides lookup, snapshots and eviction.
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

import structlog

from src.core.exceptions import SessionNotFoundError
from src.domain.models.session import AnalysisSession

log = structlog.get_logger(__name__)


class SessionStore:
    """Mapping of session id to live AnalysisSession records."""

    def __init__(self) -> None:
        self._sessions: Dict[str, AnalysisSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self) -> AnalysisSession:
        """Insert a new pending session under a fresh id and return it."""
        session_id = str(uuid4())
        while session_id in self._sessions:
            session_id = str(uuid4())

        session = AnalysisSession(session_id=session_id)
        self._sessions[session_id] = session

        log.info(
            "session_created",
            session_id=session_id,
            total_sessions=len(self._sessions),
        )
        return session

    def get(self, session_id: str) -> Optional[AnalysisSession]:
        """Return the live session record, or None if unknown."""
        session = self._sessions.get(session_id)
        if session is None:
            log.warning(
                "session_not_found",
                session_id=session_id,
                available_sessions=self.list_ids(),
            )
        return session

    def require(self, session_id: str) -> AnalysisSession:
        """Return the live session record or raise SessionNotFoundError."""
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def snapshot(self, session_id: str) -> AnalysisSession:
        """Return a detached copy of the session for readers."""
        return self.require(session_id).model_copy(deep=True)

    def list_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def evict_expired(
        self, max_age_seconds: float, now: Optional[datetime] = None
    ) -> List[str]:
        """
        Remove sessions that finished more than max_age_seconds ago.

        Only completed/error sessions are eligible; pending and running
        sessions are kept regardless of age.

        Returns:
            Ids of the evicted sessions
        """
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.is_terminal and session.age_seconds(now) > max_age_seconds
        ]
        for session_id in expired:
            del self._sessions[session_id]

        if expired:
            log.info(
                "sessions_evicted",
                count=len(expired),
                session_ids=expired,
                remaining=len(self._sessions),
            )
        return expired
