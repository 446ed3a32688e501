"""
Analysis orchestration service.

Drives one session from pending to a terminal state:

1. Look up the session (SessionNotFoundError if unknown)
2. Refuse sessions that already left pending (SessionAlreadyRunningError)
3. Mark running, reset progress
4. Check providers; with none configured, or no code, fail immediately
   (NoProviderConfiguredError, session -> error, no simulation)
5. Start progress simulation and await the analyzer, relaying its stage
   callbacks onto the session
6. Stop simulation and finalize as completed or error. Cancellation of the
   running call also stops simulation and ends the session in error.

Failures are reported twice: on the session (status error plus
error_message) for pollers, and raised to the direct caller. Nothing is
retried; a failed session must be recreated.
"""

import asyncio
from typing import Callable, Optional

import structlog

from src.core.config import Settings, settings as default_settings
from src.core.exceptions import (
    NoProviderConfiguredError,
    SessionAlreadyRunningError,
)
from src.domain.models.session import (
    MAX_PROGRESS,
    MAX_STAGE,
    MIN_STAGE,
    AnalysisSession,
    SessionStatus,
)
from src.services.progress_simulator import ProgressSimulator
from src.services.protocols import ICodeAnalyzer
from src.services.provider_detector import (
    detect_providers,
    has_usable_provider,
    missing_providers,
)
from src.services.session_store import SessionStore

log = structlog.get_logger(__name__)

CANCELLED_MESSAGE = "Analysis cancelled before completion"


AnalyzerFactory = Callable[[Settings], ICodeAnalyzer]


def _default_analyzer_factory(settings: Settings) -> ICodeAnalyzer:
    from src.services.code_analyzer import LLMCodeAnalyzer

    return LLMCodeAnalyzer.from_settings(settings)


class AnalysisService:
    """Session lifecycle entry point for the HTTP layer."""

    def __init__(
        self,
        store: SessionStore,
        simulator: ProgressSimulator,
        analyzer: Optional[ICodeAnalyzer] = None,
        analyzer_factory: Optional[AnalyzerFactory] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize analysis service.

        Args:
            store: Session store shared with pollers
            simulator: Progress simulator bound to the same store
            analyzer: Analyzer to use (built on first run if None)
            analyzer_factory: Builds the analyzer from settings; defaults to
                the LLM-backed analyzer
            settings: Provider configuration (defaults to global settings)
        """
        self.store = store
        self.simulator = simulator
        self.settings = settings or default_settings
        self._analyzer = analyzer
        self._analyzer_factory = analyzer_factory or _default_analyzer_factory

    def create_session(self) -> AnalysisSession:
        return self.store.create()

    def get_session(self, session_id: str) -> Optional[AnalysisSession]:
        return self.store.get(session_id)

    def _get_analyzer(self) -> ICodeAnalyzer:
        if self._analyzer is None:
            self._analyzer = self._analyzer_factory(self.settings)
        return self._analyzer

    async def run_analysis(self, session_id: str, code: Optional[str] = None) -> None:
        """
        Run the analysis for a pending session.

        Args:
            session_id: Session created via create_session()
            code: Source code to analyze

        Raises:
            SessionNotFoundError: Unknown session id (store untouched)
            SessionAlreadyRunningError: Session is not pending (store untouched)
            NoProviderConfiguredError: No provider flag set or no code given
            Exception: Whatever the analyzer raised
            asyncio.CancelledError: The call was cancelled mid-analysis
        """
        session = self.store.require(session_id)
        if session.status != SessionStatus.PENDING:
            raise SessionAlreadyRunningError(
                f"Session {session_id} is already {session.status.value}"
            )

        session.status = SessionStatus.RUNNING
        session.progress = 0.0

        providers = detect_providers(self.settings)
        log.info(
            "provider_check",
            session_id=session_id,
            providers=providers,
            has_code=bool(code),
        )

        if not has_usable_provider(self.settings) or not code:
            raise self._no_provider_error(session, providers, code_supplied=bool(code))

        log.info("analysis_started", session_id=session_id, code_length=len(code))
        self.simulator.start(session_id)

        def on_stage(stage: int, message: str) -> None:
            current = self.store.get(session_id)
            if current is None:
                return
            current.current_stage = max(MIN_STAGE, min(MAX_STAGE, stage))
            current.stage_message = message
            self.simulator.mark_real_stage(session_id)
            log.info(
                "analysis_stage",
                session_id=session_id,
                stage=current.current_stage,
                message=message,
            )

        try:
            results = await self._get_analyzer().analyze(code, on_stage)
        except asyncio.CancelledError:
            session.mark_finished(SessionStatus.ERROR)
            session.error_message = CANCELLED_MESSAGE
            log.warning(
                "analysis_cancelled",
                session_id=session_id,
                progress=session.progress,
            )
            raise
        except Exception as e:
            session.mark_finished(SessionStatus.ERROR)
            session.error_message = str(e) or type(e).__name__
            log.error(
                "analysis_failed",
                session_id=session_id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=e,
            )
            raise
        finally:
            self.simulator.stop(session_id)

        session.mark_finished(SessionStatus.COMPLETED)
        session.progress = MAX_PROGRESS
        session.completed_at = session.finished_at
        session.results = results

        log.info(
            "analysis_completed",
            session_id=session_id,
            findings=results.security.total,
            duration_seconds=round(
                (session.completed_at - session.started_at).total_seconds(), 2
            ),
        )

    def _no_provider_error(
        self, session: AnalysisSession, providers: dict, code_supplied: bool
    ) -> NoProviderConfiguredError:
        """Move the session to error and build the error to raise."""
        missing = missing_providers(self.settings)

        if not has_usable_provider(self.settings):
            message = (
                "No AI provider configured. Please configure one of: "
                + ", ".join(missing)
            )
        else:
            message = "No code supplied for analysis."
            if missing:
                message += " Missing provider settings: " + ", ".join(missing)

        session.mark_finished(SessionStatus.ERROR)
        session.error_message = message

        log.error(
            "no_provider_configured",
            session_id=session.session_id,
            providers={
                name: "set" if present else "missing"
                for name, present in providers.items()
            },
            code_supplied=code_supplied,
        )
        return NoProviderConfiguredError(
            message, providers=providers, code_supplied=code_supplied
        )

    async def run_analysis_in_background(
        self, session_id: str, code: Optional[str] = None
    ) -> None:
        """
        Run an analysis detached from any caller.

        Failures are already recorded on the session and logged by
        run_analysis, so they are not re-raised here.
        """
        try:
            await self.run_analysis(session_id, code)
        except Exception as e:
            log.warning(
                "background_analysis_ended_with_error",
                session_id=session_id,
                error_type=type(e).__name__,
                error=str(e),
            )
