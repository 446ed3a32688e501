"""Dependency injection for API routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.core.config import analysis_config, settings
from src.services.analysis_service import AnalysisService
from src.services.progress_simulator import ProgressSimulator
from src.services.session_store import SessionStore


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    """Process-wide session store.

    Cached so every request, background task and the reaper share one store
    for the life of the process.
    """
    return SessionStore()


@lru_cache(maxsize=1)
def get_progress_simulator() -> ProgressSimulator:
    """Process-wide progress simulator bound to the shared store."""
    progress = analysis_config.progress
    return ProgressSimulator(
        store=get_session_store(),
        interval_seconds=progress.tick_interval_seconds,
        increment=progress.increment,
        real_stage_authoritative=progress.real_stage_authoritative,
    )


@lru_cache(maxsize=1)
def get_analysis_service() -> AnalysisService:
    """Shared analysis service; the analyzer is built on first run."""
    return AnalysisService(
        store=get_session_store(),
        simulator=get_progress_simulator(),
        settings=settings,
    )


# Type aliases for dependency injection
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
