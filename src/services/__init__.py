# noqa
from src.services.session_store import SessionStore
from src.services.progress_simulator import ProgressSimulator
from src.services.analysis_service import AnalysisService
from src.services.session_reaper import SessionReaper

__all__ = ["SessionStore", "ProgressSimulator", "AnalysisService", "SessionReaper"]
