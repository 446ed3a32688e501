"""Domain models package."""

from .session import AnalysisSession, SessionStatus, stage_for_progress
from .results import (
    AnalysisResults,
    CertificationResults,
    RAGResults,
    RAGStrategy,
    SecurityFinding,
    SecurityResults,
    SOC2Results,
    SOC2Violation,
)

__all__ = [
    "AnalysisSession",
    "SessionStatus",
    "stage_for_progress",
    "AnalysisResults",
    "CertificationResults",
    "RAGResults",
    "RAGStrategy",
    "SecurityFinding",
    "SecurityResults",
    "SOC2Results",
    "SOC2Violation",
]
