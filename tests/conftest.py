"""
Shared test fixtures.

Every fixture builds isolated instances (store, simulator, service) so tests
never touch the process-wide singletons used by the app.
"""

from typing import Optional

import pytest

from src.core.config import Settings
from src.domain.models.results import (
    AnalysisResults,
    RAGResults,
    RAGStrategy,
    SecurityFinding,
    SecurityResults,
    SOC2Results,
)
from src.services.analysis_service import AnalysisService
from src.services.progress_simulator import ProgressSimulator
from src.services.session_store import SessionStore
from tests.helpers import make_settings


@pytest.fixture
def sample_results() -> AnalysisResults:
    finding = SecurityFinding(
        id=1,
        type="SQL Injection",
        severity="critical",
        line=3,
        owasp="A03:2021 - Injection",
        cwe="CWE-89",
        cvss=9.8,
        description="User input concatenated into SQL",
        code="cursor.execute('SELECT * FROM users WHERE id=' + uid)",
        fix="Use parameterized queries",
        cert_topics=["Secure coding"],
    )
    return AnalysisResults(
        security=SecurityResults.from_findings([finding]),
        soc2=SOC2Results(readiness=72.5, passed=10, at_risk=2, failed=1),
        rag=RAGResults(
            strategies=[
                RAGStrategy(
                    name="Hybrid",
                    accuracy=91,
                    latency=120,
                    precision=88,
                    recall=90,
                    winner=True,
                )
            ],
            winner="Hybrid",
            reason="Best recall",
        ),
    )


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def simulator(store) -> ProgressSimulator:
    return ProgressSimulator(store=store, interval_seconds=0.001, increment=0.56)


@pytest.fixture
def configured_settings() -> Settings:
    return make_settings(groq_api_key="test-groq-key")


@pytest.fixture
def empty_settings() -> Settings:
    return make_settings()


@pytest.fixture
def make_service(store, simulator, configured_settings):
    """Factory for AnalysisService around the shared test store/simulator."""

    def _make(analyzer=None, settings: Optional[Settings] = None) -> AnalysisService:
        return AnalysisService(
            store=store,
            simulator=simulator,
            analyzer=analyzer,
            settings=settings or configured_settings,
        )

    return _make
