"""
API request/response schemas.

Pydantic models for API validation and serialization. Session snapshots are
returned as AnalysisSession directly (camelCase keys).
"""

from typing import Dict, List, Optional

from pydantic import Field

from src.domain.models.results import CamelModel


# ============ ANALYSIS SCHEMAS ============


class AnalysisRequest(CamelModel):
    """Request to analyze a code snippet."""

    code: Optional[str] = Field(
        default=None,
        max_length=200_000,
        description="Source code to analyze",
    )


class SessionListResponse(CamelModel):
    """Diagnostic listing of known session ids."""

    session_ids: List[str]
    total: int


# ============ SYSTEM SCHEMAS ============


class ProviderStatusSchema(CamelModel):
    """Presence of each AI provider flag, keyed by env var name."""

    usable: bool
    flags: Dict[str, bool]
    missing: List[str]


class TestLogResponse(CamelModel):
    message: str
    timestamp: str
