"""
Custom exception hierarchy for the code analysis service.

All application exceptions inherit from CodeAnalysisError.
"""

from typing import Dict, Optional


class CodeAnalysisError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CodeAnalysisError):
    """Invalid or missing configuration."""

    pass


# =============================================================================
# LLM Errors
# =============================================================================


class LLMError(CodeAnalysisError):
    """Base for LLM-related errors."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call timed out."""

    pass


class LLMRateLimitError(LLMError):
    """LLM rate limit exceeded."""

    pass


class LLMResponseParseError(LLMError):
    """Failed to parse LLM response."""

    pass


# =============================================================================
# Session Errors
# =============================================================================


class SessionError(CodeAnalysisError):
    """Session-related error."""

    pass


class SessionNotFoundError(SessionError):
    """Session does not exist."""

    pass


class SessionAlreadyRunningError(SessionError):
    """Analysis requested on a session that has already left pending."""

    pass


# =============================================================================
# Analysis Errors
# =============================================================================


class AnalysisError(CodeAnalysisError):
    """Base for analysis pipeline errors."""

    pass


class NoProviderConfiguredError(AnalysisError):
    """No AI provider is configured, or there is no code to analyze.

    Carries the presence of every known provider flag so callers can see
    exactly what was checked.
    """

    def __init__(
        self,
        message: str,
        providers: Optional[Dict[str, bool]] = None,
        code_supplied: bool = True,
    ):
        super().__init__(message)
        self.providers = providers or {}
        self.code_supplied = code_supplied

    @property
    def missing(self) -> list[str]:
        """Names of the provider flags that were not set."""
        return [name for name, present in self.providers.items() if not present]


class AnalysisFailedError(AnalysisError):
    """The analysis collaborator could not produce results."""

    pass
