"""
Global exception handlers for FastAPI.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import structlog

from src.core.exceptions import (
    CodeAnalysisError,
    ConfigurationError,
    AnalysisFailedError,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMResponseParseError,
    NoProviderConfiguredError,
    SessionNotFoundError,
    SessionAlreadyRunningError,
)

log = structlog.get_logger(__name__)


def status_code_for(exc: CodeAnalysisError) -> int:
    """Map an application error to its HTTP status code."""
    if isinstance(exc, SessionNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SessionAlreadyRunningError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, NoProviderConfiguredError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, (AnalysisFailedError, LLMResponseParseError)):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, LLMTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    if isinstance(exc, LLMRateLimitError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI):
    """Register custom exception handlers with the FastAPI application.

    CodeAnalysisError subclasses get their mapped status code, configuration
    errors a generic 500, and anything else an opaque 500.
    """

    @app.exception_handler(CodeAnalysisError)
    async def code_analysis_error_handler(
        request: Request,
        exc: CodeAnalysisError,
    ) -> JSONResponse:
        status_code = status_code_for(exc)

        log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        ).warning(
            "request_error",
            message=exc.message,
            status_code=status_code,
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "type": type(exc).__name__,
                    "message": exc.message,
                }
            },
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request,
        exc: ConfigurationError,
    ) -> JSONResponse:
        """Hide configuration details from clients behind a 500."""
        log.error(
            "configuration_error",
            path=request.url.path,
            message=exc.message,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "type": "ConfigurationError",
                    "message": "Server configuration error",
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        ).error(
            "unhandled_exception",
            message=str(exc),
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "type": "InternalServerError",
                    "message": "An unexpected error occurred",
                }
            },
        )
