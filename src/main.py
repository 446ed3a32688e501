"""
FastAPI application entry point.

Run with: uvicorn src.main:app --reload
"""

from contextlib import asynccontextmanager
import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from src.core.config import analysis_config, settings
from src.core.logging import configure_logging, get_logger, bind_context, clear_context
from src.api.dependencies import get_progress_simulator, get_session_store
from src.api.routes import analysis, diagnostics, health
from src.api.exception_handlers import setup_exception_handlers
from src.services.provider_detector import (
    detect_providers,
    has_usable_provider,
    missing_providers,
)
from src.services.session_reaper import SessionReaper

# Configure logging before anything else
configure_logging(analysis_config.logging)
log = get_logger(__name__)


# =============================================================================
# Correlation ID Middleware
# =============================================================================


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique correlation ID to each request.

    - Generates a UUID4 request_id for each incoming request
    - Binds it to structlog context for all logs in that request
    - Adds X-Request-ID header to responses
    """

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        bind_context(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()


def log_provider_configuration() -> dict:
    """
    Report which AI providers are configured.

    Missing providers are not fatal at startup: each analysis request fails
    on its own with NoProviderConfiguredError instead.
    """
    providers = detect_providers(settings)
    if has_usable_provider(settings):
        log.info("providers_configured", providers=providers)
    else:
        log.warning(
            "no_provider_configured",
            missing=missing_providers(settings),
            hint="Set one of these in .env to enable analysis",
        )
    return providers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Starts the session reaper and cancels every background task on shutdown.
    """
    log.info("application_starting", debug=settings.debug)

    log_provider_configuration()

    retention = analysis_config.retention
    reaper = SessionReaper(
        store=get_session_store(),
        max_age_seconds=retention.max_age_seconds,
        sweep_interval_seconds=retention.sweep_interval_seconds,
    )
    if retention.enabled:
        reaper.start()

    log.info("application_started")

    yield

    log.info("application_shutting_down")
    await reaper.stop()
    await get_progress_simulator().shutdown()


app = FastAPI(
    title="Code Analysis Service",
    description="AI-backed security and compliance analysis of code snippets",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware for development
if settings.debug:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(CorrelationIDMiddleware)

setup_exception_handlers(app)

app.include_router(health.router, tags=["system"])
app.include_router(diagnostics.router)
app.include_router(analysis.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {"name": "Code Analysis Service", "version": "0.1.0", "status": "running"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
