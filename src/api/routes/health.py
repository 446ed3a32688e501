"""
Health check endpoints.

Provides system health information for monitoring.
"""

from fastapi import APIRouter, HTTPException
import structlog

from src.api.dependencies import AnalysisServiceDep
from src.api.schemas import ProviderStatusSchema
from src.core.config import Settings, settings
from src.services.provider_detector import (
    detect_providers,
    has_usable_provider,
    missing_providers,
)

log = structlog.get_logger(__name__)

router = APIRouter()


def provider_status(provider_settings: Settings) -> ProviderStatusSchema:
    return ProviderStatusSchema(
        usable=has_usable_provider(provider_settings),
        flags=detect_providers(provider_settings),
        missing=missing_providers(provider_settings),
    )


@router.get("/health")
async def health_check(service: AnalysisServiceDep):
    """
    Health check endpoint.

    Returns:
        Provider configuration, session count and live progress tasks.
    """
    providers = provider_status(service.settings)

    return {
        "status": "healthy" if providers.usable else "degraded",
        "version": "0.1.0",
        "debug": settings.debug,
        "components": {
            "providers": providers.model_dump(by_alias=True),
            "sessions": {
                "total": len(service.store),
                "active_simulations": service.simulator.active_count,
            },
        },
    }


@router.get("/health/live")
async def liveness():
    """
    Kubernetes-style liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(service: AnalysisServiceDep):
    """
    Kubernetes-style readiness probe.

    Ready once at least one AI provider is configured.
    """
    if not has_usable_provider(service.settings):
        raise HTTPException(status_code=503, detail="No AI provider configured")

    return {"status": "ready"}
