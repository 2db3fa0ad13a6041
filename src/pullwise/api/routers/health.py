"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pullwise.api.dependencies import Services, get_services
from pullwise.api.schemas import HealthResponse
from pullwise.core.constants import APP_VERSION

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check — confirms the service is running."""
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        services={
            "api": "running",
        },
    )


@router.get("/readiness", response_model=HealthResponse)
async def readiness_check(services: Services = Depends(get_services)) -> HealthResponse:
    """Readiness check — reports the worker and which AI providers are configured."""
    providers = [p.id for p in services.registry.list_available()]
    return HealthResponse(
        status="ready" if providers else "degraded",
        version=APP_VERSION,
        services={
            "api": "ready",
            "worker": "running" if services.worker.running else "stopped",
            "store": type(services.store).__name__,
        },
        providers=providers,
    )
