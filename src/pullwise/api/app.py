"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from pullwise.api.dependencies import Services, build_services, get_app_settings
from pullwise.api.middleware import setup_exception_handlers, setup_middleware
from pullwise.api.routers import health, linear, pulls, reviews, webhooks
from pullwise.core.config import Settings
from pullwise.core.constants import APP_VERSION
from pullwise.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the factory function used by uvicorn:
        uvicorn pullwise.api.app:create_app --factory --reload

    The review worker runs inside the app's lifespan, so it only consumes
    jobs while the server (or a ``with TestClient(app)`` block) is up.
    """
    if settings is None:
        settings = services.settings if services is not None else get_app_settings()
    setup_logging(settings.log_level)
    if services is None:
        services = build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.worker.start(recover_pending=settings.recover_pending_on_start)
        try:
            yield
        finally:
            await services.worker.stop()
            await services.aclose()

    app = FastAPI(
        title="Pullwise",
        description="AI-powered GitHub pull request reviews with a background review pipeline",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    # Middleware
    setup_middleware(app)
    setup_exception_handlers(app)

    # API Routes (prefixed with /api/v1)
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(reviews.router, prefix="/api/v1")
    app.include_router(pulls.router, prefix="/api/v1")
    app.include_router(webhooks.router, prefix="/api/v1")
    app.include_router(linear.router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root():
        """Root redirect to docs."""
        return RedirectResponse(url="/docs")

    logger.info("app_created", version=APP_VERSION)
    return app
