"""Dependency injection — shared services and configuration."""

from __future__ import annotations

import functools
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request

from pullwise.core.config import Settings, get_settings
from pullwise.core.logging import get_logger
from pullwise.github.client import GitHubClient
from pullwise.linear.client import LinearClient
from pullwise.llm.registry import ProviderRegistry
from pullwise.orchestrator.queue import JobQueue
from pullwise.orchestrator.service import ReviewService
from pullwise.orchestrator.worker import ReviewWorker
from pullwise.review.generator import ReviewGenerator
from pullwise.store.memory import MemoryStore
from pullwise.store.sqlite import SQLiteStore

logger = get_logger(__name__)


@functools.lru_cache
def get_app_settings() -> Settings:
    """Cached application settings (singleton)."""
    return get_settings()


def create_store(settings: Settings) -> MemoryStore | SQLiteStore:
    """Create the configured storage backend."""
    if settings.store_backend == "memory":
        return MemoryStore()
    return SQLiteStore(settings.database_path)


def create_github_client(settings: Settings) -> GitHubClient:
    """Create a GitHub API client from settings."""
    return GitHubClient(settings.github_api_base, timeout=settings.http_timeout_seconds)


def create_linear_client(settings: Settings) -> LinearClient:
    return LinearClient(settings.linear_api_url, timeout=settings.http_timeout_seconds)


@dataclass
class Services:
    """Everything a request handler or the worker needs, built once per app."""

    settings: Settings
    store: MemoryStore | SQLiteStore
    github: GitHubClient
    linear: LinearClient
    registry: ProviderRegistry
    generator: ReviewGenerator
    queue: JobQueue
    worker: ReviewWorker
    reviews: ReviewService

    async def aclose(self) -> None:
        await self.github.close()
        await self.linear.close()
        await self.registry.close()
        await self.store.close()


def build_services(
    settings: Settings,
    *,
    store: MemoryStore | SQLiteStore | None = None,
    github: GitHubClient | None = None,
    linear: LinearClient | None = None,
    registry: ProviderRegistry | None = None,
    queue: JobQueue | None = None,
) -> Services:
    """Wire the review pipeline.  Any collaborator may be supplied (tests do)."""
    store = store if store is not None else create_store(settings)
    github = github or create_github_client(settings)
    linear = linear or create_linear_client(settings)
    registry = registry or ProviderRegistry.from_settings(settings)
    queue = queue or JobQueue()

    generator = ReviewGenerator(registry)
    worker = ReviewWorker(
        store,
        store,
        store,
        github,
        generator,
        queue,
        concurrency=settings.worker_concurrency,
    )
    reviews = ReviewService(store, store, store, github, registry, queue)

    logger.info(
        "services_built",
        store=type(store).__name__,
        providers=[p.id for p in registry.list_available()],
    )
    return Services(
        settings=settings,
        store=store,
        github=github,
        linear=linear,
        registry=registry,
        generator=generator,
        queue=queue,
        worker=worker,
        reviews=reviews,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_review_service(services: Services = Depends(get_services)) -> ReviewService:
    return services.reviews


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Identity of the caller, as asserted by the auth layer in front of us."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id
