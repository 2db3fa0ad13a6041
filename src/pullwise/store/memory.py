"""MemoryStore — process-local store for tests and throwaway runs."""

from __future__ import annotations

import asyncio

from pullwise.core.exceptions import ReviewNotFoundError
from pullwise.core.models import Repository, Review, ReviewResult, ReviewStatus
from pullwise.orchestrator.state import apply_transition
from pullwise.store.base import AccountStore, RepositoryStore, ReviewStore


class MemoryStore(ReviewStore, RepositoryStore, AccountStore):
    """Keeps everything in dicts guarded by one asyncio lock.

    Reviews are kept in insertion order, which doubles as creation order.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._reviews: dict[str, Review] = {}
        self._repositories: dict[str, Repository] = {}
        self._tokens: dict[str, str] = {}
        self._linear_keys: dict[str, str] = {}

    # ── Reviews ──────────────────────────────────────────────────────────

    def _latest(self, repository_id: str, pr_number: int) -> Review | None:
        for review in reversed(self._reviews.values()):
            if review.repository_id == repository_id and review.pr_number == pr_number:
                return review
        return None

    async def create(self, review: Review) -> Review:
        if review.status != ReviewStatus.PENDING:
            raise ValueError("New reviews must start PENDING")
        async with self._lock:
            self._reviews[review.id] = review
        return review

    async def create_unless_active(self, review: Review) -> Review | None:
        if review.status != ReviewStatus.PENDING:
            raise ValueError("New reviews must start PENDING")
        async with self._lock:
            existing = self._latest(review.repository_id, review.pr_number)
            if existing is not None and existing.is_active:
                return None
            self._reviews[review.id] = review
        return review

    async def get(self, review_id: str) -> Review | None:
        return self._reviews.get(review_id)

    async def transition(
        self,
        review_id: str,
        status: ReviewStatus,
        *,
        result: ReviewResult | None = None,
        error: str | None = None,
    ) -> Review:
        async with self._lock:
            current = self._reviews.get(review_id)
            if current is None:
                raise ReviewNotFoundError(f"Review not found: {review_id}")
            updated = apply_transition(current, status, result=result, error=error)
            self._reviews[review_id] = updated
        return updated

    async def latest_for_pr(self, repository_id: str, pr_number: int) -> Review | None:
        return self._latest(repository_id, pr_number)

    async def list_for_user(
        self,
        user_id: str,
        repository_id: str | None = None,
        limit: int = 20,
    ) -> list[Review]:
        matches = [
            r
            for r in reversed(self._reviews.values())
            if r.user_id == user_id and (repository_id is None or r.repository_id == repository_id)
        ]
        return matches[:limit]

    async def ids_with_status(self, status: ReviewStatus) -> list[str]:
        return [r.id for r in self._reviews.values() if r.status == status]

    # ── Repositories ─────────────────────────────────────────────────────

    async def add_repository(self, repository: Repository) -> Repository:
        self._repositories[repository.id] = repository
        return repository

    async def get_repository(self, repository_id: str) -> Repository | None:
        return self._repositories.get(repository_id)

    async def get_repository_by_github_id(self, github_id: int) -> Repository | None:
        return next((r for r in self._repositories.values() if r.github_id == github_id), None)

    # ── Accounts ─────────────────────────────────────────────────────────

    async def get_access_token(self, user_id: str) -> str | None:
        return self._tokens.get(user_id)

    async def save_access_token(self, user_id: str, token: str) -> None:
        self._tokens[user_id] = token

    async def get_linear_api_key(self, user_id: str) -> str | None:
        return self._linear_keys.get(user_id)

    async def save_linear_api_key(self, user_id: str, api_key: str | None) -> None:
        if api_key:
            self._linear_keys[user_id] = api_key
        else:
            self._linear_keys.pop(user_id, None)
