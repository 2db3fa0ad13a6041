"""Abstract store interfaces.

The review pipeline depends on these three narrow contracts, never on a
concrete backend, so storage is swappable without touching the worker or the
API.  A backend may implement all three on one class.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from pullwise.core.models import Repository, Review, ReviewResult, ReviewStatus


class ReviewStore(ABC):
    """Durable record of reviews, keyed by review id."""

    @abstractmethod
    async def create(self, review: Review) -> Review:
        """Persist a new review (must be PENDING) and return it."""

    @abstractmethod
    async def create_unless_active(self, review: Review) -> Review | None:
        """Persist ``review`` unless the latest review for the same PR is active.

        Check and insert happen atomically.  Returns None when a PENDING or
        PROCESSING review already exists for (repository_id, pr_number).
        """

    @abstractmethod
    async def get(self, review_id: str) -> Review | None:
        """Fetch a review by id."""

    @abstractmethod
    async def transition(
        self,
        review_id: str,
        status: ReviewStatus,
        *,
        result: ReviewResult | None = None,
        error: str | None = None,
    ) -> Review:
        """Move a review to ``status`` in one atomic single-row update.

        Raises:
            ReviewNotFoundError: No review with that id.
            InvalidTransitionError: The state machine forbids the move.
        """

    @abstractmethod
    async def latest_for_pr(self, repository_id: str, pr_number: int) -> Review | None:
        """Most recently created review for a PR, if any."""

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        repository_id: str | None = None,
        limit: int = 20,
    ) -> list[Review]:
        """A user's reviews, newest first."""

    @abstractmethod
    async def ids_with_status(self, status: ReviewStatus) -> list[str]:
        """Ids of every review currently in ``status``, oldest first."""

    async def latest_for_prs(self, repository_id: str, pr_numbers: Iterable[int]) -> dict[int, Review]:
        """Latest review per PR number; PRs without reviews are omitted."""
        latest: dict[int, Review] = {}
        for number in pr_numbers:
            review = await self.latest_for_pr(repository_id, number)
            if review is not None:
                latest[number] = review
        return latest

    async def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """


class RepositoryStore(ABC):
    """Repositories connected by users (owned by an external collaborator)."""

    @abstractmethod
    async def add_repository(self, repository: Repository) -> Repository:
        """Persist a connected repository."""

    @abstractmethod
    async def get_repository(self, repository_id: str) -> Repository | None:
        """Fetch a repository by its internal id."""

    @abstractmethod
    async def get_repository_by_github_id(self, github_id: int) -> Repository | None:
        """Fetch a repository by GitHub's numeric id (used by webhooks)."""


class AccountStore(ABC):
    """Per-user credentials for third-party services."""

    @abstractmethod
    async def get_access_token(self, user_id: str) -> str | None:
        """GitHub access token for ``user_id``, or None if not connected."""

    @abstractmethod
    async def save_access_token(self, user_id: str, token: str) -> None:
        """Store (or replace) a user's GitHub access token."""

    @abstractmethod
    async def get_linear_api_key(self, user_id: str) -> str | None:
        """Linear API key for ``user_id``, or None."""

    @abstractmethod
    async def save_linear_api_key(self, user_id: str, api_key: str | None) -> None:
        """Store a Linear API key; None removes it."""
