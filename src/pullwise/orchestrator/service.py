"""Review service — trigger surface and read side of the review pipeline.

Both the dashboard (manual "review this PR") and the GitHub webhook go
through here; each creates a PENDING review and schedules exactly one job.
"""

from __future__ import annotations

from pydantic import BaseModel

from pullwise.core.constants import DEFAULT_REVIEW_LIST_LIMIT, MAX_REVIEW_LIST_LIMIT
from pullwise.core.exceptions import (
    GitHubNotConnectedError,
    RepositoryNotFoundError,
    ReviewNotFoundError,
)
from pullwise.core.logging import get_logger
from pullwise.core.models import PullRequestSummary, Repository, Review, ReviewJob
from pullwise.github.client import GitHubClient, split_full_name
from pullwise.github.schemas import GitHubPullRequest
from pullwise.llm.registry import ProviderRegistry
from pullwise.orchestrator.queue import JobQueue
from pullwise.store.base import AccountStore, RepositoryStore, ReviewStore

logger = get_logger(__name__)

MESSAGE_TRIGGERED = "Review triggered"
MESSAGE_IN_PROGRESS = "Review already in progress"


class TriggerOutcome(BaseModel):
    """Result of an automatic trigger."""

    created: bool
    message: str
    review_id: str | None = None


def _summarize(pr: GitHubPullRequest, review: Review | None) -> PullRequestSummary:
    return PullRequestSummary(
        id=pr.id,
        number=pr.number,
        title=pr.title,
        state=pr.state,
        draft=pr.draft,
        html_url=pr.html_url,
        author_login=pr.user.login if pr.user else "",
        author_avatar_url=pr.user.avatar_url if pr.user else "",
        head_ref=pr.head.ref,
        base_ref=pr.base.ref,
        additions=pr.additions,
        deletions=pr.deletions,
        changed_files=pr.changed_files,
        created_at=pr.created_at,
        updated_at=pr.updated_at,
        merged_at=pr.merged_at,
        review=review,
    )


class ReviewService:
    def __init__(
        self,
        reviews: ReviewStore,
        repositories: RepositoryStore,
        accounts: AccountStore,
        github: GitHubClient,
        registry: ProviderRegistry,
        queue: JobQueue,
    ) -> None:
        self._reviews = reviews
        self._repositories = repositories
        self._accounts = accounts
        self._github = github
        self._registry = registry
        self._queue = queue

    # ── Preconditions ────────────────────────────────────────────────────

    async def owned_repository(self, repository_id: str, user_id: str) -> Repository:
        repository = await self._repositories.get_repository(repository_id)
        if repository is None or repository.user_id != user_id:
            raise RepositoryNotFoundError("Repository not found")
        return repository

    async def access_token(self, user_id: str) -> str:
        token = await self._accounts.get_access_token(user_id)
        if not token:
            raise GitHubNotConnectedError("GitHub account not connected")
        return token

    # ── Triggers ─────────────────────────────────────────────────────────

    async def trigger(
        self,
        repository_id: str,
        pr_number: int,
        user_id: str,
        provider_id: str | None = None,
    ) -> Review:
        """Manually request a review.  Always creates a new review.

        Raises:
            RepositoryNotFoundError: Repository missing or not the user's.
            GitHubNotConnectedError: No GitHub token for the user.
            InvalidRepositoryNameError: Stored full name is malformed.
            ConfigurationError: The provider choice cannot be satisfied.
            UpstreamError: GitHub rejected the PR metadata fetch.
        """
        repository = await self.owned_repository(repository_id, user_id)
        token = await self.access_token(user_id)
        owner, repo = split_full_name(repository.full_name)
        self._registry.resolve(provider_id)

        pr = await self._github.get_pull_request(token, owner, repo, pr_number)

        review = await self._reviews.create(
            Review(
                repository_id=repository.id,
                user_id=user_id,
                pr_number=pr.number,
                pr_title=pr.title,
                pr_url=pr.html_url,
                provider_id=provider_id,
            )
        )
        self._queue.schedule(ReviewJob.for_review(review))

        logger.info(
            "review_triggered",
            review_id=review.id,
            repo=repository.full_name,
            pr_number=pr.number,
            provider=provider_id,
            source="manual",
        )
        return review

    async def trigger_automatic(
        self,
        repository: Repository,
        pr_number: int,
        pr_title: str,
        pr_url: str,
    ) -> TriggerOutcome:
        """Request a review on behalf of the repository owner (e.g. from a webhook).

        Declines when the latest review for the PR is still PENDING or
        PROCESSING; the check and the insert are atomic in the store.
        """
        review = await self._reviews.create_unless_active(
            Review(
                repository_id=repository.id,
                user_id=repository.user_id,
                pr_number=pr_number,
                pr_title=pr_title,
                pr_url=pr_url,
            )
        )
        if review is None:
            logger.info("review_already_in_progress", repo=repository.full_name, pr_number=pr_number)
            return TriggerOutcome(created=False, message=MESSAGE_IN_PROGRESS)

        self._queue.schedule(ReviewJob.for_review(review))
        logger.info(
            "review_triggered",
            review_id=review.id,
            repo=repository.full_name,
            pr_number=pr_number,
            source="automatic",
        )
        return TriggerOutcome(created=True, message=MESSAGE_TRIGGERED, review_id=review.id)

    # ── Read side ────────────────────────────────────────────────────────

    async def get_review(self, review_id: str, user_id: str) -> Review:
        review = await self._reviews.get(review_id)
        if review is None or review.user_id != user_id:
            raise ReviewNotFoundError("Review not found")
        return review

    async def list_reviews(
        self,
        user_id: str,
        repository_id: str | None = None,
        limit: int = DEFAULT_REVIEW_LIST_LIMIT,
    ) -> list[Review]:
        limit = max(1, min(limit, MAX_REVIEW_LIST_LIMIT))
        return await self._reviews.list_for_user(user_id, repository_id, limit)

    async def latest_for_pr(self, repository_id: str, pr_number: int, user_id: str) -> Review | None:
        review = await self._reviews.latest_for_pr(repository_id, pr_number)
        if review is None or review.user_id != user_id:
            return None
        return review

    async def list_pull_requests(
        self,
        repository_id: str,
        user_id: str,
        state: str = "open",
    ) -> list[PullRequestSummary]:
        repository = await self.owned_repository(repository_id, user_id)
        token = await self.access_token(user_id)
        owner, repo = split_full_name(repository.full_name)

        pulls = await self._github.list_pull_requests(token, owner, repo, state)
        latest = await self._reviews.latest_for_prs(repository.id, [pr.number for pr in pulls])
        return [_summarize(pr, latest.get(pr.number)) for pr in pulls]

    async def get_pull_request(self, repository_id: str, pr_number: int, user_id: str) -> PullRequestSummary:
        repository = await self.owned_repository(repository_id, user_id)
        token = await self.access_token(user_id)
        owner, repo = split_full_name(repository.full_name)

        pr = await self._github.get_pull_request(token, owner, repo, pr_number)
        return _summarize(pr, await self._reviews.latest_for_pr(repository.id, pr_number))
