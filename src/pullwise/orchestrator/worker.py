"""Review worker — drives one review from PENDING to a terminal state."""

from __future__ import annotations

import asyncio
import time

from pullwise.core.constants import (
    ERROR_INVALID_REPO_NAME,
    ERROR_NO_ACCESS_TOKEN,
    ERROR_NO_REPOSITORY,
    ERROR_UNKNOWN,
)
from pullwise.core.exceptions import (
    InvalidRepositoryNameError,
    InvalidTransitionError,
    ReviewNotFoundError,
)
from pullwise.core.logging import get_logger, review_context
from pullwise.core.models import Review, ReviewJob, ReviewStatus
from pullwise.github.client import GitHubClient, split_full_name
from pullwise.orchestrator.queue import JobQueue
from pullwise.review.generator import ReviewGenerator
from pullwise.store.base import AccountStore, RepositoryStore, ReviewStore

logger = get_logger(__name__)


class ReviewWorker:
    """Consumes review jobs from the queue with bounded concurrency.

    A job's failure is always recorded on its review and never escapes the
    consumer loop.
    """

    def __init__(
        self,
        reviews: ReviewStore,
        repositories: RepositoryStore,
        accounts: AccountStore,
        github: GitHubClient,
        generator: ReviewGenerator,
        queue: JobQueue,
        *,
        concurrency: int = 4,
    ) -> None:
        self._reviews = reviews
        self._repositories = repositories
        self._accounts = accounts
        self._github = github
        self._generator = generator
        self._queue = queue
        self._concurrency = max(1, concurrency)
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def _fail(self, review_id: str, message: str) -> Review:
        review = await self._reviews.transition(review_id, ReviewStatus.FAILED, error=message)
        logger.warning("review_failed", error=message)
        return review

    async def process(self, review_id: str) -> Review | None:
        """Run one review to completion.

        Steps, in order:
          1. PENDING → PROCESSING, persisted before any external call.
          2. Load the repository.
          3. Resolve the owner's GitHub token.
          4. Split the repository full name.
          5. Fetch PR files and fresh PR metadata concurrently.
          6. Generate the review with the stored provider choice.
          7. → COMPLETED with all result fields in one update.
        Any failure in 2–7 ends in FAILED with a message.

        Step 1 is conditional: a review that is missing or no longer PENDING
        is skipped, so a duplicate delivery of the same job is a no-op.

        Returns:
            The review in its terminal state, or None if the job was skipped.
        """
        with review_context(review_id):
            try:
                review = await self._reviews.transition(review_id, ReviewStatus.PROCESSING)
            except (ReviewNotFoundError, InvalidTransitionError) as e:
                logger.warning("review_job_skipped", reason=str(e))
                return None

            logger.info("review_processing_started", pr_number=review.pr_number)
            start_ms = time.perf_counter_ns() // 1_000_000

            try:
                repository = await self._repositories.get_repository(review.repository_id)
                if repository is None:
                    return await self._fail(review_id, ERROR_NO_REPOSITORY)

                token = await self._accounts.get_access_token(review.user_id)
                if not token:
                    return await self._fail(review_id, ERROR_NO_ACCESS_TOKEN)

                try:
                    owner, repo = split_full_name(repository.full_name)
                except InvalidRepositoryNameError:
                    return await self._fail(review_id, ERROR_INVALID_REPO_NAME)

                files, pr = await asyncio.gather(
                    self._github.get_pull_request_files(token, owner, repo, review.pr_number),
                    self._github.get_pull_request(token, owner, repo, review.pr_number),
                )

                result = await self._generator.generate(pr.title, files, review.provider_id)
                completed = await self._reviews.transition(review_id, ReviewStatus.COMPLETED, result=result)

            except Exception as e:
                logger.error("review_processing_error", error=str(e), error_type=type(e).__name__)
                return await self._fail(review_id, str(e) or ERROR_UNKNOWN)

            logger.info(
                "review_processing_complete",
                risk_score=completed.risk_score,
                comments=len(completed.comments or []),
                ai_model=completed.ai_model,
                duration_ms=(time.perf_counter_ns() // 1_000_000) - start_ms,
            )
            return completed

    async def _consume(self, slot: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process(job.review_id)
            except Exception:
                # Only reachable when recording FAILED itself failed
                logger.exception("review_job_crashed", review_id=job.review_id, slot=slot)
            finally:
                self._queue.task_done()

    async def recover_pending(self) -> int:
        """Re-queue reviews left PENDING by a previous process.  Returns the count."""
        recovered = 0
        for review_id in await self._reviews.ids_with_status(ReviewStatus.PENDING):
            review = await self._reviews.get(review_id)
            if review is None:
                continue
            self._queue.schedule(ReviewJob.for_review(review))
            recovered += 1
        if recovered:
            logger.info("pending_reviews_recovered", count=recovered)
        return recovered

    async def start(self, *, recover_pending: bool = False) -> None:
        """Spawn the consumer tasks (idempotent)."""
        if self.running:
            return
        if recover_pending:
            await self.recover_pending()
        self._tasks = [
            asyncio.create_task(self._consume(slot), name=f"review-worker-{slot}")
            for slot in range(self._concurrency)
        ]
        logger.info("review_worker_started", concurrency=self._concurrency)

    async def stop(self) -> None:
        """Cancel consumers.  Jobs mid-flight stay PROCESSING."""
        self._queue.cancel_delayed()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("review_worker_stopped")
