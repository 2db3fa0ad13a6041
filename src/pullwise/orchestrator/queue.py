"""In-process job queue between the trigger surface and the review worker."""

from __future__ import annotations

import asyncio

from pullwise.core.logging import get_logger
from pullwise.core.models import ReviewJob

logger = get_logger(__name__)


class JobQueue:
    """Fire-and-forget queue of review jobs.

    Each ``schedule`` call delivers its job at most once.  Jobs live in
    memory only; PENDING reviews that outlive a restart are re-queued by the
    worker on start-up.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ReviewJob] = asyncio.Queue()
        self._timers: set[asyncio.TimerHandle] = set()

    def schedule(self, job: ReviewJob, delay: float = 0.0) -> None:
        """Enqueue ``job``, optionally after ``delay`` seconds."""
        if delay <= 0:
            self._queue.put_nowait(job)
        else:
            loop = asyncio.get_running_loop()
            handle: asyncio.TimerHandle

            def _deliver() -> None:
                self._timers.discard(handle)
                self._queue.put_nowait(job)

            handle = loop.call_later(delay, _deliver)
            self._timers.add(handle)

        logger.info("review_job_scheduled", review_id=job.review_id, delay=delay)

    async def get(self) -> ReviewJob:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every delivered job has been marked done."""
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()

    def cancel_delayed(self) -> None:
        """Drop jobs whose delay has not elapsed yet."""
        for handle in self._timers:
            handle.cancel()
        self._timers.clear()
