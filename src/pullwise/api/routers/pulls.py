"""Pull request endpoints — live GitHub data joined with review status."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from pullwise.api.dependencies import get_current_user_id, get_review_service
from pullwise.core.models import PullRequestSummary
from pullwise.orchestrator.service import ReviewService

router = APIRouter(prefix="/repositories/{repository_id}/pulls", tags=["Pull Requests"])


@router.get("", response_model=list[PullRequestSummary])
async def list_pull_requests(
    repository_id: str,
    state: Literal["open", "closed", "all"] = Query(default="open"),
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> list[PullRequestSummary]:
    return await service.list_pull_requests(repository_id, user_id, state)


@router.get("/{pr_number}", response_model=PullRequestSummary)
async def get_pull_request(
    repository_id: str,
    pr_number: int,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> PullRequestSummary:
    return await service.get_pull_request(repository_id, pr_number, user_id)
