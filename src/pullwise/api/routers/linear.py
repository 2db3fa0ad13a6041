"""Linear endpoints — per-user API key and PR issue badges."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from pullwise.api.dependencies import Services, get_current_user_id, get_services
from pullwise.api.schemas import LinearApiKeyRequest, LinearIssueResponse, LinearStatusResponse
from pullwise.core.logging import get_logger
from pullwise.linear.client import LinearIssue, PullRequestRef

logger = get_logger(__name__)

router = APIRouter(tags=["Linear"])


@router.put("/linear/api-key", response_model=LinearStatusResponse)
async def save_api_key(
    request: LinearApiKeyRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> LinearStatusResponse:
    """Store (or, with a null/empty key, remove) the caller's Linear API key."""
    api_key = (request.api_key or "").strip() or None
    await services.store.save_linear_api_key(user_id, api_key)
    logger.info("linear_api_key_saved", user_id=user_id, connected=api_key is not None)
    return LinearStatusResponse(connected=api_key is not None)


@router.get("/linear/status", response_model=LinearStatusResponse)
async def linear_status(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> LinearStatusResponse:
    return LinearStatusResponse(connected=bool(await services.store.get_linear_api_key(user_id)))


@router.get("/repositories/{repository_id}/pulls/{pr_number}/linear-issue", response_model=LinearIssueResponse)
async def pull_request_issue(
    repository_id: str,
    pr_number: int,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> LinearIssueResponse:
    """The Linear issue referenced by a PR's title or branch, if any."""
    pr = await services.reviews.get_pull_request(repository_id, pr_number, user_id)
    api_key = await services.store.get_linear_api_key(user_id)
    if not api_key:
        return LinearIssueResponse()

    issues = await services.linear.issues_for_prs(
        api_key, [PullRequestRef(number=pr.number, title=pr.title, head_ref=pr.head_ref)]
    )
    return LinearIssueResponse(issue=issues.get(pr.number))


@router.get("/repositories/{repository_id}/linear-issues", response_model=dict[int, LinearIssue])
async def pull_request_issues(
    repository_id: str,
    state: Literal["open", "closed", "all"] = Query(default="open"),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services),
) -> dict[int, LinearIssue]:
    """Linear issues for every listed PR, keyed by PR number."""
    await services.reviews.owned_repository(repository_id, user_id)
    api_key = await services.store.get_linear_api_key(user_id)
    if not api_key:
        return {}

    pulls = await services.reviews.list_pull_requests(repository_id, user_id, state)
    refs = [PullRequestRef(number=pr.number, title=pr.title, head_ref=pr.head_ref) for pr in pulls]
    return await services.linear.issues_for_prs(api_key, refs)
