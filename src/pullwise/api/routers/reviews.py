"""Review endpoints — trigger, poll and list reviews."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from pullwise.api.dependencies import Services, get_current_user_id, get_review_service, get_services
from pullwise.api.schemas import ReviewResponse, TriggerReviewRequest, TriggerReviewResponse
from pullwise.core.constants import DEFAULT_REVIEW_LIST_LIMIT, MAX_REVIEW_LIST_LIMIT
from pullwise.core.models import ProviderInfo
from pullwise.orchestrator.service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/providers", response_model=list[ProviderInfo])
async def list_providers(services: Services = Depends(get_services)) -> list[ProviderInfo]:
    """AI providers with credentials configured, in priority order."""
    return services.registry.list_available()


@router.post("", response_model=TriggerReviewResponse, status_code=201)
async def trigger_review(
    request: TriggerReviewRequest,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> TriggerReviewResponse:
    """Request a review of one Pull Request.

    The review is created PENDING and processed in the background; poll
    ``GET /reviews/{review_id}`` for the result.
    """
    review = await service.trigger(
        request.repository_id,
        request.pr_number,
        user_id,
        provider_id=request.provider_id,
    )
    return TriggerReviewResponse(review_id=review.id)


@router.get("", response_model=list[ReviewResponse])
async def list_reviews(
    repository_id: str | None = Query(default=None),
    limit: int = Query(default=DEFAULT_REVIEW_LIST_LIMIT, ge=1, le=MAX_REVIEW_LIST_LIMIT),
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> list[ReviewResponse]:
    """The caller's reviews, newest first."""
    reviews = await service.list_reviews(user_id, repository_id, limit)
    return [ReviewResponse.from_review(r) for r in reviews]


@router.get("/latest", response_model=ReviewResponse | None)
async def latest_review(
    repository_id: str = Query(...),
    pr_number: int = Query(..., ge=1),
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse | None:
    review = await service.latest_for_pr(repository_id, pr_number, user_id)
    return ReviewResponse.from_review(review) if review else None


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    return ReviewResponse.from_review(await service.get_review(review_id, user_id))
