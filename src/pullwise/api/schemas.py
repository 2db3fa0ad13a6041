"""API request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from pullwise.core.models import Review, ReviewComment
from pullwise.linear.client import LinearIssue


class TriggerReviewRequest(BaseModel):
    """Request to review a Pull Request of a connected repository."""

    repository_id: str = Field(..., description="Internal repository id")
    pr_number: int = Field(..., ge=1, description="Pull request number", examples=[42])
    provider_id: str | None = Field(
        default=None,
        description="AI provider to use; the highest-priority configured one when omitted",
        examples=["openai", "gemini", "qwen"],
    )


class TriggerReviewResponse(BaseModel):
    review_id: str


class ReviewResponse(BaseModel):
    """A review as seen by its owner.  Result fields are set only once COMPLETED."""

    id: str
    repository_id: str
    pr_number: int
    pr_title: str
    pr_url: str
    status: str
    provider_id: str | None = None
    summary: str | None = None
    risk_score: int | None = None
    comments: list[ReviewComment] | None = None
    ai_model: str | None = None
    error: str | None = None
    created_at: datetime

    @classmethod
    def from_review(cls, review: Review) -> ReviewResponse:
        return cls.model_validate(review.model_dump(mode="json"))


class WebhookResponse(BaseModel):
    """Acknowledgement for a GitHub delivery.  Always 200 once the signature checks out."""

    status: str
    message: str
    review_id: str | None = None


class LinearApiKeyRequest(BaseModel):
    api_key: str | None = Field(default=None, description="Linear personal API key; null disconnects")


class LinearStatusResponse(BaseModel):
    connected: bool


class LinearIssueResponse(BaseModel):
    issue: LinearIssue | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str = "0.1.0"
    services: dict[str, str] = {}
    providers: list[str] = []


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: str = ""
