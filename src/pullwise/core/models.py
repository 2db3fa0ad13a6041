"""Domain models shared across all Pullwise modules.

These Pydantic models define the contract between services.  Every module
communicates through these types — never raw dicts.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


# ── Enums ────────────────────────────────────────────────────────────────────


class ReviewStatus(StrEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CommentCategory(StrEnum):
    BUG = "bug"
    SECURITY = "security"
    PERFORMANCE = "performance"
    STYLE = "style"
    SUGGESTION = "suggestion"


class FileStatus(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


# ── PR / Diff Models ────────────────────────────────────────────────────────


class PullRequestFile(BaseModel):
    """A file entry from GitHub's GET /pulls/{number}/files endpoint.

    Fetched fresh for every processing pass and never persisted.
    """

    sha: str = ""
    filename: str
    previous_filename: str | None = None
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None  # Absent for binary or oversized files


# ── Review Models ────────────────────────────────────────────────────────────


class ReviewComment(BaseModel):
    """A single finding produced by the AI reviewer."""

    file: str
    line: int = Field(ge=1, strict=True)  # Line in the new version of the file
    severity: Severity
    category: CommentCategory
    message: str
    suggestion: str | None = None


class ReviewAnalysis(BaseModel):
    """The JSON object an AI provider must return.

    Keys follow the wire format (``riskScore``); Python code uses snake_case.
    """

    model_config = ConfigDict(populate_by_name=True)

    summary: str
    risk_score: int = Field(alias="riskScore", ge=0, le=100)
    comments: list[ReviewComment]

    @field_validator("risk_score", mode="before")
    @classmethod
    def _numeric_score_in_range(cls, value: Any) -> Any:
        # Bounds apply to the raw number; fractional scores are rounded only afterwards
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("riskScore must be a number")
        if not 0 <= value <= 100:
            raise ValueError("riskScore must be between 0 and 100")
        return round(value)


class ReviewResult(ReviewAnalysis):
    """A validated analysis plus the display name of the provider that made it."""

    ai_model: str


class Review(BaseModel):
    """The unit of work and its outcome.

    Result fields and ``error`` are mutually exclusive and only appear once
    the review has reached a terminal state.
    """

    id: str = Field(default_factory=_new_id)
    repository_id: str
    user_id: str
    pr_number: int
    pr_title: str
    pr_url: str
    status: ReviewStatus = ReviewStatus.PENDING
    provider_id: str | None = None

    summary: str | None = None
    risk_score: int | None = Field(default=None, ge=0, le=100)
    comments: list[ReviewComment] | None = None
    ai_model: str | None = None

    error: str | None = None

    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _check_result_exclusivity(self) -> Review:
        result_fields = (self.summary, self.risk_score, self.comments, self.ai_model)
        has_any_result = any(f is not None for f in result_fields)
        has_all_results = all(f is not None for f in result_fields)

        if self.status == ReviewStatus.COMPLETED:
            if not has_all_results or self.error is not None:
                raise ValueError("COMPLETED review needs every result field and no error")
        elif self.status == ReviewStatus.FAILED:
            if has_any_result or not self.error:
                raise ValueError("FAILED review needs an error and no result fields")
        elif has_any_result or self.error is not None:
            raise ValueError(f"{self.status} review cannot carry results or an error")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (ReviewStatus.COMPLETED, ReviewStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return self.status in (ReviewStatus.PENDING, ReviewStatus.PROCESSING)


class ReviewJob(BaseModel):
    """Job descriptor published to the worker queue."""

    review_id: str
    repository_id: str
    pr_number: int
    user_id: str
    provider_id: str | None = None

    @classmethod
    def for_review(cls, review: Review) -> ReviewJob:
        return cls(
            review_id=review.id,
            repository_id=review.repository_id,
            pr_number=review.pr_number,
            user_id=review.user_id,
            provider_id=review.provider_id,
        )


# ── External collaborator records ───────────────────────────────────────────


class Repository(BaseModel):
    """A GitHub repository connected by a user."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    github_id: int
    name: str
    full_name: str  # "owner/repo"
    is_private: bool = False
    html_url: str = ""


# ── AI Providers ─────────────────────────────────────────────────────────────


class ProviderInfo(BaseModel):
    """Public view of an available provider."""

    id: str
    name: str


class AIProvider(BaseModel):
    """A resolved, usable AI backend.  Immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    model: str
    base_url: str | None = None
    api_key: SecretStr


# ── Dashboard projections ───────────────────────────────────────────────────


class PullRequestSummary(BaseModel):
    """A live PR joined with the latest review recorded for it."""

    id: int
    number: int
    title: str
    state: str
    draft: bool = False
    html_url: str = ""
    author_login: str = ""
    author_avatar_url: str = ""
    head_ref: str = ""
    base_ref: str = ""
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    merged_at: datetime | None = None
    review: Review | None = None
