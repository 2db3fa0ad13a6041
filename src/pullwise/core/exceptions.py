"""Domain exception hierarchy.

All exceptions inherit from ``PullwiseError`` so callers can catch broadly
or narrowly as needed.  FastAPI exception handlers map these to HTTP responses.
"""

from __future__ import annotations


class PullwiseError(Exception):
    """Base exception for all Pullwise errors."""

    def __init__(self, message: str = "", *, detail: str = "") -> None:
        self.detail = detail or message
        super().__init__(message)


# ── Configuration ────────────────────────────────────────────────────────────


class ConfigurationError(PullwiseError):
    """The process is not configured for the requested operation."""


class NoProviderConfiguredError(ConfigurationError):
    """No AI provider has a credential configured."""

    def __init__(self) -> None:
        super().__init__(
            "No AI provider configured. Set PULLWISE_OPENAI_API_KEY, "
            "PULLWISE_GEMINI_API_KEY, or PULLWISE_QWEN_API_KEY."
        )


class UnknownProviderError(ConfigurationError):
    """The requested provider id is not in the provider table."""

    def __init__(self, provider_id: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"Unknown AI provider: {provider_id}")


class MissingCredentialError(ConfigurationError):
    """The requested provider exists but has no credential configured."""

    def __init__(self, provider_name: str, setting: str) -> None:
        self.provider_name = provider_name
        self.setting = setting
        super().__init__(
            f"API key not configured for provider: {provider_name} (PULLWISE_{setting.upper()})"
        )


# ── Preconditions ────────────────────────────────────────────────────────────


class PreconditionError(PullwiseError):
    """A precondition of a review operation does not hold."""


class NotFoundError(PreconditionError):
    """A referenced record does not exist or is not visible to the caller."""


class RepositoryNotFoundError(NotFoundError):
    """Repository missing or owned by another user."""


class ReviewNotFoundError(NotFoundError):
    """Review missing or owned by another user."""


class PreconditionFailedError(PreconditionError):
    """The caller is not in a state that allows the operation."""


class GitHubNotConnectedError(PreconditionFailedError):
    """No GitHub access token is stored for the user."""


class InvalidRepositoryNameError(PreconditionError):
    """A repository full name is not of the form ``owner/repo``."""


# ── Upstream services ────────────────────────────────────────────────────────


class UpstreamError(PullwiseError):
    """Non-2xx response from the source-control host."""

    def __init__(self, status: int, context: str = "") -> None:
        self.status = status
        super().__init__(f"GitHub API error: {status}", detail=context or f"HTTP {status}")


class LinearError(PullwiseError):
    """Error communicating with the Linear API."""


# ── LLM ──────────────────────────────────────────────────────────────────────


class LLMError(PullwiseError):
    """Transport-level error from the LLM provider."""


class AIResponseError(LLMError):
    """The provider answered, but the answer is unusable."""


class EmptyResponseError(AIResponseError):
    """The provider returned no content."""


class MalformedResponseError(AIResponseError):
    """The provider returned content that is not valid JSON."""


class SchemaViolationError(AIResponseError):
    """The provider returned JSON that does not match the review schema."""


# ── Review state ─────────────────────────────────────────────────────────────


class InvalidTransitionError(PullwiseError):
    """A status change that the review state machine does not allow."""

    def __init__(self, review_id: str, current: str, target: str) -> None:
        self.review_id = review_id
        self.current = current
        self.target = target
        super().__init__(f"Review {review_id} cannot move from {current} to {target}")


# ── Webhooks ─────────────────────────────────────────────────────────────────


class WebhookSignatureError(PullwiseError):
    """Webhook signature missing or not matching the configured secret."""
