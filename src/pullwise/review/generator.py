"""Review generator — PR diff in, validated structured review out."""

from __future__ import annotations

import json
import time
from collections.abc import Sequence

from pydantic import ValidationError

from pullwise.core.constants import EMPTY_DIFF_SUMMARY, REVIEW_MAX_TOKENS, REVIEW_TEMPERATURE
from pullwise.core.exceptions import (
    EmptyResponseError,
    MalformedResponseError,
    SchemaViolationError,
)
from pullwise.core.logging import get_logger
from pullwise.core.models import PullRequestFile, ReviewAnalysis, ReviewResult
from pullwise.llm.registry import ProviderRegistry
from pullwise.review.prompts import build_diff_section, build_messages

logger = get_logger(__name__)


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_review_response(content: str | None, ai_model: str) -> ReviewResult:
    """Parse and validate a provider's raw answer.

    Validation is all-or-nothing: one bad comment rejects the whole review.

    Raises:
        EmptyResponseError: No content at all.
        MalformedResponseError: Content is not JSON.
        SchemaViolationError: JSON does not match the review schema.
    """
    if not content or not content.strip():
        raise EmptyResponseError("No response from AI")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"AI response is not valid JSON: {e}") from e

    try:
        analysis = ReviewAnalysis.model_validate(data)
    except ValidationError as e:
        raise SchemaViolationError(
            f"AI response does not match review schema: {_describe_validation_error(e)}"
        ) from e

    return ReviewResult(
        summary=analysis.summary,
        risk_score=analysis.risk_score,
        comments=analysis.comments,
        ai_model=ai_model,
    )


class ReviewGenerator:
    """Builds the prompt, calls the resolved provider, validates the answer."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    async def generate(
        self,
        pr_title: str,
        files: Sequence[PullRequestFile],
        provider_id: str | None = None,
    ) -> ReviewResult:
        """Produce a review for a PR.

        Files without a patch (binary, oversized) contribute nothing.  When no
        file has a patch the provider is not called and a fixed zero-risk
        result is returned.
        """
        provider = self._registry.resolve(provider_id)

        reviewable = [f for f in files if f.patch]
        if not reviewable:
            logger.info("empty_diff_short_circuit", files=len(files), provider=provider.id)
            return ReviewResult(
                summary=EMPTY_DIFF_SUMMARY,
                risk_score=0,
                comments=[],
                ai_model=provider.name,
            )

        messages = build_messages(pr_title, build_diff_section(reviewable))
        llm = self._registry.client_for(provider)

        # The estimate is informational; a tokenizer failure must not fail the review
        prompt_tokens: int | None
        try:
            prompt_tokens = await llm.count_tokens(messages[0]["content"] + messages[1]["content"])
        except Exception as e:
            logger.warning("token_estimate_failed", provider=provider.id, error=str(e))
            prompt_tokens = None
        logger.info(
            "review_generation_started",
            provider=provider.id,
            model=provider.model,
            files=len(reviewable),
            skipped_files=len(files) - len(reviewable),
            estimated_prompt_tokens=prompt_tokens,
        )

        start_ms = time.perf_counter_ns() // 1_000_000
        response = await llm.complete(
            messages,
            temperature=REVIEW_TEMPERATURE,
            max_tokens=REVIEW_MAX_TOKENS,
            response_format={"type": "json_object"},
        )
        result = parse_review_response(response.content, ai_model=provider.name)

        logger.info(
            "review_generation_complete",
            provider=provider.id,
            risk_score=result.risk_score,
            comments=len(result.comments),
            duration_ms=(time.perf_counter_ns() // 1_000_000) - start_ms,
        )
        return result
