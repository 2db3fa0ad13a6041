"""Review status state machine.

    PENDING ──► PROCESSING ──► COMPLETED
                          └──► FAILED

PENDING is the only initial state and the two right-hand states are terminal.
Every store applies status changes through ``apply_transition`` so no backend
can write an out-of-order status.
"""

from __future__ import annotations

from pullwise.core.exceptions import InvalidTransitionError
from pullwise.core.models import Review, ReviewResult, ReviewStatus

ALLOWED_TRANSITIONS: dict[ReviewStatus, frozenset[ReviewStatus]] = {
    ReviewStatus.PENDING: frozenset({ReviewStatus.PROCESSING}),
    ReviewStatus.PROCESSING: frozenset({ReviewStatus.COMPLETED, ReviewStatus.FAILED}),
    ReviewStatus.COMPLETED: frozenset(),
    ReviewStatus.FAILED: frozenset(),
}

TERMINAL_STATES: frozenset[ReviewStatus] = frozenset({ReviewStatus.COMPLETED, ReviewStatus.FAILED})
ACTIVE_STATES: frozenset[ReviewStatus] = frozenset({ReviewStatus.PENDING, ReviewStatus.PROCESSING})


def can_transition(current: ReviewStatus, target: ReviewStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def sources_for(target: ReviewStatus) -> frozenset[ReviewStatus]:
    """States from which ``target`` may be entered."""
    return frozenset(src for src, targets in ALLOWED_TRANSITIONS.items() if target in targets)


def apply_transition(
    review: Review,
    target: ReviewStatus,
    *,
    result: ReviewResult | None = None,
    error: str | None = None,
) -> Review:
    """Return a copy of ``review`` moved to ``target``.

    COMPLETED takes its four result fields from ``result``; FAILED takes
    ``error``.  The returned model is fully re-validated, so a COMPLETED
    without a result (or a FAILED without an error) is rejected here.

    Raises:
        InvalidTransitionError: If the state table forbids the move.
    """
    if not can_transition(review.status, target):
        raise InvalidTransitionError(review.id, review.status.value, target.value)

    data = review.model_dump()
    data["status"] = target
    if target == ReviewStatus.COMPLETED:
        if result is None:
            raise ValueError("COMPLETED transition requires a result")
        data.update(
            summary=result.summary,
            risk_score=result.risk_score,
            comments=[c.model_dump() for c in result.comments],
            ai_model=result.ai_model,
        )
    elif target == ReviewStatus.FAILED:
        data["error"] = error
    return Review.model_validate(data)
