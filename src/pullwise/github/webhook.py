"""GitHub webhook handler with HMAC-SHA256 signature verification."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

from pullwise.core.constants import ACTIONABLE_PR_ACTIONS
from pullwise.core.logging import get_logger
from pullwise.github.schemas import WebhookEvent

logger = get_logger(__name__)

PULL_REQUEST_EVENT = "pull_request"


def compute_signature(payload: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` header value GitHub would send for ``payload``."""
    digest = hmac.new(
        key=secret.encode("utf-8"),
        msg=payload,
        digestmod=hashlib.sha256,
    ).hexdigest()
    return f"sha256={digest}"


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Verify GitHub webhook HMAC-SHA256 signature.

    Args:
        payload: Raw request body bytes.
        signature: Value of X-Hub-Signature-256 header (e.g. 'sha256=abc...').
        secret: Webhook secret configured in GitHub.

    Returns:
        True if signature is valid, False otherwise (including when absent).
    """
    if not signature or not signature.startswith("sha256="):
        return False
    return hmac.compare_digest(compute_signature(payload, secret), signature)


def parse_webhook_event(event_type: str, payload: dict[str, Any]) -> WebhookEvent | None:
    """Parse a webhook payload into a WebhookEvent if actionable.

    Only ``pull_request`` events whose action is opened, synchronize or
    reopened are actionable.  Draft PRs are still returned (with
    ``draft=True``) so the caller can acknowledge them explicitly.

    Args:
        event_type: Value of X-GitHub-Event header.
        payload: Parsed JSON body.

    Returns:
        WebhookEvent if this is an actionable PR event, None otherwise.
    """
    action = payload.get("action", "")

    if event_type != PULL_REQUEST_EVENT or action not in ACTIONABLE_PR_ACTIONS:
        logger.debug("ignoring_webhook", event_type=event_type, action=action)
        return None

    pr = payload.get("pull_request") or {}
    repo = payload.get("repository") or {}
    sender = payload.get("sender") or {}

    return WebhookEvent(
        action=action,
        sender=sender.get("login", ""),
        github_repo_id=repo.get("id", 0),
        repo_full_name=repo.get("full_name", ""),
        pr_number=pr.get("number", payload.get("number", 0)),
        pr_title=pr.get("title", ""),
        pr_url=pr.get("html_url", ""),
        draft=bool(pr.get("draft", False)),
    )
