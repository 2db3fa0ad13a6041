"""Webhook endpoint — receives GitHub events."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request

from pullwise.api.dependencies import Services, get_services
from pullwise.api.schemas import WebhookResponse
from pullwise.core.exceptions import WebhookSignatureError
from pullwise.core.logging import get_logger
from pullwise.github.webhook import PULL_REQUEST_EVENT, parse_webhook_event, verify_signature

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def _ignored(message: str) -> WebhookResponse:
    return WebhookResponse(status="ignored", message=message)


@router.post("/github", response_model=WebhookResponse)
async def github_webhook(request: Request, services: Services = Depends(get_services)) -> WebhookResponse:
    """Receive GitHub deliveries and trigger automatic reviews.

    Opened, synchronized and reopened non-draft PRs of a connected
    repository get a review unless one is already PENDING or PROCESSING.
    Every validly signed delivery is answered with 200 so GitHub does not
    retry; only a bad signature is rejected.
    """
    # Read raw body for signature verification
    body = await request.body()

    secret = services.settings.github_webhook_secret
    if secret is not None and secret.get_secret_value():
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_signature(body, signature, secret.get_secret_value()):
            logger.warning("webhook_signature_invalid")
            raise WebhookSignatureError("Invalid webhook signature")
    else:
        logger.warning("webhook_signature_unchecked", reason="no webhook secret configured")

    event_type = request.headers.get("X-GitHub-Event", "")
    if event_type != PULL_REQUEST_EVENT:
        logger.info("webhook_ignored", event_type=event_type)
        return _ignored("Event ignored")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    event = parse_webhook_event(event_type, payload)
    if event is None:
        return _ignored("Action ignored")
    if event.draft:
        logger.info("webhook_draft_ignored", repo=event.repo_full_name, pr_number=event.pr_number)
        return _ignored("Draft PR ignored")

    repository = await services.store.get_repository_by_github_id(event.github_repo_id)
    if repository is None:
        logger.info("webhook_repository_not_connected", github_repo_id=event.github_repo_id)
        return _ignored("Repository not connected")

    logger.info(
        "webhook_received",
        action=event.action,
        repo=event.repo_full_name,
        pr_number=event.pr_number,
        sender=event.sender,
    )

    outcome = await services.reviews.trigger_automatic(
        repository,
        event.pr_number,
        event.pr_title,
        event.pr_url,
    )
    return WebhookResponse(
        status="accepted" if outcome.created else "ignored",
        message=outcome.message,
        review_id=outcome.review_id,
    )
