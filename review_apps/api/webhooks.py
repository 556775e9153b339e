"""
Webhook endpoints for GitHub pull request events.
"""

import asyncio
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request

from review_apps.config import get_settings
from review_apps.exceptions import InvalidEventPayloadError
from review_apps.models.api_response import WebhookResponse
from review_apps.models.outcome import RunOutcome
from review_apps.models.pr_event import PullRequestEvent
from review_apps.runner import run_reconciliation
from review_apps.services.event_classifier import VALID_EVENT, classify_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

# One lock per (pipeline, PR) so runs for the same PR never overlap
_pr_locks: Dict[Tuple[str, int], asyncio.Lock] = {}
# Runs holding or waiting on each lock; the lock is dropped when none remain
_pr_lock_users: Dict[Tuple[str, int], int] = {}


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Verify the ``X-Hub-Signature-256`` header of a GitHub delivery.

    Args:
        payload: Raw request payload
        signature: Header value, ``sha256=<hexdigest>``
        secret: Shared webhook secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not signature or not secret:
        return False

    expected_signature = "sha256=" + hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()

    return hmac.compare_digest(signature, expected_signature)


async def reconcile_event(event: PullRequestEvent) -> RunOutcome:
    """
    Run the lifecycle for an event, serialized per pull request.

    Args:
        event: Classified pull request event
    """
    key = (event.pipeline_id, event.pr_number)
    lock = _pr_locks.setdefault(key, asyncio.Lock())
    _pr_lock_users[key] = _pr_lock_users.get(key, 0) + 1
    try:
        async with lock:
            outcome = await run_reconciliation(event, get_settings())
    finally:
        _pr_lock_users[key] -= 1
        if not _pr_lock_users[key]:
            del _pr_lock_users[key]
            del _pr_locks[key]
    logger.info(f"Run for PR #{event.pr_number} finished: {outcome.status.value}")
    return outcome


@router.post("/github", response_model=WebhookResponse)
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: str = Header(None, alias="X-GitHub-Event"),
    x_hub_signature: str = Header(None, alias="X-Hub-Signature-256"),
) -> WebhookResponse:
    """
    Receive a GitHub webhook delivery and reconcile the PR's review app.

    This endpoint:
    1. Validates the webhook signature
    2. Ignores events other than ``pull_request``
    3. Classifies the payload, rejecting invalid ones with 400
    4. Returns immediately and reconciles in a background task
    """
    settings = get_settings()
    payload = await request.body()

    if not verify_webhook_signature(payload, x_hub_signature, settings.webhook_secret):
        logger.warning("Invalid webhook signature received")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if x_github_event != VALID_EVENT:
        logger.info(f"Ignoring event type: {x_github_event}")
        return WebhookResponse(
            status="ignored",
            message=f"Event type {x_github_event} not processed"
        )

    try:
        payload_json: Dict[str, Any] = await request.json()
        event = classify_event(x_github_event, payload_json, settings.heroku_pipeline_id)
    except (ValueError, InvalidEventPayloadError) as e:
        logger.error(f"Invalid PR event payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid PR event payload")

    logger.info(f"Received {event.action.value} webhook for PR #{event.pr_number}")

    background_tasks.add_task(reconcile_event, event)

    return WebhookResponse(
        status="accepted",
        message=f"PR event for #{event.pr_number} accepted for processing"
    )
