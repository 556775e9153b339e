"""
Event Classifier component.

Turns the raw event that triggered the run into a typed ``PullRequestEvent``.
Only ``pull_request`` events are supported.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from review_apps.exceptions import InvalidEventPayloadError, UnsupportedEventError
from review_apps.models.pr_event import PullRequestEvent
from review_apps.utils.logging import get_logger

logger = get_logger(__name__)

VALID_EVENT = "pull_request"


def _require(mapping: Dict[str, Any], key: str, where: str) -> Any:
    value = mapping.get(key) if isinstance(mapping, dict) else None
    if value is None:
        raise InvalidEventPayloadError(f"Event payload is missing {where}.{key}")
    return value


def classify_event(
    event_name: Optional[str],
    payload: Dict[str, Any],
    pipeline_id: str,
    repository: Optional[str] = None,
) -> PullRequestEvent:
    """
    Validate the event type and extract the pull request intent.

    Args:
        event_name: Event type tag, e.g. ``pull_request``
        payload: Webhook payload of the event
        pipeline_id: Pipeline the review app lives in
        repository: ``owner/name`` of the base repository, used when the
            payload does not carry it

    Returns:
        The classified event

    Raises:
        UnsupportedEventError: If the event is not ``pull_request``
        InvalidEventPayloadError: If required fields are missing or malformed
    """
    if event_name != VALID_EVENT:
        raise UnsupportedEventError(event_name)

    pull_request = _require(payload, "pull_request", "payload")
    head = _require(pull_request, "head", "pull_request")
    head_repo = _require(head, "repo", "pull_request.head")
    base_repo = (pull_request.get("base") or {}).get("repo") or payload.get("repository") or {}

    owner, repo_name = _base_repository_name(payload, base_repo, repository)

    head_is_fork = bool(head_repo.get("fork"))
    # A head repo that is a fork of *another* repository means secrets are
    # withheld; a PR between branches of a forked base repo is not.
    is_fork = head_is_fork and head_repo.get("id") != base_repo.get("id")

    try:
        return PullRequestEvent(
            action=_require(payload, "action", "payload"),
            branch=_require(head, "ref", "pull_request.head"),
            commit_sha=_require(head, "sha", "pull_request.head"),
            pr_number=_require(pull_request, "number", "pull_request"),
            repo_id=_require(head_repo, "id", "pull_request.head.repo"),
            is_fork=is_fork,
            base_is_fork=bool(base_repo.get("fork")),
            repo_url=_require(head_repo, "html_url", "pull_request.head.repo"),
            owner=owner,
            repo_name=repo_name,
            pipeline_id=pipeline_id,
        )
    except ValidationError as e:
        raise InvalidEventPayloadError(f"Invalid pull_request event payload: {e}") from e


def _base_repository_name(
    payload: Dict[str, Any],
    base_repo: Dict[str, Any],
    repository: Optional[str],
) -> tuple[str, str]:
    full_name = base_repo.get("full_name") or (payload.get("repository") or {}).get("full_name")
    full_name = full_name or repository
    if not full_name or "/" not in full_name:
        raise InvalidEventPayloadError("Cannot determine the base repository owner/name")
    owner, _, name = full_name.partition("/")
    return owner, name


def load_event(
    event_name: Optional[str],
    event_path: Optional[str],
    pipeline_id: str,
    repository: Optional[str] = None,
) -> PullRequestEvent:
    """
    Classify the event described by the runner's event payload file.

    Args:
        event_name: Value of ``GITHUB_EVENT_NAME``
        event_path: Value of ``GITHUB_EVENT_PATH``
        pipeline_id: Pipeline the review app lives in
        repository: Value of ``GITHUB_REPOSITORY``
    """
    if event_name != VALID_EVENT:
        raise UnsupportedEventError(event_name)
    if not event_path:
        raise InvalidEventPayloadError("No event payload path provided")

    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidEventPayloadError(f"Cannot read event payload {event_path}: {e}") from e

    event = classify_event(event_name, payload, pipeline_id, repository)
    logger.debug(f"Deploy info: {event.model_dump()}")
    return event
