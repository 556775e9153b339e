"""Pull request event data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class PullRequestAction(str, Enum):
    """Activity types of a GitHub ``pull_request`` event."""

    ASSIGNED = "assigned"
    AUTO_MERGE_DISABLED = "auto_merge_disabled"
    AUTO_MERGE_ENABLED = "auto_merge_enabled"
    CLOSED = "closed"
    CONVERTED_TO_DRAFT = "converted_to_draft"
    DEMILESTONED = "demilestoned"
    DEQUEUED = "dequeued"
    EDITED = "edited"
    ENQUEUED = "enqueued"
    LABELED = "labeled"
    LOCKED = "locked"
    MILESTONED = "milestoned"
    OPENED = "opened"
    READY_FOR_REVIEW = "ready_for_review"
    REOPENED = "reopened"
    REVIEW_REQUEST_REMOVED = "review_request_removed"
    REVIEW_REQUESTED = "review_requested"
    SYNCHRONIZE = "synchronize"
    UNASSIGNED = "unassigned"
    UNLABELED = "unlabeled"
    UNLOCKED = "unlocked"


class PullRequestEvent(BaseModel):
    """Typed intent of the pull request event that triggered the run."""

    model_config = ConfigDict(frozen=True)

    action: PullRequestAction
    branch: str
    commit_sha: str
    pr_number: int
    repo_id: int
    is_fork: bool  # head comes from a forked repository
    base_is_fork: bool = False  # base repository is itself a fork
    repo_url: str
    owner: str
    repo_name: str
    pipeline_id: str

    @property
    def is_closed(self) -> bool:
        return self.action == PullRequestAction.CLOSED

    @property
    def fork_repo_id(self) -> Optional[int]:
        """Repository id sent to the platform when the base repo is a fork."""
        return self.repo_id if self.base_is_fork else None
