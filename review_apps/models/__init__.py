"""Data models for the review app lifecycle manager."""

from .api_response import WebhookResponse
from .error import ErrorRecord
from .outcome import (
    AlreadyExists,
    Created,
    CreateResult,
    LifecyclePhase,
    PhaseRecord,
    RunOutcome,
    RunStatus,
)
from .pr_event import PullRequestAction, PullRequestEvent
from .review_app import (
    AppReference,
    Build,
    BuildStatus,
    ResolvedApplication,
    ReviewApp,
    ReviewAppCreateRequest,
    ReviewAppStatus,
    SourceBlob,
)

__all__ = [
    # PR event models
    "PullRequestAction",
    "PullRequestEvent",
    # Platform models
    "AppReference",
    "Build",
    "BuildStatus",
    "ResolvedApplication",
    "ReviewApp",
    "ReviewAppCreateRequest",
    "ReviewAppStatus",
    "SourceBlob",
    # Run models
    "AlreadyExists",
    "Created",
    "CreateResult",
    "LifecyclePhase",
    "PhaseRecord",
    "RunOutcome",
    "RunStatus",
    # Error models
    "ErrorRecord",
    # API response models
    "WebhookResponse",
]
