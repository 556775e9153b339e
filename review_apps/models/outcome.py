"""Lifecycle phase, create result and run outcome models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from .error import ErrorRecord
from .review_app import ResolvedApplication, ReviewApp


class LifecyclePhase(str, Enum):
    """Named states of the lifecycle controller."""

    START = "start"
    SKIPPED = "skipped"
    CLOSING = "closing"
    DESTROYING = "destroying"
    CREATING = "creating"
    WAITING_BUILD = "waiting_build"
    REPORTING = "reporting"
    COMPLETED = "completed"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Final status of a run."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class CreateResult(BaseModel):
    """Result of the create step; see ``Created`` and ``AlreadyExists``."""

    review_app: ReviewApp


class Created(CreateResult):
    """The review app was created by this run."""


class AlreadyExists(CreateResult):
    """Another trigger created the review app first."""


class PhaseRecord(BaseModel):
    """A phase the controller went through."""

    phase: LifecyclePhase
    duration_ms: Optional[int] = None
    error: Optional[str] = None


class RunOutcome(BaseModel):
    """Outcome of one reconciliation run."""

    status: RunStatus
    phase: LifecyclePhase
    phases: List[PhaseRecord] = []
    application: Optional[ResolvedApplication] = None
    error: Optional[ErrorRecord] = None

    @property
    def succeeded(self) -> bool:
        return self.status != RunStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1
