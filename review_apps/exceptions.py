"""
Fatal error conditions of a review app run.

Every error here aborts the current run. None of them are retried; the only
repetition in a run is the destroy-wait and build-wait polling.
"""

from typing import Optional


class ReviewAppError(Exception):
    """Base exception for review app lifecycle errors."""
    pass


class UnsupportedEventError(ReviewAppError):
    """The run was triggered by an event other than ``pull_request``."""

    def __init__(self, event_name: Optional[str]):
        super().__init__(f"Unexpected github event trigger: {event_name}")
        self.event_name = event_name


class InvalidEventPayloadError(ReviewAppError):
    """The event payload is missing fields needed to act on it."""
    pass


class MissingAppOnCloseError(ReviewAppError):
    """A close event arrived but no review app exists for the PR."""

    def __init__(self, pr_number: int):
        super().__init__(
            f'Action "closed", yet no existing review app for PR #{pr_number}'
        )
        self.pr_number = pr_number


class UnexpectedAppStatusError(ReviewAppError):
    """The review app is in a state with no resolvable application."""

    def __init__(self, status: Optional[str], pr_number: Optional[int] = None):
        super().__init__(f'Unexpected app status: "{status}"')
        self.status = status
        self.pr_number = pr_number


class BuildFailedError(ReviewAppError):
    """The build of the target version ended in a non-success status."""

    def __init__(self, status: str, detail: Optional[str] = None):
        self.status = status
        self.detail = detail or "no error provided"
        super().__init__(f'Unexpected build status: "{status}": {self.detail}')


class InconsistentConflictError(ReviewAppError):
    """Create reported a conflict but no review app can be found."""

    def __init__(self, pr_number: int):
        super().__init__(
            f"Previously got status 409 but no app found for PR #{pr_number}"
        )
        self.pr_number = pr_number


class PollTimeoutError(ReviewAppError):
    """A polling loop ran out of its configured attempts."""

    def __init__(self, description: str, attempts: int):
        super().__init__(f"Gave up waiting for {description} after {attempts} attempts")
        self.description = description
        self.attempts = attempts
