"""
Lifecycle Controller component.

Converges the platform to the intent of one pull request event:

    Start
     ├─ head from a fork  → skipped (no secrets, so no safe action exists)
     ├─ action == closed  → closing: delete the PR's review app
     └─ otherwise         → destroying → creating → waiting_build → reporting

The phases run strictly in that order. Destroying completes (the old review
app is gone or no longer deleting) before the create request is sent, and
the create is acknowledged before build polling starts.
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import aiohttp

from review_apps.exceptions import (
    InconsistentConflictError,
    MissingAppOnCloseError,
    ReviewAppError,
)
from review_apps.models.error import ErrorRecord
from review_apps.models.outcome import (
    AlreadyExists,
    Created,
    CreateResult,
    LifecyclePhase,
    PhaseRecord,
    RunOutcome,
    RunStatus,
)
from review_apps.models.pr_event import PullRequestEvent
from review_apps.models.review_app import (
    ResolvedApplication,
    ReviewApp,
    ReviewAppCreateRequest,
    ReviewAppStatus,
    SourceBlob,
)
from review_apps.services.build_watcher import BuildStatusWatcher
from review_apps.services.github_client import GitHubClient
from review_apps.services.heroku_client import HerokuAPIError, HerokuClient
from review_apps.services.result_reporter import ResultReporter
from review_apps.services.review_app_locator import ReviewAppLocator
from review_apps.utils.logging import (
    get_logger,
    log_error_with_context,
    log_group,
    log_phase_transition,
    log_pr_event,
)
from review_apps.utils.metrics import RunMetrics
from review_apps.utils.polling import Poller

logger = get_logger(__name__)


TRANSITIONS: Dict[LifecyclePhase, Set[LifecyclePhase]] = {
    LifecyclePhase.START: {
        LifecyclePhase.SKIPPED,
        LifecyclePhase.CLOSING,
        LifecyclePhase.DESTROYING,
        LifecyclePhase.FAILED,
    },
    LifecyclePhase.CLOSING: {LifecyclePhase.COMPLETED, LifecyclePhase.FAILED},
    LifecyclePhase.DESTROYING: {LifecyclePhase.CREATING, LifecyclePhase.FAILED},
    LifecyclePhase.CREATING: {LifecyclePhase.WAITING_BUILD, LifecyclePhase.FAILED},
    LifecyclePhase.WAITING_BUILD: {LifecyclePhase.REPORTING, LifecyclePhase.FAILED},
    LifecyclePhase.REPORTING: {LifecyclePhase.COMPLETED, LifecyclePhase.FAILED},
    LifecyclePhase.SKIPPED: set(),
    LifecyclePhase.COMPLETED: set(),
    LifecyclePhase.FAILED: set(),
}

# Environment variable set on every review app
GIT_REPO_URL_VAR = "GIT_REPO_URL"


def _describe(error: Exception) -> str:
    """Message of ``error``, falling back to its type for bare exceptions."""
    return str(error) or type(error).__name__


class InvalidTransition(Exception):
    """Raised when the controller attempts a phase change out of order."""

    def __init__(self, from_phase: LifecyclePhase, to_phase: LifecyclePhase):
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(f"Invalid transition: {from_phase.value} -> {to_phase.value}")


class LifecycleController:
    """Runs the review app state machine for one pull request event."""

    def __init__(
        self,
        heroku: HerokuClient,
        github: GitHubClient,
        reporter: Optional[ResultReporter] = None,
        poller: Optional[Poller] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        """
        Initialize the controller.

        Args:
            heroku: Platform API client
            github: Source control API client
            reporter: Output publisher for the resolved application
            poller: Polling policy shared by destroy-wait and build-wait
            metrics: Run metrics; a fresh collector is made per run if omitted
        """
        self.heroku = heroku
        self.github = github
        self.reporter = reporter or ResultReporter()
        self.poller = poller or Poller()
        self._metrics = metrics
        self.metrics = metrics
        self.locator = ReviewAppLocator(heroku)
        self.watcher = BuildStatusWatcher(heroku, self.locator, self.poller, metrics)

        self.phase = LifecyclePhase.START
        self.phases: List[PhaseRecord] = []

    async def run(self, event: PullRequestEvent) -> RunOutcome:
        """
        Reconcile the review app of ``event``'s pull request.

        Never raises: fatal conditions and unexpected faults are logged and
        returned as a FAILED outcome.
        """
        self.phase = LifecyclePhase.START
        self.phases = []
        self.metrics = self._metrics or RunMetrics(event.pr_number, event.pipeline_id)
        self.watcher.metrics = self.metrics
        self.metrics.start()

        log_pr_event(logger, event.pr_number, event.pipeline_id, event.action.value)

        try:
            if event.is_fork:
                self._transition(LifecyclePhase.SKIPPED)
                logger.warning("No secrets are available for PRs in forked repos.")
                return self._finish(RunStatus.SKIPPED)

            if event.is_closed:
                # Only maintainers or the author can close a PR, so deleting
                # does not require the closer to be a collaborator
                async with self._phase(LifecyclePhase.CLOSING, event):
                    await self._close(event)
                self._transition(LifecyclePhase.COMPLETED)
                return self._finish(RunStatus.SUCCEEDED)

            async with self._phase(LifecyclePhase.DESTROYING, event):
                await self._destroy_existing(event)

            async with self._phase(LifecyclePhase.CREATING, event):
                created = await self._create(event)

            async with self._phase(LifecyclePhase.WAITING_BUILD, event):
                logger.info(f"Waiting on review app {created.review_app.id}")
                with log_group("Ensure review app is up to date"):
                    application = await self.watcher.wait_for_build(
                        event.pipeline_id,
                        event.pr_number,
                        event.commit_sha,
                        review_app_id=created.review_app.id,
                    )

            async with self._phase(LifecyclePhase.REPORTING, event):
                self.reporter.publish(application)

            self._transition(LifecyclePhase.COMPLETED)
            return self._finish(RunStatus.SUCCEEDED, application=application)

        except ReviewAppError as e:
            logger.error(_describe(e), extra={"pr_number": event.pr_number, "phase": self.phase.value})
            return self._fail(e)
        except Exception as e:
            log_error_with_context(
                logger,
                f"Unexpected error in phase {self.phase.value}: {_describe(e)}",
                e,
                pr_number=event.pr_number,
                phase=self.phase.value,
            )
            return self._fail(e, stack_trace=traceback.format_exc())

    async def _close(self, event: PullRequestEvent) -> None:
        logger.debug("PR closed, deleting review app...")
        review_app = await self.locator.find(event.pipeline_id, event.pr_number)
        if review_app is None:
            raise MissingAppOnCloseError(event.pr_number)

        await self.heroku.delete_review_app(review_app.id)
        logger.info("PR closed, deleted review app OK")

    async def _destroy_existing(self, event: PullRequestEvent) -> None:
        review_app = await self.locator.find(event.pipeline_id, event.pr_number)
        if review_app is None:
            return

        logger.info(f"Destroying review app {review_app.id} for PR #{event.pr_number}")
        try:
            if review_app.application_id:
                await self.heroku.delete_app(review_app.application_id)
            else:
                await self.heroku.delete_review_app(review_app.id)
        except (HerokuAPIError, aiohttp.ClientError) as e:
            # The wait below observes whether the delete took effect
            logger.warning(f"Error destroying app: {e}")

        async def destroyed() -> Optional[bool]:
            current = await self.locator.find(event.pipeline_id, event.pr_number)
            if current is None:
                return True
            logger.info(
                f"Waiting for review app to be destroyed... "
                f"{current.id} is {current.status.value}"
            )
            if current.status == ReviewAppStatus.DELETING:
                return None
            return True

        await self.poller.until(
            destroyed,
            description=f"review app of PR #{event.pr_number} to be destroyed",
            on_attempt=lambda attempt: self.metrics.record_poll("destroy_wait"),
        )

    async def _create(self, event: PullRequestEvent) -> CreateResult:
        logger.info("Creating new review app...")
        archive_url = await self.github.get_tarball_url(
            event.owner, event.repo_name, event.commit_sha
        )

        request = ReviewAppCreateRequest(
            branch=event.branch,
            pipeline=event.pipeline_id,
            source_blob=SourceBlob(url=archive_url, version=event.commit_sha),
            fork_repo_id=event.fork_repo_id,
            pr_number=event.pr_number,
            environment={GIT_REPO_URL_VAR: event.repo_url},
        )
        response = await self.heroku.create_review_app(request)

        if not response.conflict:
            logger.info(f"Created review app OK: {response.review_app.id}")
            return Created(review_app=response.review_app)

        # Another run created the app between our lookup and the create
        logger.warning("Review app now seems to exist after previously not...")
        review_app: Optional[ReviewApp] = await self.locator.find(
            event.pipeline_id, event.pr_number
        )
        if review_app is None:
            raise InconsistentConflictError(event.pr_number)
        return AlreadyExists(review_app=review_app)

    def _transition(self, to_phase: LifecyclePhase) -> None:
        if to_phase not in TRANSITIONS[self.phase]:
            raise InvalidTransition(self.phase, to_phase)
        self.phase = to_phase

    @asynccontextmanager
    async def _phase(self, phase: LifecyclePhase, event: PullRequestEvent):
        """Enter ``phase``, timing it and recording how it ended."""
        self._transition(phase)
        log_phase_transition(logger, event.pr_number, phase.value, "started")
        start_time = time.time()
        record = PhaseRecord(phase=phase)
        self.phases.append(record)
        failed = False
        try:
            yield
        except Exception as e:
            failed = True
            record.error = _describe(e)
            raise
        finally:
            record.duration_ms = int((time.time() - start_time) * 1000)
            self.metrics.record_phase(phase.value, record.duration_ms)
            log_phase_transition(
                logger,
                event.pr_number,
                phase.value,
                "failed" if failed else "completed",
                duration_ms=record.duration_ms,
            )

    def _finish(
        self,
        status: RunStatus,
        application: Optional[ResolvedApplication] = None,
    ) -> RunOutcome:
        if status == RunStatus.SKIPPED:
            self.phases.append(PhaseRecord(phase=LifecyclePhase.SKIPPED))
        self.metrics.complete(status.value)
        return RunOutcome(
            status=status,
            phase=self.phase,
            phases=list(self.phases),
            application=application,
        )

    def _fail(self, error: Exception, stack_trace: Optional[str] = None) -> RunOutcome:
        failed_phase = self.phase
        self.phase = LifecyclePhase.FAILED
        self.metrics.complete(RunStatus.FAILED.value, _describe(error))
        return RunOutcome(
            status=RunStatus.FAILED,
            phase=failed_phase,
            phases=list(self.phases),
            error=ErrorRecord(
                phase=failed_phase.value,
                error_type=type(error).__name__,
                message=_describe(error),
                stack_trace=stack_trace,
                timestamp=datetime.now(timezone.utc),
            ),
        )
