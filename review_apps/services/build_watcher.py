"""
Build Status Watcher component.

Waits for the platform to finish provisioning a review app and building the
triggering commit, then resolves the application the review app runs on.
"""

from typing import Optional

from review_apps.exceptions import BuildFailedError, UnexpectedAppStatusError
from review_apps.models.review_app import BuildStatus, ResolvedApplication
from review_apps.services.heroku_client import HerokuClient
from review_apps.services.review_app_locator import ReviewAppLocator
from review_apps.utils.logging import get_logger
from review_apps.utils.metrics import RunMetrics
from review_apps.utils.polling import Poller

logger = get_logger(__name__)


class BuildStatusWatcher:
    """
    Polls a PR's review app until the build of a given version settles.

    Each attempt re-locates the review app and re-lists its builds; nothing
    observed in one attempt is trusted in the next.
    """

    def __init__(
        self,
        heroku: HerokuClient,
        locator: ReviewAppLocator,
        poller: Optional[Poller] = None,
        metrics: Optional[RunMetrics] = None,
    ):
        self.heroku = heroku
        self.locator = locator
        self.poller = poller or Poller()
        self.metrics = metrics

    async def wait_for_build(
        self,
        pipeline_id: str,
        pr_number: int,
        target_version: str,
        review_app_id: Optional[str] = None,
    ) -> ResolvedApplication:
        """
        Wait until the build of ``target_version`` succeeds.

        Args:
            pipeline_id: Pipeline of the review app
            pr_number: Pull request the review app belongs to
            target_version: Commit sha that triggered the run
            review_app_id: Review app the run created or found; a different
                app for the PR is logged as a warning and still followed

        Returns:
            Details of the application running the build

        Raises:
            UnexpectedAppStatusError: If the review app vanished or has no
                application once provisioning is over
            BuildFailedError: If the build ended in a non-success status
            PollTimeoutError: If the poller's attempt cap is reached
        """
        async def check() -> Optional[str]:
            return await self.check_build(pipeline_id, pr_number, target_version, review_app_id)

        app_id = await self.poller.until(
            check,
            description=f"build of {target_version} for PR #{pr_number}",
            on_attempt=self._count_attempt,
        )
        logger.info("Build finished!")
        return await self.heroku.get_app(app_id)

    def _count_attempt(self, attempt: int) -> None:
        if self.metrics:
            self.metrics.record_poll("build_wait")

    async def check_build(
        self,
        pipeline_id: str,
        pr_number: int,
        target_version: str,
        review_app_id: Optional[str] = None,
    ) -> Optional[str]:
        """
        Run one polling attempt.

        Returns:
            The application id once the build succeeded, None while it is
            not finished
        """
        review_app = await self.locator.find(pipeline_id, pr_number)
        if review_app is None:
            raise UnexpectedAppStatusError(None, pr_number)
        if review_app_id and review_app.id != review_app_id:
            logger.warning(
                f"Review app for PR #{pr_number} is now {review_app.id}, "
                f"expected {review_app_id}"
            )

        logger.debug(
            f"Checking build status for review app {review_app.id} "
            f"(status {review_app.status.value})"
        )
        if review_app.is_provisioning:
            return None

        app_id = review_app.application_id
        if not app_id:
            raise UnexpectedAppStatusError(review_app.status.value, pr_number)

        builds = await self.heroku.list_builds(app_id)
        build = next((b for b in builds if b.version == target_version), None)
        if build is None:
            logger.info(f"No build for app ID {app_id} matches version {target_version} yet")
            return None

        logger.info(f"Found build {build.id} matching version {target_version}: {build.status}")
        if build.status == BuildStatus.SUCCEEDED.value:
            return app_id
        if build.status == BuildStatus.PENDING.value:
            return None

        raise BuildFailedError(
            build.status,
            review_app.error_status or review_app.message,
        )
