"""
Review App Locator component.

Finds the review app bound to a pull request. Every call lists the
pipeline's review apps afresh; the result is never cached because the list
is shared with other runs and the platform's own provisioning.
"""

from typing import Optional

from review_apps.models.review_app import ReviewApp
from review_apps.services.heroku_client import HerokuClient
from review_apps.utils.logging import get_logger

logger = get_logger(__name__)


class ReviewAppLocator:
    """Looks up the review app of a PR within a pipeline."""

    def __init__(self, heroku: HerokuClient):
        self.heroku = heroku

    async def find(self, pipeline_id: str, pr_number: int) -> Optional[ReviewApp]:
        """
        Find the review app for a PR.

        Args:
            pipeline_id: Pipeline to search
            pr_number: Pull request number

        Returns:
            The review app, or None when the PR has none
        """
        logger.debug(f"Listing review apps of pipeline {pipeline_id}")
        review_apps = await self.heroku.list_review_apps(pipeline_id)

        logger.debug(f"Finding review app for PR #{pr_number}...")
        for review_app in review_apps:
            if review_app.pr_number == pr_number:
                logger.debug(
                    f"Found review app {review_app.id} for PR #{pr_number} "
                    f"(status {review_app.status.value})"
                )
                return review_app

        logger.info(f"No review app found for PR #{pr_number}")
        return None
