"""
Wires clients, controller and reporter together for one run.
"""

from typing import Optional

from review_apps.config import Settings
from review_apps.models.outcome import RunOutcome
from review_apps.models.pr_event import PullRequestEvent
from review_apps.services.github_client import GitHubClient
from review_apps.services.heroku_client import HerokuClient
from review_apps.services.lifecycle_controller import LifecycleController
from review_apps.services.result_reporter import ResultReporter
from review_apps.utils.metrics import RunMetrics
from review_apps.utils.polling import Poller


async def run_reconciliation(
    event: PullRequestEvent,
    settings: Settings,
    output_path: Optional[str] = None,
) -> RunOutcome:
    """
    Reconcile the review app for ``event`` with fresh API sessions.

    Args:
        event: Classified pull request event
        settings: Credentials, endpoints and polling configuration
        output_path: File receiving ``name=value`` step outputs, if any

    Returns:
        Outcome of the run; fatal errors are reported here, not raised
    """
    metrics = RunMetrics(event.pr_number, event.pipeline_id)
    poller = Poller(
        interval=settings.poll_interval_seconds,
        max_attempts=settings.max_poll_attempts,
    )

    async with HerokuClient(
        settings.heroku_api_token,
        base_url=settings.heroku_api_url,
        timeout=settings.http_timeout_seconds,
        metrics=metrics,
    ) as heroku, GitHubClient(
        settings.github_token,
        base_url=settings.github_api_url,
        timeout=settings.http_timeout_seconds,
        metrics=metrics,
    ) as github:
        controller = LifecycleController(
            heroku,
            github,
            reporter=ResultReporter(output_path),
            poller=poller,
            metrics=metrics,
        )
        return await controller.run(event)
