"""
Result Reporter component.

Publishes the resolved application as the run's ``app_id`` and
``app_web_url`` outputs.
"""

from pathlib import Path
from typing import Dict, Optional

from review_apps.models.review_app import ResolvedApplication
from review_apps.utils.logging import get_logger, log_group

logger = get_logger(__name__)


class ResultReporter:
    """Sets step outputs through the runner's ``GITHUB_OUTPUT`` file."""

    def __init__(self, output_path: Optional[str] = None):
        self.output_path = output_path
        self.outputs: Dict[str, str] = {}

    def publish(self, application: ResolvedApplication) -> Dict[str, str]:
        """
        Publish application id and web URL.

        Returns:
            The outputs that were set
        """
        with log_group("Output app details"):
            logger.info(f'Review app ID: "{application.id}"')
            self.set_output("app_id", application.id)
            logger.info(f'Review app Web URL: "{application.web_url}"')
            self.set_output("app_web_url", application.web_url or "")
        return dict(self.outputs)

    def set_output(self, name: str, value: str) -> None:
        self.outputs[name] = value
        if not self.output_path:
            return
        with Path(self.output_path).open("a", encoding="utf-8") as f:
            f.write(f"{name}={value}\n")
