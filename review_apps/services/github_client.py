"""
GitHub REST API client.

Only resolves source archive URLs; the platform downloads the archive itself
to build the review app.
"""

from typing import Dict, Optional
from urllib.parse import quote

from review_apps.services.api_client import APIClient
from review_apps.utils.logging import get_logger
from review_apps.utils.metrics import RunMetrics

logger = get_logger(__name__)


class GitHubAPIError(Exception):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubClient(APIClient):
    """Async client for the GitHub REST API."""

    service = "github"

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        metrics: Optional[RunMetrics] = None,
    ):
        super().__init__(base_url, timeout=timeout, metrics=metrics)
        self._token = token

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers.update({
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": "2022-11-28",
        })
        return headers

    async def get_tarball_url(self, owner: str, repo: str, ref: str) -> str:
        """
        Get a short-lived download URL for a tarball of ``ref``.

        GitHub answers with a redirect to the archive; the redirect target is
        the URL handed to the platform.
        """
        path = f"/repos/{quote(owner)}/{quote(repo)}/tarball/{quote(ref, safe='')}"
        logger.debug(f"Fetching archive: owner={owner} repo={repo} ref={ref}")

        status, headers, body = await self._send("GET", path, allow_redirects=False)

        if status in (301, 302, 303, 307, 308) and headers.get("Location"):
            url = headers["Location"]
            logger.info(f"Fetched archive OK: {url}")
            return url

        detail = body.get("message") if isinstance(body, dict) else None
        raise GitHubAPIError(
            f"Could not resolve tarball for {owner}/{repo}@{ref}: "
            f"status {status}{f' ({detail})' if detail else ''}",
            status_code=status,
        )
