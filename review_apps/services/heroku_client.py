"""
Heroku Platform API client.

Covers the calls the lifecycle needs: listing a pipeline's review apps,
creating and deleting review apps, deleting applications, listing builds and
reading application details.
"""

from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from review_apps.models.review_app import (
    Build,
    ResolvedApplication,
    ReviewApp,
    ReviewAppCreateRequest,
)
from review_apps.services.api_client import APIClient
from review_apps.utils.logging import get_logger
from review_apps.utils.metrics import RunMetrics

logger = get_logger(__name__)

HEROKU_ACCEPT = "application/vnd.heroku+json; version=3"


class HerokuAPIError(Exception):
    """Base exception for Heroku Platform API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_id = error_id


class HerokuAuthenticationError(HerokuAPIError):
    """Raised when the API token is missing, invalid or lacks access."""
    pass


class HerokuNotFoundError(HerokuAPIError):
    """Raised when the requested resource does not exist."""
    pass


class CreateResponse(NamedTuple):
    """Result of a create call: the new review app, or a conflict."""
    review_app: Optional[ReviewApp]
    conflict: bool


def _raise_for_status(method: str, path: str, status: int, body: Any) -> None:
    if status < 400:
        return

    error_id = None
    detail = None
    if isinstance(body, Mapping):
        error_id = body.get("id")
        detail = body.get("message")
    message = f"{method} {path} failed with status {status}"
    if detail:
        message = f"{message}: {detail}"

    if status in (401, 403):
        raise HerokuAuthenticationError(message, status, error_id)
    if status == 404:
        raise HerokuNotFoundError(message, status, error_id)
    raise HerokuAPIError(message, status, error_id)


class HerokuClient(APIClient):
    """Async client for the Heroku Platform API (version 3)."""

    service = "heroku"

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.heroku.com",
        timeout: float = 30.0,
        metrics: Optional[RunMetrics] = None,
    ):
        super().__init__(base_url, timeout=timeout, metrics=metrics)
        self._api_token = api_token

    def default_headers(self) -> Dict[str, str]:
        headers = super().default_headers()
        headers.update({
            "Accept": HEROKU_ACCEPT,
            "Authorization": f"Bearer {self._api_token}",
        })
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        status, _, body = await self._send(method, path, json=json)
        _raise_for_status(method, path, status, body)
        return body

    async def list_review_apps(self, pipeline_id: str) -> List[ReviewApp]:
        """List all review apps of a pipeline."""
        body = await self._request("GET", f"/pipelines/{pipeline_id}/review-apps")
        return [ReviewApp.model_validate(item) for item in body or []]

    async def get_app(self, app_id: str) -> ResolvedApplication:
        """Get application details by id or name."""
        logger.debug(f"Getting app details for app ID {app_id}")
        body = await self._request("GET", f"/apps/{app_id}")
        app = ResolvedApplication.model_validate(body)
        logger.info(f"Got app details for app ID {app_id} OK: {body}")
        return app

    async def list_builds(self, app_id: str) -> List[Build]:
        """List the builds of an application."""
        body = await self._request("GET", f"/apps/{app_id}/builds")
        builds = [Build.model_validate(item) for item in body or []]
        logger.debug(f"Fetched builds for app {app_id} OK: {len(builds)} builds found")
        return builds

    async def create_review_app(self, request: ReviewAppCreateRequest) -> CreateResponse:
        """
        Create a review app.

        A 409 response means a review app for the PR already exists; it is
        returned as ``CreateResponse(None, conflict=True)`` rather than raised.
        """
        path = "/review-apps"
        payload = request.to_payload()
        logger.debug(f"Creating review app: {payload}")
        status, _, body = await self._send("POST", path, json=payload)
        if status == 409:
            return CreateResponse(review_app=None, conflict=True)
        _raise_for_status("POST", path, status, body)
        return CreateResponse(review_app=ReviewApp.model_validate(body), conflict=False)

    async def delete_review_app(self, review_app_id: str) -> None:
        """Delete a review app and its application."""
        await self._request("DELETE", f"/review-apps/{review_app_id}")

    async def delete_app(self, app_id: str) -> None:
        """Destroy an application."""
        await self._request("DELETE", f"/apps/{app_id}")
