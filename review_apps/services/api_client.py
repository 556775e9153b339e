"""
Shared aiohttp session handling for the remote API clients.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp

from review_apps.utils.logging import get_logger
from review_apps.utils.metrics import RunMetrics, track_api_call

logger = get_logger(__name__)

USER_AGENT = "review-apps/0.1.0"


class APIClient:
    """
    Base class owning an aiohttp session for one remote service.

    Subclasses provide ``service`` (used in logs and metrics) and the
    default headers; requests are not retried.
    """

    service = "api"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        metrics: Optional[RunMetrics] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def default_headers(self) -> Dict[str, str]:
        return {"User-Agent": USER_AGENT}

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure HTTP session is initialized."""
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    self._session = aiohttp.ClientSession(
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                        headers=self.default_headers(),
                    )
        return self._session

    async def close(self) -> None:
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        allow_redirects: bool = True,
    ) -> Tuple[int, Mapping[str, str], Any]:
        """
        Send one request and return ``(status, headers, body)``.

        The body is decoded JSON when the response carries any, else None.
        Status codes are not interpreted here.
        """
        session = await self._ensure_session()
        url = f"{self.base_url}{path}"

        async with track_api_call(self.metrics, self.service, method, path, logger) as call:
            async with session.request(
                method, url, json=json, allow_redirects=allow_redirects
            ) as response:
                call["status_code"] = response.status
                text = await response.text()
                body = None
                if text:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = {"message": text}
                return response.status, response.headers.copy(), body
