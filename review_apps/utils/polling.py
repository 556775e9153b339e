"""
Fixed-interval polling for the platform's asynchronous operations.

The platform offers no notifications, so both the destroy-wait and the
build-wait re-fetch state every ``interval`` seconds. There is no backoff and,
by default, no attempt cap: the job runner's timeout bounds the run.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from review_apps.exceptions import PollTimeoutError
from review_apps.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL_SECONDS = 5.0

Sleep = Callable[[float], Awaitable[None]]


class Poller:
    """
    Repeats a check until it reports a result.

    Args:
        interval: Seconds to sleep between attempts
        max_attempts: Attempts before giving up, None for no limit
        sleep: Sleep coroutine, replaceable so tests run without delays
    """

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: Optional[int] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.interval = interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    async def until(
        self,
        check: Callable[[], Awaitable[Optional[T]]],
        description: str,
        on_attempt: Optional[Callable[[int], None]] = None,
    ) -> T:
        """
        Call ``check`` until it returns something other than None.

        Exceptions raised by ``check`` propagate immediately; only a
        "not finished" (None) result is retried.

        Raises:
            PollTimeoutError: If ``max_attempts`` is reached first
        """
        attempt = 0
        while True:
            attempt += 1
            if on_attempt:
                on_attempt(attempt)

            result = await check()
            if result is not None:
                return result

            if self.max_attempts is not None and attempt >= self.max_attempts:
                raise PollTimeoutError(description, attempt)

            if attempt == 1:
                logger.info(f"Waiting for {description}...")
            logger.debug(
                f"{description} not finished after attempt {attempt}, "
                f"sleeping {self.interval}s"
            )
            await self.sleep(self.interval)
