"""
HTTP fetching with retry, backoff and credential rotation.

A 429 never consumes the retry budget: it notifies the rotator, sleeps a
fixed throttle delay and tries again with whatever key is now current.
Network errors and 5xx responses back off exponentially through tenacity.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from statepulse.config.settings import settings
from statepulse.ingestion.credentials import CredentialRotator
from statepulse.ingestion.errors import ExhaustedRetries, RateLimited

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _is_server_error(response: httpx.Response) -> bool:
    return response.status_code >= 500


class RateLimitedFetcher:
    """
    GET wrapper shared by all requests of one source adapter.

    Args:
        client: Shared httpx.AsyncClient
        credentials: Rotator whose current key is injected on every attempt
        key_param: Query parameter carrying the key ("api_key", "apikey")
        retries: Default retry budget for network and server errors
        backoff: Initial backoff in seconds, doubled after each retry
        throttle_delay: Fixed sleep after a 429
        max_consecutive_throttles: Consecutive 429s tolerated on one call
            before RateLimited is raised (0 raises on the first 429)
        on_throttle: Extra callback invoked on every 429
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: Optional[CredentialRotator] = None,
        key_param: str = "api_key",
        retries: int = 3,
        backoff: float = 2.0,
        throttle_delay: float = settings.THROTTLE_DELAY_SECONDS,
        max_consecutive_throttles: int = settings.MAX_CONSECUTIVE_THROTTLES,
        on_throttle: Optional[Callable[[], None]] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.client = client
        self.credentials = credentials
        self.key_param = key_param
        self.retries = retries
        self.backoff = backoff
        self.throttle_delay = throttle_delay
        self.max_consecutive_throttles = max_consecutive_throttles
        self.on_throttle = on_throttle
        self.sleep = sleep

    @property
    def source(self) -> Optional[str]:
        return self.credentials.source if self.credentials else None

    def _params(self, params: Optional[dict]) -> dict:
        query = dict(params or {})
        if self.credentials is not None:
            query[self.key_param] = self.credentials.current()
        return query

    async def _send(self, url: str, params: Optional[dict]) -> httpx.Response:
        """One attempt: a GET repeated through any run of 429s."""
        throttles = 0
        while True:
            response = await self.client.get(url, params=self._params(params))
            if response.status_code != 429:
                if response.is_success and self.credentials is not None:
                    self.credentials.on_success()
                return response

            throttles += 1
            if self.credentials is not None:
                self.credentials.on_throttle()
            if self.on_throttle is not None:
                self.on_throttle()
            if throttles > self.max_consecutive_throttles:
                raise RateLimited(url, self.source)
            logger.warning(
                f"Rate limited on {url} ({throttles} in a row). "
                f"Waiting {self.throttle_delay:.0f}s"
            )
            await self.sleep(self.throttle_delay)

    async def fetch(
        self,
        url: str,
        params: Optional[dict] = None,
        *,
        retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ) -> httpx.Response:
        """
        GET url, retrying as described above.

        Returns:
            The first 2xx response, any 4xx other than 429, or the last 5xx
            once the retry budget is spent.

        Raises:
            ExhaustedRetries: network errors outlasted the retry budget
            RateLimited: too many consecutive 429s
        """
        retries = self.retries if retries is None else retries
        backoff = self.backoff if backoff is None else backoff
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(multiplier=backoff),
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(_is_server_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
        )

        try:
            return await retrying(self._send, url, params)
        except RetryError as e:
            last = e.last_attempt
            if last.failed:
                raise ExhaustedRetries(url, last.attempt_number, last.exception()) from last.exception()
            response = last.result()
            logger.error(f"Server error {response.status_code} on {url}, giving up")
            return response
