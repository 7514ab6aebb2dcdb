"""Cache-first, retrying fetch of raw API responses."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from kaken.constants import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)
from kaken.exceptions import FetchTimeoutError, TransientHTTPError
from .cache import ResponseCache

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RawResponse:
    """Status and body of a single HTTP exchange (or cache hit)."""

    status: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


Transport = Callable[[str], Awaitable[RawResponse]]
Sleep = Callable[[float], Awaitable[None]]


class HttpxTransport:
    """Issues GET requests through an ``httpx.AsyncClient``; statuses are returned, not raised."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._client = client
        self._timeout = timeout

    async def __call__(self, url: str) -> RawResponse:
        response = await self._client.get(url, timeout=self._timeout)
        return RawResponse(
            status=response.status_code,
            content=response.content,
            headers=dict(response.headers),
        )


class ResilientFetcher:
    """Resolves URLs from the cache or the network with bounded retries.

    Network errors, timeouts and 5xx statuses are retried up to
    ``max_retries`` times with exponential backoff (``base_delay``, doubled per
    retry, capped at ``max_delay``). 4xx responses are handed back untouched
    and never retried. Only 2xx bodies are written to the cache.
    """

    def __init__(
        self,
        transport: Transport,
        cache: ResponseCache,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        max_delay: float = RETRY_MAX_DELAY_SECONDS,
        use_cache: bool = True,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._transport = transport
        self._cache = cache
        self._timeout = timeout
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._use_cache = use_cache
        self._sleep = sleep

    async def fetch(self, url: str) -> RawResponse:
        if self._use_cache:
            cached = await self._cache.get(url)
            if cached is not None:
                logger.debug("fetch.cache_hit", url=url)
                return RawResponse(status=200, content=cached, from_cache=True)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_exponential(multiplier=self._base_delay, max=self._max_delay),
            retry=retry_if_exception_type(Exception),
            before_sleep=lambda state: self._log_retry(url, state),
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._attempt(url)

        if not response.ok:
            logger.info("fetch.client_error", url=url, status=response.status)
            return response

        if self._use_cache:
            await self._cache.set(url, response.content)
        return RawResponse(status=response.status, content=response.content, headers=response.headers)

    async def _attempt(self, url: str) -> RawResponse:
        try:
            response = await asyncio.wait_for(self._transport(url), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise FetchTimeoutError(f"Request timed out after {self._timeout}s") from exc
        if 400 <= response.status < 500:
            return response
        if not response.ok:
            raise TransientHTTPError(f"HTTP {response.status}", response.status)
        return response

    def _log_retry(self, url: str, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else None
        logger.warning(
            "fetch.retry",
            url=url,
            attempt=retry_state.attempt_number,
            delay=delay,
            error=str(error),
        )
