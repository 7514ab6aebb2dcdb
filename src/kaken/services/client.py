"""Composition root wiring cache, fetcher and the two search endpoints."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from kaken.settings import Settings
from .cache import ResponseCache
from .fetch import HttpxTransport, ResilientFetcher, Sleep, Transport
from .projects import ProjectsAPI
from .researchers import ResearchersAPI

logger = structlog.get_logger(__name__)


class KakenClient:
    """Entry point for the KAKEN project and researcher searches.

    Usage::

        async with KakenClient(Settings(app_id="...")) as client:
            result = await client.projects.search(keyword="人工知能")

    When no ``transport`` is injected the client owns an ``httpx.AsyncClient``
    (or uses the one passed as ``http_client``) and closes the owned one in
    :meth:`aclose`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: Transport | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.settings = settings or Settings()
        self._owned_http_client: httpx.AsyncClient | None = None
        if transport is None:
            if http_client is None:
                http_client = httpx.AsyncClient(timeout=self.settings.timeout, follow_redirects=True)
                self._owned_http_client = http_client
            transport = HttpxTransport(http_client, timeout=self.settings.timeout)

        self.cache = ResponseCache(self.settings.cache_dir, enabled=self.settings.use_cache)
        self.fetcher = ResilientFetcher(
            transport,
            self.cache,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            use_cache=self.settings.use_cache,
            sleep=sleep,
        )
        endpoint_options = {"app_id": self.settings.app_id, "language": self.settings.language}
        self.projects = ProjectsAPI(
            self.fetcher.fetch, base_url=self.settings.projects_url, **endpoint_options
        )
        self.researchers = ResearchersAPI(
            self.fetcher.fetch, base_url=self.settings.researchers_url, **endpoint_options
        )

    async def aclose(self) -> None:
        if self._owned_http_client is not None:
            await self._owned_http_client.aclose()
            self._owned_http_client = None

    async def __aenter__(self) -> "KakenClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
