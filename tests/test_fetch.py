import asyncio
from pathlib import Path

import httpx
import pytest

from kaken.exceptions import FetchTimeoutError, TransientHTTPError
from kaken.services.cache import ResponseCache
from kaken.services.fetch import HttpxTransport, RawResponse, ResilientFetcher

URL = "https://kaken.nii.ac.jp/opensearch/?kw=AI"


class StubTransport:
    """Replays a scripted sequence of responses or exceptions."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[str] = []

    async def __call__(self, url: str) -> RawResponse:
        self.calls.append(url)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingCache(ResponseCache):
    def __init__(self, cache_dir: Path) -> None:
        super().__init__(cache_dir)
        self.writes: list[str] = []

    async def set(self, url: str, content: bytes | str) -> None:
        self.writes.append(url)
        await super().set(url, content)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _fetcher(transport, cache, sleep, **options) -> ResilientFetcher:
    return ResilientFetcher(transport, cache, sleep=sleep, **options)


def _ok(body: bytes = b"<grantAwards/>") -> RawResponse:
    return RawResponse(status=200, content=body)


@pytest.mark.asyncio
async def test_transient_failures_then_success(tmp_path: Path) -> None:
    transport = StubTransport(
        httpx.ConnectError("boom"),
        RawResponse(status=503, content=b""),
        _ok(),
    )
    sleep = RecordingSleep()
    fetcher = _fetcher(transport, ResponseCache(tmp_path), sleep, max_retries=3)

    response = await fetcher.fetch(URL)

    assert response.status == 200
    assert response.content == b"<grantAwards/>"
    assert not response.from_cache
    assert len(transport.calls) == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_retries_raise_last_error(tmp_path: Path) -> None:
    transport = StubTransport(httpx.ConnectError("down"))
    sleep = RecordingSleep()
    cache = ResponseCache(tmp_path)
    fetcher = _fetcher(transport, cache, sleep, max_retries=3)

    with pytest.raises(httpx.ConnectError):
        await fetcher.fetch(URL)

    assert len(transport.calls) == 4
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_backoff_is_capped(tmp_path: Path) -> None:
    transport = StubTransport(RawResponse(status=500, content=b""))
    sleep = RecordingSleep()
    fetcher = _fetcher(
        transport, ResponseCache(tmp_path), sleep, max_retries=4, base_delay=10.0, max_delay=30.0
    )

    with pytest.raises(TransientHTTPError) as excinfo:
        await fetcher.fetch(URL)

    assert excinfo.value.status_code == 500
    assert sleep.delays == [10.0, 20.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(tmp_path: Path) -> None:
    transport = StubTransport(httpx.ReadError("reset"))
    sleep = RecordingSleep()
    fetcher = _fetcher(transport, ResponseCache(tmp_path), sleep, max_retries=0)

    with pytest.raises(httpx.ReadError):
        await fetcher.fetch(URL)

    assert len(transport.calls) == 1
    assert sleep.delays == []


def test_negative_retries_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ResilientFetcher(StubTransport(_ok()), ResponseCache(tmp_path), max_retries=-1)


@pytest.mark.asyncio
async def test_client_error_returned_without_retry_or_cache(tmp_path: Path) -> None:
    transport = StubTransport(RawResponse(status=404, content=b"missing"))
    sleep = RecordingSleep()
    cache = ResponseCache(tmp_path)
    fetcher = _fetcher(transport, cache, sleep)

    response = await fetcher.fetch(URL)

    assert response.status == 404
    assert not response.ok
    assert len(transport.calls) == 1
    assert sleep.delays == []
    assert await cache.get(URL) is None


@pytest.mark.asyncio
async def test_success_is_cached_and_served_from_cache(tmp_path: Path) -> None:
    transport = StubTransport(_ok(b"payload"))
    cache = ResponseCache(tmp_path)
    fetcher = _fetcher(transport, cache, RecordingSleep())

    first = await fetcher.fetch(URL)
    second = await fetcher.fetch(URL)

    assert first.content == second.content == b"payload"
    assert second.from_cache
    assert second.status == 200
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_preexisting_cache_entry_skips_transport(tmp_path: Path) -> None:
    cache = ResponseCache(tmp_path)
    await cache.set(URL, b"cached")
    transport = StubTransport(_ok(b"fresh"))
    fetcher = _fetcher(transport, cache, RecordingSleep())

    response = await fetcher.fetch(URL)

    assert response.content == b"cached"
    assert transport.calls == []


@pytest.mark.asyncio
async def test_cache_bypassed_when_disabled(tmp_path: Path) -> None:
    cache = ResponseCache(tmp_path)
    await cache.set(URL, b"stale")
    transport = StubTransport(_ok(b"fresh"))
    fetcher = _fetcher(transport, cache, RecordingSleep(), use_cache=False)

    response = await fetcher.fetch(URL)

    assert response.content == b"fresh"
    assert len(transport.calls) == 1
    assert await cache.get(URL) == b"stale"


@pytest.mark.asyncio
async def test_slow_attempt_times_out(tmp_path: Path) -> None:
    attempts: list[str] = []

    async def slow_transport(url: str) -> RawResponse:
        attempts.append(url)
        await asyncio.sleep(5)
        return _ok()

    sleep = RecordingSleep()
    fetcher = _fetcher(slow_transport, ResponseCache(tmp_path), sleep, timeout=0.01, max_retries=1)

    with pytest.raises(FetchTimeoutError):
        await fetcher.fetch(URL)

    assert sleep.delays == [1.0]
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_httpx_transport_reports_status_without_raising() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404, content=b"nope")
        return httpx.Response(200, content="本文".encode("utf-8"))

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        transport = HttpxTransport(client)
        found = await transport("https://example.org/ok")
        missing = await transport("https://example.org/missing")

    assert found.ok
    assert found.text == "本文"
    assert missing.status == 404


@pytest.mark.asyncio
async def test_httpx_transport_applies_its_timeout() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await HttpxTransport(client, timeout=12.5)("https://example.org/")

    assert seen[0] == {"connect": 12.5, "read": 12.5, "write": 12.5, "pool": 12.5}


@pytest.mark.asyncio
async def test_exactly_one_cache_write_per_successful_fetch(tmp_path: Path) -> None:
    cache = RecordingCache(tmp_path)
    transport = StubTransport(RawResponse(status=502, content=b""), _ok(b"body"))
    fetcher = _fetcher(transport, cache, RecordingSleep())

    await fetcher.fetch(URL)
    await fetcher.fetch(URL)

    assert cache.writes == [URL]


@pytest.mark.asyncio
async def test_no_cache_write_on_client_error_or_exhaustion(tmp_path: Path) -> None:
    cache = RecordingCache(tmp_path)
    rejected = _fetcher(StubTransport(RawResponse(status=400, content=b"bad")), cache, RecordingSleep())
    failing = _fetcher(
        StubTransport(RawResponse(status=503, content=b"")), cache, RecordingSleep(), max_retries=2
    )

    await rejected.fetch(URL)
    with pytest.raises(TransientHTTPError):
        await failing.fetch(URL)

    assert cache.writes == []
