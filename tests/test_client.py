from pathlib import Path

import httpx
import pytest

from kaken import KakenClient, NotFoundError, Settings
from kaken.services.fetch import RawResponse

FIXTURES = Path(__file__).parent / "fixtures"


class StubTransport:
    def __init__(self, routes: dict[str, RawResponse]) -> None:
        self.routes = routes
        self.calls: list[str] = []

    async def __call__(self, url: str) -> RawResponse:
        self.calls.append(url)
        for prefix, response in self.routes.items():
            if url.startswith(prefix):
                return response
        return RawResponse(status=404, content=b"")


def _transport() -> StubTransport:
    return StubTransport(
        {
            "https://kaken.nii.ac.jp/": RawResponse(
                200, (FIXTURES / "projects_response.xml").read_bytes()
            ),
            "https://nrid.nii.ac.jp/": RawResponse(
                200, (FIXTURES / "researchers_response.json").read_bytes()
            ),
        }
    )


@pytest.mark.asyncio
async def test_repeated_search_is_served_from_cache(tmp_path: Path) -> None:
    transport = _transport()
    settings = Settings(app_id="app", cache_dir=tmp_path / "cache")

    async with KakenClient(settings, transport=transport) as client:
        first = await client.projects.search(keyword="機械学習")
        second = await client.projects.search(keyword="機械学習")

    assert first.projects == second.projects
    assert len(transport.calls) == 1
    assert list((tmp_path / "cache").glob("*.cache"))


@pytest.mark.asyncio
async def test_disabled_cache_fetches_every_time(tmp_path: Path) -> None:
    transport = _transport()
    settings = Settings(cache_dir=tmp_path / "cache", use_cache=False)

    async with KakenClient(settings, transport=transport) as client:
        await client.researchers.search(researcher_name="山田")
        response = await client.researchers.search(researcher_name="山田")

    assert response.researchers[0].name.full_name == "山田 太郎"
    assert len(transport.calls) == 2
    assert not (tmp_path / "cache").exists()


@pytest.mark.asyncio
async def test_settings_urls_are_used(tmp_path: Path) -> None:
    transport = _transport()
    settings = Settings(cache_dir=tmp_path, projects_url="https://mirror.example.org/kaken/")

    async with KakenClient(settings, transport=transport) as client:
        with pytest.raises(NotFoundError):
            await client.projects.search(keyword="x")

    assert len(transport.calls) == 1
    assert transport.calls[0].startswith("https://mirror.example.org/kaken/?")


@pytest.mark.asyncio
async def test_client_over_httpx_mock_transport(tmp_path: Path) -> None:
    seen: list[httpx.URL] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, content=(FIXTURES / "projects_response.xml").read_bytes())

    settings = Settings(cache_dir=tmp_path, language="en")
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
        client = KakenClient(settings, http_client=http_client)
        response = await client.projects.search(project_title="learning")
        await client.aclose()

    assert response.total_results == 1234
    assert seen[0].params["qa"] == "learning"
    assert seen[0].params["lang"] == "en"


@pytest.mark.asyncio
async def test_owned_http_client_uses_configured_timeout(tmp_path: Path) -> None:
    client = KakenClient(Settings(cache_dir=tmp_path, timeout=60.0))
    try:
        assert client._owned_http_client is not None
        assert client._owned_http_client.timeout.read == 60.0
        assert client._owned_http_client.timeout.connect == 60.0
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_injected_http_client_requests_carry_configured_timeout(tmp_path: Path) -> None:
    timeouts: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return httpx.Response(200, content=(FIXTURES / "projects_response.xml").read_bytes())

    settings = Settings(cache_dir=tmp_path, use_cache=False, timeout=45.0)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), timeout=5.0) as http_client:
        client = KakenClient(settings, http_client=http_client)
        await client.projects.search(keyword="x")

    assert timeouts[0]["read"] == 45.0
    assert timeouts[0]["connect"] == 45.0
