import httpx
import pytest
from tenacity import wait_none

from catho.clients.catho import BASE_URL, CathoClient
from catho.errors import FetchError

from conftest import listing_html, listing_job


@pytest.mark.asyncio
async def test_fetch_returns_snapshot_with_headers():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["lang"] = request.headers.get("accept-language")
        return httpx.Response(200, text=listing_html([listing_job(1)]))

    async with CathoClient(transport=httpx.MockTransport(handler)) as client:
        page = await client.fetch(BASE_URL + "ti/")

    assert page.status_code == 200
    assert page.url == BASE_URL + "ti/"
    assert page.next_data()["props"]["pageProps"]["jobSearch"]["jobSearchResult"]["data"][0]["id"] == 1
    assert seen["lang"].startswith("pt-BR")


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(404, text="not found")

    async with CathoClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(FetchError, match="HTTP 404"):
            await client.fetch(BASE_URL + "nada/")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fetch_outside_context_manager_fails():
    with pytest.raises(RuntimeError):
        await CathoClient().fetch(BASE_URL)


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(CathoClient._get.retry, "wait", wait_none())


@pytest.mark.asyncio
async def test_server_errors_are_retried_until_success(no_backoff):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, text=listing_html([listing_job(1)]))

    async with CathoClient(transport=httpx.MockTransport(handler)) as client:
        page = await client.fetch(BASE_URL + "ti/")

    assert len(calls) == 3
    assert page.status_code == 200


@pytest.mark.asyncio
async def test_retries_give_up_after_four_attempts(no_backoff):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(503, text="busy")

    async with CathoClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(FetchError, match="HTTP 503"):
            await client.fetch(BASE_URL + "ti/")
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_transport_errors_are_retried(no_backoff):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) == 1:
            raise httpx.ConnectError("connection reset", request=request)
        return httpx.Response(200, text=listing_html([listing_job(1)]))

    async with CathoClient(transport=httpx.MockTransport(handler)) as client:
        page = await client.fetch(BASE_URL + "ti/")
    assert len(calls) == 2
    assert page.next_data() is not None
