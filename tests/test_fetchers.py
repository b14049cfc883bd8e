"""Fetchers: HTTP error mapping, retries, local files and selection."""

from __future__ import annotations

import json

import httpx
import pytest

import stabcrawl
from stabcrawl.config import Config
from stabcrawl.errors import FetchError
from stabcrawl.fetchers import (
    FileFetcher,
    HttpxFetcher,
    MockFetcher,
    fetcher_for,
)
from stabcrawl.fetchers._errors import bad_status_error, wrap_fetch_error
from stabcrawl.retry import RetryPolicy

pytestmark = pytest.mark.unit

ADDRESS = "https://docs.test/api/fs.json"
NO_WAIT = RetryPolicy(max_attempts=3, initial_delay_s=0.0, jitter=False)


def _fetcher(handler, *, retry: RetryPolicy | None = None) -> HttpxFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxFetcher(client=client, retry=retry or RetryPolicy(max_attempts=1))


# =============================================================================
# HttpxFetcher
# =============================================================================


@pytest.mark.asyncio
async def test_http_success_returns_body_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"source": "doc/api/fs.markdown"})

    fetcher = _fetcher(handler)
    body = await fetcher.fetch(ADDRESS)

    assert json.loads(body) == {"source": "doc/api/fs.markdown"}


@pytest.mark.asyncio
async def test_http_404_is_non_retryable_bad_status() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404)

    fetcher = _fetcher(handler, retry=NO_WAIT)
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(ADDRESS)

    assert exc.value.kind == "bad_status"
    assert exc.value.status_code == 404
    assert exc.value.retryable is False
    assert exc.value.address == ADDRESS
    assert exc.value.hint is not None
    assert calls == 1


@pytest.mark.asyncio
async def test_http_503_is_retried_until_success() -> None:
    statuses = iter([503, 503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        return httpx.Response(status, text="{}" if status == 200 else "busy")

    fetcher = _fetcher(handler, retry=NO_WAIT)

    assert await fetcher.fetch(ADDRESS) == "{}"


@pytest.mark.asyncio
async def test_http_retries_are_bounded() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(502)

    fetcher = _fetcher(handler, retry=NO_WAIT)
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(ADDRESS)

    assert exc.value.retryable is True
    assert calls == NO_WAIT.max_attempts


@pytest.mark.asyncio
async def test_http_429_honors_retry_after_then_succeeds() -> None:
    responses = iter(
        [
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, text="{}"),
        ]
    )

    fetcher = _fetcher(lambda request: next(responses), retry=NO_WAIT)

    assert await fetcher.fetch(ADDRESS) == "{}"


@pytest.mark.asyncio
async def test_http_timeout_maps_to_timeout_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    fetcher = _fetcher(handler)
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(ADDRESS, timeout=0.1)

    assert exc.value.kind == "timeout"
    assert isinstance(exc.value.__cause__, httpx.ReadTimeout)


@pytest.mark.asyncio
async def test_http_connect_error_maps_to_transport_kind() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    fetcher = _fetcher(handler)
    with pytest.raises(FetchError) as exc:
        await fetcher.fetch(ADDRESS)

    assert exc.value.kind == "transport"
    assert exc.value.retryable is True


@pytest.mark.asyncio
async def test_injected_client_is_left_open() -> None:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200))
    )
    async with HttpxFetcher(client=client):
        pass

    assert client.is_closed is False
    await client.aclose()


@pytest.mark.asyncio
async def test_owned_client_is_closed() -> None:
    fetcher = HttpxFetcher()
    await fetcher.aclose()

    assert fetcher._client.is_closed is True


@pytest.mark.asyncio
async def test_owned_client_sends_versioned_user_agent() -> None:
    async with HttpxFetcher() as fetcher:
        agent = fetcher._client.headers["User-Agent"]

    assert agent == f"stabcrawl/{stabcrawl.__version__}"


# =============================================================================
# Error mapping helpers
# =============================================================================


def test_wrap_passes_fetch_errors_through() -> None:
    original = FetchError("x", address=ADDRESS, kind="transport")
    assert wrap_fetch_error(original, address=ADDRESS) is original


def test_wrap_builtin_timeout() -> None:
    err = wrap_fetch_error(TimeoutError(), address=ADDRESS)
    assert err.kind == "timeout"
    assert err.retryable is True


def test_bad_status_reads_numeric_retry_after() -> None:
    response = httpx.Response(429, headers={"Retry-After": "3"})

    err = bad_status_error(ADDRESS, response)

    assert err.kind == "bad_status"
    assert err.status_code == 429
    assert err.retryable is True
    assert err.retry_after_s == 3.0


def test_bad_status_ignores_date_retry_after() -> None:
    response = httpx.Response(
        503, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}
    )
    assert bad_status_error(ADDRESS, response).retry_after_s is None


def test_wrap_unknown_exception_is_non_retryable_transport() -> None:
    err = wrap_fetch_error(ValueError("weird"), address=ADDRESS)
    assert err.kind == "transport"
    assert err.retryable is False


# =============================================================================
# FileFetcher
# =============================================================================


@pytest.mark.asyncio
async def test_file_fetcher_reads_paths_and_file_urls(tmp_path) -> None:
    doc = tmp_path / "fs.json"
    doc.write_text('{"stability": 2}', encoding="utf-8")
    fetcher = FileFetcher()

    assert await fetcher.fetch(str(doc)) == '{"stability": 2}'
    assert await fetcher.fetch(doc.as_uri()) == '{"stability": 2}'


@pytest.mark.asyncio
async def test_file_fetcher_missing_file_is_404(tmp_path) -> None:
    with pytest.raises(FetchError) as exc:
        await FileFetcher().fetch(str(tmp_path / "gone.json"))

    assert exc.value.kind == "bad_status"
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_file_fetcher_directory_is_transport_error(tmp_path) -> None:
    with pytest.raises(FetchError) as exc:
        await FileFetcher().fetch(str(tmp_path))

    assert exc.value.kind == "transport"


# =============================================================================
# MockFetcher
# =============================================================================


@pytest.mark.asyncio
async def test_mock_fetcher_serves_text_bytes_and_objects() -> None:
    fetcher = MockFetcher(documents={"a": "text", "b": b"raw", "c": {"k": 1}})

    assert await fetcher.fetch("a") == "text"
    assert await fetcher.fetch("b") == "raw"
    assert json.loads(await fetcher.fetch("c")) == {"k": 1}
    assert fetcher.calls == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_mock_fetcher_unknown_address_and_canned_errors() -> None:
    boom = FetchError("down", address="x", kind="transport")
    fetcher = MockFetcher(documents={"x": boom})

    with pytest.raises(FetchError) as exc:
        await fetcher.fetch("missing")
    assert exc.value.status_code == 404

    with pytest.raises(FetchError) as exc:
        await fetcher.fetch("x")
    assert exc.value is boom
    assert fetcher.in_flight == 0


# =============================================================================
# Selection
# =============================================================================


@pytest.mark.asyncio
async def test_fetcher_for_picks_by_scheme() -> None:
    http = fetcher_for("https://nodejs.org/api/index.json", Config())
    try:
        assert isinstance(http, HttpxFetcher)
    finally:
        await http.aclose()

    assert isinstance(fetcher_for("mirror/api/index.json", Config()), FileFetcher)
    assert isinstance(fetcher_for("file:///srv/api/index.json", Config()), FileFetcher)
