"""HTTP fetcher backed by ``httpx.AsyncClient``."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Self

import httpx

from stabcrawl._http import DEFAULT_USER_AGENT
from stabcrawl.fetchers._errors import bad_status_error, wrap_fetch_error
from stabcrawl.retry import RetryPolicy, retry_async, should_retry_fetch

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class HttpxFetcher:
    """Fetch documents over HTTP(S) with bounded retries.

    The fetcher owns its client unless one is injected; only an owned client
    is closed by ``aclose()``.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        retry: RetryPolicy | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: Optional pre-configured client (tests pass a MockTransport).
            retry: Retry policy for transient failures; defaults to ``RetryPolicy()``.
            user_agent: ``User-Agent`` header for an owned client.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": user_agent, "Accept": "application/json"},
            follow_redirects=True,
        )
        self._retry = retry or RetryPolicy()

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        """GET *address* and return the body text."""

        async def _attempt() -> str:
            try:
                response = await self._client.get(address, timeout=timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise wrap_fetch_error(e, address=address) from e
            logger.debug("GET %s -> %d", address, response.status_code)
            if not response.is_success:
                raise bad_status_error(address, response)
            return response.text

        if self._retry.max_attempts <= 1:
            return await _attempt()
        return await retry_async(
            _attempt, policy=self._retry, should_retry=should_retry_fetch
        )

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
