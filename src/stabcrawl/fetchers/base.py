"""Fetcher protocol: minimal interface for retrieving one document."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Fetcher(Protocol):
    """Retrieve the text content at an address.

    Implementations raise ``FetchError`` for non-2xx statuses, transport
    errors and timeouts. One failing fetch must never affect concurrent
    fetches of other addresses.
    """

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        """Return the document at *address* as text."""
        ...
