"""In-memory fetcher for demos and tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import Any

from stabcrawl.errors import FetchError


@dataclass
class MockFetcher:
    """Serve canned documents with optional per-address delays.

    ``documents`` values may be text, JSON-serializable objects or exception
    instances (raised when fetched). Unknown addresses fail like a 404.
    Tracks call order and the peak number of concurrent fetches so tests can
    assert on the concurrency ceiling.
    """

    documents: dict[str, Any] = field(default_factory=dict)
    delays_s: dict[str, float] = field(default_factory=dict)
    default_delay_s: float = 0.0
    calls: list[str] = field(default_factory=list)
    in_flight: int = 0
    peak_in_flight: int = 0

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        """Return the canned document for *address* after its delay."""
        del timeout
        self.calls.append(address)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            delay = self.delays_s.get(address, self.default_delay_s)
            if delay > 0:
                await asyncio.sleep(delay)
            if address not in self.documents:
                raise FetchError(
                    f"GET {address} returned status 404",
                    address=address,
                    kind="bad_status",
                    status_code=404,
                    retryable=False,
                )
            doc = self.documents[address]
            if isinstance(doc, BaseException):
                raise doc
            if isinstance(doc, (str, bytes)):
                return doc.decode("utf-8") if isinstance(doc, bytes) else doc
            return json.dumps(doc)
        finally:
            self.in_flight -= 1
