"""Test helpers (small, reusable doubles and data).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off fetchers and document fixtures.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from stabcrawl.errors import FetchError

INDEX_URL = "https://docs.test/api/index.json"
BASE_URL = "https://docs.test/api/"


def module_url(name: str) -> str:
    return f"{BASE_URL}{name}.json"


def index_doc(*names: str) -> dict[str, Any]:
    """An index document linking to *names*, with a few link-less entries."""
    desc: list[dict[str, Any]] = [{"type": "list_start"}]
    for name in names:
        desc.append({"type": "text", "text": f"[{name.title()}]({name}.html)"})
    desc.append({"type": "text", "text": "Not a link"})
    return {"source": "doc/api/index.markdown", "desc": desc}


def node_docs() -> dict[str, Any]:
    """Index plus one document per known stability schema variant."""
    return {
        INDEX_URL: index_doc("fs", "net", "vm", "crypto", "os"),
        module_url("fs"): {
            "source": "doc/api/fs.markdown",
            "modules": [{"name": "fs", "stability": 3}],
        },
        module_url("net"): {
            "source": "doc/api/net.markdown",
            "stability": 3,
        },
        module_url("vm"): {
            "source": "doc/api/vm.markdown",
            "globals": [{"name": "vm", "stability": 5}],
        },
        module_url("crypto"): {
            "source": "doc/api/crypto.markdown",
            "modules": [{"desc": "<pre><code>Stability: 2 - Unstable</code></pre>"}],
        },
        module_url("os"): {
            "source": "doc/api/os.markdown",
            "miscs": [{"miscs": [{"name": "x"}]}],
        },
    }


@dataclass
class GateFetcher:
    """Fetcher that blocks every fetch until released; counts concurrency."""

    release: asyncio.Event = field(default_factory=asyncio.Event)
    started: list[str] = field(default_factory=list)
    in_flight: int = 0
    peak_in_flight: int = 0

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        del timeout
        self.started.append(address)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await self.release.wait()
        finally:
            self.in_flight -= 1
        return "{}"


@dataclass
class ClosingFetcher:
    """Fetcher that records whether it was closed."""

    closed: bool = False

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        raise FetchError("offline", address=address, kind="transport")

    async def aclose(self) -> None:
        self.closed = True
