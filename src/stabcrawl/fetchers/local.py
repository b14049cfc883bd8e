"""Local file fetcher for mirrored documentation trees."""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

from stabcrawl.errors import FetchError


def _to_path(address: str) -> Path:
    parsed = urlparse(address)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(address)


class FileFetcher:
    """Read documents from disk without blocking sibling fetches."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def fetch(self, address: str, *, timeout: float | None = None) -> str:
        """Read *address* (a path or ``file://`` URL) in a worker thread."""
        path = _to_path(address)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(path.read_text, encoding=self.encoding),
                timeout,
            )
        except TimeoutError as e:
            raise FetchError(
                f"Reading {address} timed out", address=address, kind="timeout"
            ) from e
        except FileNotFoundError as e:
            raise FetchError(
                f"File not found: {path}",
                address=address,
                kind="bad_status",
                status_code=404,
                hint="Check that the mirror contains every module listed in the index.",
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(
                f"Cannot read {path}: {e}", address=address, kind="transport"
            ) from e
