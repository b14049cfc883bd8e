"""Fetcher implementations and selection."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlparse

from stabcrawl.fetchers.base import Fetcher
from stabcrawl.fetchers.http import HttpxFetcher
from stabcrawl.fetchers.local import FileFetcher
from stabcrawl.fetchers.mock import MockFetcher

if TYPE_CHECKING:
    from stabcrawl.config import Config


def fetcher_for(address: str, config: Config) -> Fetcher:
    """Pick a fetcher for the root address: HTTP(S) or local files."""
    if urlparse(address).scheme in ("http", "https"):
        return HttpxFetcher(retry=config.retry, user_agent=config.user_agent)
    return FileFetcher()


__all__ = ["Fetcher", "FileFetcher", "HttpxFetcher", "MockFetcher", "fetcher_for"]
