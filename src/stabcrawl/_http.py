"""Small HTTP-related constants shared across stabcrawl.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    VERSION = version("stabcrawl")
except PackageNotFoundError:
    VERSION = "0.0.0+unknown"

# Retryable status codes shared by fetch error mapping and retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

DEFAULT_INDEX_URL = "https://nodejs.org/api/index.json"
DEFAULT_USER_AGENT = f"stabcrawl/{VERSION}"
