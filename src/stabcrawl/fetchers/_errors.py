"""HTTP outcomes mapped to ``FetchError``.

Two paths exist: a completed response with a non-2xx status
(``bad_status_error``) and an exception raised by the client before any
response arrived (``wrap_fetch_error``). Both attach the retry metadata
``retry_async`` reads.
"""

from __future__ import annotations

import asyncio

import httpx

from stabcrawl._http import RETRYABLE_STATUS_CODES
from stabcrawl.errors import FetchError, _walk_exception_chain

_STATUS_HINTS = {
    403: "The server refused the request; check the address or user agent.",
    404: "The document does not exist; the index may be stale.",
    429: "Rate limited; lower concurrency or wait and retry.",
}


def _retry_after_s(response: httpx.Response) -> float | None:
    """Seconds from a numeric ``Retry-After`` header; HTTP dates are ignored."""
    raw = response.headers.get("Retry-After", "").strip()
    try:
        return max(0.0, float(raw)) if raw else None
    except ValueError:
        return None


def bad_status_error(address: str, response: httpx.Response) -> FetchError:
    """Build the error for a completed request with a non-2xx status."""
    status = response.status_code
    return FetchError(
        f"GET {address} returned status {status}",
        address=address,
        kind="bad_status",
        status_code=status,
        retryable=status in RETRYABLE_STATUS_CODES,
        retry_after_s=_retry_after_s(response),
        hint=_STATUS_HINTS.get(status),
    )


def wrap_fetch_error(exc: BaseException, *, address: str) -> FetchError:
    """Map an exception raised by the HTTP client into ``FetchError``.

    Timeouts and ``httpx.RequestError`` are retryable; anything else is a
    non-retryable transport failure.
    """
    if isinstance(exc, asyncio.CancelledError):
        raise exc
    if isinstance(exc, FetchError):
        return exc

    chain = list(_walk_exception_chain(exc))
    if any(isinstance(e, (httpx.TimeoutException, TimeoutError)) for e in chain):
        return FetchError(
            f"GET {address} timed out",
            address=address,
            kind="timeout",
            retryable=True,
            hint="Raise timeout_ms or lower concurrency.",
        )
    return FetchError(
        f"GET {address} failed: {str(exc) or type(exc).__name__}",
        address=address,
        kind="transport",
        retryable=any(isinstance(e, httpx.RequestError) for e in chain),
    )
