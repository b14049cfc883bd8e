"""Bounded async retry for document fetches.

Retry decisions read the structured ``FetchError`` metadata that fetchers
attach (``retryable``, ``status_code``, ``retry_after_s``); nothing else is
retried.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import random
import time
from typing import TYPE_CHECKING, TypeVar

from stabcrawl._http import RETRYABLE_STATUS_CODES
from stabcrawl.errors import FetchError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a fetch and how long to wait in between.

    Waits grow by ``backoff_multiplier`` from ``initial_delay_s`` up to
    ``max_delay_s``. With ``jitter`` the wait is drawn uniformly from
    ``[0, wait]``. ``max_elapsed_s`` caps the total time spent retrying.
    """

    # One retry absorbs a blip on a healthy docs host without stretching
    # a batch's tail latency.
    max_attempts: int = 2
    initial_delay_s: float = 0.5
    backoff_multiplier: float = 2.0
    max_delay_s: float = 5.0
    jitter: bool = True
    max_elapsed_s: float | None = 15.0

    def __post_init__(self) -> None:
        """Reject values that would make retry timing undefined."""
        checks = (
            (self.max_attempts >= 1, "max_attempts must be >= 1"),
            (self.initial_delay_s >= 0, "initial_delay_s must be >= 0"),
            (self.backoff_multiplier > 0, "backoff_multiplier must be > 0"),
            (self.max_delay_s >= 0, "max_delay_s must be >= 0"),
            (
                self.max_elapsed_s is None or self.max_elapsed_s >= 0,
                "max_elapsed_s must be >= 0 or None",
            ),
        )
        for ok, message in checks:
            if not ok:
                raise ValueError(f"RetryPolicy.{message}")

    def wait_before(self, retry_number: int, *, retry_after_s: float | None) -> float:
        """Seconds to sleep before retry *retry_number* (1-based).

        A server-provided ``Retry-After`` is a floor for the backoff.
        """
        wait = min(
            self.max_delay_s,
            self.initial_delay_s * self.backoff_multiplier ** (retry_number - 1),
        )
        if self.jitter and wait > 0:
            wait = random.uniform(0.0, wait)  # noqa: S311
        if retry_after_s is not None:
            wait = max(wait, retry_after_s)
        return wait


def should_retry_fetch(exc: BaseException) -> bool:
    """True for a ``FetchError`` marked retryable or carrying a retryable status."""
    if not isinstance(exc, FetchError):
        return False
    if exc.retryable:
        return True
    return exc.status_code in RETRYABLE_STATUS_CODES


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool] = should_retry_fetch,
) -> T:
    """Await ``factory()`` until it succeeds or the policy is exhausted.

    The last exception propagates unchanged.
    """
    deadline = (
        None
        if policy.max_elapsed_s is None
        else time.monotonic() + policy.max_elapsed_s
    )
    attempt = 1
    while True:
        try:
            return await factory()
        except Exception as exc:
            if attempt >= policy.max_attempts or not should_retry(exc):
                raise
            retry_after = exc.retry_after_s if isinstance(exc, FetchError) else None
            wait = policy.wait_before(attempt, retry_after_s=retry_after)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise
                wait = min(wait, remaining)
            logger.debug(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                policy.max_attempts,
                exc,
                wait,
            )
            if wait > 0:
                await asyncio.sleep(wait)
            attempt += 1
