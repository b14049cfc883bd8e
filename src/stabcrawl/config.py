"""Configuration: frozen Config validated at construction."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any

from dotenv import load_dotenv

from stabcrawl._http import DEFAULT_USER_AGENT
from stabcrawl.errors import ConfigurationError
from stabcrawl.retry import RetryPolicy

load_dotenv()

DEFAULT_CONCURRENCY = 36

_ENV_PREFIX = "STABCRAWL_"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Config:
    """Immutable configuration for a crawl.

    Example:
        config = Config(concurrency=8, timeout_ms=5000)
    """

    #: Maximum number of fetches in flight. Far below typical OS
    #: file-descriptor limits; not an architectural constant.
    concurrency: int = DEFAULT_CONCURRENCY
    #: Abort the batch on the first failing task instead of collecting all.
    fail_fast: bool = False
    #: Per-fetch timeout in milliseconds; *None* disables it.
    timeout_ms: int | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        """Validate configuration."""
        if isinstance(self.concurrency, bool) or not isinstance(
            self.concurrency, int
        ):
            raise ConfigurationError(
                f"concurrency must be an integer, got {self.concurrency!r}",
                hint="This controls how many fetches run in parallel.",
                reason="non_positive_concurrency",
            )
        if self.concurrency < 1:
            raise ConfigurationError(
                f"concurrency must be ≥ 1, got {self.concurrency}",
                hint="This controls how many fetches run in parallel.",
                reason="non_positive_concurrency",
            )
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ConfigurationError(
                f"timeout_ms must be > 0 or None, got {self.timeout_ms}",
                hint="Omit timeout_ms to disable per-fetch timeouts.",
                reason="non_positive_timeout",
            )

    @property
    def timeout_s(self) -> float | None:
        """Per-fetch timeout in seconds, as asyncio and httpx expect it."""
        if self.timeout_ms is None:
            return None
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Build a Config from ``STABCRAWL_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, Any] = {}
        raw = os.environ.get(f"{_ENV_PREFIX}CONCURRENCY")
        if raw is not None:
            values["concurrency"] = _parse_int("CONCURRENCY", raw)
        raw = os.environ.get(f"{_ENV_PREFIX}FAIL_FAST")
        if raw is not None:
            values["fail_fast"] = _parse_bool("FAIL_FAST", raw)
        raw = os.environ.get(f"{_ENV_PREFIX}TIMEOUT_MS")
        if raw is not None and raw.strip():
            values["timeout_ms"] = _parse_int("TIMEOUT_MS", raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigurationError(
            f"{_ENV_PREFIX}{name} must be an integer, got {raw!r}",
            hint=f"Unset {_ENV_PREFIX}{name} or set it to a whole number.",
        ) from e


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(
        f"{_ENV_PREFIX}{name} must be a boolean, got {raw!r}",
        hint="Use one of: 1, 0, true, false, yes, no.",
    )
