"""Exception hierarchy for stabcrawl."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Iterator

FetchErrorKind = Literal["timeout", "transport", "bad_status"]
TransformErrorKind = Literal["unrecognized_schema", "malformed_payload"]
PipelineStage = Literal["root", "batch"]


class CrawlError(Exception):
    """Base exception for all stabcrawl errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CrawlError):
    """Configuration validation failed.

    Raised at construction time and never recovered.
    """

    def __init__(
        self, message: str, *, hint: str | None = None, reason: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.reason = reason


class InternalError(CrawlError):
    """A stabcrawl internal error (bug) or invariant violation."""


class FetchError(CrawlError):
    """Retrieving one resource failed.

    Fetchers attach the address and a coarse ``kind`` so the executor and the
    retry loop can make decisions without parsing messages.
    """

    def __init__(
        self,
        message: str,
        *,
        address: str,
        kind: FetchErrorKind,
        hint: str | None = None,
        status_code: int | None = None,
        retryable: bool | None = None,
        retry_after_s: float | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.address = address
        self.kind = kind
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after_s = retry_after_s


class TransformError(CrawlError):
    """A fetched payload could not be turned into a record."""

    def __init__(
        self,
        message: str,
        *,
        kind: TransformErrorKind,
        address: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.kind = kind
        self.address = address


class PipelineError(CrawlError):
    """A pipeline stage failed as a whole."""

    stage: PipelineStage

    def __init__(
        self, message: str, *, stage: PipelineStage, hint: str | None = None
    ) -> None:
        super().__init__(message, hint=hint)
        self.stage = stage


class RootFetchError(PipelineError):
    """The index document could not be fetched or parsed."""

    def __init__(self, message: str, *, address: str, hint: str | None = None) -> None:
        super().__init__(message, stage="root", hint=hint)
        self.address = address


class BatchFailedError(PipelineError):
    """A fail-fast batch stopped at its first failing task.

    The failing task's exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        task_index: int,
        address: object = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, stage="batch", hint=hint)
        self.task_index = task_index
        self.address = address


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
