"""Result envelope building and JSON rendering."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal, TypedDict

from stabcrawl.errors import FetchError, TransformError
from stabcrawl.types import UNKNOWN, Failure

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stabcrawl.types import GroupedResult, Task, TaskResult


class CrawlResult(TypedDict, total=False):
    """Standard result envelope returned by a crawl.

    ``status`` is ``"ok"`` when no task failed, ``"partial"`` when some did,
    or ``"error"`` when all of them did.
    """

    status: Literal["ok", "partial", "error"]
    groups: GroupedResult  # Stable core contract.
    #: One entry per failed task: ``index``, ``address``, ``kind``, ``error``.
    failures: list[dict[str, Any]]
    #: Keys: ``duration_s``, ``n_tasks``, ``n_succeeded``, ``n_failed``, ``concurrency``.
    metrics: dict[str, Any]


def _failure_kind(error: Exception) -> str:
    if isinstance(error, (FetchError, TransformError)):
        return error.kind
    return type(error).__name__


def build_result(
    tasks: Sequence[Task[str]],
    results: Sequence[TaskResult[Any]],
    groups: GroupedResult,
    *,
    duration_s: float,
    concurrency: int,
) -> CrawlResult:
    """Build a CrawlResult from ordered task results and their grouping."""
    failures = [
        {
            "index": r.index,
            "address": tasks[r.index].address,
            "kind": _failure_kind(r.error),
            "error": str(r.error),
        }
        for r in results
        if isinstance(r, Failure)
    ]
    n_failed = len(failures)

    status: Literal["ok", "partial", "error"] = "ok"
    if results and n_failed == len(results):
        status = "error"
    elif n_failed:
        status = "partial"

    return CrawlResult(
        status=status,
        groups=groups,
        failures=failures,
        metrics={
            "duration_s": duration_s,
            "n_tasks": len(tasks),
            "n_succeeded": len(results) - n_failed,
            "n_failed": n_failed,
            "concurrency": concurrency,
        },
    )


def _key_order(key: int | str) -> tuple[int, int, str]:
    if isinstance(key, int):
        return (0, key, "")
    if key == UNKNOWN:
        return (2, 0, key)
    return (1, 0, key)


def render_json(groups: GroupedResult, *, indent: int | None = 2) -> str:
    """Render groups as JSON: numeric keys ascending, ``unknown`` last."""
    ordered = {str(k): groups[k] for k in sorted(groups, key=_key_order)}
    return json.dumps(ordered, indent=indent)
