"""Fan-in: group ordered module records by stability."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

from stabcrawl.types import Success

if TYPE_CHECKING:
    from collections.abc import Iterable

    from stabcrawl.types import GroupedResult, ModuleRecord, TaskResult

T = TypeVar("T")


def aggregate(records: Iterable[ModuleRecord]) -> GroupedResult:
    """Group module names by stability.

    Names keep the order of ``records`` within each group and groups appear
    in first-seen order, so the same input always yields the same mapping.
    ``"unknown"`` is a group like any other.
    """
    groups: GroupedResult = {}
    for record in records:
        groups.setdefault(record.stability, []).append(record.name)
    return groups


def successful_records(results: Iterable[TaskResult[T]]) -> list[T]:
    """Unwrap successful values, keeping result order."""
    return [r.value for r in results if isinstance(r, Success)]
