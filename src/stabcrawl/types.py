"""Core data types shared by the executor, transformer and aggregator."""

from __future__ import annotations

from collections.abc import Iterable
import dataclasses
from typing import Final, Generic, Literal, TypeAlias, TypeVar

T = TypeVar("T")

UNKNOWN: Final = "unknown"

Stability = int | Literal["unknown"]
GroupedResult = dict[int | str, list[str]]


@dataclasses.dataclass(frozen=True, slots=True)
class Task(Generic[T]):
    """One unit of work: a source address and its submission index."""

    index: int
    address: T


@dataclasses.dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """A task that produced a value."""

    index: int
    value: T


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A task that raised; the error is kept rather than propagated."""

    index: int
    error: Exception


TaskResult: TypeAlias = Success[T] | Failure


@dataclasses.dataclass(frozen=True, slots=True)
class ModuleRecord:
    """A documented module and its stability index (or ``"unknown"``)."""

    name: str
    stability: Stability


def make_tasks(addresses: Iterable[T]) -> list[Task[T]]:
    """Number addresses in submission order."""
    return [Task(index=i, address=a) for i, a in enumerate(addresses)]
