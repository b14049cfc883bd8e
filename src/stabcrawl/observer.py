"""Observer interface for executor and pipeline progress.

Observers are passed explicitly; the default is a stateless no-op so that
unobserved runs pay nothing and no process-wide debug state exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from stabcrawl.types import Failure

if TYPE_CHECKING:
    from stabcrawl.types import Task, TaskResult

log = logging.getLogger(__name__)


@runtime_checkable
class Observer(Protocol):
    """Duck-typed protocol for progress observers."""

    def task_started(self, task: Task[Any]) -> None: ...  # noqa: D102
    def task_finished(  # noqa: D102
        self, task: Task[Any], result: TaskResult[Any], duration_s: float
    ) -> None: ...
    def stage_completed(self, stage: str, value: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class NoOpObserver:
    """An immutable and stateless observer that ignores every event."""

    def task_started(self, task: Task[Any]) -> None:
        return None

    def task_finished(
        self, task: Task[Any], result: TaskResult[Any], duration_s: float
    ) -> None:
        return None

    def stage_completed(self, stage: str, value: Any) -> None:
        return None


@dataclass(frozen=True, slots=True)
class LoggingObserver:
    """Log task lifecycle at DEBUG and failures at INFO."""

    logger: logging.Logger = field(default=log)

    def task_started(self, task: Task[Any]) -> None:
        self.logger.debug("task %d start: %s", task.index, task.address)

    def task_finished(
        self, task: Task[Any], result: TaskResult[Any], duration_s: float
    ) -> None:
        if isinstance(result, Failure):
            self.logger.info(
                "task %d failed after %.3fs: %s: %s",
                task.index,
                duration_s,
                type(result.error).__name__,
                result.error,
            )
            return
        self.logger.debug("task %d done in %.3fs", task.index, duration_s)

    def stage_completed(self, stage: str, value: Any) -> None:
        size = len(value) if hasattr(value, "__len__") else None
        self.logger.debug("stage %s complete (size=%s)", stage, size)


@dataclass
class RecordingObserver:
    """Keep intermediate values and task timings for later inspection.

    Useful in a REPL or a test: run a pipeline, then explore
    ``observer.stages["records"]`` and friends.
    """

    stages: dict[str, Any] = field(default_factory=dict)
    started: list[int] = field(default_factory=list)
    finished: list[int] = field(default_factory=list)
    durations: dict[int, float] = field(default_factory=dict)

    def task_started(self, task: Task[Any]) -> None:
        self.started.append(task.index)

    def task_finished(
        self, task: Task[Any], result: TaskResult[Any], duration_s: float
    ) -> None:
        self.finished.append(task.index)
        self.durations[task.index] = duration_s

    def stage_completed(self, stage: str, value: Any) -> None:
        self.stages[stage] = value
