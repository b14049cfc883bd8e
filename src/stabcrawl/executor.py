"""Bounded fan-out/fan-in execution of independent tasks.

A fixed pool of ``min(C, N)`` worker coroutines pulls task indices from a
FIFO queue and writes each outcome into a pre-sized slot at the task's index.
Workers own disjoint slots, so no lock is needed; the batch is complete when
the pool drains and every slot is filled.
"""

from __future__ import annotations

import asyncio
from collections import deque
import logging
from time import perf_counter
from typing import TYPE_CHECKING, Any, TypeVar

from stabcrawl.errors import BatchFailedError, ConfigurationError, InternalError
from stabcrawl.observer import NoOpObserver
from stabcrawl.types import Failure, Success, make_tasks

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from stabcrawl.observer import Observer
    from stabcrawl.types import Task, TaskResult

logger = logging.getLogger(__name__)

A = TypeVar("A")
R = TypeVar("R")


class BoundedExecutor:
    """Run tasks with at most ``concurrency`` in flight, results in submission order.

    In the default mode every task runs and failures come back as
    ``Failure`` entries next to the successes. With ``fail_fast=True`` the
    first failure observed stops the dispatch of unstarted tasks, lets the
    in-flight ones finish, discards everything and raises
    ``BatchFailedError`` chained to the failing task's exception.
    """

    def __init__(
        self,
        concurrency: int,
        *,
        fail_fast: bool = False,
        observer: Observer | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            concurrency: Maximum number of tasks in flight (>= 1).
            fail_fast: Abort the batch on the first failure.
            observer: Optional progress observer; defaults to a no-op.

        Raises:
            ConfigurationError: If ``concurrency`` is not a positive integer.
        """
        if (
            isinstance(concurrency, bool)
            or not isinstance(concurrency, int)
            or concurrency < 1
        ):
            raise ConfigurationError(
                f"concurrency must be ≥ 1, got {concurrency!r}",
                hint="A batch needs at least one concurrency slot.",
                reason="non_positive_concurrency",
            )
        self.concurrency = concurrency
        self.fail_fast = fail_fast
        self.observer: Observer = observer if observer is not None else NoOpObserver()

    async def run(
        self,
        tasks: Sequence[Task[A]],
        work: Callable[[Task[A]], Awaitable[R]],
    ) -> list[TaskResult[R]]:
        """Run ``work`` over ``tasks`` and return one result per task, by index."""
        n = len(tasks)
        if n == 0:
            return []

        slots: list[TaskResult[R] | None] = [None] * n
        pending: deque[int] = deque(range(n))
        first_failure: Failure | None = None
        n_workers = min(self.concurrency, n)
        logger.debug(
            "Running %d task(s) concurrency=%d fail_fast=%s",
            n,
            n_workers,
            self.fail_fast,
        )

        async def _worker() -> None:
            nonlocal first_failure
            while pending and first_failure is None:
                idx = pending.popleft()
                task = tasks[idx]
                self._notify("task_started", task)
                start = perf_counter()
                outcome: TaskResult[R]
                try:
                    outcome = Success(idx, await work(task))
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    outcome = Failure(idx, exc)
                slots[idx] = outcome
                self._notify("task_finished", task, outcome, perf_counter() - start)
                if (
                    self.fail_fast
                    and isinstance(outcome, Failure)
                    and first_failure is None
                ):
                    first_failure = outcome

        await asyncio.gather(*(_worker() for _ in range(n_workers)))

        if first_failure is not None:
            failed = tasks[first_failure.index]
            skipped = len(pending)
            logger.info(
                "Batch aborted at task %d (%d unstarted): %s",
                failed.index,
                skipped,
                first_failure.error,
            )
            raise BatchFailedError(
                f"Task {failed.index} failed: {first_failure.error}",
                task_index=failed.index,
                address=failed.address,
                hint="Disable fail_fast to collect per-task failures instead.",
            ) from first_failure.error

        results: list[TaskResult[R]] = []
        for i, slot in enumerate(slots):
            if slot is None:
                raise InternalError(
                    f"Task {i} produced no result",
                    hint="This is a stabcrawl internal error. Please report it.",
                )
            results.append(slot)
        return results

    def _notify(self, event: str, *args: Any) -> None:
        """Deliver an observer event; a failing observer never breaks the batch."""
        try:
            getattr(self.observer, event)(*args)
        except Exception as exc:
            logger.warning("Observer %s failed: %s", event, exc)


async def run_bounded(
    items: Sequence[A],
    worker: Callable[[A], Awaitable[R]],
    *,
    concurrency: int,
    fail_fast: bool = False,
    observer: Observer | None = None,
) -> list[TaskResult[R]]:
    """Apply ``worker`` to raw items with bounded concurrency.

    Convenience wrapper that numbers ``items`` into tasks first.
    """
    executor = BoundedExecutor(concurrency, fail_fast=fail_fast, observer=observer)
    return await executor.run(make_tasks(items), lambda task: worker(task.address))
