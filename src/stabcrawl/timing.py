"""Sequential vs. bounded-concurrent mock downloads.

Blocking downloads take roughly the sum of the individual delays; the same
downloads through the bounded executor take roughly the maximum (with enough
concurrency slots). Both runs use identical delays so the comparison is
apples to apples.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import random
import time
from typing import TYPE_CHECKING, Self

from stabcrawl.executor import BoundedExecutor
from stabcrawl.fetchers.mock import MockFetcher
from stabcrawl.types import Success, make_tasks

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import TracebackType

    from stabcrawl.types import Task

logger = logging.getLogger(__name__)


class Timer:
    """Named wall-clock timer; usable as a context manager."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.start_s: float | None = None
        self.end_s: float | None = None
        self.elapsed_ms: float | None = None

    def start(self) -> None:
        self.start_s = time.perf_counter()
        logger.info("%s start", self.name)

    def stop(self) -> float:
        """Stop the timer and return the elapsed milliseconds."""
        if self.start_s is None:
            raise RuntimeError(f"Timer {self.name!r} was never started")
        self.end_s = time.perf_counter()
        self.elapsed_ms = (self.end_s - self.start_s) * 1000.0
        logger.info("%s elapsed time: %.1f ms", self.name, self.elapsed_ms)
        return self.elapsed_ms

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()


@dataclass(frozen=True)
class Instance:
    """One mock download: an address and how long it takes."""

    url: str
    delay_ms: float


@dataclass(frozen=True)
class TimingReport:
    """Outcome of a sequential vs. concurrent comparison (milliseconds)."""

    n: int
    concurrency: int
    sum_ms: float
    max_ms: float
    sequential_ms: float
    concurrent_ms: float

    @property
    def speedup(self) -> float:
        return self.sequential_ms / self.concurrent_ms if self.concurrent_ms else 0.0


def build_instances(
    n: int, *, seed: int | None = None, max_delay_ms: float = 1000.0
) -> list[Instance]:
    """Build *n* mock URLs with random delays in ``[0, max_delay_ms)``."""
    rng = random.Random(seed)  # noqa: S311
    return [
        Instance(
            url=f"https://example.invalid/search?q={i}",
            delay_ms=rng.random() * max_delay_ms,
        )
        for i in range(n)
    ]


def _mock_download(inst: Instance) -> float:
    with Timer(f"  {inst.url}"):
        time.sleep(inst.delay_ms / 1000.0)
    return inst.delay_ms


def run_sequential(instances: Sequence[Instance]) -> list[float]:
    """Download one after another, blocking for each delay."""
    return [_mock_download(inst) for inst in instances]


def _slots(instances: Sequence[Instance], concurrency: int | None) -> int:
    """One slot per download unless a concurrency was given."""
    return max(1, len(instances)) if concurrency is None else concurrency


async def _download_all(
    instances: Sequence[Instance], executor: BoundedExecutor
) -> list[float]:
    fetcher = MockFetcher(
        documents={inst.url: str(inst.delay_ms) for inst in instances},
        delays_s={inst.url: inst.delay_ms / 1000.0 for inst in instances},
    )

    async def _download(task: Task[Instance]) -> float:
        inst = task.address
        with Timer(f"  {inst.url}"):
            await fetcher.fetch(inst.url)
        return inst.delay_ms

    results = await executor.run(make_tasks(instances), _download)
    return [r.value for r in results if isinstance(r, Success)]


async def run_concurrent(
    instances: Sequence[Instance], *, concurrency: int | None = None
) -> list[float]:
    """Download through the bounded executor; results keep input order.

    Raises:
        ConfigurationError: If ``concurrency`` is given and below 1.
    """
    executor = BoundedExecutor(_slots(instances, concurrency))
    return await _download_all(instances, executor)


def compare(
    instances: Sequence[Instance], *, concurrency: int | None = None
) -> TimingReport:
    """Time the sequential run, then the concurrent run, on the same delays.

    The concurrency is validated before either run starts.
    """
    slots = _slots(instances, concurrency)
    executor = BoundedExecutor(slots)
    with Timer("Sequential") as seq:
        delays = run_sequential(instances)
    with Timer("Concurrent") as conc:
        asyncio.run(_download_all(instances, executor))
    return TimingReport(
        n=len(instances),
        concurrency=slots,
        sum_ms=sum(delays),
        max_ms=max(delays, default=0.0),
        sequential_ms=seq.elapsed_ms or 0.0,
        concurrent_ms=conc.elapsed_ms or 0.0,
    )
