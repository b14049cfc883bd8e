"""Compose fetch, transform and aggregate into one crawl.

Stages run in sequence and each one fully completes before the next:
resolve the index, fan out (fetch + transform per module) through the
bounded executor, then fan in by grouping the ordered records. The
pipeline keeps no state between runs.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from stabcrawl.aggregate import aggregate, successful_records
from stabcrawl.config import Config
from stabcrawl.errors import CrawlError, FetchError, RootFetchError
from stabcrawl.executor import BoundedExecutor
from stabcrawl.fetchers import fetcher_for
from stabcrawl.index import module_addresses, parse_index
from stabcrawl.observer import NoOpObserver
from stabcrawl.result import build_result
from stabcrawl.transform import transform
from stabcrawl.types import make_tasks

if TYPE_CHECKING:
    from stabcrawl.fetchers.base import Fetcher
    from stabcrawl.observer import Observer
    from stabcrawl.result import CrawlResult
    from stabcrawl.types import ModuleRecord, Task

logger = logging.getLogger(__name__)


class Pipeline:
    """Index address in, modules grouped by stability out.

    Construction validates the configuration (an invalid one raises
    ``ConfigurationError`` here, never during a run).
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        fetcher: Fetcher | None = None,
        observer: Observer | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Crawl configuration; defaults to ``Config()``.
            fetcher: Optional fetcher. When omitted, one is chosen per run from
                the index address and closed when the run ends.
            observer: Optional progress observer; defaults to a no-op.
        """
        self.config = config if config is not None else Config()
        self.fetcher = fetcher
        self.observer: Observer = observer if observer is not None else NoOpObserver()
        self._executor = BoundedExecutor(
            self.config.concurrency,
            fail_fast=self.config.fail_fast,
            observer=self.observer,
        )

    async def run(self, index_address: str) -> CrawlResult:
        """Crawl the index at *index_address*.

        Raises:
            RootFetchError: The index could not be fetched or parsed.
            BatchFailedError: A task failed while ``fail_fast`` is enabled.
        """
        start = time.perf_counter()
        fetcher = (
            self.fetcher
            if self.fetcher is not None
            else fetcher_for(index_address, self.config)
        )
        try:
            addresses = await self._resolve_index(fetcher, index_address)
            tasks = make_tasks(addresses)

            async def _fetch_and_transform(task: Task[str]) -> ModuleRecord:
                content = await self._fetch(fetcher, task.address)
                return transform(content, address=task.address)

            results = await self._executor.run(tasks, _fetch_and_transform)
            self._stage("results", results)
        finally:
            if self.fetcher is None:
                await _close(fetcher)

        records = successful_records(results)
        self._stage("records", records)
        groups = aggregate(records)
        self._stage("groups", groups)

        envelope = build_result(
            tasks,
            results,
            groups,
            duration_s=time.perf_counter() - start,
            concurrency=self.config.concurrency,
        )
        if envelope["failures"]:
            logger.warning(
                "%d of %d module(s) failed", len(envelope["failures"]), len(tasks)
            )
        return envelope

    async def _resolve_index(self, fetcher: Fetcher, index_address: str) -> list[str]:
        try:
            content = await self._fetch(fetcher, index_address)
            index = parse_index(content)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            cause = str(e) or type(e).__name__
            raise RootFetchError(
                f"Cannot resolve index {index_address}: {cause}",
                address=index_address,
                hint=e.hint if isinstance(e, CrawlError) else None,
            ) from e
        self._stage("index", index)
        addresses = module_addresses(index, index_address)
        self._stage("addresses", addresses)
        logger.debug("Index %s lists %d module(s)", index_address, len(addresses))
        return addresses

    async def _fetch(self, fetcher: Fetcher, address: str) -> str:
        """Fetch one address under the per-fetch timeout."""
        timeout = self.config.timeout_s
        try:
            return await asyncio.wait_for(
                fetcher.fetch(address, timeout=timeout), timeout
            )
        except TimeoutError as e:
            raise FetchError(
                f"GET {address} timed out after {self.config.timeout_ms}ms",
                address=address,
                kind="timeout",
                hint="Raise timeout_ms or lower concurrency.",
            ) from e

    def _stage(self, stage: str, value: object) -> None:
        try:
            self.observer.stage_completed(stage, value)
        except Exception as exc:
            logger.warning("Observer stage_completed failed: %s", exc)


async def _close(fetcher: Fetcher) -> None:
    aclose = getattr(fetcher, "aclose", None)
    if not callable(aclose):
        return
    try:
        await aclose()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # Cleanup should never mask the primary failure.
        logger.warning("Fetcher cleanup failed: %s", exc)
