"""stabcrawl: bounded-concurrency crawl of API docs, grouped by stability.

Public API:
    - crawl(): Fetch an index, fan out over its modules, group by stability
    - Pipeline: The composed crawl, reusable across runs
    - BoundedExecutor / run_bounded(): Ordered fan-out/fan-in with a ceiling
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stabcrawl._http import DEFAULT_INDEX_URL, VERSION
from stabcrawl.aggregate import aggregate
from stabcrawl.config import Config
from stabcrawl.errors import (
    BatchFailedError,
    ConfigurationError,
    CrawlError,
    FetchError,
    InternalError,
    PipelineError,
    RootFetchError,
    TransformError,
)
from stabcrawl.executor import BoundedExecutor, run_bounded
from stabcrawl.pipeline import Pipeline
from stabcrawl.result import CrawlResult, render_json
from stabcrawl.retry import RetryPolicy
from stabcrawl.transform import transform
from stabcrawl.types import UNKNOWN, Failure, ModuleRecord, Success, Task

if TYPE_CHECKING:
    from stabcrawl.fetchers.base import Fetcher
    from stabcrawl.observer import Observer

__version__ = VERSION

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("stabcrawl").addHandler(logging.NullHandler())


async def crawl(
    index_address: str = DEFAULT_INDEX_URL,
    *,
    config: Config | None = None,
    fetcher: Fetcher | None = None,
    observer: Observer | None = None,
) -> CrawlResult:
    """Crawl a documentation index and group its modules by stability.

    Args:
        index_address: URL or path of the index document.
        config: Optional configuration (concurrency, fail_fast, timeout_ms).
        fetcher: Optional fetcher; chosen from the address when omitted.
        observer: Optional progress observer.

    Returns:
        CrawlResult with ``groups``, per-task ``failures`` and ``metrics``.

    Example:
        result = await crawl(config=Config(concurrency=8))
        print(render_json(result["groups"]))
    """
    pipeline = Pipeline(config, fetcher=fetcher, observer=observer)
    return await pipeline.run(index_address)


__all__ = [
    "DEFAULT_INDEX_URL",
    "UNKNOWN",
    "BatchFailedError",
    "BoundedExecutor",
    "Config",
    "ConfigurationError",
    "CrawlError",
    "CrawlResult",
    "Failure",
    "FetchError",
    "InternalError",
    "ModuleRecord",
    "Pipeline",
    "PipelineError",
    "RetryPolicy",
    "RootFetchError",
    "Success",
    "Task",
    "TransformError",
    "aggregate",
    "crawl",
    "render_json",
    "run_bounded",
    "transform",
]
