"""Command-line interface.

Examples:
- stabcrawl crawl
- stabcrawl crawl ./mirror/api/index.json --concurrency 8 --timeout-ms 5000
- stabcrawl demo --n 5 --seed 1
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import TYPE_CHECKING

from stabcrawl._http import DEFAULT_INDEX_URL
from stabcrawl.config import Config
from stabcrawl.errors import ConfigurationError, CrawlError
from stabcrawl.observer import LoggingObserver
from stabcrawl.pipeline import Pipeline
from stabcrawl.result import render_json
from stabcrawl.timing import build_instances, compare

if TYPE_CHECKING:
    from collections.abc import Sequence

EXIT_OK = 0
EXIT_PIPELINE_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``crawl`` and ``demo`` subcommands."""
    parser = argparse.ArgumentParser(
        prog="stabcrawl",
        description="Group documented modules by stability index.",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("STABCRAWL_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $STABCRAWL_LOG_LEVEL or WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Crawl an index and print grouped JSON.")
    crawl.add_argument(
        "index",
        nargs="?",
        default=DEFAULT_INDEX_URL,
        help=f"Index URL or path (default: {DEFAULT_INDEX_URL}).",
    )
    crawl.add_argument(
        "--concurrency", type=int, default=None, help="Maximum fetches in flight."
    )
    crawl.add_argument(
        "--fail-fast",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Abort on the first failing module instead of reporting it.",
    )
    crawl.add_argument(
        "--timeout-ms", type=int, default=None, help="Per-fetch timeout."
    )
    crawl.add_argument(
        "--verbose",
        action="store_true",
        help="Log each task's start and finish.",
    )

    demo = sub.add_parser("demo", help="Compare sequential and concurrent timing.")
    demo.add_argument("--n", type=int, default=5, help="Number of mock downloads.")
    demo.add_argument("--seed", type=int, default=None, help="Random seed.")
    demo.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Concurrency slots (default: one per download).",
    )
    return parser


def _configure_logging(level: str, *, verbose: bool) -> None:
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), None)
    logging.basicConfig(
        level=resolved if isinstance(resolved, int) else logging.WARNING,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )


def _report_error(prefix: str, exc: CrawlError) -> None:
    hint = f" Hint: {exc.hint}" if exc.hint else ""
    print(f"{prefix}: {exc}.{hint}", file=sys.stderr)


def _cmd_crawl(args: argparse.Namespace) -> int:
    config = Config.from_env(
        concurrency=args.concurrency,
        fail_fast=args.fail_fast,
        timeout_ms=args.timeout_ms,
    )
    observer = LoggingObserver() if args.verbose else None
    pipeline = Pipeline(config, observer=observer)
    result = asyncio.run(pipeline.run(args.index))
    print(render_json(result["groups"]))
    failures = result["failures"]
    if failures:
        print(
            f"{len(failures)} of {result['metrics']['n_tasks']} module(s) failed",
            file=sys.stderr,
        )
    return EXIT_OK


def _cmd_demo(args: argparse.Namespace) -> int:
    if args.n < 0:
        raise ConfigurationError(f"--n must be ≥ 0, got {args.n}")
    instances = build_instances(args.n, seed=args.seed)
    report = compare(instances, concurrency=args.concurrency)
    print(f"Downloads:       {report.n} (concurrency={report.concurrency})")
    print(f"Sum of times:    {report.sum_ms:.1f} ms")
    print(f"Max of times:    {report.max_ms:.1f} ms")
    print(f"Sequential:      {report.sequential_ms:.1f} ms")
    print(f"Concurrent:      {report.concurrent_ms:.1f} ms")
    print(f"Speedup:         {report.speedup:.2f}x")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return a process exit code."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level, verbose=getattr(args, "verbose", False))
    try:
        if args.command == "demo":
            return _cmd_demo(args)
        return _cmd_crawl(args)
    except ConfigurationError as exc:
        _report_error("Configuration error", exc)
        return EXIT_CONFIG_ERROR
    except CrawlError as exc:
        _report_error("Crawl failed", exc)
        return EXIT_PIPELINE_ERROR
