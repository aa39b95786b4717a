from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from playwright.async_api import Error as PlaywrightError

from .crawl import CrawlConfig, Crawler
from .filters import HostFilters
from .prober import launch_browser_prober, open_http_prober

_DEBUG_ENV_VARS = ("DEBUG_GENERATOR", "DEBUG", "VERBOSE")


def debug_enabled_from_env(environ: dict[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return any(env.get(name) == "1" for name in _DEBUG_ENV_VARS)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(levelname)s %(message)s")
    root.setLevel(level)
    # Playwright's driver and urllib3 are chatty at DEBUG.
    for name in ("asyncio", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _positive_int(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return value


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="friendlinks",
        description=(
            "Discover blogs through their friend-link pages and write one "
            "YAML record per newly found site."
        ),
    )
    p.add_argument("--links-dir", type=Path, default=Path("links"))
    p.add_argument("--depth", type=int, default=2, help="max BFS depth")
    p.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="crawl and log, but write nothing",
    )
    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument(
        "--visited-file",
        type=Path,
        default=None,
        help="visited-host state file (default: <links-dir>/visited.json)",
    )
    p.add_argument(
        "--resume",
        "--continue",
        dest="resume",
        action="store_true",
        help="load and merge the previous visited state before starting",
    )
    p.add_argument(
        "--async-write",
        action="store_true",
        help="persist records through the background write queue",
    )
    p.add_argument("--write-concurrency", type=_positive_int, default=4)
    p.add_argument(
        "--delay",
        type=float,
        default=0.5,
        help="seconds to wait between crawled hosts",
    )
    p.add_argument(
        "--timeout",
        type=float,
        default=30,
        help="per-page navigation timeout in seconds",
    )
    p.add_argument(
        "--engine",
        choices=("browser", "http"),
        default="browser",
        help="headless Chromium (default) or plain HTTP without scripts",
    )
    p.add_argument(
        "--retries",
        type=_non_negative_int,
        default=1,
        help="extra attempts on transient HTTP errors (http engine only)",
    )
    p.add_argument(
        "--strict-host-match",
        action="store_true",
        help="match block-lists by domain suffix instead of substring",
    )
    return p


async def _run(
    crawl_cfg: CrawlConfig, *, engine: str, timeout_s: float, retries: int
) -> dict:
    if engine == "http":
        async with open_http_prober(
            timeout_s=timeout_s, retries=retries, filters=crawl_cfg.filters
        ) as prober:
            return await Crawler(prober=prober, config=crawl_cfg).crawl()
    async with launch_browser_prober(
        timeout_s=timeout_s, filters=crawl_cfg.filters
    ) as prober:
        return await Crawler(prober=prober, config=crawl_cfg).crawl()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    verbose = bool(args.verbose) or debug_enabled_from_env()
    _configure_logging(verbose)

    links_dir = args.links_dir.resolve()
    if not links_dir.is_dir():
        print(f"Links directory not found: {links_dir}", file=sys.stderr)
        return 2

    visited_file = args.visited_file.resolve() if args.visited_file else None
    crawl_cfg = CrawlConfig(
        links_dir=links_dir,
        visited_file=visited_file,
        max_depth=int(args.depth),
        dry_run=bool(args.dry_run),
        resume=bool(args.resume),
        async_write=bool(args.async_write),
        write_concurrency=int(args.write_concurrency),
        delay_s=max(0.0, float(args.delay)),
        filters=HostFilters(strict_host_match=bool(args.strict_host_match)),
    )

    try:
        summary = asyncio.run(
            _run(
                crawl_cfg,
                engine=args.engine,
                timeout_s=float(args.timeout),
                retries=int(args.retries),
            )
        )
    except OSError as e:
        print(str(e), file=sys.stderr)
        return 2
    except PlaywrightError as e:
        print(f"Could not start the browser: {e}", file=sys.stderr)
        return 2

    stats = summary["stats"]
    print(
        f"friendlinks: visited={stats.get('visited', 0)} "
        f"discovered={summary['discovered']} "
        f"written={len(summary['written'])} "
        f"no_anchors={stats.get('no_anchors', 0)}"
        + (" (dry run)" if crawl_cfg.dry_run else "")
    )
    return 0
