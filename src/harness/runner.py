#!/usr/bin/env python3
"""
Signal Harness Runner

Visits every demo merchant page on every configured browser project and
verifies that the required lifecycle signals fire.

Usage:
    signal-harness                              # all merchants, all projects
    signal-harness --project chromium --merchant sauce-demo
    signal-harness --headless --workers 2 --junit test-results/results.xml

Exit code is 0 when every test passed, 1 when any failed, 2 on bad config.
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from browser.session import BrowserSession
from config import SUPPORTED_PROJECTS, ConfigError, config
from harness.driver import REQUIRED_SIGNALS, MerchantResult, verify_merchant
from harness.merchants import MERCHANTS, Merchant, MerchantUrl
from harness.reporters import JsonReporter, JUnitReporter, ListReporter
from services.logger import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class RunOptions:
    """Resolved settings for one harness run."""

    projects: list[str] = field(default_factory=lambda: list(SUPPORTED_PROJECTS))
    headless: bool = True
    workers: int = 4
    retries: int = 0
    test_timeout: float = 120.0
    signal_timeout_ms: int = 15000
    signal_max_retries: int = 3
    signal_retry_backoff: float = 1.0
    poll_interval: float = 0.05
    default_wait_timeout_ms: int = 30000
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1280, "height": 720})
    ignore_https_errors: bool = True
    wait_until: str = "domcontentloaded"
    cdp_url: str | None = None

    @classmethod
    def from_config(cls, cfg=config, cdp_url: str | None = None) -> "RunOptions":
        harness = cfg.section("harness")
        browser = cfg.section("browser")
        return cls(
            projects=list(browser["projects"]),
            headless=browser["headless"],
            workers=harness["workers"],
            retries=harness["retries"],
            test_timeout=harness["test_timeout"],
            signal_timeout_ms=harness["signal_timeout_ms"],
            signal_max_retries=harness["signal_max_retries"],
            signal_retry_backoff=harness["signal_retry_backoff"],
            poll_interval=harness["poll_interval"],
            default_wait_timeout_ms=harness["default_wait_timeout_ms"],
            viewport=dict(browser["viewport"]),
            ignore_https_errors=browser["ignore_https_errors"],
            wait_until=browser["navigation_wait_until"],
            cdp_url=cdp_url,
        )


SessionFactory = Callable[..., Any]


async def run_with_retries(session, entry: MerchantUrl, index: int, options: RunOptions) -> MerchantResult:
    """Run one merchant test, retrying the whole test up to options.retries times."""
    result: MerchantResult | None = None
    for attempt in range(1, options.retries + 2):
        try:
            result = await asyncio.wait_for(
                verify_merchant(
                    session,
                    entry,
                    index,
                    signals=REQUIRED_SIGNALS,
                    signal_timeout=options.signal_timeout_ms,
                    max_retries=options.signal_max_retries,
                    backoff=options.signal_retry_backoff,
                    wait_until=options.wait_until,
                ),
                timeout=options.test_timeout,
            )
        except asyncio.TimeoutError:
            result = MerchantResult(
                index=index,
                merchant=getattr(entry.merchant, "value", entry.merchant),
                url=entry.url,
                project=session.project,
                duration_s=options.test_timeout,
                error=f"Test timeout of {options.test_timeout:.0f}s exceeded",
            )

        result.attempt = attempt
        if result.passed or attempt > options.retries:
            break
        logger.warning(f"{result.title} failed on {session.project}, retrying ({attempt}/{options.retries})")

    return result


async def run_project(
    project: str,
    entries: list[MerchantUrl],
    options: RunOptions,
    session_factory: SessionFactory = BrowserSession,
) -> list[MerchantResult]:
    """Run every merchant on one browser project, at most options.workers at a time."""
    cdp_url = options.cdp_url if project == "chromium" else None
    session = session_factory(
        project=project,
        headless=options.headless,
        viewport=options.viewport,
        ignore_https_errors=options.ignore_https_errors,
        cdp_url=cdp_url,
        poll_interval=options.poll_interval,
        default_wait_timeout=options.default_wait_timeout_ms,
    )
    semaphore = asyncio.Semaphore(options.workers)

    async def run_one(index: int, entry: MerchantUrl) -> MerchantResult:
        async with semaphore:
            return await run_with_retries(session, entry, index, options)

    async with session:
        return list(await asyncio.gather(*(run_one(i, e) for i, e in enumerate(entries, 1))))


async def run_suite(
    entries: list[MerchantUrl],
    options: RunOptions,
    session_factory: SessionFactory = BrowserSession,
) -> list[MerchantResult]:
    """Run every project in turn and collect all results."""
    results: list[MerchantResult] = []
    for project in options.projects:
        logger.info(f"=== Project: {project} ({len(entries)} merchant pages) ===")
        results.extend(await run_project(project, entries, options, session_factory))
    return results


def select_entries(merchants: list[str] | None) -> list[MerchantUrl]:
    """Catalog entries, optionally filtered by merchant short name."""
    if not merchants:
        return list(MERCHANTS)
    wanted = set(merchants)
    return [entry for entry in MERCHANTS if entry.merchant.value in wanted]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="signal-harness",
        description="Verify lifecycle signals on demo merchant pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Everything, default projects
  %(prog)s

  # One merchant on chromium, headless
  %(prog)s --project chromium --merchant sauce-demo --headless

  # CI-style run with reports
  %(prog)s --retries 2 --workers 1 --junit test-results/results.xml --json test-results/results.json
        """,
    )
    parser.add_argument(
        "--project", action="append", choices=SUPPORTED_PROJECTS,
        help="Browser project to run (repeatable, default: all configured)",
    )
    parser.add_argument(
        "--merchant", action="append", choices=[m.value for m in Merchant],
        help="Only test this merchant (repeatable)",
    )
    parser.add_argument(
        "--headless", action=argparse.BooleanOptionalAction, default=None,
        help="Run browsers headless (default: true on CI)",
    )
    parser.add_argument("--retries", type=int, help="Whole-test retries")
    parser.add_argument("--workers", type=int, help="Concurrent pages per project")
    parser.add_argument("--timeout", type=int, help="Per-signal wait timeout in ms")
    parser.add_argument("--config", help="JSON file with configuration overrides")
    parser.add_argument("--junit", help="JUnit XML report path (default: <output_dir>/results.xml)")
    parser.add_argument("--json", help="JSON report path (default: <output_dir>/results.json)")
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Console log level",
    )
    return parser


def apply_cli_overrides(args: argparse.Namespace, cfg=config) -> None:
    """Fold CLI flags into the config so validate() sees them."""
    if args.config:
        cfg.load_from_file(args.config)
    if args.project:
        cfg.set("browser", "projects", args.project)
    if args.headless is not None:
        cfg.set("browser", "headless", args.headless)
    if args.retries is not None:
        cfg.set("harness", "retries", args.retries)
    if args.workers is not None:
        cfg.set("harness", "workers", args.workers)
    if args.timeout is not None:
        cfg.set("harness", "signal_timeout_ms", args.timeout)
    if args.log_level:
        cfg.set("logging", "level", args.log_level)


def main(argv: list[str] | None = None, session_factory: SessionFactory = BrowserSession) -> int:
    """CLI entry point"""
    args = build_parser().parse_args(argv)

    try:
        apply_cli_overrides(args, config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    root_logger = setup_logging()
    config.set_logger(root_logger)

    try:
        environment = config.load_environment()
        config.validate()
    except ConfigError as e:
        logger.critical(str(e))
        return 2

    options = RunOptions.from_config(config, cdp_url=environment.cdp_url)
    entries = select_entries(args.merchant)
    if not entries:
        logger.error("No merchant pages selected")
        return 2

    logger.info(
        f"Running {len(entries)} merchant pages on {', '.join(options.projects)} "
        f"(env={environment.environment}, workers={options.workers}, retries={options.retries})"
    )
    results = asyncio.run(run_suite(entries, options, session_factory))

    ListReporter().report(results)
    JUnitReporter(args.junit or config.FILES["junit_file"]).report(results)
    JsonReporter(args.json or config.FILES["json_file"]).report(results)

    return 0 if results and all(r.passed for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
