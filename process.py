from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path

from cache import PersistenceError, load_cache, write_cache
from coverage_summary import compute_coverage_summary, write_coverage_summary
from grid import day_grid, utc_now, utc_today
from models import CoverageSummary
from reconcile import Fetcher, ReconcileReport, RunBudget, reconcile
from series_policy import (
    CACHE_PATH,
    CALL_DELAY_SECONDS,
    COVERAGE_PATH,
    EPOCH,
    METHOD_VERSION,
    REQUEST_LIMIT,
    SERIES_ID,
    ConfigError,
    load_api_key,
)
from sources import CircuitBreaker, DayFetcher, RemoteRejected, ResponseShapeError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FATAL_ERRORS = (ConfigError, PersistenceError, RemoteRejected, ResponseShapeError, OSError)


def coverage_path_for(cache_path: Path) -> Path:
    return cache_path.with_name(COVERAGE_PATH.name)


def run(
    cache_path: Path,
    fetch: Fetcher,
    budget: RunBudget | None = None,
    now: datetime | None = None,
    init: bool = False,
) -> tuple[ReconcileReport, CoverageSummary]:
    """Load, merge and rewrite the cache once.

    Errors raised before the cache is written leave the file untouched.
    A cancelled fetch loop is not an error: whatever was merged is written.
    The coverage summary is derived from the written cache, so failing to
    store it is logged rather than raised.
    """
    if now is None:
        now = utc_now()
    cached = load_cache(cache_path, missing_ok=init)
    end = utc_today(now)
    report = reconcile(day_grid(EPOCH, end), cached, fetch, budget)
    if report.cancelled:
        logger.warning("fetching stopped early at %s; writing partial result", report.stopped_at)
    write_cache(cache_path, report.series)
    summary = compute_coverage_summary(report.series, start=EPOCH, end=end)
    coverage_path = coverage_path_for(cache_path)
    try:
        write_coverage_summary(coverage_path, summary)
    except OSError as err:
        logger.error("cache written but coverage summary %s was not: %s", coverage_path, err)
    return report, summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"Fill the local {SERIES_ID} daily cache from FRED.")
    parser.add_argument("--cache", type=Path, default=CACHE_PATH, help="Path of the CSV cache.")
    parser.add_argument("--limit", type=int, default=REQUEST_LIMIT, help="Max uncached days to fetch this run.")
    parser.add_argument("--delay", type=float, default=CALL_DELAY_SECONDS, help="Seconds to wait after each remote call.")
    parser.add_argument("--init", action="store_true", help="Start from an empty cache if the file is missing.")
    parser.add_argument("--json", action="store_true", help="Emit the run summary as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    if args.limit < 0 or args.delay < 0:
        logger.error("--limit and --delay must not be negative")
        return 1

    try:
        api_key = load_api_key()
    except ConfigError as err:
        logger.error("configuration error: %s", err)
        return 1

    started = utc_now()
    fetcher = DayFetcher(api_key, breaker=CircuitBreaker(), now=lambda: started)
    budget = RunBudget(request_limit=args.limit, call_delay_seconds=args.delay)
    try:
        report, summary = run(args.cache, fetcher, budget=budget, now=started, init=args.init)
    except FATAL_ERRORS as err:
        logger.error("run aborted, cache left as it was: %s", err)
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "method_version": METHOD_VERSION,
                    "run": report.as_dict(),
                    "coverage": summary.model_dump(mode="json"),
                },
                indent=2,
            )
        )
    else:
        status = "stopped_early" if report.cancelled else "completed"
        print(f"Run status: {status}")
        print(
            "Summary: "
            f"remote_calls={report.remote_calls} finalized={report.finalized} imputed={report.imputed} "
            f"quota={budget.calls}/{budget.request_limit} "
            f"coverage={summary.coverage_ratio} missing_days={summary.missing_days}"
        )
        if report.cancelled:
            print(f"Stopped at {report.stopped_at}: {report.cancel_reason}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
