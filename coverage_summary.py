from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

from grid import day_grid
from models import CoverageSummary, Observation, Status
from series_policy import METHOD_VERSION, SERIES_ID


def _latest(series: dict[date, Observation], end: date, status: Status | None = None) -> Observation | None:
    for day in sorted(series, reverse=True):
        if day > end:
            continue
        obs = series[day]
        if status is None or obs.status is status:
            return obs
    return None


def compute_coverage_summary(series: dict[date, Observation], start: date, end: date) -> CoverageSummary:
    grid_days = 0
    finalized = 0
    provisional = 0
    first_gap: date | None = None
    for day in day_grid(start, end):
        grid_days += 1
        obs = series.get(day)
        if obs is None:
            if first_gap is None:
                first_gap = day
            continue
        if obs.is_finalized:
            finalized += 1
        else:
            provisional += 1

    covered = finalized + provisional
    return CoverageSummary(
        series_id=SERIES_ID,
        method_version=METHOD_VERSION,
        start=start,
        end=end,
        grid_days=grid_days,
        covered_days=covered,
        finalized_days=finalized,
        provisional_days=provisional,
        missing_days=grid_days - covered,
        coverage_ratio=round(covered / grid_days, 4) if grid_days else 0.0,
        first_gap=first_gap,
        latest=_latest(series, end),
        latest_finalized=_latest(series, end, Status.FINALIZED),
        generated_at=datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
    )


def write_coverage_summary(path: Path, summary: CoverageSummary) -> None:
    path.write_text(json.dumps(summary.model_dump(mode="json"), indent=2))
