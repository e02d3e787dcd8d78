"""Merge the cached series with fresh remote observations.

Days are walked in order over the grid. A finalized day is kept as is. Any
other day is fetched while quota remains; when the source has no answer the
day inherits the magnitude of the day before it as a provisional value.
Once the quota runs out the remaining days stay exactly as cached.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterable, Optional

from models import Observation
from series_policy import CALL_DELAY_SECONDS, REQUEST_LIMIT
from sources import FetchCancelled, FetchResult

logger = logging.getLogger(__name__)

Fetcher = Callable[[date], FetchResult]


@dataclass
class RunBudget:
    request_limit: int = REQUEST_LIMIT
    call_delay_seconds: float = CALL_DELAY_SECONDS
    sleep: Callable[[float], None] = time.sleep
    calls: int = 0

    @property
    def exhausted(self) -> bool:
        return self.calls >= self.request_limit

    def consume(self) -> None:
        self.calls += 1

    def pace(self) -> None:
        if self.call_delay_seconds > 0:
            self.sleep(self.call_delay_seconds)


@dataclass
class ReconcileReport:
    series: dict[date, Observation]
    remote_calls: int = 0
    finalized: int = 0
    imputed: int = 0
    gaps: list[date] = field(default_factory=list)
    quota_used: int = 0
    quota_skipped: int = 0
    cancelled: bool = False
    cancel_reason: Optional[str] = None
    stopped_at: Optional[date] = None

    def as_dict(self) -> dict:
        return {
            "days": len(self.series),
            "remote_calls": self.remote_calls,
            "finalized": self.finalized,
            "imputed": self.imputed,
            "gaps": [day.isoformat() for day in self.gaps],
            "quota_used": self.quota_used,
            "quota_skipped": self.quota_skipped,
            "cancelled": self.cancelled,
            "cancel_reason": self.cancel_reason,
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
        }


def carry_forward(series: dict[date, Observation], day: date) -> Observation | None:
    previous = series.get(day - timedelta(days=1))
    if previous is None:
        return None
    return previous.carry_to(day)


def reconcile(
    grid: Iterable[date],
    cached: dict[date, Observation],
    fetch: Fetcher,
    budget: RunBudget | None = None,
) -> ReconcileReport:
    if budget is None:
        budget = RunBudget()
    series = dict(cached)
    report = ReconcileReport(series=series)

    for day in grid:
        current = series.get(day)
        if current is not None and current.is_finalized:
            continue

        if budget.exhausted:
            report.quota_skipped += 1
            continue

        if current is None:
            budget.consume()
            report.quota_used += 1

        try:
            result = fetch(day)
        except FetchCancelled as err:
            logger.warning("stopping at %s, remote source unavailable: %s", day.isoformat(), err)
            report.cancelled = True
            report.cancel_reason = str(err)
            report.stopped_at = day
            break

        if result.remote:
            report.remote_calls += 1

        if result.observation is not None:
            series[day] = result.observation
            report.finalized += 1
        else:
            imputed = carry_forward(series, day)
            if imputed is None:
                if current is None:
                    logger.warning("no value and no predecessor for %s, leaving it unset", day.isoformat())
                    report.gaps.append(day)
            else:
                series[day] = imputed
                report.imputed += 1

        if result.remote:
            budget.pace()

    return report
