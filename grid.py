from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    if now is None:
        now = utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def in_current_month(day: date, now: datetime | None = None) -> bool:
    today = utc_today(now)
    return day.year == today.year and day.month == today.month


def day_grid(start: date, end: date, step: timedelta = ONE_DAY) -> Iterator[date]:
    """Yield every day from ``start`` through ``end`` inclusive."""
    if step <= timedelta(0) or step % ONE_DAY:
        raise ValueError(f"step must be a positive whole number of days: {step}")
    day = start
    while day <= end:
        yield day
        day += step
