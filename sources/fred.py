"""FRED observations for a single day.

The API is queried with ``observation_start == observation_end`` so an exact
hit returns one observation. FRED answers ``"."`` when it has no number for
the date; that, or any count other than one, is treated as unknown.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Callable
from urllib.parse import urlencode

from grid import in_current_month, utc_now
from models import Observation
from series_policy import REQUEST_TIMEOUT_SECONDS, SERIES_ID

from .breaker import CircuitBreaker
from .common import ResponseShapeError, fetch_json
from .types import FetchResult

logger = logging.getLogger(__name__)

FRED_OBSERVATIONS_URL = "https://api.stlouisfed.org/fred/series/observations"
MISSING_VALUE = "."


def build_query_url(api_key: str, day: date, series_id: str = SERIES_ID) -> str:
    stamp = day.isoformat()
    params = {
        "series_id": series_id,
        "api_key": api_key,
        "observation_start": stamp,
        "observation_end": stamp,
        "file_type": "json",
    }
    return f"{FRED_OBSERVATIONS_URL}?{urlencode(params)}"


def parse_observation(payload: Any) -> float | None:
    if not isinstance(payload, dict):
        raise ResponseShapeError(f"expected a JSON object, got {type(payload).__name__}")
    count = payload.get("count", 0)
    observations = payload.get("observations", [])
    if isinstance(count, bool) or not isinstance(count, int) or not isinstance(observations, list):
        raise ResponseShapeError("count must be an integer and observations a list")

    if count != 1 or len(observations) != 1:
        return None

    row = observations[0]
    if not isinstance(row, dict) or not isinstance(row.get("value"), str):
        raise ResponseShapeError(f"observation has no textual value: {row!r}")
    text = row["value"].strip()
    if text == MISSING_VALUE:
        return None
    try:
        value = float(text)
    except ValueError as exc:
        raise ResponseShapeError(f"observation value is not a number: {text!r}") from exc
    if not math.isfinite(value) or value < 0:
        raise ResponseShapeError(f"observation value out of range: {text!r}")
    return value


class DayFetcher:
    def __init__(
        self,
        api_key: str,
        breaker: CircuitBreaker | None = None,
        series_id: str = SERIES_ID,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        now: Callable[[], datetime] = utc_now,
        get_json: Callable[..., Any] = fetch_json,
    ) -> None:
        self.api_key = api_key
        self.breaker = breaker or CircuitBreaker()
        self.series_id = series_id
        self.timeout = timeout
        self._now = now
        self._get_json = get_json

    def query(self, day: date) -> float | None:
        url = build_query_url(self.api_key, day, self.series_id)
        return parse_observation(self._get_json(url, timeout=self.timeout))

    def __call__(self, day: date) -> FetchResult:
        if in_current_month(day, self._now()):
            return FetchResult(day=day, observation=None, remote=False)

        logger.info("filling remote money supply for %s", day.isoformat())
        value = self.breaker.execute(lambda: self.query(day))
        if value is None:
            return FetchResult(day=day, observation=None, remote=True)
        return FetchResult(day=day, observation=Observation.finalized(day, value), remote=True)
