from __future__ import annotations

from datetime import date

from fastapi import FastAPI, HTTPException, Query

from cache import PersistenceError, load_cache
from coverage_summary import compute_coverage_summary
from grid import utc_today
from models import Observation, Status
from series_policy import CACHE_PATH, EPOCH, SERIES_ID, policy_payload

app = FastAPI(title="Money Supply Cache API", version="1.0.0")


def _load_series() -> dict[date, Observation]:
    try:
        return load_cache(CACHE_PATH, missing_ok=True)
    except PersistenceError as err:
        raise HTTPException(status_code=500, detail=f"Invalid cache: {err}") from err


@app.get("/v1/supply/latest")
def supply_latest() -> dict:
    series = _load_series()
    if not series:
        raise HTTPException(status_code=404, detail="No observations cached.")
    latest = series[max(series)]
    return {"series_id": SERIES_ID, **latest.model_dump(mode="json")}


@app.get("/v1/supply/history")
def supply_history(
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    status: Status | None = Query(default=None),
) -> dict:
    items: list[dict] = []
    for day, obs in sorted(_load_series().items()):
        if start and day < start:
            continue
        if end and day > end:
            continue
        if status and obs.status is not status:
            continue
        items.append(obs.model_dump(mode="json"))
    return {"series_id": SERIES_ID, "items": items}


@app.get("/v1/supply/coverage")
def supply_coverage() -> dict:
    summary = compute_coverage_summary(_load_series(), start=EPOCH, end=utc_today())
    return summary.model_dump(mode="json")


@app.get("/v1/policy")
def policy() -> dict:
    return policy_payload()
