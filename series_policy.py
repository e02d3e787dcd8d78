from __future__ import annotations

import os
from copy import deepcopy
from datetime import date
from pathlib import Path
from typing import Mapping

METHOD_VERSION = "v1.0.0"

SERIES_ID = "M2SL"
SERIES_LABEL = "M2 money supply (billions of USD)"
EPOCH = date(2020, 12, 1)

API_KEY_ENV = "FRED_API_KEY"
REQUEST_LIMIT = 100
CALL_DELAY_SECONDS = 0.2
REQUEST_TIMEOUT_SECONDS = 10

DATA_DIR = Path(".")
CACHE_PATH = DATA_DIR / "supply.csv"
COVERAGE_PATH = DATA_DIR / "supply_coverage.json"

BREAKER_POLICY: dict = {
    "max_attempts": 3,
    "failure_limit": 5,
    "cooldown_seconds": 60.0,
    "backoff_base_seconds": 0.8,
    "backoff_cap_seconds": 2.0,
}

SERIES_POLICY: dict = {
    "series_id": SERIES_ID,
    "label": SERIES_LABEL,
    "epoch": EPOCH.isoformat(),
    "request_limit": REQUEST_LIMIT,
    "call_delay_seconds": CALL_DELAY_SECONDS,
    "request_timeout_seconds": REQUEST_TIMEOUT_SECONDS,
    "breaker": BREAKER_POLICY,
    "imputation": {
        "rule": "carry_forward",
        "current_month": "never_fetched",
        "no_predecessor": "left_absent",
    },
}


class ConfigError(Exception):
    pass


def load_api_key(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    key = (env.get(API_KEY_ENV) or "").strip()
    if not key:
        raise ConfigError(f"${{{API_KEY_ENV}}} must not be empty")
    return key


def policy_payload() -> dict:
    payload = deepcopy(SERIES_POLICY)
    payload["method_version"] = METHOD_VERSION
    return payload
