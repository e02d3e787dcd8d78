from __future__ import annotations

import argparse
import json
import platform
import sys
import time
from datetime import date, datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from series_policy import EPOCH, SERIES_ID, ConfigError, load_api_key
from sources import (
    CircuitBreaker,
    DayFetcher,
    FetchCancelled,
    RemoteRejected,
    ResponseShapeError,
    dns_preflight,
)


def classify_detail(detail: str) -> str:
    text = (detail or "").lower()
    if "dns resolver unavailable" in text or "nodename nor servname" in text or "name or service not known" in text:
        return "dns"
    if "timed out" in text or "timeout" in text:
        return "timeout"
    if "http 4" in text and "http 429" not in text:
        return "rejected"
    if "invalid json" in text or "not a number" in text or "must be an integer" in text:
        return "shape"
    return "other"


def probe(api_key: str, day: date) -> dict:
    fetcher = DayFetcher(api_key, breaker=CircuitBreaker(max_attempts=1, failure_limit=1))
    started = time.time()
    row = {"day": day.isoformat(), "ok": False, "value": None, "error_class": None, "detail": None}
    try:
        result = fetcher(day)
        row["ok"] = True
        row["value"] = result.observation.magnitude if result.observation else None
        row["detail"] = "unknown" if result.unknown else "finalized"
    except (FetchCancelled, RemoteRejected, ResponseShapeError) as err:
        row["detail"] = str(err)
        row["error_class"] = classify_detail(str(err))
    row["elapsed_ms"] = int((time.time() - started) * 1000)
    return row


def main() -> int:
    parser = argparse.ArgumentParser(description=f"Diagnose FRED reachability for {SERIES_ID}.")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text.")
    parser.add_argument("--day", type=date.fromisoformat, default=EPOCH, help="Day to probe (YYYY-MM-DD).")
    args = parser.parse_args()

    preflight = dns_preflight(ttl_seconds=0)
    try:
        api_key = load_api_key()
        key_error = None
    except ConfigError as err:
        api_key = None
        key_error = str(err)

    summary = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": platform.python_version(),
        "series_id": SERIES_ID,
        "dns_preflight": preflight,
        "api_key_present": api_key is not None,
        "api_key_error": key_error,
        "probe": probe(api_key, args.day) if api_key else None,
    }

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(f"Python: {summary['python_version']}")
        print(f"DNS preflight ok: {preflight.get('ok')} failures={len(preflight.get('failures', []))}")
        print(f"API key present: {summary['api_key_present']}")
        row = summary["probe"]
        if row:
            print(
                f"{SERIES_ID} {row['day']}: ok={row['ok']} value={row['value']} "
                f"class={row['error_class']} detail={row['detail']} elapsed_ms={row['elapsed_ms']}"
            )

    healthy = preflight.get("ok") and summary["probe"] is not None and summary["probe"]["ok"]
    return 0 if healthy else 1


if __name__ == "__main__":
    raise SystemExit(main())
