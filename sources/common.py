from __future__ import annotations

import http.client
import json
import socket
import time
import urllib.request
from datetime import datetime, timezone
from typing import Any
from urllib.error import HTTPError, URLError

DEFAULT_TIMEOUT_SECONDS = 10
USER_AGENT = "money-supply-cache/1.0 (+https://fred.stlouisfed.org)"
DNS_PREFLIGHT_HOSTS = ("api.stlouisfed.org",)
RETRYABLE_HTTP_STATUS = {429, 500, 502, 503, 504}

_DNS_PREFLIGHT_CACHE: dict[str, Any] = {
    "checked_at_epoch": None,
    "ok": None,
    "failures": [],
}


class FetchError(Exception):
    """Transient failure talking to the remote source."""


class RemoteRejected(Exception):
    """The remote source refused the request (bad key, bad parameters)."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class ResponseShapeError(Exception):
    """The remote source answered with something we cannot interpret."""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def redact(url: str) -> str:
    head, sep, tail = url.partition("api_key=")
    if not sep:
        return url
    _, amp, rest = tail.partition("&")
    return f"{head}api_key=***{amp}{rest}"


def _is_dns_error(err: Exception) -> bool:
    text = str(err).lower()
    if "nodename nor servname provided" in text or "name or service not known" in text:
        return True
    if isinstance(err, URLError):
        reason = getattr(err, "reason", None)
        if isinstance(reason, socket.gaierror):
            return True
        if reason and isinstance(reason, Exception):
            rtext = str(reason).lower()
            if "nodename nor servname provided" in rtext or "name or service not known" in rtext:
                return True
    return False


def dns_preflight(ttl_seconds: int = 300, hosts: tuple[str, ...] = DNS_PREFLIGHT_HOSTS) -> dict:
    now_epoch = int(time.time())
    checked = _DNS_PREFLIGHT_CACHE.get("checked_at_epoch")
    cached_ok = _DNS_PREFLIGHT_CACHE.get("ok")
    if isinstance(checked, int) and (now_epoch - checked) < ttl_seconds and cached_ok is not None:
        return {
            "checked_at_epoch": checked,
            "ok": bool(cached_ok),
            "failures": list(_DNS_PREFLIGHT_CACHE.get("failures") or []),
            "cached": True,
        }

    failures: list[dict] = []
    for host in hosts:
        try:
            socket.gethostbyname(host)
        except OSError as err:  # pragma: no cover - network dependent
            failures.append({"host": host, "error": str(err)})

    ok = len(failures) == 0
    _DNS_PREFLIGHT_CACHE["checked_at_epoch"] = now_epoch
    _DNS_PREFLIGHT_CACHE["ok"] = ok
    _DNS_PREFLIGHT_CACHE["failures"] = failures
    return {
        "checked_at_epoch": now_epoch,
        "ok": ok,
        "failures": failures,
        "cached": False,
    }


def fetch_url(url: str, timeout: int = DEFAULT_TIMEOUT_SECONDS, retries: int = 0) -> str:
    shown = redact(url)
    last_err: Exception | None = None
    for attempt in range(retries + 1):
        try:
            headers = {
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            }
            req = urllib.request.Request(url, headers=headers)
            with urllib.request.urlopen(req, timeout=timeout) as response:
                return response.read().decode("utf-8", errors="replace")
        except HTTPError as err:
            if err.code not in RETRYABLE_HTTP_STATUS:
                raise RemoteRejected(err.code, f"HTTP {err.code} from {shown}") from err
            last_err = err
        except (URLError, OSError, http.client.HTTPException) as err:
            last_err = err
            if _is_dns_error(err):
                preflight = dns_preflight(ttl_seconds=60)
                if not preflight["ok"]:
                    failed = ", ".join(item["host"] for item in preflight.get("failures", [])[:3])
                    raise FetchError(
                        f"DNS resolver unavailable. Preflight failed for: {failed}. Original error: {err}"
                    ) from err
        if attempt < retries:
            time.sleep(1.5 * (attempt + 1))
    raise FetchError(f"Failed to fetch URL: {shown}: {last_err}")


def fetch_json(url: str, timeout: int = DEFAULT_TIMEOUT_SECONDS, retries: int = 0) -> Any:
    text = fetch_url(url, timeout=timeout, retries=retries)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseShapeError(f"Invalid JSON from {redact(url)}: {exc}") from exc
