"""Read and rewrite the persisted ``supply.csv`` cache.

The file holds one row per day under the header ``date,supply,updated``:
an RFC3339 timestamp at UTC midnight, the magnitude with two decimals and
``1`` for a finalized value or ``0`` for a provisional one. It is read once
at the start of a run and replaced as a whole at the end.
"""
from __future__ import annotations

import csv
import io
import logging
import math
import os
import stat
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path

from models import Observation, Status

logger = logging.getLogger(__name__)

HEADER = ["date", "supply", "updated"]
STATUS_FLAGS = {"1": Status.FINALIZED, "0": Status.PROVISIONAL}


class PersistenceError(Exception):
    pass


class MalformedRow(PersistenceError):
    def __init__(self, line: int, detail: str) -> None:
        super().__init__(f"line {line}: {detail}")
        self.line = line
        self.detail = detail


def format_day(day: date) -> str:
    return f"{day.isoformat()}T00:00:00Z"


def parse_day(value: str) -> date:
    stamp = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if stamp.tzinfo is None:
        raise ValueError(f"timestamp without offset: {value!r}")
    stamp = stamp.astimezone(timezone.utc)
    if (stamp.hour, stamp.minute, stamp.second, stamp.microsecond) != (0, 0, 0, 0):
        raise ValueError(f"timestamp is not UTC midnight: {value!r}")
    return stamp.date()


def decode_rows(rows: list[list[str]]) -> dict[date, Observation]:
    if not rows:
        raise MalformedRow(1, "missing header")
    if [cell.strip() for cell in rows[0]] != HEADER:
        raise MalformedRow(1, f"unexpected header {rows[0]!r}")

    series: dict[date, Observation] = {}
    for line, row in enumerate(rows[1:], start=2):
        if not row:
            continue
        if len(row) != 3:
            raise MalformedRow(line, f"expected 3 fields, got {len(row)}")
        raw_day, raw_supply, raw_flag = row
        try:
            day = parse_day(raw_day)
        except ValueError as exc:
            raise MalformedRow(line, f"bad date: {exc}") from exc
        try:
            magnitude = float(raw_supply)
        except ValueError as exc:
            raise MalformedRow(line, f"bad supply {raw_supply!r}") from exc
        if not math.isfinite(magnitude) or magnitude < 0:
            raise MalformedRow(line, f"supply must be finite and non-negative: {raw_supply!r}")
        status = STATUS_FLAGS.get(raw_flag.strip())
        if status is None:
            raise MalformedRow(line, f"bad updated flag {raw_flag!r}")
        if day in series:
            raise MalformedRow(line, f"duplicate day {day.isoformat()}")
        series[day] = Observation(day=day, magnitude=magnitude, status=status)
    return series


def load_cache(path: Path, missing_ok: bool = False) -> dict[date, Observation]:
    if not path.exists():
        if missing_ok:
            logger.info("no cache at %s, starting empty", path)
            return {}
        raise PersistenceError(f"cache file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceError(f"cannot read cache {path}: {exc}") from exc
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as exc:
        raise PersistenceError(f"cannot parse cache {path}: {exc}") from exc
    series = decode_rows(rows)
    logger.info("loaded %d cached days from %s", len(series), path)
    return series


def cache_rows(series: dict[date, Observation]) -> list[list[str]]:
    rows = [list(HEADER)]
    for day in sorted(series):
        obs = series[day]
        rows.append([format_day(day), f"{obs.magnitude:.2f}", "1" if obs.is_finalized else "0"])
    return rows


def _file_mode(path: Path) -> int:
    # mkstemp creates 0600; keep the existing mode, or what open() would give a new file
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_cache(path: Path, series: dict[date, Observation]) -> None:
    rows = cache_rows(series)
    directory = path.parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                csv.writer(handle, lineterminator="\n").writerows(rows)
            os.chmod(tmp_name, _file_mode(path))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(f"cannot write cache {path}: {exc}") from exc
    logger.info("wrote %d days to %s", len(rows) - 1, path)
