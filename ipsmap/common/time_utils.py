"""UTC helpers for run metadata and stage timings."""

from __future__ import annotations

import time
from datetime import date, datetime, timezone


def parse_run_date(value: str | None) -> str:
    if not value:
        return datetime.now(tz=timezone.utc).date().isoformat()
    return date.fromisoformat(value).isoformat()


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.perf_counter()`` reading."""
    return int(round((time.perf_counter() - started) * 1000))
