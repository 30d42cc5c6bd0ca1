"""Time utilities (UTC now, elapsed formatting, timestamp coercion)."""
from __future__ import annotations
from datetime import datetime, timezone, timedelta
from typing import Any

# Epoch values above this are taken to be milliseconds
_MILLIS_THRESHOLD = 1e10
# 9999-12-31T23:59:59Z, the last second datetime can represent
_MAX_EPOCH_SECONDS = 253402300799


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_elapsed(start: datetime, end: datetime | None = None) -> str:
    end_ts = end or utc_now()
    delta: timedelta = end_ts - start
    ms = int(delta.total_seconds() * 1000)
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms/1000:.2f}s"
    return f"{delta.total_seconds()/60:.2f}m"


def isoformat_utc(dt: datetime) -> str:
    if dt.tzinfo is None or dt.utcoffset() is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def epoch_seconds(value: int | float) -> int:
    """Whole epoch seconds from seconds or milliseconds; 0 when out of range."""
    seconds = value / 1000 if value > _MILLIS_THRESHOLD else value
    if seconds <= 0 or seconds > _MAX_EPOCH_SECONDS:
        return 0
    return int(seconds)


def epoch_to_iso(seconds: int | float | None) -> str | None:
    if not seconds:
        return None
    try:
        return isoformat_utc(datetime.fromtimestamp(float(seconds), tz=timezone.utc))
    except (OverflowError, OSError, ValueError):
        return None


def to_iso_utc(value: Any) -> str | None:
    """Best-effort conversion of a stored timestamp to an ISO-8601 UTC string.

    Accepts datetimes (including Firestore's DatetimeWithNanoseconds), objects
    exposing ``timestamp()``, ``{"_seconds": ...}`` / ``{"seconds": ...}`` maps,
    epoch seconds or milliseconds, and strings (returned as-is). Anything else
    yields None.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, datetime):
            return isoformat_utc(value)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return epoch_to_iso(epoch_seconds(value))
        if isinstance(value, dict):
            seconds = value.get("_seconds", value.get("seconds"))
            return epoch_to_iso(seconds) if isinstance(seconds, (int, float)) else None
        if isinstance(value, str):
            return value
        if hasattr(value, "timestamp"):
            return epoch_to_iso(value.timestamp())
    except (OverflowError, OSError, ValueError):
        return None
    return None


__all__ = ["utc_now", "format_elapsed", "isoformat_utc", "epoch_seconds", "epoch_to_iso", "to_iso_utc"]
