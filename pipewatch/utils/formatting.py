"""Date and duration formatting helpers for run and node detail fields."""

from __future__ import annotations

from contextlib import suppress
from datetime import datetime

MISSING_VALUE = "-"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp as produced by the workflow controller."""
    if not value:
        return None
    with suppress(ValueError, TypeError):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


def format_date_string(value: str | None) -> str:
    """Render a timestamp in local time, or '-' when absent or unparsable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return MISSING_VALUE
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_duration(start: str | None, end: str | None) -> str:
    """Format the elapsed time between two timestamps as H:MM:SS.

    Negative spans keep a leading '-'. Returns '-' if either end is missing.
    """
    started = parse_timestamp(start)
    finished = parse_timestamp(end)
    if started is None or finished is None:
        return MISSING_VALUE

    total_seconds = int((finished - started).total_seconds())
    sign = "-" if total_seconds < 0 else ""
    total_seconds = abs(total_seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours}:{minutes:02d}:{seconds:02d}"


__all__ = [
    "MISSING_VALUE",
    "format_date_string",
    "format_duration",
    "parse_timestamp",
]
