"""Utility helpers for pipewatch."""

from pipewatch.utils.formatting import (
    format_date_string,
    format_duration,
    parse_timestamp,
)

__all__ = [
    "format_date_string",
    "format_duration",
    "parse_timestamp",
]
