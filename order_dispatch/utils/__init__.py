"""Shared helpers."""

from .timestamps import as_utc, format_timestamp_for_log, seconds_since, utc_now

__all__ = ["as_utc", "format_timestamp_for_log", "seconds_since", "utc_now"]
