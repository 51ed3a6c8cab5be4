"""UTC time helpers shared by order models and the dispatch worker."""

from datetime import datetime, timezone
from typing import Optional

LOG_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Aware ``datetime`` for the current instant in UTC."""
    return datetime.now(timezone.utc)


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Normalize ``moment`` to an aware UTC datetime.

    Naive values are assumed to already be UTC (checkout stores them that
    way); aware values in another zone are converted. ``None`` passes through.
    """
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def seconds_since(moment: datetime, now: Optional[datetime] = None) -> float:
    """Seconds a job has waited since ``moment``, clamped at zero.

    >>> start = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)
    >>> seconds_since(start, now=datetime(2025, 11, 4, 12, 0, 7, 250000, tzinfo=timezone.utc))
    7.25
    """
    reference = as_utc(now) if now is not None else utc_now()
    waited = (reference - as_utc(moment)).total_seconds()
    return round(max(waited, 0.0), 3)


def format_timestamp_for_log(moment: Optional[datetime]) -> str:
    """Second-precision UTC stamp for log fields, or ``""`` when absent."""
    normalized = as_utc(moment)
    return normalized.strftime(LOG_TIMESTAMP_FORMAT) if normalized else ""
