"""Duration parsing utilities for configuration.

Dispatch intervals are short (seconds, occasionally sub-second in tests),
so durations are parsed to float seconds.
"""

import re
from typing import Optional


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_HUMAN_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)")
_ISO_PATTERN = re.compile(r"^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?$")


def parse_duration(value) -> float:
    """
    Parse a duration to seconds.

    Accepts bare numbers (seconds), human-readable strings and ISO-8601
    time durations:
    - Numbers: 5, 2.5
    - Human-readable: "500ms", "2s", "1m30s", "1h"
    - ISO-8601: "PT5S", "PT1M30S"

    Raises:
        DurationParseError: If the value is invalid or negative

    Examples:
        >>> parse_duration("2s")
        2.0
        >>> parse_duration("PT1M30S")
        90.0
        >>> parse_duration(0.25)
        0.25
    """
    if isinstance(value, bool):
        raise DurationParseError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if value < 0:
            raise DurationParseError(f"Duration cannot be negative: {value}")
        return float(value)

    if not isinstance(value, str):
        raise DurationParseError(f"Invalid duration type: {type(value).__name__}")

    duration_str = value.strip()
    if not duration_str:
        raise DurationParseError("Duration string cannot be empty")

    if duration_str.upper().startswith("P"):
        return _parse_iso8601_duration(duration_str)

    return _parse_human_readable_duration(duration_str)


def _parse_iso8601_duration(duration_str: str) -> float:
    match = _ISO_PATTERN.match(duration_str.upper())
    if not match or duration_str.upper() == "PT":
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{duration_str}'. "
            "Expected format like 'PT5S', 'PT1M30S' or 'PT1H'"
        )

    hours, minutes, seconds = match.groups()
    total = 0.0
    if hours:
        total += int(hours) * 3600
    if minutes:
        total += int(minutes) * 60
    if seconds:
        total += float(seconds)
    return total


def _parse_human_readable_duration(duration_str: str) -> float:
    lowered = duration_str.lower()
    matches = _HUMAN_PART.findall(lowered)

    if not matches:
        # Bare numeric string, e.g. "5"
        try:
            seconds = float(lowered)
        except ValueError:
            raise DurationParseError(
                f"Invalid duration format: '{duration_str}'. "
                "Expected format like '500ms', '2s', '1m' or '1m30s'"
            ) from None
        if seconds < 0:
            raise DurationParseError(f"Duration cannot be negative: '{duration_str}'")
        return seconds

    # The whole string must be consumed by number+unit pairs
    parsed_str = "".join(f"{num}{unit}" for num, unit in matches)
    if parsed_str != re.sub(r"\s+", "", lowered):
        raise DurationParseError(
            f"Invalid characters in duration: '{duration_str}'. "
            "Use only digits and units: ms, s, m, h"
        )

    return sum(float(num) * _UNIT_SECONDS[unit] for num, unit in matches)


def validate_duration_range(
    duration_seconds: float,
    min_seconds: float = 0.0,
    max_seconds: Optional[float] = None,
    field_name: str = "duration",
) -> None:
    """
    Validate that a duration is within an acceptable range.

    Raises:
        DurationParseError: If duration is outside the valid range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{field_name} too short: {duration_seconds:g}s. Minimum is {min_seconds:g}s."
        )

    if max_seconds is not None and duration_seconds > max_seconds:
        raise DurationParseError(
            f"{field_name} too long: {duration_seconds:g}s. Maximum is {max_seconds:g}s."
        )
