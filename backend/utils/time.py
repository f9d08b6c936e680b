"""Time-related utility functions.

Wall-clock times are ``HH:MM`` strings local to the pharmacy. For arithmetic
they are converted to minutes since midnight (0..1439). There is no overnight
wraparound: a pharmacy's timeline ends before midnight.
"""

import re
from datetime import datetime, timezone

MINUTES_PER_DAY = 24 * 60
LAST_MINUTE = MINUTES_PER_DAY - 1
LAST_QUARTER = MINUTES_PER_DAY - 15

_TIME_PATTERN = re.compile(r"(\d{2}):(\d{2})")


class ParseError(ValueError):
    """Raised for a malformed ``HH:MM`` time string."""


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def to_minutes(time_str: str) -> int:
    """Parse ``HH:MM`` into minutes since midnight.

    Both fields are two digits with no surrounding whitespace. Raises
    ParseError for anything else.
    """
    if not isinstance(time_str, str):
        raise ParseError(f"Expected an HH:MM string, got {type(time_str).__name__}")

    match = _TIME_PATTERN.fullmatch(time_str)
    if not match:
        raise ParseError(f"Invalid time format: {time_str!r} (expected HH:MM)")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour >= 24 or minute >= 60:
        raise ParseError(f"Time out of range: {time_str!r}")

    return hour * 60 + minute


def minutes_to_time(minutes: int) -> str:
    """Format minutes since midnight as ``HH:MM``, clamped to 00:00..23:59."""
    clamped = max(0, min(LAST_MINUTE, int(minutes)))
    return f"{clamped // 60:02d}:{clamped % 60:02d}"


def duration(start: str, end: str) -> int:
    """Minutes from start to end. Negative when end is before start."""
    return to_minutes(end) - to_minutes(start)


def shift_time(time_str: str, delta_minutes: int) -> str:
    """Move a time by delta minutes, saturating at 00:00 and 23:59."""
    return minutes_to_time(to_minutes(time_str) + delta_minutes)


def _round_quarter_minutes(minutes: int, mode: str = "round") -> int:
    if mode == "floor":
        return (minutes // 15) * 15
    if mode == "ceil":
        return -(-minutes // 15) * 15
    if mode != "round":
        raise ValueError(f"Unknown rounding mode: {mode}")
    # nearest, ties up
    return int(minutes / 15 + 0.5) * 15


def round_to_quarter(time_str: str, mode: str = "round") -> str:
    """Round to a multiple of 15 minutes.

    ``mode`` is "round" (nearest, ties up), "floor" or "ceil". The result never
    goes past 23:45, the last quarter of the day.
    """
    return minutes_to_time(min(LAST_QUARTER, _round_quarter_minutes(to_minutes(time_str), mode)))


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap test: touching endpoints do not overlap."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(b_start) < to_minutes(a_end)


def is_within(start: str, end: str, outer_start: str, outer_end: str) -> bool:
    """True when [start, end] lies inside [outer_start, outer_end]."""
    return to_minutes(start) >= to_minutes(outer_start) and to_minutes(end) <= to_minutes(outer_end)


def format_duration(minutes: int) -> str:
    """Format minutes as "7h" or "7h30"."""
    if minutes <= 0:
        return "0h"
    hours, rest = divmod(int(minutes), 60)
    return f"{hours}h" if rest == 0 else f"{hours}h{rest:02d}"
