from .time import (
    ParseError,
    utc_now,
    to_minutes,
    minutes_to_time,
    duration,
    shift_time,
    round_to_quarter,
    overlaps,
    is_within,
    format_duration,
)

__all__ = [
    "ParseError",
    "utc_now",
    "to_minutes",
    "minutes_to_time",
    "duration",
    "shift_time",
    "round_to_quarter",
    "overlaps",
    "is_within",
    "format_duration",
]
