"""Candidate slots proposed from an employee's availability window."""

from typing import Iterable

from compliance.types import ExistingShift
from utils.time import minutes_to_time, overlaps, round_to_quarter, to_minutes

from .types import SuggestedSlot

DEFAULT_SPLIT_TIME = "13:00"
DEFAULT_MIN_PART_MINUTES = 120

OVERLAP_REASON = "Overlaps an existing shift"


def _slot(slot_id: str, label: str, icon: str, start: int, end: int) -> SuggestedSlot:
    return SuggestedSlot(
        id=slot_id,
        label=label,
        icon=icon,
        start_time=minutes_to_time(start),
        end_time=minutes_to_time(end),
        duration_minutes=end - start,
    )


def generate_suggestions(
    av_start: str,
    av_end: str,
    existing_shifts: Iterable[ExistingShift] = (),
    split_time: str = DEFAULT_SPLIT_TIME,
    min_part_minutes: int = DEFAULT_MIN_PART_MINUTES,
) -> list[SuggestedSlot]:
    """
    Propose slots for an availability window.

    Always in the order full day, morning, afternoon, custom. Morning runs
    from the window start to ``split_time`` and afternoon from ``split_time``
    to the window end; each is offered on its own when it lasts at least
    ``min_part_minutes`` and differs from the full window. Custom is the first
    half of the window.

    Suggestions overlapping an existing work shift stay in the list, marked
    invalid.
    """
    start = to_minutes(av_start)
    end = to_minutes(av_end)
    if end <= start:
        return []

    suggestions = [_slot("full", "Journée", "📋", start, end)]

    split = to_minutes(split_time)
    morning_end = min(end, split)
    if start < split and morning_end - start >= min_part_minutes and morning_end < end:
        suggestions.append(_slot("morning", "Matinée", "🌅", start, morning_end))
    afternoon_start = max(start, split)
    if end > split and end - afternoon_start >= min_part_minutes and afternoon_start > start:
        suggestions.append(_slot("afternoon", "Après-midi", "☀️", afternoon_start, end))

    half = to_minutes(round_to_quarter(minutes_to_time((start + end) // 2)))
    if half > start:
        suggestions.append(_slot("custom", "Personnalisé", "✏️", start, min(half, end)))

    work_shifts = [s for s in existing_shifts if s.is_work]
    for suggestion in suggestions:
        if any(overlaps(suggestion.start_time, suggestion.end_time, s.start_time, s.end_time) for s in work_shifts):
            suggestion.is_valid = False
            suggestion.invalid_reason = OVERLAP_REASON

    return suggestions


def first_valid_suggestion(suggestions: list[SuggestedSlot]):
    """The suggestion a new quick-assign session starts from, if any."""
    return next((s for s in suggestions if s.is_valid), None)
