"""Break recommendation for long slots."""

from compliance.types import LegalLimits
from utils.time import minutes_to_time, round_to_quarter, to_minutes

from .types import BreakSuggestion, CandidateSlot


def recommended_break_minutes(slot_minutes: int, limits: LegalLimits) -> int:
    """Break length from the configured tiers, longest tier the slot reaches."""
    minutes = limits.break_duration_minutes
    for tier in limits.break_tiers:
        if slot_minutes >= tier.min_hours * 60:
            minutes = tier.break_minutes
    return minutes


def suggest_break(start_time: str, end_time: str, limits: LegalLimits) -> BreakSuggestion:
    """
    Recommend a break once the slot reaches the break threshold.

    Re-evaluated on every change, whatever break is already set, so a slot
    that shrinks below the threshold drops the suggestion. The break is
    centred on the slot's midpoint, its start rounded to the quarter hour.
    """
    start = to_minutes(start_time)
    end = to_minutes(end_time)
    slot_minutes = end - start

    if slot_minutes < limits.break_threshold_hours * 60:
        return BreakSuggestion(should_suggest=False)

    break_minutes = recommended_break_minutes(slot_minutes, limits)
    centre = start + slot_minutes // 2
    break_start = round_to_quarter(minutes_to_time(centre - break_minutes // 2))
    break_end = minutes_to_time(to_minutes(break_start) + break_minutes)

    return BreakSuggestion(
        should_suggest=True,
        break_duration=break_minutes,
        break_start=break_start,
        break_end=break_end,
    )


def apply_break(candidate: CandidateSlot, suggestion: BreakSuggestion) -> CandidateSlot:
    """Accept a suggestion: only the break length changes, never start/end."""
    if suggestion.should_suggest:
        candidate.break_duration_minutes = suggestion.break_duration
    return candidate
