"""Validation of a candidate slot in the quick-assign panel."""

from typing import Iterable, Optional

from compliance.rules import (
    break_is_insufficient,
    exceeds_daily_limit,
    weekly_hours_severity,
)
from compliance.types import (
    ABSOLUTE_MAX_WEEKLY_HOURS,
    ExistingShift,
    LegalLimits,
    ViolationSeverity,
)
from utils.time import format_duration, is_within, to_minutes

from .types import Issue, ValidationResult

LONG_SHIFT_MINUTES = 8 * 60
NEAR_LIMIT_MARGIN_MINUTES = 60


def _hours(minutes: int) -> float:
    return round(minutes / 60, 2)


def validate_slot(
    start_time: str,
    end_time: str,
    av_start: str,
    av_end: str,
    existing_shifts: Iterable[ExistingShift],
    break_minutes: int,
    limits: LegalLimits,
    week_shifts: Optional[Iterable[ExistingShift]] = None,
) -> ValidationResult:
    """
    Validate a candidate slot against availability, existing shifts and legal limits.

    Every check runs; errors and warnings are reported in a fixed order so the
    panel renders them stably.

    Args:
        start_time: Candidate start (HH:MM)
        end_time: Candidate end (HH:MM)
        av_start: Availability window start
        av_end: Availability window end
        existing_shifts: The employee's shifts on the candidate's date
        break_minutes: Break set on the candidate
        limits: The organization's legal limits
        week_shifts: The employee's shifts for the whole week; defaults to
            ``existing_shifts``

    Returns:
        ValidationResult. Malformed times raise ParseError.
    """
    result = ValidationResult()

    start = to_minutes(start_time)
    end = to_minutes(end_time)
    slot_minutes = end - start
    existing_shifts = list(existing_shifts)

    # 1. Containment
    if not is_within(start_time, end_time, av_start, av_end):
        result.errors.append(Issue(
            code="outside_availability",
            message=f"Slot is outside declared availability ({av_start}–{av_end})",
            icon="📋",
            details={"availability_start": av_start, "availability_end": av_end},
        ))

    # 2. Non-empty
    if slot_minutes <= 0:
        result.errors.append(Issue(
            code="invalid_range",
            message="End must be after start",
            icon="❌",
        ))
    elif slot_minutes < limits.min_slot_minutes:
        result.errors.append(Issue(
            code="too_short",
            message=f"Slot must last at least {limits.min_slot_minutes} minutes",
            icon="⏱️",
            actual=_hours(slot_minutes),
            limit=_hours(limits.min_slot_minutes),
        ))

    # 3. Overlap with work shifts
    for shift in existing_shifts:
        if not shift.is_work:
            continue
        if start < shift.end_minutes and shift.start_minutes < end:
            result.errors.append(Issue(
                code="overlap",
                message=f"Conflicts with existing shift {shift.start_time}–{shift.end_time}",
                icon="🔄",
                details={
                    "shift_id": shift.id,
                    "start_time": shift.start_time,
                    "end_time": shift.end_time,
                },
            ))

    # 4. Daily cap on effective time, existing work shifts included
    effective = slot_minutes - break_minutes
    day_minutes = sum(s.effective_minutes for s in existing_shifts if s.is_work) + max(0, effective)
    limit_minutes = int(limits.max_daily_hours * 60)
    if exceeds_daily_limit(day_minutes, limits):
        result.errors.append(Issue(
            code="daily_limit",
            message=f"Daily total {format_duration(day_minutes)} exceeds the {limits.max_daily_hours:g}h daily limit",
            icon="⚖️",
            actual=_hours(day_minutes),
            limit=limits.max_daily_hours,
            details={"slot_hours": _hours(max(0, effective))},
        ))
    elif effective > 0 and day_minutes > limit_minutes - NEAR_LIMIT_MARGIN_MINUTES:
        result.warnings.append(Issue(
            code="near_daily_limit",
            message=f"Daily total {format_duration(day_minutes)} is close to the {limits.max_daily_hours:g}h daily limit",
            icon="⚠️",
            actual=_hours(day_minutes),
            limit=limits.max_daily_hours,
        ))

    if slot_minutes > LONG_SHIFT_MINUTES:
        result.warnings.append(Issue(
            code="long_shift",
            message="Slot is longer than 8h, check compliance",
            icon="⏰",
            actual=_hours(slot_minutes),
            limit=_hours(LONG_SHIFT_MINUTES),
        ))

    # 5. Mandatory break (advisory)
    if slot_minutes > 0 and break_is_insufficient(effective, break_minutes, limits):
        result.warnings.append(Issue(
            code="needs_break",
            message=(
                f"Slots of {limits.break_threshold_hours:g}h or more need a break "
                f"of at least {limits.break_duration_minutes} min"
            ),
            icon="☕",
            details={"recommended_break_minutes": limits.break_duration_minutes},
        ))

    # 6. Weekly total
    if slot_minutes > 0:
        others = existing_shifts if week_shifts is None else list(week_shifts)
        week_minutes = sum(s.effective_minutes for s in others if s.is_work) + max(0, effective)
        week_hours = week_minutes / 60
        severity = weekly_hours_severity(week_hours, limits)
        if severity == ViolationSeverity.CRITICAL:
            result.errors.append(Issue(
                code="weekly_ceiling_exceeded",
                message=f"Weekly total {format_duration(week_minutes)} exceeds the legal maximum of {ABSOLUTE_MAX_WEEKLY_HOURS:g}h",
                icon="🚫",
                actual=round(week_hours, 2),
                limit=ABSOLUTE_MAX_WEEKLY_HOURS,
            ))
        elif severity == ViolationSeverity.WARNING:
            result.warnings.append(Issue(
                code="weekly_target_exceeded",
                message=f"Weekly total {format_duration(week_minutes)} exceeds the {limits.max_weekly_hours:g}h target",
                icon="📈",
                actual=round(week_hours, 2),
                limit=limits.max_weekly_hours,
            ))

    return result
