"""Compliance validators applied retrospectively to a week of shifts."""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, timedelta

from utils.time import format_duration, minutes_to_time, to_minutes

from .rules import (
    break_is_insufficient,
    exceeds_daily_limit,
    weekly_hours_severity,
)
from .types import (
    ABSOLUTE_MAX_WEEKLY_HOURS,
    ComplianceContext,
    EmployeeInfo,
    ExistingShift,
    Violation,
    ViolationSeverity,
    ViolationType,
)

MINUTES_PER_DAY = 24 * 60
COVERAGE_RESOLUTION_MINUTES = 15


def _hours(minutes: float) -> str:
    return format_duration(round(minutes))


def _work_shifts(shifts: list[ExistingShift]) -> list[ExistingShift]:
    return sorted(
        (s for s in shifts if s.is_work),
        key=lambda s: (s.date, s.start_minutes),
    )


def _by_date(shifts: list[ExistingShift]) -> dict[date, list[ExistingShift]]:
    grouped: dict[date, list[ExistingShift]] = defaultdict(list)
    for shift in shifts:
        grouped[shift.date].append(shift)
    return dict(sorted(grouped.items()))


def _period_label(shifts: list[ExistingShift]) -> str:
    dates = sorted({s.date for s in shifts})
    if len(dates) == 1:
        return dates[0].isoformat()
    return f"{dates[0].isoformat()} → {dates[-1].isoformat()}"


class BaseValidator(ABC):
    """Base class for per-employee compliance validators."""

    @abstractmethod
    def validate(
        self,
        context: ComplianceContext,
        employee: EmployeeInfo,
        shifts: list[ExistingShift],
    ) -> list[Violation]:
        """Return the violations found in one employee's week."""
        pass


class DailyLimitValidator(BaseValidator):
    """Effective work time per day must stay under the daily cap."""

    def validate(self, context, employee, shifts):
        limits = context.limits
        violations = []

        for day, day_shifts in _by_date(_work_shifts(shifts)).items():
            effective = sum(s.effective_minutes for s in day_shifts)
            if not exceeds_daily_limit(effective, limits):
                continue
            violations.append(Violation(
                type=ViolationType.DAILY_LIMIT,
                severity=ViolationSeverity.CRITICAL,
                employee_id=employee.id,
                employee_name=employee.full_name,
                date=day.isoformat(),
                message=f"{employee.full_name} works {_hours(effective)} on {day.isoformat()} (max {limits.max_daily_hours:g}h)",
                actual_value=round(effective / 60, 2),
                limit_value=limits.max_daily_hours,
                related_shift_ids=[s.id for s in day_shifts],
            ))

        return violations


class WeeklyHoursValidator(BaseValidator):
    """Weekly total against the tenant target and the absolute ceiling."""

    def validate(self, context, employee, shifts):
        work = _work_shifts(shifts)
        if not work:
            return []

        total_minutes = sum(s.effective_minutes for s in work)
        total_hours = total_minutes / 60
        severity = weekly_hours_severity(total_hours, context.limits)
        if severity is None:
            return []

        if severity == ViolationSeverity.CRITICAL:
            limit = ABSOLUTE_MAX_WEEKLY_HOURS
            message = f"{employee.full_name} works {_hours(total_minutes)} this week, above the legal maximum of {limit:g}h"
        else:
            limit = context.limits.max_weekly_hours
            message = f"{employee.full_name} works {_hours(total_minutes)} this week, above the {limit:g}h target"

        return [Violation(
            type=ViolationType.WEEKLY_HOURS,
            severity=severity,
            employee_id=employee.id,
            employee_name=employee.full_name,
            date=_period_label(work),
            message=message,
            actual_value=round(total_hours, 2),
            limit_value=limit,
            related_shift_ids=[s.id for s in work],
            details={"overtime_hours": round(total_hours - limit, 2)},
        )]


class WeeklyRestValidator(BaseValidator):
    """The longest stretch without work in the period must reach the weekly rest."""

    def validate(self, context, employee, shifts):
        work = _work_shifts(shifts)
        if not work:
            return []

        origin = context.period_start
        period_end_minutes = ((context.period_end - origin).days + 1) * MINUTES_PER_DAY

        def absolute(day: date, minutes: int) -> int:
            return (day - origin).days * MINUTES_PER_DAY + minutes

        longest = absolute(work[0].date, work[0].start_minutes)
        latest_end = absolute(work[0].date, work[0].end_minutes)
        for shift in work[1:]:
            start = absolute(shift.date, shift.start_minutes)
            longest = max(longest, start - latest_end)
            latest_end = max(latest_end, absolute(shift.date, shift.end_minutes))
        longest = max(longest, period_end_minutes - latest_end)

        limit_minutes = context.limits.min_rest_hours_weekly * 60
        if longest >= limit_minutes:
            return []

        return [Violation(
            type=ViolationType.WEEKLY_REST,
            severity=ViolationSeverity.CRITICAL,
            employee_id=employee.id,
            employee_name=employee.full_name,
            date=_period_label(work),
            message=f"{employee.full_name} gets at most {_hours(longest)} of consecutive rest this week (min {context.limits.min_rest_hours_weekly:g}h)",
            actual_value=round(longest / 60, 2),
            limit_value=context.limits.min_rest_hours_weekly,
            related_shift_ids=[s.id for s in work],
        )]


class DailyRestValidator(BaseValidator):
    """Minimum rest between two consecutive working days."""

    def validate(self, context, employee, shifts):
        limits = context.limits
        violations = []
        by_date = _by_date(_work_shifts(shifts))
        days = list(by_date)

        for previous, current in zip(days, days[1:]):
            if (current - previous).days != 1:
                continue

            last_end = max(s.end_minutes for s in by_date[previous])
            first_start = min(s.start_minutes for s in by_date[current])
            rest = (MINUTES_PER_DAY - last_end) + first_start

            if rest < limits.min_daily_rest_hours * 60:
                violations.append(Violation(
                    type=ViolationType.DAILY_REST,
                    severity=ViolationSeverity.CRITICAL,
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    date=f"{previous.isoformat()} → {current.isoformat()}",
                    message=f"{employee.full_name} has only {_hours(rest)} rest between {previous.isoformat()} and {current.isoformat()} (min {limits.min_daily_rest_hours:g}h)",
                    actual_value=round(rest / 60, 2),
                    limit_value=limits.min_daily_rest_hours,
                    related_shift_ids=[s.id for s in by_date[previous] + by_date[current]],
                    details={
                        "previous_shift_end": minutes_to_time(last_end),
                        "next_shift_start": minutes_to_time(first_start),
                    },
                ))

        return violations


class BreakValidator(BaseValidator):
    """Mandatory break once the threshold of work is reached."""

    def validate(self, context, employee, shifts):
        limits = context.limits
        if not limits.break_required:
            return []

        violations = []
        for day, day_shifts in _by_date(_work_shifts(shifts)).items():
            reported = False
            for shift in day_shifts:
                if break_is_insufficient(shift.effective_minutes, shift.break_duration_minutes, limits):
                    reported = True
                    violations.append(Violation(
                        type=ViolationType.MISSING_BREAK,
                        severity=ViolationSeverity.WARNING,
                        employee_id=employee.id,
                        employee_name=employee.full_name,
                        date=day.isoformat(),
                        message=f"{employee.full_name} works {_hours(shift.effective_minutes)} on {day.isoformat()} with a {shift.break_duration_minutes} min break (required: {limits.break_duration_minutes} min)",
                        actual_value=shift.break_duration_minutes,
                        limit_value=limits.break_duration_minutes,
                        unit="min",
                        related_shift_ids=[shift.id],
                    ))

            if reported or len(day_shifts) < 2:
                continue

            # Back-to-back shifts with no gap long enough to count as the break
            total = sum(s.effective_minutes for s in day_shifts)
            longest_pause = max(
                [s.break_duration_minutes for s in day_shifts]
                + [b.start_minutes - a.end_minutes for a, b in zip(day_shifts, day_shifts[1:])]
            )
            if break_is_insufficient(total, longest_pause, limits):
                violations.append(Violation(
                    type=ViolationType.MISSING_BREAK,
                    severity=ViolationSeverity.WARNING,
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    date=day.isoformat(),
                    message=f"{employee.full_name} works {_hours(total)} on {day.isoformat()} without a {limits.break_duration_minutes} min pause between shifts",
                    actual_value=max(0, longest_pause),
                    limit_value=limits.break_duration_minutes,
                    unit="min",
                    related_shift_ids=[s.id for s in day_shifts],
                ))

        return violations


class PharmacistCoverageValidator:
    """At least ``min_pharmacists`` pharmacists on duty, checked across the whole roster."""

    def validate(self, context: ComplianceContext) -> list[Violation]:
        minimum = context.limits.min_pharmacists
        if minimum <= 0:
            return []

        pharmacist_ids = {
            e.id for e in context.employees.values() if e.is_pharmacist and e.is_active
        }
        work = _work_shifts(context.shifts)
        days_with_work = {s.date for s in work}
        pharmacist_shifts = _by_date([s for s in work if s.employee_id in pharmacist_ids])

        violations = []
        day = context.period_start
        while day <= context.period_end:
            day_shifts = pharmacist_shifts.get(day, [])
            if context.opening_hours:
                violation = self._check_opening_hours(context, day, day_shifts)
            elif day in days_with_work:
                violation = self._check_headcount(context, day, day_shifts)
            else:
                violation = None
            if violation:
                violations.append(violation)
            day += timedelta(days=1)

        return violations

    @staticmethod
    def _check_opening_hours(context, day, day_shifts):
        slots = context.opening_hours.get(day.weekday(), [])
        if not slots:
            return None

        minimum = context.limits.min_pharmacists
        uncovered = []
        open_minutes = 0
        covered_minutes = 0
        lowest = None

        for slot in slots:
            slot_start, slot_end = to_minutes(slot.start), to_minutes(slot.end)
            open_minutes += slot_end - slot_start
            gap_start = None
            t = slot_start
            while t < slot_end:
                present = sum(1 for s in day_shifts if s.start_minutes <= t < s.end_minutes)
                lowest = present if lowest is None else min(lowest, present)
                step = min(COVERAGE_RESOLUTION_MINUTES, slot_end - t)
                if present >= minimum:
                    covered_minutes += step
                    if gap_start is not None:
                        uncovered.append({"start": minutes_to_time(gap_start), "end": minutes_to_time(t)})
                        gap_start = None
                elif gap_start is None:
                    gap_start = t
                t += step
            if gap_start is not None:
                uncovered.append({"start": minutes_to_time(gap_start), "end": slot.end})

        if not uncovered:
            return None

        coverage = round(100 * covered_minutes / open_minutes) if open_minutes else 100
        ranges = ", ".join(f"{u['start']}-{u['end']}" for u in uncovered)
        return Violation(
            type=ViolationType.PHARMACIST_COVERAGE,
            severity=ViolationSeverity.CRITICAL,
            employee_id=None,
            employee_name="ALL",
            date=day.isoformat(),
            message=f"Fewer than {minimum} pharmacist(s) on duty on {day.isoformat()}: {ranges}",
            actual_value=lowest or 0,
            limit_value=minimum,
            unit="pharmacists",
            related_shift_ids=[s.id for s in day_shifts],
            details={"uncovered_slots": uncovered, "coverage_percent": coverage},
        )

    @staticmethod
    def _check_headcount(context, day, day_shifts):
        minimum = context.limits.min_pharmacists
        present = len({s.employee_id for s in day_shifts})
        if present >= minimum:
            return None

        return Violation(
            type=ViolationType.PHARMACIST_COVERAGE,
            severity=ViolationSeverity.CRITICAL,
            employee_id=None,
            employee_name="ALL",
            date=day.isoformat(),
            message=f"Only {present} pharmacist(s) scheduled on {day.isoformat()} (min {minimum})",
            actual_value=present,
            limit_value=minimum,
            unit="pharmacists",
            related_shift_ids=[s.id for s in day_shifts],
        )
