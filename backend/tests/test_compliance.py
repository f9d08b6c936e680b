"""Unit tests for the weekly compliance aggregator.

Covers the rule predicates, each validator, pharmacist coverage and the
engine's report (scoring, partial failures, filtering).
"""

import pytest
from datetime import date, timedelta
from types import SimpleNamespace

from compliance.types import (
    ComplianceContext,
    EmployeeCompliance,
    ExistingShift,
    LegalLimits,
    OpeningSlot,
    ViolationType,
    ViolationSeverity,
    is_work_shift,
)
from compliance.rules import (
    break_is_insufficient,
    exceeds_daily_limit,
    score_from_violations,
    score_label,
    weekly_hours_severity,
)
from compliance.validators import (
    DailyLimitValidator,
    WeeklyHoursValidator,
    WeeklyRestValidator,
    DailyRestValidator,
    BreakValidator,
    PharmacistCoverageValidator,
)
from compliance.engine import ComplianceEngine, generate_compliance_report, quick_check

from conftest import WEEK_START


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def employee(make_employee):
    return make_employee()


@pytest.fixture
def make_context(limits, employee):
    def _make(shifts, limits=limits, employees=None, opening_hours=None):
        employees = employees or [employee]
        return ComplianceContext(
            limits=limits,
            period_start=WEEK_START,
            period_end=WEEK_START + timedelta(days=6),
            employees={e.id: e for e in employees},
            shifts=shifts,
            opening_hours=opening_hours or {},
        )

    return _make


def _row(shift_id, employee_id, day, start, end, break_duration=0, type="regular"):
    return {
        "id": shift_id,
        "employee_id": employee_id,
        "date": (WEEK_START + timedelta(days=day)).isoformat(),
        "start_time": start,
        "end_time": end,
        "break_duration": break_duration,
        "type": type,
    }


# ============================================================================
# Types
# ============================================================================


class TestLegalLimits:

    def test_defaults(self):
        limits = LegalLimits()

        assert limits.max_daily_hours == 10
        assert limits.max_weekly_hours == 44
        assert limits.min_rest_hours_weekly == 35
        assert limits.min_pharmacists == 1
        assert limits.break_threshold_hours == 6

    def test_target_above_legal_maximum_rejected(self):
        with pytest.raises(ValueError):
            LegalLimits(max_weekly_hours=50)

    def test_negative_values_rejected(self):
        with pytest.raises(ValueError):
            LegalLimits(max_daily_hours=-1)

    def test_from_dict_ignores_unknown_keys(self):
        limits = LegalLimits.from_dict({"max_daily_hours": 9, "jurisdiction": "FR", "min_pharmacists": None})

        assert limits.max_daily_hours == 9
        assert limits.min_pharmacists == 1

    def test_from_doc(self):
        doc = SimpleNamespace(
            max_daily_hours=9.0,
            max_weekly_hours=39.0,
            min_rest_hours_weekly=35.0,
            min_pharmacists=2,
            break_required=True,
            break_threshold_hours=6.0,
            break_duration_minutes=20,
            min_daily_rest_hours=11.0,
            min_slot_minutes=30,
            break_tiers=[SimpleNamespace(min_hours=6.0, break_minutes=25)],
        )

        limits = LegalLimits.from_doc(doc)

        assert limits.min_pharmacists == 2
        assert limits.break_tiers[0].break_minutes == 25
        assert limits.to_dict()["break_tiers"] == [{"min_hours": 6.0, "break_minutes": 25}]


class TestExistingShift:

    def test_effective_hours(self, make_shift):
        shift = make_shift("08:30", "17:00", break_minutes=30)

        assert shift.duration_minutes == 510
        assert shift.effective_hours == 8.0

    def test_end_before_start_rejected(self, make_shift):
        with pytest.raises(ValueError):
            make_shift("17:00", "08:30")

    def test_from_dict(self):
        shift = ExistingShift.from_dict(_row("s1", "emp-1", 2, "09:00", "12:00", break_duration=15, type="conge"))

        assert shift.date == date(2025, 1, 22)
        assert shift.break_duration_minutes == 15
        assert not shift.is_work

    def test_work_types(self):
        assert is_work_shift("regular")
        assert is_work_shift("split")
        assert not is_work_shift("maladie")
        with pytest.raises(ValueError):
            is_work_shift("overtime")


# ============================================================================
# Rules
# ============================================================================


class TestRules:

    def test_daily_limit_is_strict(self, limits):
        assert not exceeds_daily_limit(600, limits)
        assert exceeds_daily_limit(601, limits)

    def test_weekly_severity(self, limits):
        assert weekly_hours_severity(44, limits) is None
        assert weekly_hours_severity(44.5, limits) == ViolationSeverity.WARNING
        assert weekly_hours_severity(48, limits) == ViolationSeverity.WARNING
        assert weekly_hours_severity(48.5, limits) == ViolationSeverity.CRITICAL

    def test_break_threshold_inclusive(self, limits):
        assert break_is_insufficient(360, 0, limits)
        assert not break_is_insufficient(359, 0, limits)
        assert not break_is_insufficient(360, 20, limits)

    def test_score(self):
        assert score_from_violations([]) == 100
        assert score_from_violations([ViolationSeverity.CRITICAL, ViolationSeverity.WARNING]) == 80
        assert score_from_violations([ViolationSeverity.CRITICAL] * 10) == 0

    def test_score_is_monotonic(self):
        severities = []
        previous = score_from_violations(severities)
        for severity in [ViolationSeverity.INFO, ViolationSeverity.WARNING, ViolationSeverity.CRITICAL] * 4:
            severities.append(severity)
            current = score_from_violations(severities)
            assert current <= previous
            previous = current

    @pytest.mark.parametrize("score,label", [
        (100, "Excellent"),
        (90, "Excellent"),
        (75, "Good"),
        (50, "Needs attention"),
        (30, "Non-compliant"),
        (10, "Critical"),
    ])
    def test_score_label(self, score, label):
        assert score_label(score) == label


# ============================================================================
# Validators
# ============================================================================


class TestDailyLimitValidator:

    def test_single_long_shift(self, make_context, employee, make_shift):
        shifts = [make_shift("07:00", "19:00", break_minutes=30)]

        violations = DailyLimitValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert violations[0].severity == ViolationSeverity.CRITICAL
        assert violations[0].actual_value == 11.5
        assert violations[0].limit_value == 10

    def test_two_shifts_same_day_add_up(self, make_context, employee, make_shift):
        shifts = [
            make_shift("07:00", "12:00", break_minutes=0),
            make_shift("13:00", "19:30", break_minutes=0),
        ]

        violations = DailyLimitValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert set(violations[0].related_shift_ids) == {s.id for s in shifts}

    def test_leave_not_counted(self, make_context, employee, make_shift):
        shifts = [
            make_shift("08:00", "16:00", break_minutes=0),
            make_shift("16:00", "20:00", break_minutes=0, type="formation"),
        ]

        assert DailyLimitValidator().validate(make_context(shifts), employee, shifts) == []


class TestWeeklyHoursValidator:

    def test_target_exceeded_is_warning(self, make_context, employee, make_shift):
        shifts = [make_shift(day=d) for d in range(5)]
        limits = LegalLimits(max_weekly_hours=35)

        violations = WeeklyHoursValidator().validate(make_context(shifts, limits=limits), employee, shifts)

        assert len(violations) == 1
        assert violations[0].severity == ViolationSeverity.WARNING
        assert violations[0].actual_value == 40
        assert violations[0].details["overtime_hours"] == 5

    def test_ceiling_exceeded_is_critical(self, make_context, employee, make_shift):
        shifts = [make_shift("08:00", "17:00", day=d) for d in range(6)]

        violations = WeeklyHoursValidator().validate(make_context(shifts), employee, shifts)

        assert violations[0].severity == ViolationSeverity.CRITICAL
        assert violations[0].limit_value == 48

    def test_no_work_no_violation(self, make_context, employee):
        assert WeeklyHoursValidator().validate(make_context([]), employee, []) == []


class TestWeeklyRestValidator:

    def test_working_every_day_breaks_weekly_rest(self, make_context, employee, make_shift):
        shifts = [make_shift("09:00", "13:00", day=d, break_minutes=0) for d in range(7)]

        violations = WeeklyRestValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert violations[0].type == ViolationType.WEEKLY_REST
        assert violations[0].actual_value == 20

    def test_free_weekend_is_enough(self, make_context, employee, make_shift):
        shifts = [make_shift(day=d) for d in range(5)]

        assert WeeklyRestValidator().validate(make_context(shifts), employee, shifts) == []


class TestDailyRestValidator:

    def test_short_night(self, make_context, employee, make_shift):
        shifts = [
            make_shift("12:00", "21:00", day=0, break_minutes=30),
            make_shift("06:00", "11:00", day=1, break_minutes=0),
        ]

        violations = DailyRestValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert violations[0].actual_value == 9
        assert violations[0].details == {"previous_shift_end": "21:00", "next_shift_start": "06:00"}

    def test_non_consecutive_days_skipped(self, make_context, employee, make_shift):
        shifts = [
            make_shift("12:00", "21:00", day=0, break_minutes=30),
            make_shift("06:00", "11:00", day=2, break_minutes=0),
        ]

        assert DailyRestValidator().validate(make_context(shifts), employee, shifts) == []


class TestBreakValidator:

    def test_missing_break(self, make_context, employee, make_shift):
        shifts = [make_shift("08:30", "15:30", break_minutes=0)]

        violations = BreakValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert violations[0].severity == ViolationSeverity.WARNING
        assert violations[0].unit == "min"
        assert violations[0].limit_value == 20

    def test_back_to_back_shifts_without_pause(self, make_context, employee, make_shift):
        shifts = [
            make_shift("08:00", "12:00", break_minutes=0),
            make_shift("12:10", "15:00", break_minutes=0),
        ]

        violations = BreakValidator().validate(make_context(shifts), employee, shifts)

        assert len(violations) == 1
        assert violations[0].actual_value == 10

    def test_gap_between_shifts_counts_as_break(self, make_context, employee, make_shift):
        shifts = [
            make_shift("08:00", "12:00", break_minutes=0),
            make_shift("12:30", "15:00", break_minutes=0),
        ]

        assert BreakValidator().validate(make_context(shifts), employee, shifts) == []

    def test_break_not_required(self, make_context, employee, make_shift):
        shifts = [make_shift("08:30", "15:30", break_minutes=0)]
        limits = LegalLimits(break_required=False)

        assert BreakValidator().validate(make_context(shifts, limits=limits), employee, shifts) == []


class TestPharmacistCoverageValidator:

    def test_uncovered_afternoon(self, make_context, make_shift):
        shifts = [make_shift("09:00", "14:00", break_minutes=0)]
        opening_hours = {0: [OpeningSlot("09:00", "19:00")]}

        violations = PharmacistCoverageValidator().validate(make_context(shifts, opening_hours=opening_hours))

        assert len(violations) == 1
        violation = violations[0]
        assert violation.employee_id is None
        assert violation.employee_name == "ALL"
        assert violation.date == "2025-01-20"
        assert violation.details["uncovered_slots"] == [{"start": "14:00", "end": "19:00"}]
        assert violation.details["coverage_percent"] == 50

    def test_fully_covered(self, make_context, make_shift):
        shifts = [make_shift("09:00", "19:00", break_minutes=60)]
        opening_hours = {0: [OpeningSlot("09:00", "19:00")]}

        assert PharmacistCoverageValidator().validate(make_context(shifts, opening_hours=opening_hours)) == []

    def test_closed_days_are_skipped(self, make_context, make_employee, make_shift):
        tech = make_employee("emp-2", category="preparateur")
        shifts = [make_shift("09:00", "12:00", day=1, employee_id="emp-2", break_minutes=0)]
        opening_hours = {0: [OpeningSlot("09:00", "19:00")]}

        context = make_context(shifts, employees=[tech], opening_hours=opening_hours)

        # Monday is open with nobody, Tuesday is closed
        violations = PharmacistCoverageValidator().validate(context)
        assert [v.date for v in violations] == ["2025-01-20"]

    def test_headcount_without_opening_hours(self, make_context, make_employee, make_shift):
        tech = make_employee("emp-2", category="preparateur")
        shifts = [make_shift("09:00", "12:00", day=3, employee_id="emp-2", break_minutes=0)]

        violations = PharmacistCoverageValidator().validate(make_context(shifts, employees=[tech]))

        assert len(violations) == 1
        assert violations[0].date == "2025-01-23"
        assert violations[0].actual_value == 0

    def test_disabled_with_zero_minimum(self, make_context, make_employee, make_shift):
        tech = make_employee("emp-2", category="preparateur")
        shifts = [make_shift("09:00", "12:00", employee_id="emp-2", break_minutes=0)]
        limits = LegalLimits(min_pharmacists=0)

        assert PharmacistCoverageValidator().validate(make_context(shifts, limits=limits, employees=[tech])) == []


# ============================================================================
# Engine
# ============================================================================


class TestWeeklyAggregation:

    def _report(self, employee, days):
        rows = [_row(f"s{d}", employee.id, d, "08:30", "17:00", break_duration=30) for d in range(days)]
        return generate_compliance_report(rows, [employee], LegalLimits(max_weekly_hours=35), WEEK_START)

    def test_three_shifts_compliant(self, employee):
        report = self._report(employee, 3)

        compliance = report.employee_compliance[0]
        assert compliance.total_hours == 24
        assert compliance.is_compliant
        assert report.violations == []
        assert report.score == 100

    def test_four_shifts_still_compliant(self, employee):
        report = self._report(employee, 4)

        assert report.employee_compliance[0].total_hours == 32
        assert report.violations == []

    def test_fifth_shift_triggers_warning(self, employee):
        report = self._report(employee, 5)

        assert report.employee_compliance[0].total_hours == 40
        assert report.employee_compliance[0].is_compliant
        assert [(v.type, v.severity) for v in report.violations] == [
            (ViolationType.WEEKLY_HOURS, ViolationSeverity.WARNING),
        ]
        assert report.score == 95
        assert report.is_compliant


class TestComplianceEngine:

    def test_violation_ids_are_sequential(self, make_employee):
        rows = [
            _row("a", "emp-1", 0, "07:00", "19:00", break_duration=30),
            _row("b", "emp-1", 1, "08:30", "15:30"),
        ]

        report = generate_compliance_report(rows, [make_employee()], LegalLimits(), WEEK_START)

        assert [v.id for v in report.violations] == [f"viol-{i + 1}" for i in range(len(report.violations))]
        assert report.by_type["daily_limit"] == 1
        assert report.by_type["missing_break"] == 1

    def test_bad_record_flags_only_its_employee(self, make_employee):
        good = make_employee("emp-1")
        bad = make_employee("emp-2", first_name="Hugo", last_name="Petit", category="preparateur")
        rows = [
            _row("a", "emp-1", 0, "08:30", "17:00", break_duration=30),
            _row("b", "emp-2", 0, "25:00", "17:00"),
        ]

        report = generate_compliance_report(rows, [good, bad], LegalLimits(), WEEK_START)

        by_id = {c.employee_id: c for c in report.employee_compliance}
        assert by_id["emp-2"].error is not None
        assert not by_id["emp-2"].is_compliant
        assert by_id["emp-1"].error is None
        assert by_id["emp-1"].total_hours == 8
        assert report.skipped_records == 0

    def test_unattributable_records_are_counted(self, make_employee):
        rows = [
            _row("a", "emp-1", 0, "08:30", "17:00", break_duration=30),
            _row("b", "ghost", 0, "17:00", "08:00"),
            {"id": "c"},
        ]

        report = generate_compliance_report(rows, [make_employee(), {"first_name": "No id"}], LegalLimits(), WEEK_START)

        assert report.skipped_records == 3
        assert report.shifts_analyzed == 1

    def test_shifts_outside_period_ignored(self, make_employee):
        rows = [
            _row("a", "emp-1", -1, "08:30", "17:00", break_duration=30),
            _row("b", "emp-1", 7, "08:30", "17:00", break_duration=30),
            _row("c", "emp-1", 2, "08:30", "17:00", break_duration=30),
        ]

        report = generate_compliance_report(rows, [make_employee()], LegalLimits(), WEEK_START)

        assert report.shifts_analyzed == 1

    def test_adding_a_violation_never_raises_score(self, make_employee):
        rows = [_row(f"s{d}", "emp-1", d, "08:30", "17:00", break_duration=30) for d in range(4)]
        before = generate_compliance_report(rows, [make_employee()], LegalLimits(), WEEK_START)

        rows.append(_row("long", "emp-1", 4, "07:00", "19:00", break_duration=0))
        after = generate_compliance_report(rows, [make_employee()], LegalLimits(), WEEK_START)

        assert len(after.violations) > len(before.violations)
        assert after.score <= before.score

    def test_worst_employees_first(self, make_employee):
        rows = [
            _row("a", "emp-1", 0, "08:30", "17:00", break_duration=30),
            _row("b", "emp-2", 0, "08:30", "15:30"),
        ]
        employees = [make_employee("emp-1", first_name="Anne"), make_employee("emp-2", first_name="Zoé")]

        report = generate_compliance_report(rows, employees, LegalLimits(), WEEK_START)

        assert [c.employee_id for c in report.employee_compliance] == ["emp-2", "emp-1"]

    def test_build_context_parses_opening_hours(self, make_employee):
        context, invalid, skipped = ComplianceEngine.build_context(
            LegalLimits(),
            [make_employee()],
            [],
            WEEK_START,
            opening_hours={"0": [{"start": "09:00", "end": "19:00"}]},
        )

        assert context.opening_hours == {0: [OpeningSlot("09:00", "19:00")]}
        assert context.period_end == date(2025, 1, 26)
        assert invalid == {}
        assert skipped == 0

    def test_quick_check(self, make_employee):
        rows = [_row("a", "emp-1", 0, "07:00", "19:00", break_duration=30)]

        result = quick_check(rows, [make_employee()], LegalLimits(), WEEK_START)

        assert result == {"score": 85, "label": "Good", "critical_count": 1, "warning_count": 0}

    def test_report_to_dict(self, make_employee):
        report = generate_compliance_report([], [make_employee()], LegalLimits(), WEEK_START)

        data = report.to_dict()

        assert data["period"] == {"start": "2025-01-20", "end": "2025-01-26"}
        assert data["score"] == 100
        assert data["label"] == "Excellent"
        assert data["employee_compliance"][0]["is_compliant"] is True


class TestEmployeeCompliance:

    def test_ceiling_decides_compliance(self):
        assert EmployeeCompliance("e", "E", total_hours=48).is_compliant
        assert not EmployeeCompliance("e", "E", total_hours=48.5).is_compliant
