"""Compliance engine that rolls a week of shifts into a report."""

import logging
from datetime import date, timedelta
from typing import Optional, Union

from utils.time import utc_now

from .rules import score_from_violations, score_label
from .types import (
    ComplianceContext,
    ComplianceReport,
    EmployeeCompliance,
    EmployeeInfo,
    ExistingShift,
    LegalLimits,
    OpeningSlot,
)
from .validators import (
    BaseValidator,
    BreakValidator,
    DailyLimitValidator,
    DailyRestValidator,
    PharmacistCoverageValidator,
    WeeklyHoursValidator,
    WeeklyRestValidator,
)


class ComplianceEngine:
    """
    Main engine for running compliance validation.

    Per-employee validators run independently for every employee; one
    employee with unusable data is flagged and skipped, the rest of the report
    is still produced.
    """

    def __init__(self):
        """Initialize with all validators."""
        self.validators: list[BaseValidator] = [
            DailyLimitValidator(),
            WeeklyHoursValidator(),
            WeeklyRestValidator(),
            DailyRestValidator(),
            BreakValidator(),
        ]
        self.coverage_validator = PharmacistCoverageValidator()

    def validate(self, context: ComplianceContext, invalid_employees: Optional[dict[str, str]] = None) -> ComplianceReport:
        """
        Run all compliance validations.

        Args:
            context: The compliance context with limits, employees, and shifts
            invalid_employees: Employee id -> reason, for employees whose
                records could not be parsed

        Returns:
            ComplianceReport with all violations found
        """
        invalid_employees = invalid_employees or {}
        report = ComplianceReport(
            period_start=context.period_start,
            period_end=context.period_end,
            shifts_analyzed=len(context.shifts),
            employees_analyzed=len(context.employees),
            generated_at=utc_now(),
        )

        shifts_by_employee: dict[str, list[ExistingShift]] = {}
        for shift in context.shifts:
            shifts_by_employee.setdefault(shift.employee_id, []).append(shift)

        for employee in context.employees.values():
            if employee.id in invalid_employees:
                report.employee_compliance.append(EmployeeCompliance(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    error=invalid_employees[employee.id],
                ))
                continue

            emp_shifts = shifts_by_employee.get(employee.id, [])
            try:
                violations = []
                for validator in self.validators:
                    violations.extend(validator.validate(context, employee, emp_shifts))
                work = [s for s in emp_shifts if s.is_work]
                compliance = EmployeeCompliance(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    total_hours=sum(s.effective_minutes for s in work) / 60,
                    shift_count=len(work),
                    days_worked=len({s.date for s in work}),
                    violations=violations,
                    score=score_from_violations(v.severity for v in violations),
                )
            except (ValueError, KeyError) as e:
                logging.warning(f"Skipping compliance for employee {employee.id}: {e}")
                report.employee_compliance.append(EmployeeCompliance(
                    employee_id=employee.id,
                    employee_name=employee.full_name,
                    error=str(e),
                ))
                continue

            for violation in violations:
                report.add_violation(violation)
            report.employee_compliance.append(compliance)

        for violation in self.coverage_validator.validate(context):
            report.add_violation(violation)

        report.employee_compliance.sort(key=lambda e: (e.score, e.employee_name))
        report.score = score_from_violations(v.severity for v in report.violations)
        report.label = score_label(report.score)

        logging.info(
            f"Compliance {context.period_start} → {context.period_end}: score {report.score}, "
            f"{report.critical_count} critical, {report.warning_count} warning(s)"
        )
        return report

    @classmethod
    def build_context(
        cls,
        limits: LegalLimits,
        employees: list[Union[EmployeeInfo, dict]],
        shifts: list[Union[ExistingShift, dict]],
        week_start: date,
        week_end: Optional[date] = None,
        opening_hours: Optional[dict] = None,
    ) -> tuple[ComplianceContext, dict[str, str], int]:
        """
        Build a ComplianceContext from typed objects or raw persistence rows.

        Args:
            limits: Legal limits of the organization
            employees: Roster as EmployeeInfo or dicts
            shifts: Shifts as ExistingShift or dicts
            week_start: First day of the period
            week_end: Last day of the period (defaults to week_start + 6 days)
            opening_hours: weekday -> list of {"start", "end"} slots

        Returns:
            (context, invalid_employees, skipped_records)
        """
        week_end = week_end or week_start + timedelta(days=6)
        skipped_records = 0
        invalid_employees: dict[str, str] = {}

        employee_map: dict[str, EmployeeInfo] = {}
        for emp in employees:
            try:
                info = emp if isinstance(emp, EmployeeInfo) else EmployeeInfo.from_dict(emp)
            except (ValueError, KeyError, TypeError) as e:
                logging.warning(f"Skipping malformed employee record: {e}")
                skipped_records += 1
                continue
            employee_map[info.id] = info

        typed_shifts: list[ExistingShift] = []
        for row in shifts:
            try:
                shift = row if isinstance(row, ExistingShift) else ExistingShift.from_dict(row)
            except (ValueError, KeyError, TypeError) as e:
                employee_id = row.get("employee_id") if isinstance(row, dict) else None
                if employee_id is not None and str(employee_id) in employee_map:
                    logging.warning(f"Flagging employee {employee_id}: malformed shift {row.get('id')} ({e})")
                    invalid_employees[str(employee_id)] = f"Malformed shift record: {e}"
                else:
                    logging.warning(f"Skipping malformed shift record: {e}")
                    skipped_records += 1
                continue
            if week_start <= shift.date <= week_end:
                typed_shifts.append(shift)

        context = ComplianceContext(
            limits=limits,
            period_start=week_start,
            period_end=week_end,
            employees=employee_map,
            shifts=typed_shifts,
            opening_hours=cls._parse_opening_hours(opening_hours or {}),
        )
        return context, invalid_employees, skipped_records

    @staticmethod
    def _parse_opening_hours(opening_hours: dict) -> dict[int, list[OpeningSlot]]:
        parsed: dict[int, list[OpeningSlot]] = {}
        for weekday, slots in opening_hours.items():
            parsed[int(weekday)] = [
                s if isinstance(s, OpeningSlot) else OpeningSlot(start=s["start"], end=s["end"])
                for s in slots
            ]
        return parsed


def generate_compliance_report(
    shifts: list[Union[ExistingShift, dict]],
    employees: list[Union[EmployeeInfo, dict]],
    limits: LegalLimits,
    week_start: date,
    week_end: Optional[date] = None,
    opening_hours: Optional[dict] = None,
) -> ComplianceReport:
    """Build the context and run the engine in one call."""
    context, invalid_employees, skipped = ComplianceEngine.build_context(
        limits=limits,
        employees=employees,
        shifts=shifts,
        week_start=week_start,
        week_end=week_end,
        opening_hours=opening_hours,
    )
    report = ComplianceEngine().validate(context, invalid_employees)
    report.skipped_records = skipped
    return report


def quick_check(
    shifts: list[Union[ExistingShift, dict]],
    employees: list[Union[EmployeeInfo, dict]],
    limits: LegalLimits,
    week_start: date,
) -> dict:
    """Score and counts only, for the dashboard widget."""
    report = generate_compliance_report(shifts, employees, limits, week_start)
    return {
        "score": report.score,
        "label": report.label,
        "critical_count": report.critical_count,
        "warning_count": report.warning_count,
    }


async def load_compliance_report(organization_id: str, week_start: date) -> ComplianceReport:
    """
    Fetch an organization's week from the database and validate it.

    This is a convenience function for use in the API layer.
    """
    from beanie.operators import GTE, LTE
    from db import EmployeeDoc, ShiftDoc
    from settings import get_pharmacy_config

    week_end = week_start + timedelta(days=6)
    config = await get_pharmacy_config(organization_id)

    employees = await EmployeeDoc.find(
        EmployeeDoc.organization_id == organization_id,
        EmployeeDoc.is_active == True,
    ).to_list()
    shifts = await ShiftDoc.find(
        ShiftDoc.organization_id == organization_id,
        GTE(ShiftDoc.date, week_start.isoformat()),
        LTE(ShiftDoc.date, week_end.isoformat()),
    ).to_list()

    return generate_compliance_report(
        shifts=[s.to_row() for s in shifts],
        employees=[e.to_row() for e in employees],
        limits=config.limits,
        week_start=week_start,
        week_end=week_end,
        opening_hours=config.opening_hours,
    )
