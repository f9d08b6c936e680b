"""Weekly recap: hours per employee and per day."""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from compliance.types import ABSOLUTE_MAX_WEEKLY_HOURS, EmployeeInfo, ExistingShift

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

CATEGORY_LABELS = {
    "pharmacien_titulaire": "Pharmacien titulaire",
    "pharmacien_adjoint": "Pharmacien adjoint",
    "preparateur": "Préparateur",
    "rayonniste": "Conditionneur",
    "apprenti": "Apprenti",
    "etudiant": "Étudiant",
}


def _round1(value: float) -> float:
    return round(value, 1)


@dataclass
class EmployeeWeekSummary:
    employee_id: str
    employee_name: str
    category: str
    total_hours: float
    shifts_count: int
    daily_hours: dict[str, float]
    weekly_target: float

    @property
    def is_compliant(self) -> bool:
        return self.total_hours <= ABSOLUTE_MAX_WEEKLY_HOURS

    @property
    def hours_delta(self) -> float:
        return _round1(self.total_hours - self.weekly_target)

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "category": self.category,
            "total_hours": self.total_hours,
            "shifts_count": self.shifts_count,
            "daily_hours": self.daily_hours,
            "is_compliant": self.is_compliant,
            "weekly_target": self.weekly_target,
            "hours_delta": self.hours_delta,
        }


@dataclass
class DailySummary:
    date: date
    day_name: str
    total_hours: float
    shifts_count: int
    employees_count: int
    shifts: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "day_name": self.day_name,
            "total_hours": self.total_hours,
            "shifts_count": self.shifts_count,
            "employees_count": self.employees_count,
            "shifts": self.shifts,
        }


@dataclass
class WeekSummary:
    week_number: int
    year: int
    start_date: date
    end_date: date
    total_hours: float
    total_shifts: int
    employee_count: int
    employee_summaries: list[EmployeeWeekSummary]
    daily_summaries: list[DailySummary]

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "year": self.year,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "total_hours": self.total_hours,
            "total_shifts": self.total_shifts,
            "employee_count": self.employee_count,
            "employee_summaries": [e.to_dict() for e in self.employee_summaries],
            "daily_summaries": [d.to_dict() for d in self.daily_summaries],
        }


def generate_week_summary(
    week_start: date,
    shifts: list[ExistingShift],
    employees: list[EmployeeInfo],
) -> WeekSummary:
    """
    Summarize a week starting on ``week_start``.

    Every entry counts toward hours totals, leave and training included;
    shifts outside the seven days are ignored.
    """
    week_end = week_start + timedelta(days=6)
    shifts = [s for s in shifts if week_start <= s.date <= week_end]
    employee_map = {e.id: e for e in employees}
    iso_year, iso_week, _ = week_start.isocalendar()

    return WeekSummary(
        week_number=iso_week,
        year=iso_year,
        start_date=week_start,
        end_date=week_end,
        total_hours=_round1(sum(s.effective_hours for s in shifts)),
        total_shifts=len(shifts),
        employee_count=len({s.employee_id for s in shifts}),
        employee_summaries=_employee_summaries(shifts, employees),
        daily_summaries=_daily_summaries(week_start, shifts, employee_map),
    )


def _employee_summaries(shifts: list[ExistingShift], employees: list[EmployeeInfo]) -> list[EmployeeWeekSummary]:
    by_employee: dict[str, list[ExistingShift]] = {}
    for shift in shifts:
        by_employee.setdefault(shift.employee_id, []).append(shift)

    summaries = []
    for emp in employees:
        emp_shifts = by_employee.get(emp.id)
        if not emp_shifts:
            continue

        daily: dict[str, float] = {}
        for shift in emp_shifts:
            key = shift.date.isoformat()
            daily[key] = daily.get(key, 0.0) + shift.effective_hours

        summaries.append(EmployeeWeekSummary(
            employee_id=emp.id,
            employee_name=emp.full_name,
            category=CATEGORY_LABELS.get(emp.category, emp.category),
            total_hours=_round1(sum(s.effective_hours for s in emp_shifts)),
            shifts_count=len(emp_shifts),
            daily_hours={k: _round1(v) for k, v in sorted(daily.items())},
            weekly_target=emp.contract_hours or 35.0,
        ))

    summaries.sort(key=lambda s: s.employee_name.lower())
    return summaries


def _daily_summaries(
    week_start: date,
    shifts: list[ExistingShift],
    employee_map: dict[str, EmployeeInfo],
) -> list[DailySummary]:
    summaries = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        day_shifts = sorted((s for s in shifts if s.date == day), key=lambda s: s.start_minutes)

        details = []
        for shift in day_shifts:
            emp: Optional[EmployeeInfo] = employee_map.get(shift.employee_id)
            details.append({
                "id": shift.id,
                "employee_id": shift.employee_id,
                "employee_name": emp.full_name if emp else "Unknown",
                "start_time": shift.start_time,
                "end_time": shift.end_time,
                "type": shift.type.value,
                "hours": _round1(shift.effective_hours),
            })

        summaries.append(DailySummary(
            date=day,
            day_name=DAY_NAMES[day.weekday()],
            total_hours=_round1(sum(s.effective_hours for s in day_shifts)),
            shifts_count=len(day_shifts),
            employees_count=len({s.employee_id for s in day_shifts}),
            shifts=details,
        ))

    return summaries
