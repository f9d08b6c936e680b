"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from utils.time import ParseError, to_minutes

# Legal weekly maximum. Kept apart from the tenant's configurable target.
ABSOLUTE_MAX_WEEKLY_HOURS = 48.0

PHARMACIST_CATEGORIES = ("pharmacien_titulaire", "pharmacien_adjoint")


class ShiftType(str, Enum):
    """Kinds of planning entries."""
    REGULAR = "regular"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    SPLIT = "split"
    GUARD = "garde"
    ON_CALL = "astreinte"
    TRAINING = "formation"
    LEAVE = "conge"
    SICK_LEAVE = "maladie"
    RTT = "rtt"


WORK_SHIFT_TYPES = frozenset({
    ShiftType.REGULAR,
    ShiftType.MORNING,
    ShiftType.AFTERNOON,
    ShiftType.SPLIT,
})


def is_work_shift(shift_type: Union[ShiftType, str]) -> bool:
    """True for entries that occupy the employee on the staffing timeline."""
    return ShiftType(shift_type) in WORK_SHIFT_TYPES


class ViolationType(str, Enum):
    """Types of compliance violations."""
    DAILY_LIMIT = "daily_limit"
    WEEKLY_HOURS = "weekly_hours"
    WEEKLY_REST = "weekly_rest"
    DAILY_REST = "daily_rest"
    MISSING_BREAK = "missing_break"
    PHARMACIST_COVERAGE = "pharmacist_coverage"


class ViolationSeverity(str, Enum):
    """Severity levels for violations."""
    CRITICAL = "critical"  # Legal breach, must be corrected
    WARNING = "warning"  # Flags but allows scheduling
    INFO = "info"


@dataclass(frozen=True)
class BreakTier:
    """Break length granted once a slot reaches ``min_hours``."""
    min_hours: float
    break_minutes: int


def _default_break_tiers() -> list[BreakTier]:
    return [BreakTier(6.0, 20), BreakTier(8.0, 30)]


@dataclass
class LegalLimits:
    """Tenant-configurable labor-time thresholds."""
    max_daily_hours: float = 10.0
    max_weekly_hours: float = 44.0
    min_rest_hours_weekly: float = 35.0
    min_pharmacists: int = 1
    break_required: bool = True
    break_threshold_hours: float = 6.0
    break_duration_minutes: int = 20

    min_daily_rest_hours: float = 11.0
    min_slot_minutes: int = 30
    break_tiers: list[BreakTier] = field(default_factory=_default_break_tiers)

    def __post_init__(self):
        for name in (
            "max_daily_hours",
            "max_weekly_hours",
            "min_rest_hours_weekly",
            "break_threshold_hours",
            "min_daily_rest_hours",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.min_pharmacists < 0 or self.break_duration_minutes < 0 or self.min_slot_minutes < 0:
            raise ValueError("Counts and durations must not be negative")
        if self.max_weekly_hours > ABSOLUTE_MAX_WEEKLY_HOURS:
            raise ValueError(
                f"max_weekly_hours ({self.max_weekly_hours}) exceeds the legal maximum of {ABSOLUTE_MAX_WEEKLY_HOURS}h"
            )
        self.break_tiers = sorted(
            (t if isinstance(t, BreakTier) else BreakTier(**t) for t in self.break_tiers),
            key=lambda t: t.min_hours,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "LegalLimits":
        """Create from a plain dict, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and v is not None}
        return cls(**known)

    @classmethod
    def from_doc(cls, doc) -> "LegalLimits":
        """Create from a PharmacyConfigDoc."""
        return cls(
            max_daily_hours=doc.max_daily_hours,
            max_weekly_hours=doc.max_weekly_hours,
            min_rest_hours_weekly=doc.min_rest_hours_weekly,
            min_pharmacists=doc.min_pharmacists,
            break_required=doc.break_required,
            break_threshold_hours=doc.break_threshold_hours,
            break_duration_minutes=doc.break_duration_minutes,
            min_daily_rest_hours=doc.min_daily_rest_hours,
            min_slot_minutes=doc.min_slot_minutes,
            break_tiers=[BreakTier(t.min_hours, t.break_minutes) for t in doc.break_tiers],
        )

    def to_dict(self) -> dict:
        return {
            "max_daily_hours": self.max_daily_hours,
            "max_weekly_hours": self.max_weekly_hours,
            "min_rest_hours_weekly": self.min_rest_hours_weekly,
            "min_pharmacists": self.min_pharmacists,
            "break_required": self.break_required,
            "break_threshold_hours": self.break_threshold_hours,
            "break_duration_minutes": self.break_duration_minutes,
            "min_daily_rest_hours": self.min_daily_rest_hours,
            "min_slot_minutes": self.min_slot_minutes,
            "break_tiers": [
                {"min_hours": t.min_hours, "break_minutes": t.break_minutes} for t in self.break_tiers
            ],
        }


def _as_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass
class ExistingShift:
    """A committed planning entry. Read-only to the core."""
    id: str
    employee_id: str
    date: date
    start_time: str  # HH:MM format
    end_time: str  # HH:MM format
    break_duration_minutes: int = 0
    type: ShiftType = ShiftType.REGULAR

    def __post_init__(self):
        self.date = _as_date(self.date)
        self.type = ShiftType(self.type)
        if self.duration_minutes <= 0:
            raise ValueError(f"Shift {self.id} ends before it starts ({self.start_time}-{self.end_time})")
        if self.break_duration_minutes < 0:
            raise ValueError(f"Shift {self.id} has a negative break")

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def effective_minutes(self) -> int:
        """Duration minus break."""
        return max(0, self.duration_minutes - self.break_duration_minutes)

    @property
    def effective_hours(self) -> float:
        return self.effective_minutes / 60

    @property
    def is_work(self) -> bool:
        return is_work_shift(self.type)

    @classmethod
    def from_dict(cls, row: dict) -> "ExistingShift":
        """Build from a persisted shift row.

        Raises KeyError for missing columns, ValueError/ParseError for bad values.
        """
        return cls(
            id=str(row["id"]),
            employee_id=str(row["employee_id"]),
            date=row["date"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            break_duration_minutes=int(row.get("break_duration") or row.get("break_duration_minutes") or 0),
            type=row.get("type") or ShiftType.REGULAR,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "break_duration": self.break_duration_minutes,
            "type": self.type.value,
            "hours": round(self.effective_hours, 2),
        }


@dataclass
class AvailabilityWindow:
    """An employee's declared availability for one date."""
    employee_id: str
    date: date
    start_time: str
    end_time: str

    def __post_init__(self):
        self.date = _as_date(self.date)
        if to_minutes(self.end_time) <= to_minutes(self.start_time):
            raise ParseError(f"Availability ends before it starts ({self.start_time}-{self.end_time})")


@dataclass
class EmployeeInfo:
    """Roster information used by the compliance checks."""
    id: str
    first_name: str = ""
    last_name: str = ""
    category: str = ""
    contract_hours: float = 35.0
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_pharmacist(self) -> bool:
        return self.category in PHARMACIST_CATEGORIES

    @classmethod
    def from_dict(cls, row: dict) -> "EmployeeInfo":
        return cls(
            id=str(row["id"]),
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            category=row.get("category") or "",
            contract_hours=float(row.get("contract_hours") or 35.0),
            is_active=row.get("is_active", True),
        )


@dataclass
class Violation:
    """A single compliance violation."""
    type: ViolationType
    severity: ViolationSeverity
    employee_id: Optional[str]
    employee_name: str
    date: Optional[str] = None  # ISO date or "start → end"
    message: str = ""
    actual_value: Optional[float] = None
    limit_value: Optional[float] = None
    unit: str = "h"
    related_shift_ids: list[str] = field(default_factory=list)
    details: dict = field(default_factory=dict)
    id: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "date": self.date,
            "message": self.message,
            "actual_value": self.actual_value,
            "limit_value": self.limit_value,
            "unit": self.unit,
            "related_shift_ids": self.related_shift_ids,
            "details": self.details,
        }


@dataclass
class EmployeeCompliance:
    """Weekly compliance summary for one employee."""
    employee_id: str
    employee_name: str
    total_hours: float = 0.0
    shift_count: int = 0
    days_worked: int = 0
    violations: list[Violation] = field(default_factory=list)
    score: int = 100
    error: Optional[str] = None  # set when the employee's data could not be analyzed

    @property
    def is_compliant(self) -> bool:
        """Within the absolute weekly ceiling."""
        return self.error is None and self.total_hours <= ABSOLUTE_MAX_WEEKLY_HOURS

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "total_hours": round(self.total_hours, 2),
            "shift_count": self.shift_count,
            "days_worked": self.days_worked,
            "violations": [v.to_dict() for v in self.violations],
            "score": self.score,
            "is_compliant": self.is_compliant,
            "error": self.error,
        }


@dataclass
class OpeningSlot:
    """One opening interval of the pharmacy on a given weekday."""
    start: str
    end: str


@dataclass
class ComplianceContext:
    """Inputs of a weekly compliance run."""
    limits: LegalLimits
    period_start: date
    period_end: date
    employees: dict[str, EmployeeInfo]  # id -> info
    shifts: list[ExistingShift]  # Shifts inside the period
    opening_hours: dict[int, list[OpeningSlot]] = field(default_factory=dict)  # weekday (0=Monday) -> slots


@dataclass
class ComplianceReport:
    """Result of a weekly compliance run."""
    period_start: date
    period_end: date
    violations: list[Violation] = field(default_factory=list)
    employee_compliance: list[EmployeeCompliance] = field(default_factory=list)
    score: int = 100
    label: str = ""
    shifts_analyzed: int = 0
    employees_analyzed: int = 0
    skipped_records: int = 0
    generated_at: Optional[datetime] = None

    def add_violation(self, violation: Violation):
        """Add a violation, assigning the next deterministic id."""
        violation.id = f"viol-{len(self.violations) + 1}"
        self.violations.append(violation)

    @property
    def is_compliant(self) -> bool:
        return self.critical_count == 0

    @property
    def critical_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == ViolationSeverity.CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == ViolationSeverity.WARNING)

    @property
    def by_severity(self) -> dict[str, int]:
        counts = {s.value: 0 for s in ViolationSeverity}
        for v in self.violations:
            counts[v.severity.value] += 1
        return counts

    @property
    def by_type(self) -> dict[str, int]:
        counts = {t.value: 0 for t in ViolationType}
        for v in self.violations:
            counts[v.type.value] += 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "period": {
                "start": self.period_start.isoformat(),
                "end": self.period_end.isoformat(),
            },
            "score": self.score,
            "label": self.label,
            "is_compliant": self.is_compliant,
            "by_severity": self.by_severity,
            "by_type": self.by_type,
            "violations": [v.to_dict() for v in self.violations],
            "employee_compliance": [e.to_dict() for e in self.employee_compliance],
            "shifts_analyzed": self.shifts_analyzed,
            "employees_analyzed": self.employees_analyzed,
            "skipped_records": self.skipped_records,
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }
