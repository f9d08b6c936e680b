"""Type definitions for the quick-assign slot engine."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from compliance.types import ShiftType
from utils.time import duration


class SlotSource(str, Enum):
    SUGGESTION = "suggestion"
    MANUAL = "manual"


@dataclass
class SuggestedSlot:
    """A candidate slot proposed from an availability window."""
    id: str
    label: str
    icon: str
    start_time: str
    end_time: str
    duration_minutes: int
    is_valid: bool = True
    invalid_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "icon": self.icon,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "is_valid": self.is_valid,
            "invalid_reason": self.invalid_reason,
        }


@dataclass
class Issue:
    """A validation error or warning. ``actual``/``limit`` are hours."""
    code: str
    message: str
    icon: str = ""
    actual: Optional[float] = None
    limit: Optional[float] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "icon": self.icon,
            "actual": self.actual,
            "limit": self.limit,
            "details": self.details,
        }


@dataclass
class ValidationResult:
    """Errors block confirmation, warnings never do."""
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_codes(self) -> list[str]:
        return [e.code for e in self.errors]

    @property
    def warning_codes(self) -> list[str]:
        return [w.code for w in self.warnings]

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass
class BreakSuggestion:
    should_suggest: bool
    break_duration: int = 0
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "should_suggest": self.should_suggest,
            "break_duration": self.break_duration,
            "break_start": self.break_start,
            "break_end": self.break_end,
        }


@dataclass
class CandidateSlot:
    """Unconfirmed proposal edited in the quick-assign panel."""
    start_time: str
    end_time: str
    break_duration_minutes: int = 0
    source: SlotSource = SlotSource.MANUAL
    suggestion_id: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return duration(self.start_time, self.end_time)


@dataclass
class ShiftCreatePayload:
    """What the persistence layer receives once a candidate is confirmed."""
    employee_id: str
    date: date
    start_time: str
    end_time: str
    break_duration_minutes: int
    type: ShiftType = ShiftType.REGULAR

    @property
    def hours(self) -> float:
        return round((duration(self.start_time, self.end_time) - self.break_duration_minutes) / 60, 2)

    def to_row(self, organization_id: str, validated: bool = False) -> dict:
        """Row shape of the ``shifts`` collection."""
        return {
            "organization_id": organization_id,
            "employee_id": self.employee_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "break_duration": self.break_duration_minutes,
            "hours": self.hours,
            "type": ShiftType(self.type).value,
            "validated": validated,
        }


class SlotValidationError(Exception):
    """Raised when confirming a candidate that still has blocking errors."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(e.message for e in result.errors)
        super().__init__(f"Slot cannot be confirmed: {messages}")
