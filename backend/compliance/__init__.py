"""Labor law compliance module for pharmacy shift scheduling."""

from .types import (
    ABSOLUTE_MAX_WEEKLY_HOURS,
    AvailabilityWindow,
    BreakTier,
    ComplianceContext,
    ComplianceReport,
    EmployeeCompliance,
    EmployeeInfo,
    ExistingShift,
    LegalLimits,
    OpeningSlot,
    ShiftType,
    Violation,
    ViolationType,
    ViolationSeverity,
    is_work_shift,
)
from .engine import ComplianceEngine, generate_compliance_report, quick_check
from .validators import (
    BaseValidator,
    DailyLimitValidator,
    WeeklyHoursValidator,
    WeeklyRestValidator,
    DailyRestValidator,
    BreakValidator,
    PharmacistCoverageValidator,
)

__all__ = [
    "ABSOLUTE_MAX_WEEKLY_HOURS",
    "AvailabilityWindow",
    "BreakTier",
    "ComplianceContext",
    "ComplianceReport",
    "EmployeeCompliance",
    "EmployeeInfo",
    "ExistingShift",
    "LegalLimits",
    "OpeningSlot",
    "ShiftType",
    "Violation",
    "ViolationType",
    "ViolationSeverity",
    "is_work_shift",
    "ComplianceEngine",
    "generate_compliance_report",
    "quick_check",
    "BaseValidator",
    "DailyLimitValidator",
    "WeeklyHoursValidator",
    "WeeklyRestValidator",
    "DailyRestValidator",
    "BreakValidator",
    "PharmacistCoverageValidator",
]
