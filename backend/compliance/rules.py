"""Rule predicates shared by the slot validator and the weekly aggregator."""

from typing import Iterable, Optional

from .types import (
    ABSOLUTE_MAX_WEEKLY_HOURS,
    LegalLimits,
    ViolationSeverity,
)

SEVERITY_PENALTIES = {
    ViolationSeverity.CRITICAL: 15,
    ViolationSeverity.WARNING: 5,
    ViolationSeverity.INFO: 1,
}


def exceeds_daily_limit(effective_minutes: int, limits: LegalLimits) -> bool:
    """Daily cap on effective work time (duration minus breaks)."""
    return effective_minutes > limits.max_daily_hours * 60


def weekly_hours_severity(total_hours: float, limits: LegalLimits) -> Optional[ViolationSeverity]:
    """Classify a weekly total.

    Above the absolute ceiling is critical, above the tenant target is a
    warning, anything else is fine (None).
    """
    if total_hours > ABSOLUTE_MAX_WEEKLY_HOURS:
        return ViolationSeverity.CRITICAL
    if total_hours > limits.max_weekly_hours:
        return ViolationSeverity.WARNING
    return None


def break_is_insufficient(effective_minutes: int, break_minutes: int, limits: LegalLimits) -> bool:
    """Mandatory break missing or shorter than the configured minimum."""
    if not limits.break_required:
        return False
    return (
        effective_minutes >= limits.break_threshold_hours * 60
        and break_minutes < limits.break_duration_minutes
    )


def score_from_violations(severities: Iterable[ViolationSeverity]) -> int:
    """0-100 score; every violation lowers it, critical ones the most."""
    penalty = sum(SEVERITY_PENALTIES[ViolationSeverity(s)] for s in severities)
    return max(0, min(100, 100 - penalty))


def score_label(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Needs attention"
    if score >= 30:
        return "Non-compliant"
    return "Critical"
