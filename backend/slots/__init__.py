"""Quick-assign slot engine: suggestions, validation and break advice."""

from .types import (
    BreakSuggestion,
    CandidateSlot,
    Issue,
    ShiftCreatePayload,
    SlotSource,
    SlotValidationError,
    SuggestedSlot,
    ValidationResult,
)
from .suggestions import generate_suggestions
from .validator import validate_slot
from .breaks import suggest_break, recommended_break_minutes
from .session import QuickAssignSession

__all__ = [
    "BreakSuggestion",
    "CandidateSlot",
    "Issue",
    "ShiftCreatePayload",
    "SlotSource",
    "SlotValidationError",
    "SuggestedSlot",
    "ValidationResult",
    "generate_suggestions",
    "validate_slot",
    "suggest_break",
    "recommended_break_minutes",
    "QuickAssignSession",
]
