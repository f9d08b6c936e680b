"""Quick-assign panel state.

Presentation-side container: it owns the mutable candidate and recomputes
validation and break advice through the pure functions on every change.
"""

import logging
from datetime import date
from typing import Optional

from compliance.types import (
    AvailabilityWindow,
    ExistingShift,
    LegalLimits,
    ShiftType,
)
from utils.time import minutes_to_time, round_to_quarter, shift_time, to_minutes

from .breaks import apply_break, suggest_break
from .suggestions import DEFAULT_SPLIT_TIME, first_valid_suggestion, generate_suggestions
from .types import (
    BreakSuggestion,
    CandidateSlot,
    ShiftCreatePayload,
    SlotSource,
    SlotValidationError,
    SuggestedSlot,
    ValidationResult,
)
from .validator import validate_slot

MAX_BREAK_MINUTES = 120


class QuickAssignSession:
    """State of one quick-assign interaction for an employee and date."""

    def __init__(
        self,
        availability: AvailabilityWindow,
        existing_shifts: list[ExistingShift],
        limits: LegalLimits,
        week_shifts: Optional[list[ExistingShift]] = None,
        split_time: str = DEFAULT_SPLIT_TIME,
        shift_type: ShiftType = ShiftType.REGULAR,
    ):
        self.availability = availability
        self.existing_shifts = [
            s for s in existing_shifts
            if s.employee_id == availability.employee_id and s.date == availability.date
        ]
        self.week_shifts = week_shifts
        self.limits = limits
        self.shift_type = ShiftType(shift_type)
        self.suggestions: list[SuggestedSlot] = generate_suggestions(
            availability.start_time,
            availability.end_time,
            self.existing_shifts,
            split_time=split_time,
        )

        first = first_valid_suggestion(self.suggestions)
        if first is not None:
            self.candidate = CandidateSlot(
                start_time=first.start_time,
                end_time=first.end_time,
                source=SlotSource.SUGGESTION,
                suggestion_id=first.id,
            )
        else:
            self.candidate = CandidateSlot(
                start_time=availability.start_time,
                end_time=availability.end_time,
            )
        self._refresh()

    @property
    def employee_id(self) -> str:
        return self.availability.employee_id

    @property
    def date(self) -> date:
        return self.availability.date

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    def _refresh(self):
        self.validation: ValidationResult = validate_slot(
            self.candidate.start_time,
            self.candidate.end_time,
            self.availability.start_time,
            self.availability.end_time,
            self.existing_shifts,
            self.candidate.break_duration_minutes,
            self.limits,
            week_shifts=self.week_shifts,
        )
        self.break_suggestion: BreakSuggestion = suggest_break(
            self.candidate.start_time,
            self.candidate.end_time,
            self.limits,
        )

    def _set_manual(self, start_time: str, end_time: str):
        self.candidate.start_time = start_time
        self.candidate.end_time = end_time
        self.candidate.source = SlotSource.MANUAL
        self.candidate.suggestion_id = None
        self._refresh()

    def select_suggestion(self, suggestion_id: str) -> bool:
        """Switch to a suggestion. Invalid or unknown suggestions are ignored."""
        suggestion = next((s for s in self.suggestions if s.id == suggestion_id), None)
        if suggestion is None or not suggestion.is_valid:
            return False

        self.candidate = CandidateSlot(
            start_time=suggestion.start_time,
            end_time=suggestion.end_time,
            source=SlotSource.SUGGESTION,
            suggestion_id=suggestion.id,
        )
        self._refresh()
        return True

    def adjust_start(self, delta_minutes: int):
        self._set_manual(
            round_to_quarter(shift_time(self.candidate.start_time, delta_minutes)),
            self.candidate.end_time,
        )

    def adjust_end(self, delta_minutes: int):
        self._set_manual(
            self.candidate.start_time,
            round_to_quarter(shift_time(self.candidate.end_time, delta_minutes)),
        )

    def adjust_both(self, delta_minutes: int):
        self._set_manual(
            round_to_quarter(shift_time(self.candidate.start_time, delta_minutes)),
            round_to_quarter(shift_time(self.candidate.end_time, delta_minutes)),
        )

    def set_times(self, start_time: str, end_time: str):
        to_minutes(start_time)
        to_minutes(end_time)
        self._set_manual(start_time, end_time)

    def split(self):
        """Keep the first half of the current slot."""
        start = to_minutes(self.candidate.start_time)
        end = to_minutes(self.candidate.end_time)
        self._set_manual(
            self.candidate.start_time,
            round_to_quarter(minutes_to_time((start + end) // 2)),
        )

    def set_break(self, minutes: int):
        """Raises ValueError for a break outside 0..MAX_BREAK_MINUTES."""
        minutes = int(minutes)
        if not 0 <= minutes <= MAX_BREAK_MINUTES:
            raise ValueError(f"Break must be between 0 and {MAX_BREAK_MINUTES} minutes, got {minutes}")
        self.candidate.break_duration_minutes = minutes
        self._refresh()

    def accept_break(self) -> bool:
        if not self.break_suggestion.should_suggest:
            return False
        apply_break(self.candidate, self.break_suggestion)
        self._refresh()
        return True

    def confirm(self) -> ShiftCreatePayload:
        """
        Produce the creation payload for the persistence layer.

        Raises SlotValidationError while the candidate has blocking errors;
        warnings never block.
        """
        if not self.validation.is_valid:
            logging.info(
                f"Rejected confirmation for {self.employee_id} on {self.date}: {self.validation.error_codes}"
            )
            raise SlotValidationError(self.validation)

        return ShiftCreatePayload(
            employee_id=self.employee_id,
            date=self.date,
            start_time=self.candidate.start_time,
            end_time=self.candidate.end_time,
            break_duration_minutes=self.candidate.break_duration_minutes,
            type=self.shift_type,
        )
