from pydantic import BaseModel


class SuggestionsRequest(BaseModel):
    organization_id: str
    employee_id: str
    date: str  # ISO date string: "2025-01-20"
    start_time: str  # Availability window
    end_time: str


class SuggestedSlotSchema(BaseModel):
    id: str
    label: str
    icon: str
    start_time: str
    end_time: str
    duration_minutes: int
    is_valid: bool = True
    invalid_reason: str | None = None


class SuggestionsResponse(BaseModel):
    employee_id: str
    date: str
    suggestions: list[SuggestedSlotSchema]
    selected_id: str | None = None


class ValidateSlotRequest(BaseModel):
    organization_id: str
    employee_id: str
    date: str
    start_time: str
    end_time: str
    availability_start: str
    availability_end: str
    break_duration_minutes: int = 0


class IssueSchema(BaseModel):
    code: str
    message: str
    icon: str = ""
    actual: float | None = None
    limit: float | None = None
    details: dict = {}


class ValidateSlotResponse(BaseModel):
    is_valid: bool
    errors: list[IssueSchema] = []
    warnings: list[IssueSchema] = []


class BreakRequest(BaseModel):
    organization_id: str | None = None
    start_time: str
    end_time: str


class BreakSuggestionSchema(BaseModel):
    should_suggest: bool
    break_duration: int = 0
    break_start: str | None = None
    break_end: str | None = None


class ShiftCreateRequest(BaseModel):
    """Confirm a candidate slot. Availability defaults to the stored window."""
    organization_id: str
    employee_id: str
    date: str
    start_time: str
    end_time: str
    break_duration_minutes: int = 0
    type: str = "regular"
    availability_start: str | None = None
    availability_end: str | None = None


class ShiftCreateResponse(BaseModel):
    id: str
    employee_id: str
    date: str
    start_time: str
    end_time: str
    break_duration: int
    hours: float
    type: str
    warnings: list[IssueSchema] = []


class BreakTierSchema(BaseModel):
    min_hours: float
    break_minutes: int


class OpeningSlotSchema(BaseModel):
    weekday: int  # 0 = Monday
    start: str
    end: str


class LimitsUpdateRequest(BaseModel):
    """Partial update: only the fields that are set change."""
    max_daily_hours: float | None = None
    max_weekly_hours: float | None = None
    min_rest_hours_weekly: float | None = None
    min_pharmacists: int | None = None
    break_required: bool | None = None
    break_threshold_hours: float | None = None
    break_duration_minutes: int | None = None
    min_daily_rest_hours: float | None = None
    min_slot_minutes: int | None = None
    break_tiers: list[BreakTierSchema] | None = None
    midday_split: str | None = None
    opening_hours: list[OpeningSlotSchema] | None = None


class LimitsResponse(BaseModel):
    organization_id: str
    is_default: bool
    limits: dict
    midday_split: str
    opening_hours: list[OpeningSlotSchema] = []
