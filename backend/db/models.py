from datetime import datetime
from typing import Optional
from beanie import Document, Indexed
from pydantic import BaseModel, Field

from utils import utc_now


class EmployeeDoc(Document):
    organization_id: Indexed(str)
    first_name: str
    last_name: str
    category: str  # "pharmacien_titulaire", "preparateur", ...
    contract_hours: float = 35.0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "employees"

    def to_row(self) -> dict:
        return {
            "id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "category": self.category,
            "contract_hours": self.contract_hours,
            "is_active": self.is_active,
        }


class ShiftDoc(Document):
    """A row of the ``shifts`` collection."""
    organization_id: Indexed(str)
    employee_id: Indexed(str)
    date: str  # ISO date string: "2025-01-20"
    start_time: str
    end_time: str
    break_duration: int = 0
    hours: float = 0.0
    type: str = "regular"
    validated: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "shifts"
        indexes = [
            [("organization_id", 1), ("date", 1)],
            [("employee_id", 1), ("date", 1)],
        ]

    def to_row(self) -> dict:
        return {
            "id": str(self.id),
            "employee_id": self.employee_id,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "break_duration": self.break_duration,
            "type": self.type,
        }


class AvailabilityDoc(Document):
    """An employee's declared availability for one date."""
    organization_id: Indexed(str)
    employee_id: Indexed(str)
    date: str  # ISO date string
    start_time: str
    end_time: str
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "availabilities"


class BreakTierEmbed(BaseModel):
    min_hours: float
    break_minutes: int


class OpeningSlotEmbed(BaseModel):
    weekday: int  # 0 = Monday
    start: str
    end: str


class PharmacyConfigDoc(Document):
    """Per-organization legal limits and site settings."""
    organization_id: Indexed(str, unique=True)

    # Legal limits
    max_daily_hours: float = 10.0
    max_weekly_hours: float = 44.0
    min_rest_hours_weekly: float = 35.0
    min_pharmacists: int = 1
    break_required: bool = True
    break_threshold_hours: float = 6.0
    break_duration_minutes: int = 20
    min_daily_rest_hours: float = 11.0
    min_slot_minutes: int = 30
    break_tiers: list[BreakTierEmbed] = [
        BreakTierEmbed(min_hours=6.0, break_minutes=20),
        BreakTierEmbed(min_hours=8.0, break_minutes=30),
    ]

    # Site
    midday_split: str = "13:00"  # Morning/afternoon boundary for suggestions
    opening_hours: list[OpeningSlotEmbed] = []
    updated_at: Optional[datetime] = None

    class Settings:
        name = "pharmacy_config"
