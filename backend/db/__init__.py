from .database import init_db
from .models import (
    EmployeeDoc,
    ShiftDoc,
    AvailabilityDoc,
    PharmacyConfigDoc,
    BreakTierEmbed,
    OpeningSlotEmbed,
)

__all__ = [
    "init_db",
    "EmployeeDoc",
    "ShiftDoc",
    "AvailabilityDoc",
    "PharmacyConfigDoc",
    "BreakTierEmbed",
    "OpeningSlotEmbed",
]
