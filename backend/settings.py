import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from compliance.types import LegalLimits

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017/pharma_scheduler")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

DEFAULT_MIDDAY_SPLIT = "13:00"

_logging_configured = False


def setup_logging():
    global _logging_configured
    if _logging_configured:
        return

    logger = logging.getLogger()
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)

        console = logging.StreamHandler()
        console.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
        console.setFormatter(logging.Formatter('%(name)-12s: %(levelname)-8s %(message)s'))
        logger.addHandler(console)

    _logging_configured = True


@dataclass
class PharmacyConfig:
    """Effective settings for one organization."""
    limits: LegalLimits = field(default_factory=LegalLimits)
    midday_split: str = DEFAULT_MIDDAY_SPLIT
    # weekday (0 = Monday) -> [{"start": "08:30", "end": "19:30"}, ...]
    opening_hours: dict[int, list[dict]] = field(default_factory=dict)

    @classmethod
    def from_doc(cls, doc) -> "PharmacyConfig":
        opening_hours: dict[int, list[dict]] = {}
        for slot in doc.opening_hours:
            opening_hours.setdefault(slot.weekday, []).append({"start": slot.start, "end": slot.end})
        return cls(
            limits=LegalLimits.from_doc(doc),
            midday_split=doc.midday_split or DEFAULT_MIDDAY_SPLIT,
            opening_hours=opening_hours,
        )


async def get_pharmacy_config(organization_id: str) -> PharmacyConfig:
    """Stored config for the organization, or the defaults when none exists."""
    from db import PharmacyConfigDoc

    doc = await PharmacyConfigDoc.find_one(PharmacyConfigDoc.organization_id == organization_id)
    if doc is None:
        logging.info(f"No stored config for {organization_id}, using defaults")
        return PharmacyConfig()
    return PharmacyConfig.from_doc(doc)
