import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

backend_path = Path(__file__).parent.parent
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from compliance.types import EmployeeInfo, ExistingShift, LegalLimits


# Monday
WEEK_START = date(2025, 1, 20)


@pytest.fixture
def week_start():
    return WEEK_START


@pytest.fixture
def limits():
    """Default legal limits."""
    return LegalLimits()


@pytest.fixture
def make_shift():
    """Factory for ExistingShift; ``day`` is an offset from the Monday of the test week."""
    counter = {"n": 0}

    def _make(start="08:30", end="17:00", day=0, employee_id="emp-1", break_minutes=30, type="regular", shift_id=None):
        counter["n"] += 1
        return ExistingShift(
            id=shift_id or f"shift-{counter['n']}",
            employee_id=employee_id,
            date=WEEK_START + timedelta(days=day),
            start_time=start,
            end_time=end,
            break_duration_minutes=break_minutes,
            type=type,
        )

    return _make


@pytest.fixture
def make_employee():
    def _make(employee_id="emp-1", first_name="Claire", last_name="Martin", category="pharmacien_adjoint", contract_hours=35.0):
        return EmployeeInfo(
            id=employee_id,
            first_name=first_name,
            last_name=last_name,
            category=category,
            contract_hours=contract_hours,
        )

    return _make
