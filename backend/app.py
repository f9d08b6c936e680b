import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from beanie.operators import GTE, LTE

from schemas import (
    SuggestionsRequest,
    SuggestionsResponse,
    SuggestedSlotSchema,
    ValidateSlotRequest,
    ValidateSlotResponse,
    BreakRequest,
    BreakSuggestionSchema,
    ShiftCreateRequest,
    ShiftCreateResponse,
    LimitsUpdateRequest,
    LimitsResponse,
    OpeningSlotSchema,
)
from compliance import AvailabilityWindow, EmployeeInfo, ExistingShift, LegalLimits, ShiftType
from compliance.engine import load_compliance_report
from slots import QuickAssignSession, SlotValidationError, generate_suggestions, suggest_break, validate_slot
from slots.suggestions import first_valid_suggestion
from recap import generate_week_summary
from settings import CORS_ORIGINS, PharmacyConfig, get_pharmacy_config, setup_logging
from utils.time import ParseError, to_minutes, utc_now
from db import (
    init_db,
    EmployeeDoc,
    ShiftDoc,
    AvailabilityDoc,
    PharmacyConfigDoc,
    BreakTierEmbed,
    OpeningSlotEmbed,
)
from db.database import close_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await init_db()
    yield
    await close_db()


app = FastAPI(title="pharmaScheduler", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid date: {value!r}")


def week_bounds(day: date) -> tuple[date, date]:
    """Monday to Sunday of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def rows_to_shifts(rows: list[dict]) -> list[ExistingShift]:
    shifts = []
    for row in rows:
        try:
            shifts.append(ExistingShift.from_dict(row))
        except (KeyError, ValueError) as e:
            logging.warning(f"Skipping malformed shift {row.get('id')}: {e}")
    return shifts


async def load_employee_week(organization_id: str, employee_id: str, day: date) -> list[ExistingShift]:
    """All of an employee's shifts in the Monday-Sunday week of ``day``."""
    monday, sunday = week_bounds(day)
    docs = await ShiftDoc.find(
        ShiftDoc.organization_id == organization_id,
        ShiftDoc.employee_id == employee_id,
        GTE(ShiftDoc.date, monday.isoformat()),
        LTE(ShiftDoc.date, sunday.isoformat()),
    ).to_list()
    return rows_to_shifts([d.to_row() for d in docs])


def day_shifts(week: list[ExistingShift], day: date) -> list[ExistingShift]:
    return [s for s in week if s.date == day]


@app.post("/quick-assign/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(request: SuggestionsRequest):
    day = parse_date(request.date)
    window = AvailabilityWindow(request.employee_id, day, request.start_time, request.end_time)

    config = await get_pharmacy_config(request.organization_id)
    week = await load_employee_week(request.organization_id, request.employee_id, day)

    suggestions = generate_suggestions(
        window.start_time,
        window.end_time,
        day_shifts(week, day),
        split_time=config.midday_split,
    )
    selected = first_valid_suggestion(suggestions)

    return SuggestionsResponse(
        employee_id=request.employee_id,
        date=day.isoformat(),
        suggestions=[SuggestedSlotSchema(**s.to_dict()) for s in suggestions],
        selected_id=selected.id if selected else None,
    )


@app.post("/quick-assign/validate", response_model=ValidateSlotResponse)
async def validate_candidate(request: ValidateSlotRequest):
    day = parse_date(request.date)
    config = await get_pharmacy_config(request.organization_id)
    week = await load_employee_week(request.organization_id, request.employee_id, day)

    result = validate_slot(
        request.start_time,
        request.end_time,
        request.availability_start,
        request.availability_end,
        day_shifts(week, day),
        request.break_duration_minutes,
        config.limits,
        week_shifts=week,
    )
    return ValidateSlotResponse(**result.to_dict())


@app.post("/quick-assign/break", response_model=BreakSuggestionSchema)
async def get_break_suggestion(request: BreakRequest):
    if request.organization_id:
        limits = (await get_pharmacy_config(request.organization_id)).limits
    else:
        limits = LegalLimits()
    return BreakSuggestionSchema(**suggest_break(request.start_time, request.end_time, limits).to_dict())


async def resolve_availability(request: ShiftCreateRequest, day: date) -> AvailabilityWindow:
    """Explicit window, else the stored one, else the slot itself."""
    if request.availability_start and request.availability_end:
        return AvailabilityWindow(request.employee_id, day, request.availability_start, request.availability_end)

    stored = await AvailabilityDoc.find_one(
        AvailabilityDoc.organization_id == request.organization_id,
        AvailabilityDoc.employee_id == request.employee_id,
        AvailabilityDoc.date == day.isoformat(),
    )
    if stored:
        return AvailabilityWindow(request.employee_id, day, stored.start_time, stored.end_time)
    return AvailabilityWindow(request.employee_id, day, request.start_time, request.end_time)


@app.post("/shifts", response_model=ShiftCreateResponse)
async def create_shift(request: ShiftCreateRequest):
    from beanie import PydanticObjectId

    day = parse_date(request.date)

    try:
        employee = await EmployeeDoc.get(PydanticObjectId(request.employee_id))
    except Exception:
        raise HTTPException(status_code=404, detail="Employee not found")
    if not employee or employee.organization_id != request.organization_id:
        raise HTTPException(status_code=404, detail="Employee not found")

    try:
        shift_type = ShiftType(request.type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown shift type: {request.type}")

    config = await get_pharmacy_config(request.organization_id)
    week = await load_employee_week(request.organization_id, request.employee_id, day)
    availability = await resolve_availability(request, day)

    session = QuickAssignSession(
        availability,
        day_shifts(week, day),
        config.limits,
        week_shifts=week,
        split_time=config.midday_split,
        shift_type=shift_type,
    )
    session.set_times(request.start_time, request.end_time)
    try:
        session.set_break(request.break_duration_minutes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        payload = session.confirm()
    except SlotValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"message": str(e), "errors": [i.to_dict() for i in e.result.errors]},
        )

    row = payload.to_row(request.organization_id, validated=True)
    doc = ShiftDoc(**row)
    await doc.insert()
    logging.info(f"Created shift {doc.id} for {request.employee_id} on {row['date']}")

    return ShiftCreateResponse(
        id=str(doc.id),
        employee_id=row["employee_id"],
        date=row["date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        break_duration=row["break_duration"],
        hours=row["hours"],
        type=row["type"],
        warnings=[w.to_dict() for w in session.validation.warnings],
    )


@app.get("/compliance/report")
async def get_compliance_report(organization_id: str, week_start: str):
    report = await load_compliance_report(organization_id, parse_date(week_start))
    return report.to_dict()


@app.get("/recap/week")
async def get_week_recap(organization_id: str, week_start: str):
    start = parse_date(week_start)
    end = start + timedelta(days=6)

    employee_docs = await EmployeeDoc.find(EmployeeDoc.organization_id == organization_id).to_list()
    shift_docs = await ShiftDoc.find(
        ShiftDoc.organization_id == organization_id,
        GTE(ShiftDoc.date, start.isoformat()),
        LTE(ShiftDoc.date, end.isoformat()),
    ).to_list()

    employees = [EmployeeInfo.from_dict(e.to_row()) for e in employee_docs]
    shifts = rows_to_shifts([s.to_row() for s in shift_docs])
    return generate_week_summary(start, shifts, employees).to_dict()


def config_response(organization_id: str, config: PharmacyConfig, is_default: bool) -> LimitsResponse:
    return LimitsResponse(
        organization_id=organization_id,
        is_default=is_default,
        limits=config.limits.to_dict(),
        midday_split=config.midday_split,
        opening_hours=[
            OpeningSlotSchema(weekday=weekday, start=slot["start"], end=slot["end"])
            for weekday, slots in sorted(config.opening_hours.items())
            for slot in slots
        ],
    )


@app.get("/config/{organization_id}/limits", response_model=LimitsResponse)
async def get_limits(organization_id: str):
    doc = await PharmacyConfigDoc.find_one(PharmacyConfigDoc.organization_id == organization_id)
    if not doc:
        return config_response(organization_id, PharmacyConfig(), is_default=True)
    return config_response(organization_id, PharmacyConfig.from_doc(doc), is_default=False)


@app.put("/config/{organization_id}/limits", response_model=LimitsResponse)
async def update_limits(organization_id: str, request: LimitsUpdateRequest):
    doc = await PharmacyConfigDoc.find_one(PharmacyConfigDoc.organization_id == organization_id)
    current = PharmacyConfig.from_doc(doc) if doc else PharmacyConfig()

    updates = request.model_dump(exclude_none=True, exclude={"midday_split", "opening_hours"})
    try:
        limits = LegalLimits.from_dict({**current.limits.to_dict(), **updates})
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    if request.midday_split is not None:
        to_minutes(request.midday_split)
    for slot in request.opening_hours or []:
        if not 0 <= slot.weekday <= 6:
            raise HTTPException(status_code=400, detail=f"Invalid weekday: {slot.weekday}")
        if to_minutes(slot.end) <= to_minutes(slot.start):
            raise HTTPException(status_code=400, detail=f"Opening slot {slot.start}-{slot.end} ends before it starts")

    fields = limits.to_dict()
    fields["break_tiers"] = [BreakTierEmbed(**t) for t in fields["break_tiers"]]
    if request.midday_split is not None:
        fields["midday_split"] = request.midday_split
    if request.opening_hours is not None:
        fields["opening_hours"] = [OpeningSlotEmbed(**s.model_dump()) for s in request.opening_hours]
    fields["updated_at"] = utc_now()

    if doc:
        await doc.set(fields)
    else:
        doc = PharmacyConfigDoc(organization_id=organization_id, **fields)
        await doc.insert()

    logging.info(f"Updated limits for {organization_id}: {sorted(updates)}")

    opening_hours = current.opening_hours
    if request.opening_hours is not None:
        opening_hours = {}
        for slot in request.opening_hours:
            opening_hours.setdefault(slot.weekday, []).append({"start": slot.start, "end": slot.end})
    updated = PharmacyConfig(
        limits=limits,
        midday_split=request.midday_split or current.midday_split,
        opening_hours=opening_hours,
    )
    return config_response(organization_id, updated, is_default=False)
