"""Facility, field, availability and pricing routes.

Public: anyone can look at opening hours, free slots and prices.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campibook.core.database import get_db
from campibook.models.booking import Booking, BookingStatus
from campibook.models.facility import Facility, Field
from campibook.schemas import (
    AvailabilityOut,
    FacilityOut,
    FieldOut,
    PriceBreakdownOut,
    PricingPreviewEntry,
    PricingRules,
    PricingValidationOut,
    SlotOut,
)
from campibook.services.booking_rules import BookingRequest, price_booking
from campibook.services.operating_hours import generate_slots
from campibook.services.pricing import load_pricing_rules, price_summary, pricing_preview, validate_pricing_rules
from campibook.services.violations import BookingViolation

router = APIRouter(tags=["facilities"])


async def _active_field(db: AsyncSession, field_id: int) -> tuple[Field, Facility]:
    field = await db.get(Field, field_id)
    if field is None or not field.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Field not found")
    facility = await db.get(Facility, field.facility_id)
    if facility is None or not facility.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")
    return field, facility


def _field_rules(field: Field) -> PricingRules:
    if not field.pricing_rules:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Field has no pricing rules")
    try:
        return load_pricing_rules(field.pricing_rules)
    except BookingViolation as violation:
        raise HTTPException(status_code=violation.status_code, detail=violation.as_detail())


@router.get("/facilities/{facility_id}", response_model=FacilityOut)
async def get_facility(facility_id: int, db: AsyncSession = Depends(get_db)):
    facility = await db.get(Facility, facility_id)
    if facility is None or not facility.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Facility not found")
    return facility


@router.get("/facilities/{facility_id}/fields", response_model=list[FieldOut])
async def list_fields(facility_id: int, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Field)
        .join(Facility, Facility.id == Field.facility_id)
        .where(Field.facility_id == facility_id, Field.is_active.is_(True), Facility.is_active.is_(True))
        .order_by(Field.name)
    )
    return result.scalars().all()


@router.get("/fields/{field_id}/availability", response_model=AvailabilityOut)
async def get_field_availability(
    field_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
):
    """Half-hour slot grid for one field on one day."""
    field, facility = await _active_field(db, field_id)

    result = await db.execute(
        select(Booking.start_time, Booking.end_time).where(
            Booking.field_id == field.id,
            Booking.booking_date == query_date,
            Booking.status == BookingStatus.CONFIRMED,
        )
    )
    booked = [(row.start_time, row.end_time) for row in result.all()]

    schedule = field.weekly_schedule or facility.opening_hours
    slots = generate_slots(schedule, query_date, booked)

    return AvailabilityOut(
        field_id=field.id,
        field_name=field.name,
        date=query_date,
        slots=[SlotOut(**s) for s in slots],
    )


@router.get("/fields/{field_id}/price", response_model=PriceBreakdownOut)
async def quote_price(
    field_id: int,
    duration: float = Query(..., description="Hours: 1 or 1.5"),
    start_time: str | None = Query(None, description="HH:MM"),
    query_date: date | None = Query(None, alias="date"),
    number_of_people: int | None = Query(None, ge=1, description="Party size, for per-person prices"),
    db: AsyncSession = Depends(get_db),
):
    """Price a booking without checking availability."""
    field, facility = await _active_field(db, field_id)
    request = BookingRequest(
        facility_id=facility.id,
        field_id=field.id,
        booking_date=query_date,
        start_time=start_time,
        end_time=None,
        number_of_people=number_of_people,
    )
    try:
        breakdown = price_booking(facility, field, request, duration)
    except BookingViolation as violation:
        raise HTTPException(status_code=violation.status_code, detail=violation.as_detail())

    return PriceBreakdownOut(
        mode=breakdown.mode,
        duration_hours=breakdown.duration_hours,
        one_hour=breakdown.unit_prices.one_hour,
        one_hour_half=breakdown.unit_prices.one_hour_half,
        applied_rule=breakdown.applied_rule,
        total=breakdown.total,
        pricing_mode=breakdown.pricing_mode,
        unit_price=breakdown.unit_price,
        player_count=breakdown.player_count,
    )


@router.get("/fields/{field_id}/pricing")
async def get_pricing_summary(field_id: int, db: AsyncSession = Depends(get_db)):
    field, _ = await _active_field(db, field_id)
    return price_summary(_field_rules(field))


@router.get("/fields/{field_id}/pricing-preview", response_model=list[PricingPreviewEntry])
async def get_pricing_preview(
    field_id: int,
    query_date: date = Query(..., alias="date"),
    start_hour: int = Query(0, ge=0, le=23),
    end_hour: int = Query(24, ge=1, le=24),
    db: AsyncSession = Depends(get_db),
):
    field, _ = await _active_field(db, field_id)
    return pricing_preview(_field_rules(field), query_date, start_hour, end_hour)


@router.post("/pricing/validate", response_model=PricingValidationOut)
async def validate_rules(rules: PricingRules):
    """Check a pricing configuration before an owner saves it."""
    errors = validate_pricing_rules(rules)
    return PricingValidationOut(valid=not errors, errors=errors)
