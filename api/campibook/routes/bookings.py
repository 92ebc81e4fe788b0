"""Booking routes: create, list, view, cancel - with full admission rules."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campibook.core.config import settings
from campibook.core.database import get_db
from campibook.core.dependencies import get_current_user, get_stores, require_owner
from campibook.models.booking import Booking, BookingStatus
from campibook.models.facility import Facility
from campibook.models.member import User
from campibook.schemas import BookingCreate, BookingOut
from campibook.services.booking_rules import BookingRequest, cancel_booking, place_booking
from campibook.services.stores import Stores
from campibook.services.violations import BookingViolation

router = APIRouter(tags=["bookings"])


def _raise_violation(violation: BookingViolation):
    raise HTTPException(status_code=violation.status_code, detail=violation.as_detail())


@router.post("/bookings", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    request = BookingRequest(
        facility_id=body.facility_id,
        field_id=body.field_id,
        booking_date=body.booking_date,
        start_time=body.start_time,
        end_time=body.end_time,
        number_of_people=body.number_of_people,
    )
    result = await place_booking(stores, request, user, owners_may_book=settings.owners_may_book)
    if isinstance(result, BookingViolation):
        _raise_violation(result)
    return result


@router.get("/bookings", response_model=list[BookingOut])
async def list_my_bookings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user.id)
        .order_by(Booking.booking_date.desc(), Booking.start_time.desc())
        .limit(50)
    )
    return result.scalars().all()


@router.get("/bookings/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if booking.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    return booking


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_my_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    stores: Stores = Depends(get_stores),
):
    violation = await cancel_booking(stores, booking_id, user.id)
    if violation:
        _raise_violation(violation)


@router.get("/owner/bookings", response_model=list[BookingOut])
async def list_owner_bookings(
    owner: User = Depends(require_owner),
    db: AsyncSession = Depends(get_db),
):
    """Confirmed bookings across every facility the caller owns."""
    result = await db.execute(
        select(Booking)
        .join(Facility, Facility.id == Booking.facility_id)
        .where(Facility.owner_id == owner.id, Booking.status == BookingStatus.CONFIRMED)
        .order_by(Booking.booking_date.desc(), Booking.start_time)
    )
    return result.scalars().all()
