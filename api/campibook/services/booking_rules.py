"""Booking admission and cancellation rules.

All booking validation lives here, separate from the route handlers. Each
check returns a BookingViolation or None if it passes. admit_booking runs
them in order and stops at the first violation:

    shape -> role -> facility -> opening hours -> conflicts -> price

The 1h / 1.5h duration rule belongs to pricing, so a request outside opening
hours is reported as such whatever its length.

The controller never writes. It returns an AdmittedBooking for the booking
store to persist (place_booking does both), or the violation that stopped it.
"""

import dataclasses
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from campibook.core.config import settings
from campibook.models.booking import BookingStatus
from campibook.models.member import UserRole
from campibook.services.operating_hours import is_within_opening_hours
from campibook.services.pricing import (
    PRICING_STANDARD,
    PriceBreakdown,
    legacy_price,
    load_pricing_rules,
    resolve_price,
)
from campibook.services.stores import Stores
from campibook.services.timeslots import duration_hours, overlaps
from campibook.services.violations import (
    BookingNotFound,
    BookingViolation,
    FacilityNotFound,
    MalformedTime,
    MissingFields,
    NotAuthorized,
    OwnerCannotBook,
    SlotAlreadyBooked,
    UnsupportedDuration,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("facility_id", "booking_date", "start_time", "end_time")


@dataclass(frozen=True)
class BookingRequest:
    facility_id: int | None
    booking_date: date | str | None
    start_time: str | None
    end_time: str | None
    field_id: int | None = None
    number_of_people: int | None = None


@dataclass(frozen=True)
class AdmittedBooking:
    facility_id: int
    field_id: int | None
    user_id: int | None
    booking_date: date
    start_time: str
    end_time: str
    duration_hours: float
    price: Decimal
    applied_rule: str
    number_of_people: int | None = None
    unit_price: Decimal | None = None
    pricing_mode: str = PRICING_STANDARD
    status: BookingStatus = BookingStatus.CONFIRMED


def _timeout(timeout: float | None) -> float:
    return settings.store_timeout_seconds if timeout is None else timeout


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------


def check_request_shape(request: BookingRequest) -> BookingViolation | None:
    """Required fields present, date and times well-formed, end after start."""
    missing = [name for name in REQUIRED_FIELDS if getattr(request, name) in (None, "")]
    if missing:
        return MissingFields(f"Missing required fields: {', '.join(missing)}.")

    if not isinstance(request.booking_date, date):
        return MissingFields("booking_date must be a calendar date (YYYY-MM-DD).")

    try:
        hours = duration_hours(request.start_time, request.end_time)
    except MalformedTime as violation:
        return violation

    if hours <= 0:
        return UnsupportedDuration(f"End time {request.end_time} is not after start time {request.start_time}.")

    return None


def check_role(actor, owners_may_book: bool) -> BookingViolation | None:
    """Owners manage facilities; they don't book them unless configured to."""
    if actor is not None and actor.role == UserRole.OWNER and not owners_may_book:
        return OwnerCannotBook()
    return None


def check_slot_conflict(existing: Sequence, start_time: str, end_time: str) -> BookingViolation | None:
    """No confirmed booking may overlap the requested [start, end)."""
    for booking in existing:
        if booking.status != BookingStatus.CONFIRMED:
            continue
        if overlaps(start_time, end_time, booking.start_time, booking.end_time):
            return SlotAlreadyBooked(f"Already booked from {booking.start_time} to {booking.end_time}.")
    return None


def price_booking(facility, field, request: BookingRequest, hours: float) -> PriceBreakdown:
    """Price with the field's rules, or the legacy hourly rate when it has none.

    Raises UnsupportedDuration for lengths other than 1h or 1.5h and
    PricingMisconfigured if the stored rules do not validate.
    """
    if field is not None and field.pricing_rules:
        rules = load_pricing_rules(field.pricing_rules)
        return resolve_price(
            rules,
            hours,
            request.start_time,
            request.booking_date,
            number_of_people=request.number_of_people,
            cost_splitting=facility.is_cost_splitting_enabled,
        )

    hourly = field.price_per_hour if field is not None and field.price_per_hour is not None else None
    if hourly is None:
        hourly = facility.price_per_hour
    return legacy_price(hourly, hours, request.number_of_people)


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------


def _normalise(request: BookingRequest) -> BookingRequest:
    """Accept ISO date strings; anything unparseable is left for the shape check."""
    if isinstance(request.booking_date, str) and request.booking_date:
        try:
            return dataclasses.replace(request, booking_date=date.fromisoformat(request.booking_date))
        except ValueError:
            return request
    return request


async def _admit(
    stores: Stores,
    request: BookingRequest,
    actor,
    owners_may_book: bool,
    timeout: float,
) -> AdmittedBooking | BookingViolation:
    # 1. Shape
    violation = check_request_shape(request)
    if violation:
        return violation
    hours = duration_hours(request.start_time, request.end_time)

    # 2. Role
    violation = check_role(actor, owners_may_book)
    if violation:
        return violation

    # 3. Facility (and field, when one is named)
    facility = await stores.call(stores.facilities.find_by_id(request.facility_id), timeout)
    if facility is None or not facility.is_active:
        return FacilityNotFound()

    field = None
    if request.field_id is not None:
        field = await stores.call(stores.fields.find_by_id(request.field_id), timeout)
        if field is None or not field.is_active or field.facility_id != facility.id:
            return FacilityNotFound("Field not available.")

    # 4. Opening hours - a field's own weekly schedule overrides the facility's
    schedule = field.weekly_schedule if field is not None and field.weekly_schedule else facility.opening_hours
    violation = is_within_opening_hours(schedule, request.booking_date, request.start_time, request.end_time)
    if violation:
        return violation

    # 5. Conflicts with confirmed bookings
    existing = await stores.call(
        stores.bookings.find_confirmed_by_facility_and_date(facility.id, request.booking_date, request.field_id),
        timeout,
    )
    violation = check_slot_conflict(existing, request.start_time, request.end_time)
    if violation:
        return violation

    # 6. Price, which also enforces the 1h / 1.5h durations
    breakdown = price_booking(facility, field, request, hours)

    # 7. Admit
    return AdmittedBooking(
        facility_id=facility.id,
        field_id=request.field_id,
        user_id=actor.id if actor is not None else None,
        booking_date=request.booking_date,
        start_time=request.start_time,
        end_time=request.end_time,
        duration_hours=hours,
        price=breakdown.total,
        applied_rule=breakdown.applied_rule,
        number_of_people=request.number_of_people,
        unit_price=breakdown.unit_price,
        pricing_mode=breakdown.pricing_mode,
    )


async def admit_booking(
    stores: Stores,
    request: BookingRequest,
    actor=None,
    *,
    owners_may_book: bool = False,
    timeout: float | None = None,
) -> AdmittedBooking | BookingViolation:
    """Decide whether a booking request may be accepted, and at what price.

    ``actor`` is the submitting user (anything with ``id`` and ``role``); it
    may be omitted for a dry-run quote. Returns the AdmittedBooking, or the
    first BookingViolation hit. Never raises a BookingViolation.
    """
    request = _normalise(request)
    try:
        result = await _admit(stores, request, actor, owners_may_book, _timeout(timeout))
    except BookingViolation as violation:
        result = violation

    if isinstance(result, BookingViolation):
        logger.info(
            "Booking rejected (%s) facility=%s date=%s %s-%s: %s",
            result.rule,
            request.facility_id,
            request.booking_date,
            request.start_time,
            request.end_time,
            result.message,
        )
    return result


async def place_booking(
    stores: Stores,
    request: BookingRequest,
    actor,
    *,
    owners_may_book: bool = False,
    timeout: float | None = None,
):
    """Admit and persist. Returns the stored booking or a BookingViolation.

    A write conflict from the store (a concurrent request got there first)
    comes back as SlotAlreadyBooked, exactly like the read-time check.
    """
    result = await admit_booking(stores, request, actor, owners_may_book=owners_may_book, timeout=timeout)
    if isinstance(result, BookingViolation):
        return result

    try:
        booking = await stores.call(stores.bookings.create(result), _timeout(timeout))
    except BookingViolation as violation:
        logger.info("Booking write rejected (%s): %s", violation.rule, violation.message)
        return violation

    logger.info(
        "Booking %s confirmed: facility=%s field=%s %s %s-%s price=%s (%s)",
        booking.id,
        result.facility_id,
        result.field_id,
        result.booking_date,
        result.start_time,
        result.end_time,
        result.price,
        result.applied_rule,
    )
    return booking


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


async def cancel_booking(
    stores: Stores,
    booking_id: int,
    requesting_user_id: int,
    *,
    timeout: float | None = None,
) -> BookingViolation | None:
    """Cancel a booking on behalf of the user who made it.

    Only the booking's own user may cancel. Cancelling an already cancelled
    booking succeeds and changes nothing.
    """
    timeout = _timeout(timeout)
    try:
        booking = await stores.call(stores.bookings.find_by_id(booking_id), timeout)
        if booking is None:
            return BookingNotFound()
        if booking.user_id != requesting_user_id:
            return NotAuthorized("Only the user who made a booking can cancel it.")
        await stores.call(stores.bookings.set_cancelled(booking_id), timeout)
        logger.info("Booking %s cancelled by user %s", booking_id, requesting_user_id)
    except BookingViolation as violation:
        logger.info("Cancellation of booking %s failed (%s)", booking_id, violation.rule)
        return violation

    return None
