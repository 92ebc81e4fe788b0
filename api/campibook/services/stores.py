"""Persistence collaborators for the booking engine.

The engine only sees the three protocols below. The SQLAlchemy
implementations share the request's AsyncSession; BookingStore.create is the
authoritative guard against double booking (the engine's own conflict check
is a fast path that a concurrent request can race past).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campibook.models.booking import Booking, BookingStatus
from campibook.models.facility import Facility, Field
from campibook.services.violations import DependencyUnavailable, SlotAlreadyBooked

if TYPE_CHECKING:
    from campibook.services.booking_rules import AdmittedBooking

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FacilityStore(Protocol):
    async def find_by_id(self, facility_id: int) -> Facility | None: ...


class FieldStore(Protocol):
    async def find_by_id(self, field_id: int) -> Field | None: ...


class BookingStore(Protocol):
    async def find_confirmed_by_facility_and_date(
        self, facility_id: int, booking_date: date, field_id: int | None = None
    ) -> Sequence[Booking]: ...

    async def create(self, admitted: "AdmittedBooking") -> Booking: ...

    async def find_by_id(self, booking_id: int) -> Booking | None: ...

    async def set_cancelled(self, booking_id: int) -> None: ...


@dataclass(frozen=True)
class Stores:
    facilities: FacilityStore
    fields: FieldStore
    bookings: BookingStore
    # Run after a timed-out call, e.g. to discard the session's connection
    on_timeout: Callable[[], Awaitable[None]] | None = None

    async def call(self, awaitable: Awaitable[T], timeout: float) -> T:
        return await call_store(awaitable, timeout, on_timeout=self.on_timeout)


async def call_store(
    awaitable: Awaitable[T],
    timeout: float,
    on_timeout: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """Await a collaborator call, mapping a timeout to DependencyUnavailable.

    A cancelled database call leaves its connection in an unknown state, so
    ``on_timeout`` gets the chance to invalidate it before the error surfaces.
    The driver's own statement timeout raises the same TimeoutError.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except TimeoutError:
        logger.warning("Store call timed out after %ss", timeout)
        if on_timeout is not None:
            await on_timeout()
        raise DependencyUnavailable() from None


# ---------------------------------------------------------------------------
# SQLAlchemy implementations
# ---------------------------------------------------------------------------


class SqlFacilityStore:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_by_id(self, facility_id: int) -> Facility | None:
        return await self._db.get(Facility, facility_id)


class SqlFieldStore:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_by_id(self, field_id: int) -> Field | None:
        return await self._db.get(Field, field_id)


class SqlBookingStore:
    def __init__(self, db: AsyncSession):
        self._db = db

    async def find_confirmed_by_facility_and_date(
        self, facility_id: int, booking_date: date, field_id: int | None = None
    ) -> Sequence[Booking]:
        field_clause = Booking.field_id.is_(None) if field_id is None else Booking.field_id == field_id
        result = await self._db.execute(
            select(Booking)
            .where(
                Booking.facility_id == facility_id,
                Booking.booking_date == booking_date,
                Booking.status == BookingStatus.CONFIRMED,
                field_clause,
            )
            .order_by(Booking.start_time)
        )
        return result.scalars().all()

    async def create(self, admitted: "AdmittedBooking") -> Booking:
        """Insert a confirmed booking unless it overlaps one already stored.

        The facility row is locked first so concurrent writers for the same
        facility serialise on it (a no-op on SQLite, which serialises writes
        anyway). The partial unique index catches anything that slips through.
        """
        await self._db.execute(
            select(Facility.id).where(Facility.id == admitted.facility_id).with_for_update()
        )

        # "HH:MM" strings compare in time order
        field_clause = (
            Booking.field_id.is_(None) if admitted.field_id is None else Booking.field_id == admitted.field_id
        )
        result = await self._db.execute(
            select(Booking).where(
                Booking.facility_id == admitted.facility_id,
                Booking.booking_date == admitted.booking_date,
                Booking.status == BookingStatus.CONFIRMED,
                field_clause,
                Booking.start_time < admitted.end_time,
                Booking.end_time > admitted.start_time,
            )
        )
        conflict = result.scalars().first()
        if conflict is not None:
            raise SlotAlreadyBooked(f"Already booked from {conflict.start_time} to {conflict.end_time}.")

        booking = Booking(
            user_id=admitted.user_id,
            facility_id=admitted.facility_id,
            field_id=admitted.field_id,
            booking_date=admitted.booking_date,
            start_time=admitted.start_time,
            end_time=admitted.end_time,
            duration_hours=Decimal(str(admitted.duration_hours)),
            price=admitted.price,
            number_of_people=admitted.number_of_people,
            unit_price=admitted.unit_price,
            status=BookingStatus.CONFIRMED,
        )
        self._db.add(booking)
        try:
            await self._db.flush()
        except IntegrityError:
            await self._db.rollback()
            raise SlotAlreadyBooked() from None

        # Load server-side defaults (created_at) while still in async context
        await self._db.refresh(booking)
        return booking

    async def find_by_id(self, booking_id: int) -> Booking | None:
        return await self._db.get(Booking, booking_id)

    async def set_cancelled(self, booking_id: int) -> None:
        booking = await self._db.get(Booking, booking_id)
        if booking is None or booking.status == BookingStatus.CANCELLED:
            return
        booking.status = BookingStatus.CANCELLED
        booking.cancelled_at = datetime.now(UTC)
        await self._db.flush()


def sql_stores(db: AsyncSession) -> Stores:
    return Stores(
        facilities=SqlFacilityStore(db),
        fields=SqlFieldStore(db),
        bookings=SqlBookingStore(db),
        on_timeout=db.invalidate,
    )
