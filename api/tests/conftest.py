"""Shared test fixtures.

API and store tests run against a fresh in-memory SQLite database per test.
Engine unit tests use the in-memory stores below with SimpleNamespace rows.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from campibook.core.auth import create_access_token
from campibook.core.database import get_db
from campibook.main import app
from campibook.models import Base, BookingStatus, Facility, Field, User, UserRole
from campibook.services.stores import Stores
from campibook.services.timeslots import overlaps
from campibook.services.violations import SlotAlreadyBooked

MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)

WEEK_OPEN_9_TO_22 = {
    day: {"enabled": True, "open": "09:00", "close": "22:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
} | {"sunday": {"enabled": False, "open": "09:00", "close": "22:00"}}

FLAT_20_28 = {"mode": "flat", "flatPrices": {"oneHour": 20, "oneHourHalf": 28}}


# ---------------------------------------------------------------------------
# In-memory stores
# ---------------------------------------------------------------------------


class MemoryFacilityStore:
    def __init__(self, facilities):
        self.rows = {f.id: f for f in facilities}

    async def find_by_id(self, facility_id):
        return self.rows.get(facility_id)


class MemoryFieldStore(MemoryFacilityStore):
    pass


class MemoryBookingStore:
    def __init__(self, bookings=()):
        self.rows = {b.id: b for b in bookings}

    async def find_confirmed_by_facility_and_date(self, facility_id, booking_date, field_id=None):
        return [
            b
            for b in self.rows.values()
            if b.facility_id == facility_id
            and b.booking_date == booking_date
            and b.field_id == field_id
            and b.status == BookingStatus.CONFIRMED
        ]

    async def create(self, admitted):
        existing = await self.find_confirmed_by_facility_and_date(
            admitted.facility_id, admitted.booking_date, admitted.field_id
        )
        if any(overlaps(admitted.start_time, admitted.end_time, b.start_time, b.end_time) for b in existing):
            raise SlotAlreadyBooked()
        booking = SimpleNamespace(
            id=len(self.rows) + 1,
            user_id=admitted.user_id,
            facility_id=admitted.facility_id,
            field_id=admitted.field_id,
            booking_date=admitted.booking_date,
            start_time=admitted.start_time,
            end_time=admitted.end_time,
            duration_hours=admitted.duration_hours,
            price=admitted.price,
            number_of_people=admitted.number_of_people,
            unit_price=admitted.unit_price,
            status=BookingStatus.CONFIRMED,
        )
        self.rows[booking.id] = booking
        return booking

    async def find_by_id(self, booking_id):
        return self.rows.get(booking_id)

    async def set_cancelled(self, booking_id):
        self.rows[booking_id].status = BookingStatus.CANCELLED


def facility_row(**overrides):
    defaults = {
        "id": 1,
        "owner_id": 100,
        "is_active": True,
        "price_per_hour": Decimal("15"),
        "is_cost_splitting_enabled": False,
        "opening_hours": WEEK_OPEN_9_TO_22,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def field_row(**overrides):
    defaults = {
        "id": 10,
        "facility_id": 1,
        "is_active": True,
        "price_per_hour": None,
        "pricing_rules": FLAT_20_28,
        "weekly_schedule": None,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def booking_row(**overrides):
    defaults = {
        "id": 1,
        "user_id": 1,
        "facility_id": 1,
        "field_id": 10,
        "booking_date": MONDAY,
        "start_time": "18:00",
        "end_time": "19:00",
        "status": BookingStatus.CONFIRMED,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


@pytest.fixture
def make_stores():
    """Factory: build Stores over in-memory rows."""

    def _make(facilities=None, fields=None, bookings=()):
        return Stores(
            facilities=MemoryFacilityStore(facilities if facilities is not None else [facility_row()]),
            fields=MemoryFieldStore(fields if fields is not None else [field_row()]),
            bookings=MemoryBookingStore(bookings),
        )

    return _make


@pytest.fixture
def player():
    return SimpleNamespace(id=1, role=UserRole.PLAYER)


# ---------------------------------------------------------------------------
# Database + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def seed_data(session_factory):
    """Owner, player, a facility open Mon-Sat 09:00-22:00 and a flat 20/28 field."""
    async with session_factory() as db:
        owner = User(email="owner@example.com", name="Olga Owner", role=UserRole.OWNER)
        player = User(email="player@example.com", name="Pietro Player", role=UserRole.PLAYER)
        other = User(email="other@example.com", name="Other Player", role=UserRole.PLAYER)
        db.add_all([owner, player, other])
        await db.flush()

        facility = Facility(
            owner_id=owner.id,
            name="Lido Beach Arena",
            price_per_hour=Decimal("15"),
            opening_hours=WEEK_OPEN_9_TO_22,
        )
        db.add(facility)
        await db.flush()

        field = Field(facility_id=facility.id, name="Campo 1", sport="beach_volley", pricing_rules=FLAT_20_28)
        legacy = Field(facility_id=facility.id, name="Campo Vecchio", sport="volley")
        db.add_all([field, legacy])
        await db.commit()

        return {
            "owner": owner,
            "player": player,
            "other": other,
            "facility": facility,
            "field": field,
            "legacy_field": legacy,
            "headers": {"Authorization": f"Bearer {create_access_token(str(player.id))}"},
            "other_headers": {"Authorization": f"Bearer {create_access_token(str(other.id))}"},
            "owner_headers": {"Authorization": f"Bearer {create_access_token(str(owner.id))}"},
        }
