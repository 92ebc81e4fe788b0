"""Booking model.

A booking reserves a field (or, for legacy facilities, the facility itself)
for a player at a specific date and time. Price and interval never change
after creation; cancellation only flips the status.
"""

import enum
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from campibook.models.base import Base, TimestampMixin


class BookingStatus(enum.StrEnum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    field_id: Mapped[int | None] = mapped_column(ForeignKey("fields.id"))

    # When ("HH:MM", zero padded, so string order is time order)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    duration_hours: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False)

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    number_of_people: Mapped[int | None] = mapped_column(Integer)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [x.value for x in e]),
        default=BookingStatus.CONFIRMED,
        nullable=False,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        # No two confirmed bookings may start at the same time on the same field.
        # Overlaps with different start times are caught by BookingStore.create.
        Index(
            "ix_bookings_no_double",
            "facility_id",
            "field_id",
            "booking_date",
            "start_time",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            postgresql_nulls_not_distinct=True,
            sqlite_where=text("status = 'confirmed'"),
        ),
        Index("ix_bookings_facility_date", "facility_id", "booking_date"),
        Index("ix_bookings_user", "user_id", "booking_date"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.booking_date} {self.start_time}-{self.end_time} facility={self.facility_id}>"
