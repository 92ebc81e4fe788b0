"""Facility and field models.

Facility = a venue ("struttura") owned by a user, with weekly opening hours.
Field = an individual bookable court/pitch ("campo") within a facility,
carrying its own pricing rules and, optionally, its own weekly schedule.
"""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campibook.models.base import Base, JSONType, TimestampMixin


class Facility(TimestampMixin, Base):
    __tablename__ = "facilities"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Legacy flat default, used when a field has no pricing rules
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)

    # Lets fields with player-count pricing charge per person
    is_cost_splitting_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # {"monday": {"enabled": true, "open": "09:00", "close": "22:00"}, ...}
    opening_hours: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    fields: Mapped[list["Field"]] = relationship(back_populates="facility", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Facility {self.name}>"


class Field(TimestampMixin, Base):
    """A bookable field. ``pricing_rules`` is None for fields predating tiered pricing."""

    __tablename__ = "fields"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sport: Mapped[str | None] = mapped_column(String(50))  # beach_volley, volley, padel, ...
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    price_per_hour: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    pricing_rules: Mapped[dict | None] = mapped_column(JSONType)
    weekly_schedule: Mapped[dict | None] = mapped_column(JSONType)

    facility: Mapped["Facility"] = relationship(back_populates="fields")

    def __repr__(self) -> str:
        return f"<Field {self.name} @ facility {self.facility_id}>"
