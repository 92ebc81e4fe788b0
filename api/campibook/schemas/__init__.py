"""Pydantic schemas for API serialisation and stored pricing configuration."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# --- Pricing rules (stored as JSON on the field, camelCase keys) ---


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DurationPrices(CamelModel):
    one_hour: Decimal = Field(ge=0)
    one_hour_half: Decimal = Field(ge=0)


class TimeSlotPrice(CamelModel):
    label: str
    start: str = Field(pattern=HHMM_PATTERN)
    end: str = Field(pattern=HHMM_PATTERN)
    prices: DurationPrices
    # 0 = Sunday ... 6 = Saturday. Empty or missing means every day.
    days_of_week: list[int] | None = None


class TimeSlotPricing(CamelModel):
    enabled: bool = False
    slots: list[TimeSlotPrice] = []


class DateOverride(CamelModel):
    day: date = Field(alias="date")
    label: str
    prices: DurationPrices


class DateOverrides(CamelModel):
    enabled: bool = False
    dates: list[DateOverride] = []


class PeriodOverride(CamelModel):
    start_date: date
    end_date: date
    label: str
    prices: DurationPrices


class PeriodOverrides(CamelModel):
    enabled: bool = False
    periods: list[PeriodOverride] = []


class PlayerCountPrice(CamelModel):
    count: int = Field(ge=1)
    label: str = ""
    # Per person
    prices: DurationPrices


class PlayerCountPricing(CamelModel):
    enabled: bool = False
    prices: list[PlayerCountPrice] = []


class PricingRules(CamelModel):
    mode: Literal["flat", "advanced"]
    flat_prices: DurationPrices | None = None
    base_prices: DurationPrices | None = None
    time_slot_pricing: TimeSlotPricing = TimeSlotPricing()
    date_overrides: DateOverrides = DateOverrides()
    period_overrides: PeriodOverrides = PeriodOverrides()
    player_count_pricing: PlayerCountPricing = PlayerCountPricing()

    @model_validator(mode="after")
    def _prices_for_mode(self) -> "PricingRules":
        if self.mode == "flat" and self.flat_prices is None:
            raise ValueError("flatPrices is required in flat mode")
        if self.mode == "advanced" and self.base_prices is None:
            raise ValueError("basePrices is required in advanced mode")
        return self


# --- Facility / field ---


class DayHours(BaseModel):
    """One weekday's window, reported the way the booking engine reads it."""

    enabled: bool = True
    open: str | None = Field(default=None, pattern=HHMM_PATTERN)
    close: str | None = Field(default=None, pattern=HHMM_PATTERN)

    @model_validator(mode="before")
    @classmethod
    def _legacy_closed_flag(cls, data):
        if isinstance(data, dict) and "enabled" not in data:
            data = {**data, "enabled": not data.get("closed", False)}
        return data

    @model_validator(mode="after")
    def _closed_without_times(self) -> "DayHours":
        if not self.open or not self.close:
            self.enabled = False
        return self


class FacilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    description: str | None
    is_active: bool
    price_per_hour: float
    is_cost_splitting_enabled: bool
    opening_hours: dict[str, DayHours]


class FieldOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    facility_id: int
    name: str
    sport: str | None
    is_active: bool
    price_per_hour: float | None
    weekly_schedule: dict[str, DayHours] | None


# --- Booking ---


class BookingCreate(BaseModel):
    facility_id: int | None = None
    field_id: int | None = None
    booking_date: date | None = None
    start_time: str | None = None
    end_time: str | None = None
    number_of_people: int | None = Field(default=None, ge=1)


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    facility_id: int
    field_id: int | None
    booking_date: date
    start_time: str
    end_time: str
    duration_hours: float
    price: float
    number_of_people: int | None
    unit_price: float | None
    status: str
    cancelled_at: datetime | None
    created_at: datetime


# --- Pricing ---


class PriceBreakdownOut(BaseModel):
    mode: str
    duration_hours: float
    one_hour: float
    one_hour_half: float
    applied_rule: str
    total: float
    pricing_mode: str
    unit_price: float | None
    player_count: int | None


class PricingPreviewEntry(BaseModel):
    time: str
    applied_rule: str
    one_hour: float
    one_hour_half: float


class PricingValidationOut(BaseModel):
    valid: bool
    errors: list[str]


# --- Availability ---


class SlotOut(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_available: bool


class AvailabilityOut(BaseModel):
    field_id: int
    field_name: str
    date: date
    slots: list[SlotOut]
