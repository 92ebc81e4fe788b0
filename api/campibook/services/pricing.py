"""Pricing resolver for field bookings.

Resolves what a booking costs from the field's pricing rules. Two modes:

flat      one price per duration, whatever the time.
advanced  base prices, overridden by (highest priority first) a special
          date, a special period, a time slot restricted to the weekday,
          and a generic time slot. First match in configured order wins
          at each level.

Only two durations exist: 1 hour and 1.5 hours. Anything else is rejected
rather than priced.

Player-count pricing sits on top of either mode: at facilities that allow
cost splitting, a party whose size has an entry pays per person.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from pydantic import ValidationError

from campibook.schemas import DurationPrices, PricingRules, TimeSlotPrice
from campibook.services.timeslots import contains, overlaps
from campibook.services.violations import PricingMisconfigured, UnsupportedDuration

logger = logging.getLogger(__name__)

SUPPORTED_DURATIONS = (1.0, 1.5)

RULE_FLAT = "flat"
RULE_BASE = "base"
RULE_LEGACY = "legacy"

PRICING_STANDARD = "standard"
PRICING_SPLIT = "split"

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    mode: str
    duration_hours: float
    unit_prices: DurationPrices
    applied_rule: str
    total: Decimal
    pricing_mode: str = PRICING_STANDARD
    # Per person, when a party size is known
    unit_price: Decimal | None = None
    player_count: int | None = None


def check_duration(duration_hours: float) -> None:
    if duration_hours not in SUPPORTED_DURATIONS:
        raise UnsupportedDuration(
            f"Duration of {duration_hours} hours is not bookable. Choose 1 or 1.5 hours."
        )


def _round(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _price_for(prices: DurationPrices, duration_hours: float) -> Decimal:
    return _round(prices.one_hour if duration_hours == 1.0 else prices.one_hour_half)


def _weekday_index(booking_date: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return booking_date.isoweekday() % 7


def _match_slot(
    slots: list[TimeSlotPrice], start_time: str, booking_date: date | None
) -> TimeSlotPrice | None:
    if booking_date is not None:
        weekday = _weekday_index(booking_date)
        for slot in slots:
            if slot.days_of_week and weekday in slot.days_of_week and contains(slot.start, slot.end, start_time):
                return slot

    for slot in slots:
        if not slot.days_of_week and contains(slot.start, slot.end, start_time):
            return slot

    return None


def _advanced_prices(
    rules: PricingRules, start_time: str | None, booking_date: date | None
) -> tuple[DurationPrices, str]:
    if booking_date is not None:
        if rules.date_overrides.enabled:
            for override in rules.date_overrides.dates:
                if override.day == booking_date:
                    return override.prices, f"dateOverride:{override.label}"

        if rules.period_overrides.enabled:
            for period in rules.period_overrides.periods:
                if period.start_date <= booking_date <= period.end_date:
                    return period.prices, f"periodOverride:{period.label}"

    if rules.time_slot_pricing.enabled and start_time:
        slot = _match_slot(rules.time_slot_pricing.slots, start_time, booking_date)
        if slot is not None:
            return slot.prices, f"timeSlot:{slot.label}"

    return rules.base_prices, RULE_BASE


def load_pricing_rules(raw: dict) -> PricingRules:
    """Parse a field's stored pricing rules. Raises PricingMisconfigured if invalid."""
    try:
        return PricingRules.model_validate(raw)
    except ValidationError as exc:
        logger.error("Stored pricing rules failed validation: %s", exc)
        raise PricingMisconfigured() from None


def _per_person(total: Decimal, number_of_people: int | None) -> Decimal | None:
    if number_of_people is None or number_of_people <= 0:
        return None
    return _round(total / number_of_people)


def _split_prices(rules: PricingRules, number_of_people: int | None) -> DurationPrices | None:
    if number_of_people is None or not rules.player_count_pricing.enabled:
        return None
    for entry in rules.player_count_pricing.prices:
        if entry.count == number_of_people:
            return entry.prices
    return None


def resolve_price(
    rules: PricingRules,
    duration_hours: float,
    start_time: str | None = None,
    booking_date: date | None = None,
    *,
    number_of_people: int | None = None,
    cost_splitting: bool = False,
) -> PriceBreakdown:
    """Price a booking of duration_hours starting at start_time on booking_date.

    With cost_splitting on and a player-count entry for number_of_people, each
    player pays that entry's per-person price (pricing mode "split"). Otherwise
    the hierarchy total stands ("standard"), divided per head when a party size
    is given.

    Raises UnsupportedDuration for durations other than 1 or 1.5 hours and
    MalformedTime if a slot or start time is not HH:MM.
    """
    check_duration(duration_hours)

    if rules.mode == "flat":
        prices, rule = rules.flat_prices, RULE_FLAT
    else:
        prices, rule = _advanced_prices(rules, start_time, booking_date)

    split = _split_prices(rules, number_of_people) if cost_splitting else None
    if split is not None:
        unit_price = _price_for(split, duration_hours)
        total = _round(unit_price * number_of_people)
        logger.debug("Priced %sh for %s players at %s each (%s)", duration_hours, number_of_people, unit_price, rule)
        return PriceBreakdown(
            mode=rules.mode,
            duration_hours=duration_hours,
            unit_prices=prices,
            applied_rule=rule,
            total=total,
            pricing_mode=PRICING_SPLIT,
            unit_price=unit_price,
            player_count=number_of_people,
        )

    total = _price_for(prices, duration_hours)
    logger.debug("Priced %sh at %s using %s", duration_hours, total, rule)
    return PriceBreakdown(
        mode=rules.mode,
        duration_hours=duration_hours,
        unit_prices=prices,
        applied_rule=rule,
        total=total,
        unit_price=_per_person(total, number_of_people),
    )


def legacy_price(
    price_per_hour: Decimal | float, duration_hours: float, number_of_people: int | None = None
) -> PriceBreakdown:
    """Hourly rate times duration, for fields that predate pricing rules."""
    check_duration(duration_hours)
    hourly = Decimal(str(price_per_hour))
    unit = DurationPrices(one_hour=hourly, one_hour_half=_round(hourly * Decimal("1.5")))
    total = _round(hourly * Decimal(str(duration_hours)))
    return PriceBreakdown(
        mode=RULE_LEGACY,
        duration_hours=duration_hours,
        unit_prices=unit,
        applied_rule=RULE_LEGACY,
        total=total,
        unit_price=_per_person(total, number_of_people),
    )


def validate_pricing_rules(rules: PricingRules) -> list[str]:
    """Return configuration problems (empty = valid).

    Same-level rules must not overlap: duplicate override dates, overlapping
    periods, overlapping generic slots, and overlapping weekday slots that
    share a day. The resolver itself does not need this (first match wins),
    but owners almost never intend an overlap.
    """
    errors: list[str] = []

    if rules.date_overrides.enabled:
        seen: set[date] = set()
        for override in rules.date_overrides.dates:
            if override.day in seen:
                errors.append(f"Date overrides: {override.day.isoformat()} appears more than once")
            seen.add(override.day)

    if rules.period_overrides.enabled:
        periods = rules.period_overrides.periods
        for i, first in enumerate(periods):
            if first.start_date > first.end_date:
                errors.append(f'Period overrides: "{first.label}" ends before it starts')
            for second in periods[i + 1 :]:
                if first.start_date <= second.end_date and second.start_date <= first.end_date:
                    errors.append(f'Period overrides: "{first.label}" overlaps "{second.label}"')

    if rules.time_slot_pricing.enabled:
        slots = rules.time_slot_pricing.slots
        for slot in slots:
            if slot.start >= slot.end:
                errors.append(f'Time slots: "{slot.label}" ends before it starts')

        generic = [s for s in slots if not s.days_of_week]
        for i, first in enumerate(generic):
            for second in generic[i + 1 :]:
                if overlaps(first.start, first.end, second.start, second.end):
                    errors.append(f'Time slots: "{first.label}" overlaps "{second.label}"')

        specific = [s for s in slots if s.days_of_week]
        for i, first in enumerate(specific):
            for second in specific[i + 1 :]:
                common = sorted(set(first.days_of_week) & set(second.days_of_week))
                if common and overlaps(first.start, first.end, second.start, second.end):
                    days = ", ".join(str(d) for d in common)
                    errors.append(f'Time slots: "{first.label}" overlaps "{second.label}" on days {days}')

    if rules.player_count_pricing.enabled:
        counts: set[int] = set()
        for entry in rules.player_count_pricing.prices:
            if entry.count in counts:
                errors.append(f"Player counts: {entry.count} players appears more than once")
            counts.add(entry.count)

    return errors


def pricing_preview(
    rules: PricingRules, booking_date: date, start_hour: int = 0, end_hour: int = 24
) -> list[dict]:
    """How prices vary across a day, hour by hour.

    Only hours where the applied rule or the prices change are returned, so a
    day with a single evening slot yields at most three entries.
    """
    preview: list[dict] = []
    previous: tuple | None = None

    for hour in range(start_hour, min(end_hour, 24)):
        start_time = f"{hour:02d}:00"
        breakdown = resolve_price(rules, 1.0, start_time, booking_date)
        key = (breakdown.applied_rule, breakdown.unit_prices.one_hour, breakdown.unit_prices.one_hour_half)
        if key != previous:
            preview.append(
                {
                    "time": start_time,
                    "applied_rule": breakdown.applied_rule,
                    "one_hour": breakdown.unit_prices.one_hour,
                    "one_hour_half": breakdown.unit_prices.one_hour_half,
                }
            )
            previous = key

    return preview


def price_summary(rules: PricingRules) -> dict:
    """Base prices plus the time-slot table, for a field detail page."""
    base = rules.flat_prices if rules.mode == "flat" else rules.base_prices
    summary = {
        "mode": rules.mode,
        "base": {"one_hour": base.one_hour, "one_hour_half": base.one_hour_half},
    }

    if rules.mode == "advanced" and rules.time_slot_pricing.enabled and rules.time_slot_pricing.slots:
        summary["time_slots"] = [
            {
                "label": slot.label,
                "times": f"{slot.start}-{slot.end}",
                "one_hour": slot.prices.one_hour,
                "one_hour_half": slot.prices.one_hour_half,
            }
            for slot in rules.time_slot_pricing.slots
        ]

    if rules.player_count_pricing.enabled and rules.player_count_pricing.prices:
        summary["player_counts"] = [
            {
                "count": entry.count,
                "label": entry.label,
                "one_hour": entry.prices.one_hour,
                "one_hour_half": entry.prices.one_hour_half,
            }
            for entry in rules.player_count_pricing.prices
        ]

    return summary
