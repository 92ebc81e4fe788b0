"""Opening hours and slot generation for field availability.

Pure calculation module: no database, no async.
Opening hours are a weekday-keyed map as stored on the facility (or the
field's own weekly schedule):

    {"monday": {"enabled": true, "open": "09:00", "close": "22:00"}, ...}
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from campibook.core.config import settings
from campibook.services.timeslots import format_minutes, to_minutes
from campibook.services.violations import BookingViolation, FacilityClosedOnDate, OutsideOpeningWindow

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
SLOT_MINUTES = 30


def weekday_name(query_date: date) -> str:
    return WEEKDAYS[query_date.weekday()]


def _day_window(opening_hours: dict | None, query_date: date) -> tuple[str, str] | None:
    """Return (open, close) for the date, or None if closed that day.

    Entries without an explicit ``enabled`` flag honour a legacy ``closed`` flag
    and are otherwise open.
    """
    entry = (opening_hours or {}).get(weekday_name(query_date))
    if not entry:
        return None
    enabled = entry.get("enabled", not entry.get("closed", False))
    if not enabled or not entry.get("open") or not entry.get("close"):
        return None
    return entry["open"], entry["close"]


def is_within_opening_hours(
    opening_hours: dict | None,
    query_date: date,
    start_time: str,
    end_time: str,
) -> BookingViolation | None:
    """Check the interval lies inside the day's open window (boundaries inclusive)."""
    window = _day_window(opening_hours, query_date)
    if window is None:
        return FacilityClosedOnDate(f"Closed on {weekday_name(query_date).capitalize()}s.")

    open_time, close_time = window
    if to_minutes(start_time) < to_minutes(open_time) or to_minutes(end_time) > to_minutes(close_time):
        return OutsideOpeningWindow(
            f"Open {open_time}-{close_time} on {weekday_name(query_date).capitalize()}s; "
            f"{start_time}-{end_time} is outside opening hours."
        )

    return None


def generate_slots(
    opening_hours: dict | None,
    query_date: date,
    booked_intervals: list[tuple[str, str]],
    now: datetime | None = None,
) -> list[dict]:
    """Generate the half-hour slot grid for a day.

    Returns a list of dicts with keys: start_time, end_time, is_available.
    Past slots and slots overlapping confirmed bookings are marked unavailable,
    using the same half-open overlap as the conflict check.
    """
    window = _day_window(opening_hours, query_date)
    if window is None:
        return []

    tz = ZoneInfo(settings.timezone)
    now = now or datetime.now(tz)
    booked = [(to_minutes(start), to_minutes(end)) for start, end in booked_intervals]

    slots: list[dict] = []
    current = to_minutes(window[0])
    close = to_minutes(window[1])

    while current + SLOT_MINUTES <= close:
        slot_end = current + SLOT_MINUTES
        slot_start_dt = datetime.combine(query_date, time(current // 60, current % 60), tzinfo=tz)

        is_past = slot_start_dt <= now
        has_conflict = any(b_start < slot_end and b_end > current for b_start, b_end in booked)

        slots.append(
            {
                "start_time": format_minutes(current),
                "end_time": format_minutes(slot_end),
                "is_available": not is_past and not has_conflict,
            }
        )
        current = slot_end

    return slots
