"""Wall-clock time arithmetic on "HH:MM" strings.

Pure functions, no state. Intervals are half-open: [start, end).
"""

import re

from campibook.services.violations import MalformedTime

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def to_minutes(value: str) -> int:
    """Minutes since midnight. Raises MalformedTime on anything but a valid HH:MM."""
    match = _HHMM.match(value) if isinstance(value, str) else None
    if match is None:
        raise MalformedTime(f"Invalid time {value!r}: expected HH:MM.")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise MalformedTime(f"Invalid time {value!r}: hour must be 00-23 and minute 00-59.")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Inverse of to_minutes. 1439 -> "23:59"."""
    if not 0 <= minutes < 24 * 60:
        raise MalformedTime(f"{minutes} minutes is outside a single day.")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """True if [start_a, end_a) and [start_b, end_b) share any minute.

    Touching intervals (one ends exactly when the other starts) do not overlap.
    """
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(end_a) > to_minutes(start_b)


def contains(start: str, end: str, moment: str) -> bool:
    """True if moment falls in [start, end)."""
    return to_minutes(start) <= to_minutes(moment) < to_minutes(end)


def duration_hours(start: str, end: str) -> float:
    return (to_minutes(end) - to_minutes(start)) / 60
