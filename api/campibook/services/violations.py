"""Booking rejection reasons.

Every way the engine can turn a request down is a ``BookingViolation``
subclass with a stable ``rule`` code and the HTTP status the API maps it to.
The engine's entry points return these as values; the low-level helpers
(time parsing, price resolution) raise them because a bad input there is a
caller contract violation.
"""

from fastapi import status


class BookingViolation(Exception):
    """Base rejection. ``rule`` is the machine-readable code clients branch on."""

    rule = "booking_violation"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Booking rejected."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_detail(self) -> dict:
        return {"rule": self.rule, "message": self.message}


class MalformedTime(BookingViolation):
    rule = "malformed_time"
    default_message = "Times must be in HH:MM format."


class UnsupportedDuration(BookingViolation):
    rule = "unsupported_duration"
    default_message = "Bookings last either 1 hour or 1.5 hours."


class MissingFields(BookingViolation):
    rule = "missing_fields"
    default_message = "facility_id, date, start_time and end_time are required."


class OwnerCannotBook(BookingViolation):
    rule = "owner_cannot_book"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Facility owners cannot make bookings."


class FacilityNotFound(BookingViolation):
    rule = "facility_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Facility not available."


class FacilityClosedOnDate(BookingViolation):
    rule = "facility_closed"
    default_message = "The facility is closed on this day."


class OutsideOpeningWindow(BookingViolation):
    rule = "outside_opening_window"
    default_message = "The requested time is outside opening hours."


class SlotAlreadyBooked(BookingViolation):
    rule = "slot_already_booked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This time is already booked."


class BookingNotFound(BookingViolation):
    rule = "booking_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Booking not found."


class NotAuthorized(BookingViolation):
    rule = "not_authorized"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized."


class DependencyUnavailable(BookingViolation):
    rule = "dependency_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "A booking dependency did not respond in time. Try again shortly."


class PricingMisconfigured(BookingViolation):
    rule = "pricing_misconfigured"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "This field's pricing is misconfigured. Ask the facility to review it."
