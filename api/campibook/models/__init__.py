"""All models imported here for Alembic autogenerate discovery."""

from campibook.models.base import Base
from campibook.models.booking import Booking, BookingStatus
from campibook.models.facility import Facility, Field
from campibook.models.member import User, UserRole

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Facility",
    "Field",
    "Booking",
    "BookingStatus",
]
