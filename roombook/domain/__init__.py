"""
Domain layer - Pure business logic without external dependencies.
"""

from .booking_validator import BookingValidator, find_conflicts, parse_date
from .models import (
    Accepted,
    Booking,
    BookingRequest,
    BookingStatus,
    Rejected,
    RejectionReason,
    Room,
    Slot,
    TimeRange,
    User,
)
from .slot_generator import SlotGenerator

__all__ = [
    "Accepted",
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "BookingValidator",
    "Rejected",
    "RejectionReason",
    "Room",
    "Slot",
    "SlotGenerator",
    "TimeRange",
    "User",
    "find_conflicts",
    "parse_date",
]
