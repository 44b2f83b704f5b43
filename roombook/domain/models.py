"""
Domain models for rooms, bookings and derived time slots.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Union

import pendulum
from pendulum import DateTime

SECONDS_PER_DAY = 86400
SLOT_MINUTES = 30


def format_time_of_day(seconds: int) -> str:
    """Render seconds since midnight as ``HH:MM`` (86400 renders as ``24:00``)."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours:02d}:{minutes:02d}"


def to_iso(dt: DateTime) -> str:
    """Serialize an instant as an ISO 8601 UTC string."""
    return dt.in_timezone("UTC").to_iso8601_string()


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class RejectionReason(str, Enum):
    """Machine-readable reason tags for rejected booking requests."""
    INVALID_FORMAT = "invalid_format"
    INVALID_RANGE = "invalid_range"
    OUTSIDE_HOURS = "outside_hours"
    DURATION_EXCEEDED = "duration_exceeded"
    ALREADY_ENDED = "already_ended"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_hours(self) -> float:
        """Return the duration in (fractional) hours."""
        return (self.end - self.start).total_seconds() / 3600

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return self.start < other.end and self.end > other.start


@dataclass(frozen=True)
class Room:
    """
    A bookable meeting room.

    ``start_time`` and ``end_time`` are seconds since local midnight. A
    closing time at or before the opening time means the operating window
    crosses midnight; ``0``/``86400`` is a room that is open all day.
    """
    id: str
    capacity: int
    start_time: int
    end_time: int
    name: str = ""
    max_meeting_hours: Optional[float] = None
    location: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Room id must not be empty")
        if self.capacity <= 0:
            raise ValueError(f"Room capacity must be positive, got {self.capacity}")
        if not 0 <= self.start_time < SECONDS_PER_DAY:
            raise ValueError(f"Room start_time must be in [0, 86400), got {self.start_time}")
        if not 0 <= self.end_time <= SECONDS_PER_DAY:
            raise ValueError(f"Room end_time must be in [0, 86400], got {self.end_time}")
        if self.start_time == self.end_time:
            raise ValueError("Room operating window must not be empty")
        if self.max_meeting_hours is not None and self.max_meeting_hours <= 0:
            raise ValueError(f"max_meeting_hours must be positive, got {self.max_meeting_hours}")

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time <= self.start_time

    @property
    def is_open_all_day(self) -> bool:
        return self.start_time == 0 and self.end_time == SECONDS_PER_DAY

    @property
    def window_seconds(self) -> int:
        """Length of one operating window in seconds."""
        if self.crosses_midnight:
            return self.end_time + SECONDS_PER_DAY - self.start_time
        return self.end_time - self.start_time

    def hours_label(self) -> str:
        return f"{format_time_of_day(self.start_time)} - {format_time_of_day(self.end_time)}"


@dataclass(frozen=True)
class Booking:
    """
    An existing reservation of a room.

    Bookings are never edited in place: the only allowed change is the
    Confirmed -> Cancelled transition, which yields a new value.
    """
    id: str
    room: str
    start_time: DateTime
    end_time: DateTime
    status: BookingStatus = BookingStatus.CONFIRMED
    user: str = ""
    user_label: str = ""
    note: str = ""
    room_name: str = ""
    room_location: Optional[str] = None

    def __post_init__(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"Booking {self.id}: end time must be after start time")

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)

    def cancel(self) -> "Booking":
        """Return the cancelled version of this booking."""
        return replace(self, status=BookingStatus.CANCELLED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room": self.room,
            "roomName": self.room_name,
            "roomLocation": self.room_location,
            "user": self.user,
            "userLabel": self.user_label,
            "startTime": to_iso(self.start_time),
            "endTime": to_iso(self.end_time),
            "note": self.note,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Booking":
        """Build a booking from a record-store style mapping."""
        status = data.get("status") or BookingStatus.CONFIRMED.value
        return cls(
            id=data["id"],
            room=data["room"],
            start_time=pendulum.parse(data["startTime"]),
            end_time=pendulum.parse(data["endTime"]),
            status=BookingStatus(status),
            user=data.get("user", ""),
            user_label=data.get("userLabel", ""),
            note=data.get("note") or "",
            room_name=data.get("roomName", ""),
            room_location=data.get("roomLocation"),
        )


@dataclass(frozen=True)
class Slot:
    """
    A 30-minute candidate booking interval for a room on a given date.
    """
    room_id: str
    start_time: DateTime
    end_time: DateTime
    label: str
    occupied: bool
    past: bool
    booking_id: Optional[str] = None

    @property
    def available(self) -> bool:
        return not self.occupied and not self.past

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the shape returned by the slots endpoint."""
        return {
            "startTime": to_iso(self.start_time),
            "endTime": to_iso(self.end_time),
            "label": self.label,
            "available": self.available,
            "occupied": self.occupied,
            "past": self.past,
        }


@dataclass(frozen=True)
class User:
    id: str
    name: str = ""


@dataclass(frozen=True)
class BookingRequest:
    """A structurally valid, normalized booking request."""
    room_id: str
    start_time: DateTime
    end_time: DateTime
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roomId": self.room_id,
            "startTime": to_iso(self.start_time),
            "endTime": to_iso(self.end_time),
            "note": self.note,
        }


@dataclass(frozen=True)
class Accepted:
    request: BookingRequest
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Rejected:
    reason: RejectionReason
    message: str
    ok: bool = field(default=False, init=False)


ValidationResult = Union[Accepted, Rejected]
