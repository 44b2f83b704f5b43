"""
Validation of booking requests against room policy.

The validator never raises for bad input: it returns ``Accepted`` with a
normalized request or ``Rejected`` with a reason tag. Checks run in a
fixed order and the first violation wins.

Conflicts with existing bookings are deliberately not part of
``BookingValidator``: a conflict check is only meaningful against a
booking list read immediately before the write, and even then a
concurrent writer can slip in between check and write. ``find_conflicts``
answers the question for one snapshot; the record store must enforce
non-overlap at write time.
"""

import re
from datetime import date as Date
from typing import Any, List, Mapping, Optional, Sequence

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError
from .models import (
    Accepted,
    Booking,
    BookingRequest,
    BookingStatus,
    Rejected,
    RejectionReason,
    Room,
    TimeRange,
    ValidationResult,
)
from .slot_generator import operating_window

DEFAULT_MAX_MEETING_HOURS = 8
MAX_NOTE_LENGTH = 500

ROOM_ID_PATTERN = re.compile(r"rec[a-zA-Z0-9]{14}|[a-zA-Z0-9_-]{1,50}")
BOOKING_ID_PATTERN = re.compile(r"rec[a-zA-Z0-9]{14}")
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
DATETIME_PATTERN = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}(:[0-9]{2}(\.[0-9]{1,9})?)?(Z|[+-][0-9]{2}:?[0-9]{2})"
)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def parse_date(value: Any) -> Date:
    """
    Parse a strict ``YYYY-MM-DD`` calendar date.

    Raises:
        ValidationError: On any other format or a date that does not exist
            (e.g. 2024-02-30)
    """
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        raise ValidationError("Date must be in YYYY-MM-DD format")

    year, month, day = (int(part) for part in value.split("-"))
    try:
        return pendulum.date(year, month, day)
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc


def parse_instant(value: Any) -> Optional[DateTime]:
    """Parse an ISO 8601 date-time with explicit offset, or return None."""
    if not isinstance(value, str) or not DATETIME_PATTERN.fullmatch(value):
        return None
    try:
        parsed = pendulum.parse(value)
    except ValueError:
        return None
    if not isinstance(parsed, DateTime):
        return None
    return parsed.in_timezone("UTC")


def validate_room_id(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Room ID is required")
    if not ROOM_ID_PATTERN.fullmatch(value):
        raise ValidationError("Invalid room ID format")
    return value


def validate_booking_id(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Booking ID is required")
    if not BOOKING_ID_PATTERN.fullmatch(value):
        raise ValidationError("Invalid booking ID format")
    return value


def validate_status_transition(booking: Booking, new_status: Any) -> BookingStatus:
    """
    Check that ``booking`` may move to ``new_status``.

    Only Confirmed -> Cancelled is allowed.
    """
    try:
        status = BookingStatus(new_status)
    except ValueError as exc:
        raise ValidationError(f"Invalid booking status: {new_status!r}") from exc

    if booking.status != BookingStatus.CONFIRMED or status != BookingStatus.CANCELLED:
        raise ValidationError(
            f"Cannot change booking {booking.id} from {booking.status.value} to {status.value}",
            reason="invalid_transition"
        )
    return status


def find_conflicts(
    room_id: str,
    start: DateTime,
    end: DateTime,
    bookings: Sequence[Booking]
) -> List[Booking]:
    """Return the non-cancelled bookings of ``room_id`` overlapping ``[start, end)``."""
    candidate = TimeRange(start=start, end=end)
    return [
        booking for booking in bookings
        if booking.room == room_id
        and not booking.is_cancelled
        and candidate.overlaps(booking.time_range)
    ]


def sanitize_note(note: str) -> str:
    return _CONTROL_CHARS.sub("", note).strip()


class BookingValidator:
    """
    Validates booking requests for a room.

    Order of checks:
    1. Structure (room id, ISO instants, note length)  -> invalid_format
    2. End after start                                 -> invalid_range
    3. Booking has not already ended                   -> already_ended
    4. Duration within the room's maximum              -> duration_exceeded
    5. Inside one operating window of the room         -> outside_hours
    """

    def __init__(
        self,
        timezone: str = "UTC",
        default_max_meeting_hours: float = DEFAULT_MAX_MEETING_HOURS
    ):
        self.timezone = timezone
        self.default_max_meeting_hours = default_max_meeting_hours

    def max_meeting_hours(self, room: Room) -> float:
        if room.max_meeting_hours is not None:
            return room.max_meeting_hours
        return self.default_max_meeting_hours

    def validate(
        self,
        request: Mapping[str, Any],
        room: Room,
        now: DateTime
    ) -> ValidationResult:
        """
        Validate a raw booking payload (``roomId``, ``startTime``,
        ``endTime``, optional ``note``) for ``room`` at instant ``now``.
        """
        if not isinstance(request, Mapping):
            return Rejected(RejectionReason.INVALID_FORMAT, "Request body must be an object")

        room_id = request.get("roomId")
        if isinstance(room_id, str):
            room_id = room_id.strip()
        if not isinstance(room_id, str) or not ROOM_ID_PATTERN.fullmatch(room_id):
            return Rejected(RejectionReason.INVALID_FORMAT, "Invalid room ID format")
        if room_id != room.id:
            return Rejected(RejectionReason.INVALID_FORMAT, f"Request is for room {room_id}, not {room.id}")

        start = parse_instant(request.get("startTime"))
        if start is None:
            return Rejected(RejectionReason.INVALID_FORMAT, "Invalid start time format")
        end = parse_instant(request.get("endTime"))
        if end is None:
            return Rejected(RejectionReason.INVALID_FORMAT, "Invalid end time format")

        note = request.get("note")
        if note is None:
            note = ""
        if not isinstance(note, str):
            return Rejected(RejectionReason.INVALID_FORMAT, "Note must be a string")
        if len(note) > MAX_NOTE_LENGTH:
            return Rejected(
                RejectionReason.INVALID_FORMAT,
                f"Note must be at most {MAX_NOTE_LENGTH} characters"
            )

        if end <= start:
            return Rejected(RejectionReason.INVALID_RANGE, "End time must be after start time")

        if end <= now:
            return Rejected(RejectionReason.ALREADY_ENDED, "Cannot book slots that have already ended")

        booking_range = TimeRange(start=start, end=end)
        max_hours = self.max_meeting_hours(room)
        if booking_range.duration_hours() > max_hours:
            return Rejected(
                RejectionReason.DURATION_EXCEEDED,
                f"Meeting duration exceeds the maximum allowed time of {max_hours:g} hours for this room"
            )

        if not self.within_operating_hours(booking_range, room):
            return Rejected(
                RejectionReason.OUTSIDE_HOURS,
                f"Booking must be within the room's operating hours ({room.hours_label()})"
            )

        return Accepted(BookingRequest(
            room_id=room_id,
            start_time=start,
            end_time=end,
            note=sanitize_note(note)
        ))

    def within_operating_hours(self, booking_range: TimeRange, room: Room) -> bool:
        """
        Check that a booking lies inside a single operating window.

        The window is the one containing the booking start; for rooms
        crossing midnight that may be the window opened the previous day.
        """
        if room.is_open_all_day:
            return True

        local_start = booking_range.start.in_timezone(self.timezone)
        window = operating_window(room, local_start.date(), self.timezone)

        if room.crosses_midnight and local_start < window.start:
            window = operating_window(room, local_start.subtract(days=1).date(), self.timezone)

        return window.start <= booking_range.start and booking_range.end <= window.end
