"""
Core business logic for generating bookable time slots.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O, no reads of the process clock): the reference instant
``now`` and the time zone are always explicit inputs.
"""

from datetime import date as Date
from typing import List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .models import SECONDS_PER_DAY, SLOT_MINUTES, Booking, Room, Slot, TimeRange


def wall_clock_at(day: DateTime, seconds: int) -> DateTime:
    """
    Return the wall-clock instant ``seconds`` after local midnight of ``day``.

    Offsets of 86400 or more roll over to the following day(s).
    """
    days, remainder = divmod(seconds, SECONDS_PER_DAY)
    if days:
        day = day.add(days=days)
    return day.set(
        hour=remainder // 3600,
        minute=(remainder % 3600) // 60,
        second=remainder % 60,
        microsecond=0
    )


def operating_window(room: Room, day: Date, timezone: str) -> TimeRange:
    """
    Get the operating window of a room that opens on ``day``.

    For rooms whose hours cross midnight the window closes on the
    following calendar day.
    """
    midnight = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
    close_seconds = room.end_time
    if room.crosses_midnight:
        close_seconds += SECONDS_PER_DAY

    return TimeRange(
        start=wall_clock_at(midnight, room.start_time),
        end=wall_clock_at(midnight, close_seconds)
    )


class SlotGenerator:
    """
    Produces the ordered 30-minute slots of a room for a calendar date.

    Time-zone policy: slot boundaries are anchored to the room's opening
    time as wall-clock time in ``timezone``; each slot then spans 30
    minutes of absolute time. Labels are rendered in ``timezone`` and the
    "past" flag compares absolute instants.

    Algorithm:
    1. Resolve the operating window for the date (closing on the next day
       when the room's hours cross midnight)
    2. Walk the window in 30-minute steps from the opening time
    3. Drop a trailing slot that would end after the closing boundary
    4. Flag each slot as occupied (overlaps a non-cancelled booking of the
       room) and past (ends at or before ``now``)
    """

    def __init__(self, timezone: str = "UTC"):
        self.timezone = timezone

    def generate(
        self,
        room: Room,
        date: Date,
        bookings: Sequence[Booking],
        now: DateTime
    ) -> List[Slot]:
        """
        Generate all slots of ``room`` on ``date``.

        Args:
            room: The room whose operating hours define the slots
            date: Calendar date the operating window opens on
            bookings: Existing bookings (other rooms and cancelled ones are ignored)
            now: Reference instant for the "past" flag

        Returns:
            Chronologically ordered, contiguous list of Slot objects
        """
        window = operating_window(room, date, self.timezone)
        active = [
            booking for booking in bookings
            if booking.room == room.id and not booking.is_cancelled
        ]

        slots: List[Slot] = []
        slot_start = window.start

        while slot_start < window.end:
            slot_end = slot_start.add(minutes=SLOT_MINUTES)
            if slot_end > window.end:
                # No partial trailing slot
                break

            conflicting = self._find_overlapping(slot_start, slot_end, active)

            slots.append(Slot(
                room_id=room.id,
                start_time=slot_start,
                end_time=slot_end,
                label=slot_start.in_timezone(self.timezone).format("HH:mm"),
                occupied=conflicting is not None,
                past=slot_end <= now,
                booking_id=conflicting.id if conflicting else None
            ))
            slot_start = slot_end

        return slots

    @staticmethod
    def _find_overlapping(
        slot_start: DateTime,
        slot_end: DateTime,
        bookings: Sequence[Booking]
    ) -> Optional[Booking]:
        for booking in bookings:
            if slot_start < booking.end_time and slot_end > booking.start_time:
                return booking
        return None
