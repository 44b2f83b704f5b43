"""
In-memory record store for rooms and bookings.

Stands in for the external record store (Airtable in production). It can
be seeded from a JSON document shaped like the store's records::

    {
      "rooms": [{"id": "...", "name": "...", "capacity": 6,
                 "startTime": 28800, "endTime": 64800, "maxMeetingHours": 2}],
      "bookings": [{"id": "rec...", "room": "...", "startTime": "...Z",
                    "endTime": "...Z", "status": "Confirmed", "user": "U..."}]
    }

Nothing is written back to disk.
"""

import json
import logging
import threading
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pendulum import DateTime

from ..config import RoomHoursConfig
from ..domain.booking_validator import find_conflicts
from ..domain.exceptions import ConflictError, NotFoundError, RecordStoreError
from ..domain.models import Booking, BookingStatus, Room

logger = logging.getLogger(__name__)


def parse_room(record: Dict[str, Any], default_hours: Optional[RoomHoursConfig] = None) -> Room:
    """
    Build a Room from a store record.

    Missing operating hours fall back to ``default_hours`` (08:00 - 18:00
    unless configured otherwise).
    """
    hours = default_hours or RoomHoursConfig()
    start_time = record.get("startTime")
    end_time = record.get("endTime")
    max_hours = record.get("maxMeetingHours")

    return Room(
        id=record["id"],
        name=record.get("name", ""),
        capacity=int(record.get("capacity", 1)),
        start_time=int(start_time) if start_time is not None else hours.start_time,
        end_time=int(end_time) if end_time is not None else hours.end_time,
        max_meeting_hours=float(max_hours) if max_hours else None,
        location=record.get("location"),
        notes=record.get("notes"),
    )


def _new_record_id() -> str:
    return "rec" + uuid.uuid4().hex[:14]


class InMemoryRecordStore:
    """
    Record store keeping rooms and bookings in process memory.

    ``create_booking`` is the linearization point for new bookings: it
    re-checks overlap while holding the write lock, so two concurrent
    requests for the same slot cannot both succeed even if both passed
    the service-level conflict check.
    """

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        bookings: Iterable[Booking] = ()
    ):
        self._rooms: Dict[str, Room] = {room.id: room for room in rooms}
        self._bookings: Dict[str, Booking] = {booking.id: booking for booking in bookings}
        self._lock = threading.Lock()

    @classmethod
    def from_json_file(
        cls,
        data_file: Path,
        default_hours: Optional[RoomHoursConfig] = None
    ) -> "InMemoryRecordStore":
        """
        Load rooms and bookings from a JSON file.

        Raises:
            RecordStoreError: If the file is missing or malformed
        """
        if not data_file.exists():
            raise RecordStoreError(f"Data file not found: {data_file}")

        try:
            with open(data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise RecordStoreError(f"Invalid JSON in {data_file}: {exc}") from exc

        return cls.from_records(data, default_hours=default_hours)

    @classmethod
    def from_records(
        cls,
        data: Dict[str, Any],
        default_hours: Optional[RoomHoursConfig] = None
    ) -> "InMemoryRecordStore":
        try:
            rooms = [parse_room(record, default_hours) for record in data.get("rooms", [])]
            bookings = [Booking.from_dict(record) for record in data.get("bookings", [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise RecordStoreError(f"Invalid record data: {exc}") from exc

        logger.debug("Loaded %d rooms and %d bookings", len(rooms), len(bookings))
        return cls(rooms=rooms, bookings=bookings)

    async def list_rooms(self) -> List[Room]:
        return sorted(self._rooms.values(), key=lambda room: room.name or room.id)

    async def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    async def get_room_bookings(
        self,
        room_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None
    ) -> List[Booking]:
        """Bookings of a room, optionally limited to those overlapping ``[start, end)``."""
        bookings = [
            booking for booking in self._bookings.values()
            if booking.room == room_id
            and (start is None or booking.end_time > start)
            and (end is None or booking.start_time < end)
        ]
        return sorted(bookings, key=lambda b: b.start_time)

    async def get_user_bookings(self, user_id: str) -> List[Booking]:
        bookings = [b for b in self._bookings.values() if b.user == user_id]
        return sorted(bookings, key=lambda b: b.start_time)

    async def create_booking(self, booking: Booking) -> Booking:
        """
        Store a new booking.

        Raises:
            NotFoundError: If the room does not exist
            ConflictError: If it overlaps a confirmed booking of the room
        """
        with self._lock:
            room = self._rooms.get(booking.room)
            if room is None:
                raise NotFoundError(f"Room not found: {booking.room}")

            conflicts = find_conflicts(
                booking.room,
                booking.start_time,
                booking.end_time,
                list(self._bookings.values())
            )
            if conflicts:
                raise ConflictError("This time slot is already booked")

            booking = replace(
                booking,
                id=booking.id or _new_record_id(),
                room_name=booking.room_name or room.name,
                room_location=booking.room_location or room.location,
            )
            self._bookings[booking.id] = booking

        logger.info("Created booking %s for room %s", booking.id, booking.room)
        return booking

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                raise NotFoundError(f"Booking not found: {booking_id}")

            updated = replace(booking, status=status)
            self._bookings[booking_id] = updated

        logger.info("Booking %s is now %s", booking_id, status.value)
        return updated
