"""
Application services for room availability and bookings.

The service coordinates reads and writes through a record store adapter
and delegates slot generation and request validation to the pure domain
components. It carries the logic an HTTP layer needs behind
``GET /rooms/{id}/slots``, ``POST /bookings`` and ``PATCH /bookings/{id}``
so the transport stays thin and the store can be mocked via a protocol.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Protocol

from pendulum import DateTime

from ..config import AppConfig
from ..domain.booking_validator import (
    BookingValidator,
    find_conflicts,
    parse_date,
    validate_booking_id,
    validate_room_id,
    validate_status_transition,
)
from ..domain.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from ..domain.models import Booking, BookingStatus, Rejected, Room, Slot, User
from ..domain.slot_generator import SlotGenerator, operating_window
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class RecordStoreProtocol(Protocol):
    """Protocol describing the record store behaviour needed by the service."""

    async def list_rooms(self) -> List[Room]:
        """Return all rooms."""

    async def get_room(self, room_id: str) -> Optional[Room]:
        """Return one room, or None when it does not exist."""

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Return one booking, or None when it does not exist."""

    async def get_room_bookings(
        self,
        room_id: str,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> List[Booking]:
        """Return the bookings of a room overlapping ``[start, end)``."""

    async def get_user_bookings(self, user_id: str) -> List[Booking]:
        """Return all bookings made by a user."""

    async def create_booking(self, booking: Booking) -> Booking:
        """Persist a booking, rejecting overlaps with ConflictError."""

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """Persist a status change."""


class BookingService:
    """
    Orchestrates record store access, rate limiting, slot generation and
    booking validation.

    Double-booking: the conflict check here runs against a booking list
    fetched right before the write, but another writer can still commit
    in between (time-of-check to time-of-use). The store's
    ``create_booking`` is the single linearization point and must refuse
    overlapping confirmed bookings itself.
    """

    def __init__(
        self,
        store: RecordStoreProtocol,
        config: Optional[AppConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        slot_generator: Optional[SlotGenerator] = None,
        validator: Optional[BookingValidator] = None,
    ) -> None:
        self._config = config or AppConfig()
        self._store = store
        self._rate_limiter = rate_limiter or RateLimiter()
        self._slot_generator = slot_generator or SlotGenerator(timezone=self._config.timezone)
        self._validator = validator or BookingValidator(
            timezone=self._config.timezone,
            default_max_meeting_hours=self._config.max_meeting_hours,
        )

    async def list_rooms(self) -> List[Room]:
        return await self._store.list_rooms()

    async def get_room(self, room_id: Any) -> Room:
        """
        Look up a room by id.

        Raises:
            ValidationError: If the id is malformed
            NotFoundError: If the room does not exist
        """
        room = await self._store.get_room(validate_room_id(room_id))
        if room is None:
            raise NotFoundError("Room not found")
        return room

    async def get_booking(self, booking_id: Any) -> Booking:
        booking = await self._store.get_booking(validate_booking_id(booking_id))
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    async def get_room_slots(self, room_id: Any, date: Any, now: DateTime) -> List[Slot]:
        """
        Compute the slots of a room for a ``YYYY-MM-DD`` date.

        Either the full ordered slot list is returned or an error is
        raised for the whole date.
        """
        if not date:
            raise ValidationError("Date parameter is required")
        day = parse_date(date)
        room = await self.get_room(room_id)

        window = operating_window(room, day, self._config.timezone)
        bookings = await self._store.get_room_bookings(room.id, window.start, window.end)

        return self._slot_generator.generate(room, day, bookings, now)

    async def create_booking(
        self,
        payload: Mapping[str, Any],
        user: User,
        client_id: str,
        now: DateTime,
    ) -> Booking:
        """
        Validate and store a new booking for ``user``.

        Raises:
            RateLimitError: If the user/client exceeded the booking budget
            ValidationError: If the request is malformed or out of policy
            NotFoundError: If the room does not exist
            ConflictError: If the slot is already booked
        """
        limit = self._config.booking_rate_limit
        if not self._rate_limiter.allow(
            f"booking_{user.id}_{client_id}", limit.max_requests, limit.window_ms
        ):
            raise RateLimitError("Rate limit exceeded")

        room = await self.get_room(payload.get("roomId"))

        result = self._validator.validate(payload, room, now)
        if isinstance(result, Rejected):
            logger.info("Rejected booking for room %s: %s", room.id, result.reason.value)
            raise ValidationError(result.message, reason=result.reason.value)

        request = result.request
        current = await self._store.get_room_bookings(room.id, request.start_time, request.end_time)
        if find_conflicts(room.id, request.start_time, request.end_time, current):
            raise ConflictError("This time slot is already booked")

        booking = await self._store.create_booking(Booking(
            id="",
            room=room.id,
            start_time=request.start_time,
            end_time=request.end_time,
            status=BookingStatus.CONFIRMED,
            user=user.id,
            user_label=user.name,
            note=request.note,
            room_name=room.name,
            room_location=room.location,
        ))
        logger.info("User %s booked room %s (%s)", user.id, room.id, booking.id)
        return booking

    async def cancel_booking(self, booking_id: Any, user: User, client_id: str) -> Booking:
        """
        Cancel a booking owned by ``user``.

        Raises:
            RateLimitError: If the user/client exceeded the update budget
            ValidationError: If the id is malformed or the booking is not confirmed
            NotFoundError: If the booking does not exist
            AuthorizationError: If the booking belongs to someone else
        """
        limit = self._config.update_rate_limit
        if not self._rate_limiter.allow(
            f"update_{user.id}_{client_id}", limit.max_requests, limit.window_ms
        ):
            raise RateLimitError("Rate limit exceeded")

        booking = await self.get_booking(booking_id)
        if booking.user != user.id:
            raise AuthorizationError("You can only cancel your own bookings")

        status = validate_status_transition(booking, BookingStatus.CANCELLED.value)
        return await self._store.update_booking_status(booking.id, status)

    async def get_user_future_bookings(self, user_id: str, now: DateTime) -> List[Booking]:
        """Non-cancelled bookings of a user that have not ended yet."""
        bookings = await self._store.get_user_bookings(user_id)
        return [b for b in bookings if not b.is_cancelled and b.end_time > now]
