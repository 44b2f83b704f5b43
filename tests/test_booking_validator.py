"""
Tests for booking validation.
"""

import pendulum
import pytest

from roombook.domain.booking_validator import (
    BookingValidator,
    find_conflicts,
    parse_date,
    validate_booking_id,
    validate_room_id,
    validate_status_transition,
)
from roombook.domain.exceptions import ValidationError
from roombook.domain.models import (
    Accepted,
    Booking,
    BookingStatus,
    Rejected,
    RejectionReason,
    Room,
)

NOW = pendulum.datetime(2024, 1, 1, 6, tz="UTC")


def _room(start_time=28800, end_time=64800, max_meeting_hours=None):
    return Room(
        id="recABCDEFGHIJKLMN",
        capacity=10,
        start_time=start_time,
        end_time=end_time,
        max_meeting_hours=max_meeting_hours,
    )


def _request(start, end, **extra):
    payload = {"roomId": "recABCDEFGHIJKLMN", "startTime": start, "endTime": end}
    payload.update(extra)
    return payload


def _reason(result):
    assert isinstance(result, Rejected), result
    return result.reason


class TestStructure:
    """Structural checks yield invalid_format."""

    def test_valid_request_is_accepted(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00.000Z", "2024-01-01T10:00:00.000Z", note="Team meeting"),
            _room(),
            NOW,
        )

        assert isinstance(result, Accepted)
        assert result.ok
        assert result.request.room_id == "recABCDEFGHIJKLMN"
        assert result.request.start_time == pendulum.datetime(2024, 1, 1, 9, tz="UTC")
        assert result.request.note == "Team meeting"

    def test_note_defaults_to_empty(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"), _room(), NOW
        )

        assert result.request.note == ""

    def test_note_is_normalized(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z", note="  sync\x00 call \n"),
            _room(),
            NOW,
        )

        assert result.request.note == "sync call"

    def test_offsets_are_normalized_to_utc(self):
        result = BookingValidator().validate(
            _request("2024-01-01T10:00:00+01:00", "2024-01-01T11:00:00+01:00"), _room(), NOW
        )

        assert result.request.start_time.timezone_name == "UTC"
        assert result.request.start_time == pendulum.datetime(2024, 1, 1, 9, tz="UTC")

    @pytest.mark.parametrize("payload", [None, [], "roomId", 42])
    def test_payload_must_be_an_object(self, payload):
        result = BookingValidator().validate(payload, _room(), NOW)

        assert _reason(result) == RejectionReason.INVALID_FORMAT

    def test_trailing_newline_in_instant(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z\n", "2024-01-01T10:00:00Z"), _room(), NOW
        )

        assert _reason(result) == RejectionReason.INVALID_FORMAT

    @pytest.mark.parametrize("room_id", ["invalid@id!", "", None, "x" * 51])
    def test_invalid_room_id(self, room_id):
        payload = _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")
        payload["roomId"] = room_id

        result = BookingValidator().validate(payload, _room(), NOW)

        assert _reason(result) == RejectionReason.INVALID_FORMAT

    def test_room_id_must_match_room(self):
        payload = _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")
        payload["roomId"] = "other-room"

        assert _reason(BookingValidator().validate(payload, _room(), NOW)) == RejectionReason.INVALID_FORMAT

    @pytest.mark.parametrize(
        "value",
        ["not-a-date", "2024-01-01", "2024/01/01T09:00:00Z", "2024-01-01T09:00:00", "2024-02-30T09:00:00Z", None, 1704099600],
    )
    def test_invalid_start_time(self, value):
        result = BookingValidator().validate(
            _request(value, "2024-01-01T10:00:00Z"), _room(), NOW
        )

        assert _reason(result) == RejectionReason.INVALID_FORMAT

    def test_invalid_end_time(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "tomorrow"), _room(), NOW
        )

        assert _reason(result) == RejectionReason.INVALID_FORMAT

    def test_note_length_limit(self):
        validator = BookingValidator()
        start, end = "2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"

        assert isinstance(validator.validate(_request(start, end, note="a" * 500), _room(), NOW), Accepted)
        assert _reason(validator.validate(_request(start, end, note="a" * 501), _room(), NOW)) == RejectionReason.INVALID_FORMAT
        assert _reason(validator.validate(_request(start, end, note=42), _room(), NOW)) == RejectionReason.INVALID_FORMAT


class TestTemporalSanity:
    """Range and already-ended checks."""

    @pytest.mark.parametrize(
        "start, end",
        [
            ("2024-01-01T10:00:00Z", "2024-01-01T09:00:00Z"),
            ("2024-01-01T10:00:00Z", "2024-01-01T10:00:00Z"),
        ],
    )
    def test_end_must_be_after_start(self, start, end):
        assert _reason(BookingValidator().validate(_request(start, end), _room(), NOW)) == RejectionReason.INVALID_RANGE

    def test_booking_that_already_ended(self):
        now = pendulum.datetime(2024, 1, 1, 12, tz="UTC")

        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"), _room(), now
        )

        assert _reason(result) == RejectionReason.ALREADY_ENDED

    def test_booking_ending_now_already_ended(self):
        now = pendulum.datetime(2024, 1, 1, 10, tz="UTC")

        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"), _room(), now
        )

        assert _reason(result) == RejectionReason.ALREADY_ENDED

    def test_booking_in_progress_is_accepted(self):
        now = pendulum.datetime(2024, 1, 1, 12, tz="UTC")

        result = BookingValidator().validate(
            _request("2024-01-01T11:00:00Z", "2024-01-01T13:00:00Z"), _room(), now
        )

        assert isinstance(result, Accepted)


class TestDuration:
    """Maximum meeting duration policy."""

    def test_default_maximum_exceeded(self):
        """A 10 hour booking exceeds the 8 hour default."""
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T19:00:00Z"), _room(25200, 75600), NOW
        )

        assert _reason(result) == RejectionReason.DURATION_EXCEEDED

    def test_room_maximum_allows_longer_booking(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T19:00:00Z"),
            _room(25200, 75600, max_meeting_hours=12),
            NOW,
        )

        assert isinstance(result, Accepted)

    def test_duration_checked_before_hours(self):
        """A too-long booking that also leaves opening hours reports the duration."""
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T19:00:00Z"), _room(), NOW
        )

        assert _reason(result) == RejectionReason.DURATION_EXCEEDED

    def test_duration_equal_to_maximum_is_accepted(self):
        result = BookingValidator().validate(
            _request("2024-01-01T09:00:00Z", "2024-01-01T17:00:00Z"), _room(), NOW
        )

        assert isinstance(result, Accepted)

    def test_fractional_maximum(self):
        validator = BookingValidator()
        room = _room(max_meeting_hours=1.5)

        assert isinstance(
            validator.validate(_request("2024-01-01T09:00:00Z", "2024-01-01T10:30:00Z"), room, NOW),
            Accepted,
        )
        assert _reason(
            validator.validate(_request("2024-01-01T09:00:00Z", "2024-01-01T10:31:00Z"), room, NOW)
        ) == RejectionReason.DURATION_EXCEEDED

    def test_configured_default_maximum(self):
        validator = BookingValidator(default_max_meeting_hours=2)

        result = validator.validate(_request("2024-01-01T09:00:00Z", "2024-01-01T12:00:00Z"), _room(), NOW)

        assert _reason(result) == RejectionReason.DURATION_EXCEEDED
        assert "2 hours" in result.message


class TestOperatingHours:
    """Operating hours containment."""

    @pytest.mark.parametrize(
        "start, end",
        [
            ("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"),
            ("2024-01-01T08:00:00Z", "2024-01-01T09:00:00Z"),
            ("2024-01-01T17:00:00Z", "2024-01-01T18:00:00Z"),
        ],
    )
    def test_inside_hours(self, start, end):
        assert isinstance(BookingValidator().validate(_request(start, end), _room(), NOW), Accepted)

    @pytest.mark.parametrize(
        "start, end",
        [
            ("2024-01-01T07:00:00Z", "2024-01-01T09:00:00Z"),
            ("2024-01-01T17:00:00Z", "2024-01-01T19:00:00Z"),
            ("2024-01-01T18:00:00Z", "2024-01-01T18:30:00Z"),
        ],
    )
    def test_outside_hours(self, start, end):
        result = BookingValidator().validate(_request(start, end), _room(), NOW)

        assert _reason(result) == RejectionReason.OUTSIDE_HOURS
        assert "08:00 - 18:00" in result.message

    def test_booking_spanning_two_days(self):
        """Both ends inside hours, but on different days."""
        room = _room(max_meeting_hours=24)

        result = BookingValidator().validate(
            _request("2024-01-01T17:00:00Z", "2024-01-02T09:00:00Z"), room, NOW
        )

        assert _reason(result) == RejectionReason.OUTSIDE_HOURS

    def test_room_closing_at_midnight(self):
        validator = BookingValidator()
        room = _room(64800, 86400)

        assert isinstance(validator.validate(_request("2024-01-01T20:00:00Z", "2024-01-01T22:00:00Z"), room, NOW), Accepted)
        assert isinstance(validator.validate(_request("2024-01-01T22:00:00Z", "2024-01-02T00:00:00Z"), room, NOW), Accepted)

    @pytest.mark.parametrize(
        "start, end, accepted",
        [
            ("2024-01-01T23:30:00Z", "2024-01-02T00:30:00Z", True),
            ("2024-01-02T00:00:00Z", "2024-01-02T01:00:00Z", True),
            ("2024-01-01T18:00:00Z", "2024-01-01T19:00:00Z", True),
            ("2024-01-02T01:00:00Z", "2024-01-02T02:00:00Z", False),
            ("2024-01-01T17:30:00Z", "2024-01-01T18:30:00Z", False),
            ("2024-01-01T12:00:00Z", "2024-01-01T13:00:00Z", False),
        ],
    )
    def test_room_crossing_midnight(self, start, end, accepted):
        result = BookingValidator().validate(_request(start, end), _room(64800, 3600), NOW)

        assert isinstance(result, Accepted) is accepted

    def test_room_open_all_day(self):
        result = BookingValidator().validate(
            _request("2024-01-01T23:00:00Z", "2024-01-02T01:00:00Z"), _room(0, 86400), NOW
        )

        assert isinstance(result, Accepted)

    def test_hours_in_room_timezone(self):
        """Room hours are read as Europe/Berlin wall-clock time (UTC+1 in winter)."""
        validator = BookingValidator(timezone="Europe/Berlin")

        inside = validator.validate(_request("2024-01-01T07:30:00Z", "2024-01-01T08:30:00Z"), _room(), NOW)
        outside = validator.validate(_request("2024-01-01T06:30:00Z", "2024-01-01T07:30:00Z"), _room(), NOW)

        assert isinstance(inside, Accepted)
        assert _reason(outside) == RejectionReason.OUTSIDE_HOURS


class TestParseDate:

    def test_valid_date(self):
        assert parse_date("2024-03-15") == pendulum.date(2024, 3, 15)
        assert parse_date("2024-02-29") == pendulum.date(2024, 2, 29)

    @pytest.mark.parametrize(
        "value",
        [
            "2024/03/15", "2024-3-15", "2024-03-5", "2024-02-30", "2023-02-29", "2024-13-01", "", None, "15-03-2024",
            "2024-03-15\n", "٢٠٢٤-٠٣-١٥",
        ],
    )
    def test_invalid_date(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_date(value)

        assert exc_info.value.reason == "invalid_format"
        assert exc_info.value.status_code == 400


class TestIdentifiers:

    def test_room_ids(self):
        assert validate_room_id("recABCDEFGHIJKLMN") == "recABCDEFGHIJKLMN"
        assert validate_room_id("room_1-a") == "room_1-a"
        with pytest.raises(ValidationError):
            validate_room_id("room 1")
        with pytest.raises(ValidationError):
            validate_room_id("room1\n")

    def test_booking_ids(self):
        assert validate_booking_id("recABCDEFGHIJKLMN") == "recABCDEFGHIJKLMN"
        with pytest.raises(ValidationError):
            validate_booking_id("room_1")
        with pytest.raises(ValidationError):
            validate_booking_id("")
        with pytest.raises(ValidationError):
            validate_booking_id("recABCDEFGHIJKLMN\n")


class TestConflictsAndTransitions:

    def _booking(self, start, end, room="room1", status=BookingStatus.CONFIRMED):
        return Booking(
            id="recABCDEFGHIJKLMN",
            room=room,
            start_time=pendulum.parse(start),
            end_time=pendulum.parse(end),
            status=status,
            user="U12345678",
        )

    def test_find_conflicts(self):
        bookings = [
            self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z"),
            self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z", status=BookingStatus.CANCELLED),
            self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z", room="room2"),
        ]

        conflicts = find_conflicts(
            "room1",
            pendulum.parse("2024-01-01T09:30:00Z"),
            pendulum.parse("2024-01-01T11:00:00Z"),
            bookings,
        )

        assert conflicts == [bookings[0]]

    def test_adjacent_booking_is_no_conflict(self):
        bookings = [self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")]

        assert find_conflicts(
            "room1",
            pendulum.parse("2024-01-01T10:00:00Z"),
            pendulum.parse("2024-01-01T11:00:00Z"),
            bookings,
        ) == []

    def test_confirmed_can_be_cancelled(self):
        booking = self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")

        assert validate_status_transition(booking, "Cancelled") == BookingStatus.CANCELLED

    def test_cancelled_is_final(self):
        booking = self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z", status=BookingStatus.CANCELLED)

        with pytest.raises(ValidationError) as exc_info:
            validate_status_transition(booking, "Confirmed")

        assert exc_info.value.reason == "invalid_transition"

    def test_unknown_status(self):
        booking = self._booking("2024-01-01T09:00:00Z", "2024-01-01T10:00:00Z")

        with pytest.raises(ValidationError):
            validate_status_transition(booking, "Pending")
