"""
Calendar export for bookings: iCalendar (RFC 5545) documents and
"add to calendar" links for Google Calendar and Outlook.
"""

from typing import List, Optional, Sequence
from urllib.parse import urlencode

from pendulum import DateTime

from ..domain.models import Booking, to_iso

PRODID = "-//Room Book//Meeting Room Booking//EN"
UID_DOMAIN = "roombook"


def format_ics_date(dt: DateTime) -> str:
    """Format an instant as ``YYYYMMDDTHHMMSSZ``."""
    return dt.in_timezone("UTC").format("YYYYMMDD[T]HHmmss[Z]")


def escape_ics_text(text: str) -> str:
    """Escape special characters in ICS text fields."""
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r", "")
        .replace("\n", "\\n")
    )


def _title(room_name: str) -> str:
    return f"Meeting Room: {room_name}"


def _description(booking: Booking) -> str:
    if booking.note:
        return f"Booked by: {booking.user_label}\nNote: {booking.note}"
    return f"Booked by: {booking.user_label}"


def _location(room_name: str, room_location: Optional[str]) -> str:
    if room_location:
        return f"{room_name} - {room_location}"
    return room_name


def _event_lines(
    booking: Booking,
    room_name: str,
    room_location: Optional[str],
    now: DateTime
) -> List[str]:
    status = "CANCELLED" if booking.is_cancelled else "CONFIRMED"
    return [
        "BEGIN:VEVENT",
        f"UID:{booking.id}@{UID_DOMAIN}",
        f"DTSTAMP:{format_ics_date(now)}",
        f"DTSTART:{format_ics_date(booking.start_time)}",
        f"DTEND:{format_ics_date(booking.end_time)}",
        f"SUMMARY:{escape_ics_text(_title(room_name))}",
        f"DESCRIPTION:{escape_ics_text(_description(booking))}",
        f"LOCATION:{escape_ics_text(_location(room_name, room_location))}",
        f"ORGANIZER:CN={escape_ics_text(booking.user_label)}",
        f"STATUS:{status}",
        "TRANSP:OPAQUE",
        "END:VEVENT",
    ]


def _calendar(events: List[str]) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        *events,
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def generate_ics_for_booking(
    booking: Booking,
    room_name: str,
    room_location: Optional[str] = None,
    *,
    now: DateTime,
) -> str:
    """Generate an ICS document containing a single booking."""
    return _calendar(_event_lines(booking, room_name, room_location, now))


def generate_ics_feed(bookings: Sequence[Booking], *, now: DateTime) -> str:
    """
    Generate an ICS feed for several bookings.

    Room name and location are taken from each booking record.
    """
    events: List[str] = []
    for booking in bookings:
        events.extend(
            _event_lines(booking, booking.room_name or booking.room, booking.room_location, now)
        )
    return _calendar(events)


def google_calendar_url(
    booking: Booking,
    room_name: str,
    room_location: Optional[str] = None
) -> str:
    params = {
        "action": "TEMPLATE",
        "text": _title(room_name),
        "dates": f"{format_ics_date(booking.start_time)}/{format_ics_date(booking.end_time)}",
        "details": _description(booking),
        "location": _location(room_name, room_location),
    }
    return f"https://calendar.google.com/calendar/render?{urlencode(params)}"


def outlook_calendar_url(
    booking: Booking,
    room_name: str,
    room_location: Optional[str] = None
) -> str:
    params = {
        "path": "/calendar/action/compose",
        "rru": "addevent",
        "subject": _title(room_name),
        "startdt": to_iso(booking.start_time),
        "enddt": to_iso(booking.end_time),
        "body": _description(booking),
        "location": _location(room_name, room_location),
    }
    return f"https://outlook.live.com/calendar/0/deeplink/compose?{urlencode(params)}"
