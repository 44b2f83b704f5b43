"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.ics_exporter import generate_ics_for_booking
from ..adapters.memory_store import InMemoryRecordStore
from ..config import AppConfig, load_config
from ..domain.booking_validator import parse_instant
from ..domain.exceptions import RoomBookingError
from ..domain.models import User
from ..services.booking_service import BookingService

app = typer.Typer(
    name="roombook",
    help="Check meeting room availability and book time slots",
    add_completion=False
)

console = Console()

SAMPLE_DATA_FILE = Path(__file__).parent.parent / "adapters" / "sample_data.json"

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
DataOption = Annotated[Optional[Path], typer.Option("--data", help="JSON file with rooms and bookings")]
NowOption = Annotated[Optional[str], typer.Option("--now", help="Reference instant (ISO 8601), defaults to the current time")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
):
    """Meeting room booking tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load(config_file: Optional[Path], data_file: Optional[Path]) -> tuple[AppConfig, BookingService]:
    """Load configuration and build a service over the fixture data."""
    try:
        config = load_config(config_file)
        path = data_file or config.data_file or SAMPLE_DATA_FILE
        store = InMemoryRecordStore.from_json_file(path, default_hours=config.default_room_hours)
    except (FileNotFoundError, ValueError, RoomBookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    return config, BookingService(store=store, config=config)


def _resolve_now(value: Optional[str]) -> DateTime:
    if value is None:
        return pendulum.now("UTC")

    now = parse_instant(value)
    if now is None:
        console.print(f"[bold red]Error:[/bold red] Invalid --now value: {value}")
        raise typer.Exit(1)
    return now


@app.command()
def rooms(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List all rooms with their operating hours.
    """
    _, service = _load(config_file, data_file)
    room_list = asyncio.run(service.list_rooms())

    if not room_list:
        console.print("[yellow]No rooms defined.[/yellow]")
        return

    table = Table(title="Meeting rooms", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("Capacity", justify="right")
    table.add_column("Hours")
    table.add_column("Max hours", justify="right")

    for room in room_list:
        table.add_row(
            room.id,
            room.name,
            str(room.capacity),
            room.hours_label(),
            f"{room.max_meeting_hours:g}" if room.max_meeting_hours else "-"
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def slots(
    room_id: Annotated[str, typer.Argument(help="Room ID")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD), defaults to today")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the slots as JSON")] = False,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    now: NowOption = None,
):
    """
    Show the 30-minute slots of a room for one day.

    Examples:

        roombook slots rec0000000000001 --date 2024-03-15

        roombook slots rec0000000000001 --json
    """
    config, service = _load(config_file, data_file)
    reference = _resolve_now(now)
    day = date or reference.in_timezone(config.timezone).format("YYYY-MM-DD")

    try:
        slot_list = asyncio.run(service.get_room_slots(room_id, day, reference))
    except RoomBookingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([slot.to_dict() for slot in slot_list], indent=2))
        return

    if not slot_list:
        console.print("[yellow]No bookable slots on this day.[/yellow]")
        return

    table = Table(title=f"Slots for {room_id} on {day}", show_header=True, header_style="bold cyan")
    table.add_column("Time", style="bold")
    table.add_column("Status")

    for slot in slot_list:
        if slot.occupied:
            status = "[red]occupied[/red]"
        elif slot.past:
            status = "[dim]past[/dim]"
        else:
            status = "[green]available[/green]"
        table.add_row(slot.label, status)

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    room_id: Annotated[str, typer.Argument(help="Room ID")],
    start: Annotated[str, typer.Option("--start", help="Start instant (ISO 8601)")],
    end: Annotated[str, typer.Option("--end", help="End instant (ISO 8601)")],
    user_id: Annotated[str, typer.Option("--user-id", help="ID of the booking user")],
    user_name: Annotated[str, typer.Option("--user-name", help="Display name of the booking user")] = "",
    note: Annotated[str, typer.Option("--note", help="Optional note (max 500 characters)")] = "",
    config_file: ConfigOption = None,
    data_file: DataOption = None,
    now: NowOption = None,
):
    """
    Validate and create a booking.

    The data file is only read, so the booking lives for this run only.
    """
    _, service = _load(config_file, data_file)
    payload = {"roomId": room_id, "startTime": start, "endTime": end, "note": note}

    try:
        booking = asyncio.run(service.create_booking(
            payload,
            User(id=user_id, name=user_name),
            client_id="cli",
            now=_resolve_now(now)
        ))
    except RoomBookingError as e:
        reason = getattr(e, "reason", None)
        suffix = f" [dim]({reason})[/dim]" if reason else ""
        console.print(f"[bold red]Error:[/bold red] {e}{suffix}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Booking accepted:[/green] {booking.id}")
    console.print(f"   Room: {booking.room_name or booking.room}")
    console.print(f"   Time: {booking.start_time.format('YYYY-MM-DD HH:mm')} - {booking.end_time.format('HH:mm')} UTC")


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking ID")],
    user_id: Annotated[str, typer.Option("--user-id", help="ID of the booking owner")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Cancel a booking you own.
    """
    _, service = _load(config_file, data_file)

    try:
        booking = asyncio.run(service.cancel_booking(booking_id, User(id=user_id), client_id="cli"))
    except RoomBookingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Booking {booking.id} is now {booking.status.value}[/green]")


@app.command()
def export_ics(
    booking_id: Annotated[str, typer.Argument(help="Booking ID")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write to file instead of stdout")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Export a booking as an iCalendar (.ics) document.
    """
    _, service = _load(config_file, data_file)

    try:
        booking = asyncio.run(service.get_booking(booking_id))
    except RoomBookingError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    content = generate_ics_for_booking(
        booking,
        booking.room_name or booking.room,
        booking.room_location,
        now=pendulum.now("UTC")
    )

    if output:
        output.write_text(content, encoding="utf-8", newline="")
        console.print(f"[green]✓ Written to {output}[/green]")
    else:
        typer.echo(content)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]roombook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
