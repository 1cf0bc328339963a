"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.memory_store import InMemoryBookingStore
from ..adapters.rest_store import RestBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SalonSlotsError
from ..domain.models import BookingRequest, SlotState
from ..domain.availability import AvailabilityResolver
from ..domain.conflicts import BookingConflictDetector
from ..domain.slot_planner import SlotPlanner
from ..domain.time_grid import format_duration
from ..domain.validator import AppointmentValidator
from ..services.booking_service import BookingService

app = typer.Typer(
    name="salonslots",
    help="Plan bookable salon appointment slots and book appointments",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_store(config: AppConfig):
    store_config = config.store
    if store_config.backend == "rest":
        return RestBookingStore(
            base_url=store_config.url,
            api_key=store_config.api_key,
            timeout=store_config.timeout_seconds,
            excluded_statuses=config.excluded_statuses,
        )

    if store_config.data_file is None:
        return InMemoryBookingStore(excluded_statuses=config.excluded_statuses)
    return InMemoryBookingStore.from_json_file(
        store_config.data_file,
        excluded_statuses=config.excluded_statuses,
    )


def _build_service(config: AppConfig, store) -> BookingService:
    grid = config.grid.to_grid()
    planner = SlotPlanner(
        grid=grid,
        resolver=AvailabilityResolver(grid),
        detector=BookingConflictDetector(grid, excluded_statuses=config.excluded_statuses),
    )
    validator = AppointmentValidator(
        planner=planner,
        default_service_minutes=config.default_service_minutes,
    )
    return BookingService(
        store=store,
        planner=planner,
        validator=validator,
        timezone=config.timezone,
    )


def _resolve_date(date: Optional[str], config: AppConfig) -> str:
    return date or pendulum.now(config.timezone).to_date_string()


def _slot_status(slot: SlotState) -> str:
    if slot.is_booked:
        return "[red]booked[/red]"
    if slot.is_past:
        return "[dim]past[/dim]"
    if not slot.is_within_availability:
        return "[dim]unavailable[/dim]"
    return "[green]available[/green]"


def _staff_label(config: AppConfig, staff_id: str) -> str:
    member = config.find_staff(staff_id)
    return f"{member.name} ({member.id})" if member else staff_id


@app.command()
def slots(
    staff: Annotated[str, typer.Argument(help="Staff id or name")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the bookable slots of a staff member on a date.

    Examples:

        salonslots slots anna --date 2024-06-10
    """
    _setup_logging(verbose)

    try:
        config = _load_config(config_file)
        staff_id = config.resolve_staff_id(staff)
        target = _resolve_date(date, config)
        service = _build_service(config, _build_store(config))

        slot_list = asyncio.run(service.available_slots(staff_id=staff_id, date=target))

        if not slot_list:
            console.print(
                f"[yellow]⚠ No bookable slots for {_staff_label(config, staff_id)} on {target}.[/yellow]"
            )
            return

        table = Table(
            title=f"Slots for {_staff_label(config, staff_id)} on {target}",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Time", style="bold")
        table.add_column("Status")
        table.add_column("Longest booking", style="dim")

        for slot in slot_list:
            longest = service.planner.max_contiguous_duration(slot.time, slot_list)
            table.add_row(
                slot.time.format_display(),
                _slot_status(slot),
                format_duration(longest, config.grid.slot_minutes) if longest else "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (SalonSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def overview(
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="Date (YYYY-MM-DD). Defaults to today")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Show the full-day slot grid of every configured staff member.
    """
    _setup_logging(verbose)

    try:
        config = _load_config(config_file)
        if not config.staff:
            console.print("[yellow]No staff members configured.[/yellow]")
            return

        target = _resolve_date(date, config)
        service = _build_service(config, _build_store(config))
        staff_ids = [member.id for member in config.staff]

        grids = asyncio.run(service.day_overview(date=target, staff_ids=staff_ids))

        table = Table(title=f"Staff overview for {target}", show_header=True, header_style="bold cyan")
        table.add_column("Time", style="bold")
        for member in config.staff:
            table.add_column(member.name)

        times = [slot.time for slot in grids[staff_ids[0]]]
        for row_index, time in enumerate(times):
            table.add_row(
                time.format_display(),
                *(_slot_status(grids[staff_id][row_index]) for staff_id in staff_ids),
            )

        console.print()
        console.print(table)
        console.print()

    except (SalonSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def book(
    staff: Annotated[str, typer.Argument(help="Staff id or name")],
    date: Annotated[str, typer.Option("--date", "-d", help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Option("--time", "-t", help="Start time (HH:MM, 24-hour)")],
    duration: Annotated[int, typer.Option("--duration", "-n", help="Number of consecutive slots")] = 1,
    services: Annotated[Optional[List[str]], typer.Option("--service", "-s", help="Service id or name (repeatable)")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Validate and book an appointment.

    Examples:

        salonslots book anna --date 2024-06-10 --time 10:30 --duration 2 --service haircut
    """
    _setup_logging(verbose)

    try:
        config = _load_config(config_file)
        staff_id = config.resolve_staff_id(staff)
        service_items = config.resolve_services(services or [])
        store = _build_store(config)
        service = _build_service(config, store)

        request = BookingRequest(
            staff_id=staff_id,
            date=date,
            start_time=time,
            duration_slots=duration,
            services=tuple(service_items),
        )
        outcome = asyncio.run(service.book(request))

        if not outcome.ok:
            console.print(f"[bold red]✗ Booking refused ({outcome.error.kind.value}):[/bold red] {outcome.error}")
            raise typer.Exit(1)

        if isinstance(store, InMemoryBookingStore) and config.store.data_file is not None:
            store.dump_json_file(config.store.data_file)

        appointment = outcome.appointment
        console.print(Panel.fit(
            f"[bold green]✓ Appointment booked[/bold green]\n\n"
            f"[bold]Staff:[/bold] {_staff_label(config, appointment.staff_id)}\n"
            f"[bold]Date:[/bold] {appointment.date.isoformat()}\n"
            f"[bold]Time:[/bold] {appointment.start_time.format_display()} – "
            f"{appointment.end_time.format_display()}\n"
            f"[bold]Status:[/bold] {appointment.status.value}\n"
            f"[bold]Id:[/bold] {appointment.appointment_id}",
            title="Booking"
        ))

    except (SalonSlotsError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_staff(config_file: ConfigOption = None):
    """
    List all configured staff members.
    """
    try:
        config = _load_config(config_file)

        if not config.staff:
            console.print("[yellow]No staff members configured.[/yellow]")
            return

        table = Table(title="Configured staff", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="dim")
        table.add_column("Name (alias)", style="bold yellow")

        for member in config.staff:
            table.add_row(member.id, member.name)

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_services(config_file: ConfigOption = None):
    """
    List all configured services with their durations.
    """
    try:
        config = _load_config(config_file)

        if not config.services:
            console.print("[yellow]No services configured.[/yellow]")
            return

        table = Table(title="Configured services", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="dim")
        table.add_column("Name", style="bold yellow")
        table.add_column("Duration")

        for item in config.services:
            minutes = item.duration_minutes or config.default_service_minutes
            table.add_row(item.id, item.name, f"{minutes} minutes")

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
