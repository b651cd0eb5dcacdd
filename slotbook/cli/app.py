"""
Admin CLI for the booking core using Typer.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import Date, DateTime
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.catalog import StoreCatalogClient
from ..adapters.identity import StaticIdentityProvider
from ..adapters.sqlite_store import SqliteDocumentStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingError, CommitOutcomeUnknown
from ..domain.models import CustomerContact, UserRole
from ..domain.slot_calculator import SlotCalculator
from ..services.availability import AvailabilityService
from ..services.booking import BookingTransactionCoordinator
from ..services.cancellation import CancellationCoordinator
from ..services.schedule import ScheduleService

app = typer.Typer(
    name="slotbook",
    help="Publish services, list free slots and manage bookings",
    add_completion=False
)

console = Console()
logger = logging.getLogger(__name__)

ConfigOption = Annotated[
    Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")
]


@dataclass
class AppContext:
    """Everything a command needs, wired from one config file."""
    config: AppConfig
    store: SqliteDocumentStore
    catalog: StoreCatalogClient
    availability: AvailabilityService
    booking: BookingTransactionCoordinator
    cancellation: CancellationCoordinator
    schedule: ScheduleService


def _build_context(config_file: Optional[Path]) -> AppContext:
    config = AppConfig.load_from_yaml(config_file or get_default_config_path())
    business_hours = config.get_business_hours()
    calculator = SlotCalculator(business_hours=business_hours)
    store = SqliteDocumentStore(config.store_path)
    catalog = StoreCatalogClient(store)

    return AppContext(
        config=config,
        store=store,
        catalog=catalog,
        availability=AvailabilityService(store, calculator, catalog=catalog),
        booking=BookingTransactionCoordinator(store, calculator),
        cancellation=CancellationCoordinator(store),
        schedule=ScheduleService(store, business_hours),
    )


def _parse_day(value: Optional[str], tz: str) -> Date:
    if value is None:
        return pendulum.now(tz).date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError:
        console.print(f"[red]Invalid date '{value}', expected YYYY-MM-DD[/red]")
        raise typer.Exit(1)


def _parse_start(day: Date, value: str, tz: str) -> DateTime:
    try:
        return pendulum.from_format(f"{day.to_date_string()} {value}", "YYYY-MM-DD HH:mm", tz=tz)
    except ValueError:
        console.print(f"[red]Invalid time '{value}', expected HH:mm[/red]")
        raise typer.Exit(1)


def _format_price(minor_units: int) -> str:
    return f"{minor_units // 100}.{minor_units % 100:02d}"


def _fail(exc: Exception) -> None:
    """Print a short reason and exit; the full exception only goes to the debug log."""
    logger.debug("Command failed", exc_info=exc)
    if isinstance(exc, BookingError):
        message = exc.user_message
    elif isinstance(exc, ValidationError):
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        message = f"Invalid configuration: {', '.join(fields) or 'unknown field'}"
    elif isinstance(exc, FileNotFoundError):
        message = "Config file not found. See config.example.yaml for reference."
    else:
        message = "Invalid configuration file. Run with --verbose for details."
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    slotbook - slot availability and conflict-safe booking.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def slots(
    day: Annotated[Optional[str], typer.Argument(help="Day (YYYY-MM-DD). Defaults to today.")] = None,
    service_id: Annotated[Optional[str], typer.Option("--service", "-s", help="Service id to book")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    config_file: ConfigOption = None,
):
    """
    List the free start times for a service on one day.

    Examples:

        slotbook slots 2025-03-14 --service haircut

        slotbook slots --duration 45
    """
    try:
        ctx = _build_context(config_file)
        target_day = _parse_day(day, ctx.config.timezone)
        owner_id = ctx.config.owner_id

        if service_id:
            start_times = ctx.availability.available_slots_for_service(
                owner_id=owner_id, service_id=service_id, day=target_day
            )
        elif duration is not None:
            start_times = ctx.availability.available_slots(
                owner_id=owner_id, day=target_day, service_duration_minutes=duration
            )
        else:
            console.print("[red]Pass --service or --duration.[/red]")
            raise typer.Exit(1)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    console.print()
    if not start_times:
        console.print(
            f"[yellow]No free slots on {target_day.to_date_string()}.[/yellow]\n"
            "Try a later day."
        )
        return

    console.print(f"[bold green]{len(start_times)} free slot(s) on {target_day.to_date_string()}:[/bold green]\n")
    console.print("  " + "  ".join(start.format("HH:mm") for start in start_times))
    console.print()


@app.command()
def book(
    day: Annotated[str, typer.Argument(help="Day (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:mm)")],
    service_id: Annotated[str, typer.Option("--service", "-s", help="Service id")],
    customer_id: Annotated[str, typer.Option("--customer", help="Customer id")],
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    phone: Annotated[str, typer.Option("--phone", help="Customer phone")],
    email: Annotated[Optional[str], typer.Option("--email", help="Customer email")] = None,
    config_file: ConfigOption = None,
):
    """
    Book a service at a start time.
    """
    try:
        ctx = _build_context(config_file)
        tz = ctx.config.timezone
        start_at = _parse_start(_parse_day(day, tz), start, tz)

        service = ctx.catalog.get_service(service_id)
        if service is None:
            console.print(f"[red]Unknown service '{service_id}'.[/red]")
            raise typer.Exit(1)

        appointment = ctx.booking.book(
            owner_id=ctx.config.owner_id,
            customer_id=customer_id,
            service=service,
            start=start_at,
            contact=CustomerContact(name=name, phone=phone, email=email),
        )
    except CommitOutcomeUnknown as exc:
        console.print(f"[bold yellow]Warning:[/bold yellow] {exc.user_message}")
        console.print(f"Check appointment id [bold]{exc.appointment_id}[/bold] with 'slotbook bookings'.")
        raise typer.Exit(2)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    console.print(
        f"\n[green]✓ Booked {appointment.service_name} on "
        f"{appointment.start.format('YYYY-MM-DD HH:mm')}[/green] (id: {appointment.id})\n"
    )


@app.command()
def cancel(
    appointment_id: Annotated[str, typer.Argument(help="Appointment id")],
    as_customer: Annotated[
        Optional[str], typer.Option("--as-customer", help="Cancel on behalf of this customer only")
    ] = None,
    config_file: ConfigOption = None,
):
    """
    Cancel an appointment and free its time.
    """
    try:
        ctx = _build_context(config_file)
        if as_customer:
            identity = StaticIdentityProvider(as_customer, UserRole.CUSTOMER).current_identity()
        else:
            identity = StaticIdentityProvider(ctx.config.owner_id, UserRole.OWNER).current_identity()
        appointment = ctx.cancellation.cancel(appointment_id, requested_by=identity)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    console.print(f"\n[green]✓ Cancelled {appointment.service_name} for {appointment.customer_name}.[/green]\n")


@app.command()
def schedule(
    day: Annotated[Optional[str], typer.Argument(help="Day (YYYY-MM-DD). Defaults to today.")] = None,
    config_file: ConfigOption = None,
):
    """
    Show the owner's appointments for one day.
    """
    try:
        ctx = _build_context(config_file)
        target_day = _parse_day(day, ctx.config.timezone)
        appointments = ctx.schedule.schedule_for_date(ctx.config.owner_id, target_day)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    if not appointments:
        console.print(f"[yellow]No appointments on {target_day.to_date_string()}.[/yellow]")
        return

    table = Table(
        title=f"Schedule {target_day.to_date_string()}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Time", style="bold yellow")
    table.add_column("Service")
    table.add_column("Customer")
    table.add_column("Phone", style="dim")
    table.add_column("Id", style="dim")

    for appointment in appointments:
        table.add_row(
            f"{appointment.start.format('HH:mm')} - {appointment.end.format('HH:mm')}",
            appointment.service_name,
            appointment.customer_name,
            appointment.customer_phone,
            appointment.id,
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def bookings(
    customer_id: Annotated[str, typer.Argument(help="Customer id")],
    config_file: ConfigOption = None,
):
    """
    Show a customer's upcoming and past appointments.
    """
    try:
        ctx = _build_context(config_file)
        my_bookings = ctx.schedule.my_bookings(customer_id)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    for title, items in (("Upcoming", my_bookings.upcoming), ("Past", my_bookings.past)):
        table = Table(title=title, show_header=True, header_style="bold cyan")
        table.add_column("When", style="bold yellow")
        table.add_column("Service")
        table.add_column("Price", justify="right")
        table.add_column("Id", style="dim")
        for appointment in items:
            table.add_row(
                appointment.start.format("YYYY-MM-DD HH:mm"),
                appointment.service_name,
                _format_price(appointment.price_minor_units),
                appointment.id,
            )
        console.print()
        console.print(table)
    console.print()


@app.command()
def services(
    show_inactive: Annotated[bool, typer.Option("--all", help="Include inactive services")] = False,
    config_file: ConfigOption = None,
):
    """
    List the owner's services.
    """
    try:
        ctx = _build_context(config_file)
        items = ctx.catalog.list_services(ctx.config.owner_id, include_inactive=show_inactive)
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    if not items:
        console.print("[yellow]No services published yet.[/yellow]")
        return

    table = Table(title="Services", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("Minutes", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Active")
    for service in items:
        table.add_row(
            service.id,
            service.name,
            str(service.duration_minutes),
            _format_price(service.price_minor_units),
            "yes" if service.is_active else "no",
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def add_service(
    name: Annotated[str, typer.Argument(help="Service name")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes")],
    price: Annotated[int, typer.Option("--price", "-p", help="Price in minor currency units (e.g. cents)")],
    service_id: Annotated[Optional[str], typer.Option("--id", help="Service id. Generated when omitted.")] = None,
    description: Annotated[str, typer.Option("--description", help="Short description")] = "",
    config_file: ConfigOption = None,
):
    """
    Publish a new service.
    """
    try:
        ctx = _build_context(config_file)
        service = ctx.catalog.add_service(
            owner_id=ctx.config.owner_id,
            name=name,
            duration_minutes=duration,
            price_minor_units=price,
            description=description,
            service_id=service_id,
        )
    except (BookingError, FileNotFoundError, ValueError) as exc:
        _fail(exc)

    console.print(f"\n[green]✓ Added {service.name}[/green] (id: {service.id})\n")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
