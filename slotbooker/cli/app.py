"""
Main CLI application using Typer.

The ``book`` command plays the role of the booking screen: it mounts a
``SchedulingOrchestrator``, renders providers and the morning/afternoon
buckets, and drives the selection and submission through it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Annotated

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..adapters.api_client import AppointmentClient, AvailabilityFeedClient
from ..adapters.mock_api_client import MockBookingClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingError
from ..domain.models import DisplaySlot
from ..domain.state import LoadStatus, SchedulingState
from ..services.scheduler import SchedulingOrchestrator

app = typer.Typer(
    name="slotbooker",
    help="Book an appointment with a provider",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]
MockOption = Annotated[bool, typer.Option("--mock", help="Use the bundled mock backend instead of the HTTP API.")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]
DateOption = Annotated[Optional[str], typer.Option("--date", help="Day to book (YYYY-MM-DD). Defaults to today.")]


class ConsoleNavigator:
    """Navigation collaborator that prints the confirmation screen."""

    def __init__(self, console: Console, timezone: str):
        self.console = console
        self.timezone = timezone

    def go_back(self) -> None:
        self.console.print("[dim]← Back[/dim]")

    def navigate_to(self, screen_id: str, payload: Dict[str, Any]) -> None:
        booked = pendulum.from_timestamp(payload["date"] / 1000, tz=self.timezone)
        self.console.print(Panel.fit(
            f"[bold green]✓ Appointment created![/bold green]\n\n"
            f"{booked.format('dddd, MMMM D, YYYY [at] HH:mm')}",
            title=screen_id
        ))


class ConsoleNotifier:
    """Shows submission failures as an alert panel."""

    def __init__(self, console: Console):
        self.console = console

    def alert(self, title: str, message: str) -> None:
        self.console.print(Panel.fit(f"[red]{message}[/red]", title=f"✗ {title}", border_style="red"))


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True
    )


def _load_config(config_file: Optional[Path], mock: bool) -> AppConfig:
    """Load the config; mock mode may run on defaults when no file exists."""
    config_path = config_file or get_default_config_path()
    if mock and config_file is None and not config_path.exists():
        return AppConfig()
    return AppConfig.load_from_yaml(config_path)


def _build_clients(config: AppConfig, mock: bool):
    if mock:
        client = MockBookingClient(timezone=config.booking.timezone)
        return client, client

    kwargs = {
        "base_url": config.api.base_url,
        "access_token": config.api.token,
        "timeout": config.api.timeout_seconds,
    }
    return AvailabilityFeedClient(**kwargs), AppointmentClient(**kwargs)


def _parse_date(value: Optional[str], tz: str) -> DateTime:
    if not value:
        return pendulum.now(tz)
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse date {value!r}: {e}[/red]")
        raise typer.Exit(1)


def _build_orchestrator(
    config: AppConfig,
    mock: bool,
    provider_id: str,
    date: DateTime
) -> SchedulingOrchestrator:
    feed, appointments = _build_clients(config, mock)
    navigator = ConsoleNavigator(console, config.booking.timezone)
    notifier = ConsoleNotifier(console)
    return SchedulingOrchestrator(
        feed,
        appointments,
        navigator,
        notifier,
        provider_id=provider_id,
        date=date,
        timezone=config.booking.timezone,
        confirmation_screen=config.booking.confirmation_screen,
        modal_date_picker=config.booking.modal_date_picker,
        fence_availability=config.booking.fence_availability,
        error_title=config.booking.error_title,
        error_message=config.booking.error_message
    )


def _render_header(config: AppConfig) -> None:
    user = config.user.to_session()
    console.print("\n" + "="*60)
    console.print("[bold cyan]📅  slotbooker - Book an appointment[/bold cyan]")
    if user.name:
        console.print(f"[dim]{user.name} · {user.display_avatar(config.booking.avatar_placeholder)}[/dim]")
    console.print("="*60 + "\n")


def _render_providers(state: SchedulingState, placeholder: str) -> None:
    if state.providers.status is LoadStatus.FAILED:
        console.print("[yellow]⚠ Could not load providers.[/yellow]")

    if not state.providers.items:
        console.print("[yellow]No providers available.[/yellow]")
        return

    table = Table(title="Providers", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold yellow")
    table.add_column("Avatar", style="dim")

    for idx, provider in enumerate(state.providers.items, 1):
        marker = " ←" if provider.id == state.selection.provider_id else ""
        table.add_row(
            str(idx),
            provider.id,
            f"{provider.name}{marker}",
            provider.display_avatar(placeholder)
        )

    console.print(table)


def _slot_text(slot: DisplaySlot, state: SchedulingState) -> Text:
    selection = state.selection
    if selection.hour_chosen and selection.hour == slot.hour:
        style = "bold reverse green"
    elif slot.available:
        style = "green"
    else:
        style = "dim strike"
    return Text(f" {slot.label} ", style=style)


def _render_schedule(orchestrator: SchedulingOrchestrator) -> None:
    state = orchestrator.state
    buckets = orchestrator.display_buckets()

    console.print(
        f"\n[bold]Schedule for {state.selection.date.format('DD.MM.YYYY')}[/bold] "
        f"([dim]{state.selection.provider_id}[/dim])"
    )
    if state.availability.status is LoadStatus.FAILED:
        console.print("[yellow]⚠ Could not load availability.[/yellow]")

    for title, slots in (("Morning", buckets.morning), ("Afternoon", buckets.afternoon)):
        line = Text(f"  {title:<10}", style="bold")
        if not slots:
            line.append("–", style="dim")
        for slot in slots:
            line.append_text(_slot_text(slot, state))
        console.print(line)
    console.print()


def _available_hours(orchestrator: SchedulingOrchestrator) -> List[int]:
    return [slot.hour for slot in orchestrator.state.availability.slots if slot.available]


def _prompt_provider(orchestrator: SchedulingOrchestrator) -> None:
    state = orchestrator.state
    answer = typer.prompt(
        "→ Provider (number or id)",
        default=state.selection.provider_id
    ).strip()

    providers = state.providers.items
    if answer.isdigit() and 0 < int(answer) <= len(providers):
        orchestrator.select_provider(providers[int(answer) - 1].id)
    elif any(provider.id == answer for provider in providers):
        orchestrator.select_provider(answer)
    else:
        console.print(f"[yellow]Unknown provider {answer!r}, keeping current selection[/yellow]")


def _prompt_date(orchestrator: SchedulingOrchestrator) -> None:
    current = orchestrator.state.selection.date
    orchestrator.toggle_date_picker()
    answer = typer.prompt("→ Date (YYYY-MM-DD)", default=current.to_date_string()).strip()

    try:
        picked = pendulum.from_format(answer, "YYYY-MM-DD", tz=orchestrator.timezone)
    except ValueError:
        console.print(f"[yellow]Invalid date {answer!r}, keeping {current.to_date_string()}[/yellow]")
        picked = None

    orchestrator.on_date_picked(picked)
    if orchestrator.state.date_picker_open:
        orchestrator.toggle_date_picker()


def _prompt_hour(orchestrator: SchedulingOrchestrator) -> None:
    while True:
        hour = typer.prompt("→ Hour (0-23)", type=int)
        if orchestrator.select_hour(hour):
            return
        console.print(f"[yellow]{hour:02d}:00 is not available, pick another hour[/yellow]")


async def _run_wizard(orchestrator: SchedulingOrchestrator, config: AppConfig, assume_yes: bool) -> bool:
    """Interactive booking: provider, date, hour, confirm (with retry on failure)."""
    console.print("[bold]1️⃣  Choose a provider[/bold]")
    _render_providers(orchestrator.state, config.booking.avatar_placeholder)
    _prompt_provider(orchestrator)
    await orchestrator.settle()

    await _choose_date(orchestrator, refresh=False)
    if not _choose_hour(orchestrator):
        return False

    while True:
        if not assume_yes and not typer.confirm("Book this appointment?", default=True):
            orchestrator.go_back()
            return False
        if await orchestrator.submit() is not None:
            return True
        if not typer.confirm("Try again?", default=False):
            return False

        # The rejected hour may be gone by now: reload and pick again
        await _choose_date(orchestrator, refresh=True)
        if not _choose_hour(orchestrator):
            return False


async def _choose_date(orchestrator: SchedulingOrchestrator, refresh: bool) -> None:
    """
    Ask for the date and wait for its availability.

    With ``refresh`` the current availability is reloaded even when the
    answer keeps the selected date unchanged.
    """
    console.print("\n[bold]2️⃣  Choose a date[/bold]")
    token = orchestrator.state.availability.token
    _prompt_date(orchestrator)
    if refresh and orchestrator.state.availability.token == token:
        orchestrator.refresh_availability()
    await orchestrator.settle()


def _choose_hour(orchestrator: SchedulingOrchestrator) -> bool:
    console.print("\n[bold]3️⃣  Choose an hour[/bold]")
    _render_schedule(orchestrator)
    if not _available_hours(orchestrator):
        console.print("[yellow]⚠ No available hours on this day.[/yellow]")
        return False
    _prompt_hour(orchestrator)
    _render_schedule(orchestrator)
    return True


async def _run_batch(orchestrator: SchedulingOrchestrator, hour: int) -> bool:
    _render_schedule(orchestrator)
    if not orchestrator.select_hour(hour):
        console.print(f"[red]{hour:02d}:00 is not available for this provider and day.[/red]")
        return False
    return await orchestrator.submit() is not None


async def _book(
    config: AppConfig,
    mock: bool,
    provider_id: str,
    date: DateTime,
    hour: Optional[int],
    assume_yes: bool
) -> bool:
    orchestrator = _build_orchestrator(config, mock, provider_id, date)
    orchestrator.mount()
    try:
        await orchestrator.settle()
        if hour is None:
            return await _run_wizard(orchestrator, config, assume_yes)
        return await _run_batch(orchestrator, hour)
    finally:
        orchestrator.unmount()


@app.command()
def book(
    provider_id: Annotated[str, typer.Argument(help="Provider to start with.")],
    date: DateOption = None,
    hour: Annotated[Optional[int], typer.Option("--hour", min=0, max=23, help="Hour to book. Without it the interactive assistant starts.")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Book an appointment - Supports Interactive and Batch mode.

    Examples:

        # Interactive mode
        slotbooker book p1

        # Batch mode
        slotbooker book p1 --date 2024-05-10 --hour 14

        # Use mock data (no backend needed)
        slotbooker book p1 --mock
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        _render_header(config)
        if mock:
            console.print("[yellow]⚠  MOCK MODE: using test data[/yellow]\n")

        start_date = _parse_date(date, config.booking.timezone)
        booked = asyncio.run(_book(config, mock, provider_id, start_date, hour, yes))

    except (FileNotFoundError, ValueError, BookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not booked:
        raise typer.Exit(1)


async def _load_availability(
    config: AppConfig,
    mock: bool,
    provider_id: str,
    date: DateTime
) -> SchedulingOrchestrator:
    orchestrator = _build_orchestrator(config, mock, provider_id, date)
    orchestrator.mount()
    try:
        await orchestrator.settle()
    finally:
        orchestrator.unmount()
    return orchestrator


@app.command()
def availability(
    provider_id: Annotated[str, typer.Argument(help="Provider to show.")],
    date: DateOption = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Show a provider's morning and afternoon hours for one day.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        day = _parse_date(date, config.booking.timezone)
        orchestrator = asyncio.run(_load_availability(config, mock, provider_id, day))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _render_schedule(orchestrator)
    if orchestrator.state.availability.status is LoadStatus.FAILED:
        raise typer.Exit(1)


@app.command()
def providers(
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    List all providers.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file, mock)
        feed, _ = _build_clients(config, mock)
        items = asyncio.run(feed.list_providers())
    except (FileNotFoundError, ValueError, BookingError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not items:
        console.print("[yellow]No providers available.[/yellow]")
        return

    table = Table(title="Providers", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold yellow")
    table.add_column("Name")
    table.add_column("Avatar", style="dim")

    for provider in items:
        table.add_row(provider.id, provider.name, provider.display_avatar(config.booking.avatar_placeholder))

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
