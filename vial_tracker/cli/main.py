"""
CLI interface for Vial Tracker.

Registers, edits and lists shots and reports what is left in the vial.
"""

import asyncio
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from vial_tracker.config.loader import CATEGORY_FIELDS, TrackerConfig, load_config, resolve_config_path
from vial_tracker.core.calculator import VialState
from vial_tracker.core.session import OutcomeStatus, SaveOutcome
from vial_tracker.core.tracker import VialTracker
from vial_tracker.errors import StoreUnavailable
from vial_tracker.logging_config import configure_logging
from vial_tracker.storage.repository import SqliteEventStore, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML config file (defaults to $VIAL_TRACKER_CONFIG)"
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db",
        help="Override the SQLite database path"
    )
):
    """Vial Tracker CLI."""
    try:
        config = load_config(resolve_config_path(config_path))
    except Exception as e:
        console.print(f"[red]Error loading config:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    configure_logging(config.logging.level, config.logging.json)
    ctx.obj = {"config": config, "db_path": db_path or config.storage.db_path}

    if ctx.invoked_subcommand is None:
        console.print("Vial Tracker - Use --help to see available commands")


def _store(ctx: typer.Context) -> SqliteEventStore:
    return SqliteEventStore(ctx.obj["db_path"])


def _config(ctx: typer.Context) -> TrackerConfig:
    return ctx.obj["config"]


@app.command()
def init(ctx: typer.Context):
    """Initialize the shot database."""
    try:
        initialize_schema(ctx.obj["db_path"])
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def status(ctx: typer.Context):
    """Show remaining insulin and projected shots and days."""
    async def run() -> VialState:
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            _warn_if_stale(tracker)
            return tracker.state

    state = _run_or_exit(run())
    _display_state(state)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def register(
    ctx: typer.Context,
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Shot date (YYYY-MM-DD), defaults to today"),
    brand: Optional[str] = typer.Option(None, "--brand", "-b", help="Insulin brand"),
    type_: Optional[str] = typer.Option(None, "--type", "-t", help="Insulin type"),
    amount_ml: Optional[str] = typer.Option(None, "--amount-ml", "-m", help="Injected volume in ml"),
    amount_mg: Optional[str] = typer.Option(None, "--amount-mg", help="Injected dose in mg"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Injection site")
):
    """Register a new shot."""
    values = _given(date=date, brand=brand, type=type_, amount_ml=amount_ml,
                    amount_mg=amount_mg, location=location)

    async def run() -> SaveOutcome:
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            tracker.session.update_draft(**values)
            outcome = await tracker.session.save()
            _warn_if_stale(tracker)
            return outcome

    _note_custom_values(_config(ctx), values)
    _finish(_run_or_exit(run()))


@app.command()
def update(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Id of the shot to edit"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="Shot date (YYYY-MM-DD)"),
    brand: Optional[str] = typer.Option(None, "--brand", "-b", help="Insulin brand"),
    type_: Optional[str] = typer.Option(None, "--type", "-t", help="Insulin type"),
    amount_ml: Optional[str] = typer.Option(None, "--amount-ml", "-m", help="Injected volume in ml"),
    amount_mg: Optional[str] = typer.Option(None, "--amount-mg", help="Injected dose in mg"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="Injection site")
):
    """Edit an existing shot; fields not given keep their stored values."""
    values = _given(date=date, brand=brand, type=type_, amount_ml=amount_ml,
                    amount_mg=amount_mg, location=location)

    async def run() -> Optional[SaveOutcome]:
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            record = tracker.ledger.get(record_id)
            if record is None:
                return None
            tracker.session.start_edit(record)
            tracker.session.update_draft(**values)
            outcome = await tracker.session.save()
            _warn_if_stale(tracker)
            return outcome

    _note_custom_values(_config(ctx), values)
    _finish(_run_or_exit(run()), record_id)


@app.command()
def duplicate(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Id of the shot to copy")
):
    """Copy a shot, dated today."""
    async def run() -> Optional[SaveOutcome]:
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            record = tracker.ledger.get(record_id)
            if record is None:
                return None
            outcome = await tracker.session.duplicate(record)
            _warn_if_stale(tracker)
            return outcome

    _finish(_run_or_exit(run()), record_id)


@app.command()
def delete(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Id of the shot to delete")
):
    """Delete a shot."""
    async def run() -> SaveOutcome:
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            outcome = await tracker.session.delete(record_id)
            _warn_if_stale(tracker)
            return outcome

    _finish(_run_or_exit(run()))


@app.command("list")
def list_shots(
    ctx: typer.Context,
    page: int = typer.Option(1, "--page", "-p", help="Page number (clamped to the last page)")
):
    """List shots, newest first."""
    async def run():
        tracker = VialTracker(_store(ctx), _config(ctx))
        async with tracker.open():
            _warn_if_stale(tracker)
            return tracker.go_to_page(page), tracker.state

    current, state = _run_or_exit(run())

    table = Table(title="Shots")
    table.add_column("Date", no_wrap=True)
    for column in ("Brand", "Type", "Amount (ml)", "Amount (mg)", "Location"):
        table.add_column(column)
    table.add_column("ID", no_wrap=True)
    for record in current.items:
        table.add_row(
            record.date, record.brand, record.type,
            record.amount_ml, record.amount_mg, record.location, record.id
        )
    console.print(table)
    console.print(f"Page {current.number} of {current.total_pages} ({current.total_items} shots)")
    if state.malformed_count:
        console.print(f"[yellow]{state.malformed_count} shot(s) have an unreadable ml amount[/]")
    sys.exit(EXIT_CODE_PASS)


def _given(**values: Optional[str]) -> dict:
    return {name: value for name, value in values.items() if value is not None}


def _run_or_exit(coro):
    """Run a coroutine, turning an unreachable store into exit code 1."""
    try:
        return asyncio.run(coro)
    except StoreUnavailable as e:
        console.print(f"[red]Error:[/] {str(e)}")
        console.print("Run `vial-tracker init` to create the database")
        sys.exit(EXIT_CODE_FAIL)


def _warn_if_stale(tracker: VialTracker) -> None:
    if not tracker.available:
        console.print(f"[yellow]Warning:[/] shot list may be stale: {tracker.last_error}")


def _finish(outcome: Optional[SaveOutcome], record_id: Optional[str] = None) -> None:
    if outcome is None:
        console.print(f"[red]Error:[/] No shot with id {record_id}")
        sys.exit(EXIT_CODE_FAIL)
    if outcome.status == OutcomeStatus.SUCCESS:
        suffix = f" ({outcome.record_id})" if outcome.record_id else ""
        console.print(f"[green]✓[/] {outcome.message}{suffix}")
        sys.exit(EXIT_CODE_PASS)
    if outcome.status == OutcomeStatus.SKIPPED:
        console.print(f"[yellow]Skipped:[/] {outcome.message}")
    else:
        console.print(f"[red]Error:[/] {outcome.message}: {outcome.error}")
    sys.exit(EXIT_CODE_FAIL)


def _note_custom_values(config: TrackerConfig, values: dict) -> None:
    for category in CATEGORY_FIELDS:
        value = values.get(category)
        if category in config.presets and value and config.is_custom(category, value):
            console.print(f"[dim]{category} '{value}' is a custom value[/]")


def _display_state(state: VialState) -> None:
    """Display the vial summary."""
    console.print(f"Remaining Insulin: {state.remaining_ml:.2f} ml")
    console.print(f"Shots Taken: {state.shots_taken}")
    console.print(f"Estimated Shots Remaining: {state.shots_remaining}")
    console.print(f"Estimated Days Remaining: {state.days_remaining}")
    if state.malformed_count:
        console.print(f"[yellow]{state.malformed_count} shot(s) have an unreadable ml amount[/]")
    if not state.can_register:
        console.print("[yellow]Vial is empty: new shots will not be registered[/]")


if __name__ == "__main__":
    app()
