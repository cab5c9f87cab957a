"""
Classboard CLI - Calendar event commands.

Create and delete school calendar events on the backend.
"""

import logging

import typer
from pydantic import ValidationError
from rich.console import Console

from classboard.cli.runtime import create_client, get_config, run_async
from classboard.core.config import ClassboardConfig
from classboard.core.dashboard.exceptions import EventMutationError
from classboard.core.dashboard.models import EventDraft, EventEntry

app = typer.Typer(
    name="event",
    help="Create and delete calendar events",
    no_args_is_help=True,
)

console = Console()
logger = logging.getLogger(__name__)


async def _create(config: ClassboardConfig, draft: EventDraft) -> EventEntry:
    async with create_client(config) as client:
        return await client.create_event(draft)


async def _delete(config: ClassboardConfig, event_id: str) -> None:
    async with create_client(config) as client:
        await client.delete_event(event_id)


@app.command()
def add(
    title: str = typer.Option(..., "--title", "-t", help="Event title"),
    date: str = typer.Option(..., "--date", "-d", help="Event date (YYYY-MM-DD)"),
    description: str = typer.Option("", "--description", help="Optional description"),
    students_only: bool = typer.Option(
        False,
        "--students-only",
        help="Hide the event from teachers",
    ),
) -> None:
    """
    Create a calendar event.

    Examples:
        classboard event add --title "Sports Day" --date 2026-11-06
    """
    try:
        draft = EventDraft(
            title=title.strip(),
            event_date=date,
            description=description,
            for_teachers=not students_only,
        )
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        console.print(f"[red]Error:[/red] Invalid event: {problems}")
        raise typer.Exit(1)

    try:
        event = run_async(_create, get_config(), draft)
    except EventMutationError as e:
        console.print(f"[red]Error:[/red] Failed to create event: {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Created event {event.id}: {event.title}")


@app.command()
def delete(
    event_id: str = typer.Argument(..., help="Event ID to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """
    Delete a calendar event.

    Examples:
        classboard event delete evt-12 --yes
    """
    if not yes and not typer.confirm(f"Delete event {event_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    try:
        run_async(_delete, get_config(), event_id)
    except EventMutationError as e:
        console.print(f"[red]Error:[/red] Failed to delete event: {e}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Deleted event {event_id}")
