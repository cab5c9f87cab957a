"""
Classboard CLI - Cache commands.

Inspect and clear the session snapshot cache.
"""

import typer
from rich.console import Console
from rich.table import Table

from classboard.cli.runtime import get_config, get_store
from classboard.core.dashboard.cache import SnapshotCache
from classboard.core.dashboard.exceptions import StoreError

app = typer.Typer(
    name="cache",
    help="Inspect and clear the session snapshot cache",
    no_args_is_help=True,
)

console = Console()


@app.command()
def show() -> None:
    """
    Show what is cached for the current session.

    Examples:
        classboard cache show
    """
    store = get_store(get_config())
    cache = SnapshotCache(store)
    snapshot = cache.read()

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()
    table.add_row("Session:", store.session_id)
    table.add_row("Directory:", str(store.session_dir))
    table.add_row("Reloaded:", "yes" if cache.has_reloaded() else "no")

    if snapshot is None:
        table.add_row("Snapshot:", "[dim]none[/dim]")
    else:
        synced = snapshot.synced_at.isoformat() if snapshot.synced_at else "unknown"
        table.add_row("Snapshot:", f"synced {synced}")
        table.add_row("Teachers:", str(snapshot.teacher_count))
        table.add_row("Students:", str(snapshot.person_count))
        table.add_row("Classes:", str(snapshot.group_count))
        table.add_row("Data issues:", str(len(snapshot.issues)))
        table.add_row(
            "Notifications:",
            f"{len(snapshot.notifications)} ({snapshot.unread_count} unread)",
        )
        table.add_row("Events:", str(len(snapshot.events)))
        table.add_row("Results:", f"{snapshot.result_count} ({snapshot.published_result_count} published)")

    console.print(table)


@app.command()
def clear(
    all_: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Also clear the one-time reload marker",
    ),
) -> None:
    """
    Clear the cached snapshot for the current session.

    Examples:
        classboard cache clear
        classboard cache clear --all
    """
    store = get_store(get_config())
    if all_:
        try:
            store.clear()
        except StoreError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
    else:
        SnapshotCache(store).clear()
    console.print("[green]✓[/green] Session cache cleared")
