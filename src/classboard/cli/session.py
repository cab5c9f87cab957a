"""
Classboard CLI - Session commands.
"""

import typer
from rich.console import Console

from classboard.cli.runtime import get_config, get_store
from classboard.core.dashboard.exceptions import StoreError

app = typer.Typer(
    name="session",
    help="Manage the terminal session's stored state",
    no_args_is_help=True,
)

console = Console()


@app.command()
def end() -> None:
    """
    End the current session, deleting its snapshot and reload marker.

    The next dashboard starts cold and may reload once again when the
    first notifications arrive.
    """
    store = get_store(get_config())
    try:
        store.end_session()
    except StoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Session {store.session_id} ended")


@app.command()
def info() -> None:
    """Show the current session id and storage directory."""
    store = get_store(get_config())
    console.print(f"Session: [bold]{store.session_id}[/bold]")
    console.print(f"Directory: {store.session_dir}")
    keys = store.keys()
    console.print(f"Stored keys: {', '.join(keys) if keys else '[dim]none[/dim]'}")
