"""
Classboard CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from classboard import __version__
from classboard.cli import cache, event, notifications, session, sync
from classboard.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_DASHBOARD = "Dashboard"
PANEL_NOTIFICATIONS = "Notifications"
PANEL_MANAGE = "Manage"

app = typer.Typer(
    name="classboard",
    help="School dashboard sync engine",
    no_args_is_help=True,
    add_completion=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"classboard {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """
    Classboard - school dashboard in your terminal.

    Syncs events, staff, students, notifications and results from the
    school backend into one cached view. The last snapshot is kept for the
    terminal session, so the dashboard opens instantly while it refreshes.

    Quick Start:
        classboard sync              # One sync, print the dashboard
        classboard watch             # Live dashboard with polling
        classboard notifications     # List notifications

    Configuration:
        CLASSBOARD_API_URL           # Backend base URL
        .classboard.json             # Project config
        ~/.config/classboard/        # User config and .env
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {"debug": debug}


# =============================================================================
# Dashboard
# =============================================================================

app.command(name="sync", rich_help_panel=PANEL_DASHBOARD)(sync.sync)
app.command(name="watch", rich_help_panel=PANEL_DASHBOARD)(sync.watch)


# =============================================================================
# Notifications
# =============================================================================

app.command(name="notifications", rich_help_panel=PANEL_NOTIFICATIONS)(
    notifications.notifications
)
app.command(name="read", rich_help_panel=PANEL_NOTIFICATIONS)(notifications.read)


# =============================================================================
# Manage
# =============================================================================

app.add_typer(cache.app, name="cache", rich_help_panel=PANEL_MANAGE)
app.add_typer(session.app, name="session", rich_help_panel=PANEL_MANAGE)
app.add_typer(event.app, name="event", rich_help_panel=PANEL_MANAGE)


def cli_main() -> None:
    """Entry point for the classboard console script."""
    app()


__all__ = ["app", "cli_main"]
