"""
Classboard CLI - Notification commands.

List notifications and mark them as read.
"""

import logging

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from classboard.cli.runtime import build_orchestrator, create_client, get_config, run_async
from classboard.core.config import ClassboardConfig
from classboard.core.dashboard.models import NotificationView
from classboard.core.dashboard.sync import SyncOrchestrator
from classboard.dashboard.renderer import VARIANT_STYLES

console = Console()
logger = logging.getLogger(__name__)


async def _load(orchestrator: SyncOrchestrator, cached: bool) -> None:
    # A hydrated snapshot only needs a notification refresh
    if orchestrator.hydrate():
        if not cached:
            await orchestrator.refresh_notifications()
    elif not cached:
        await orchestrator.run_cycle()


async def _list(config: ClassboardConfig, cached: bool) -> list[NotificationView]:
    client = create_client(config)
    async with client:
        orchestrator = build_orchestrator(config, client)
        try:
            await _load(orchestrator, cached)
        finally:
            orchestrator.close()
    snapshot = orchestrator.state.snapshot
    return list(snapshot.notifications) if snapshot else []


def notifications(
    unread: bool = typer.Option(
        False,
        "--unread",
        "-u",
        help="Only show unread notifications",
    ),
    cached: bool = typer.Option(
        False,
        "--cached",
        help="Use the session cache without contacting the server",
    ),
) -> None:
    """
    List notifications, newest first.

    Examples:
        classboard notifications
        classboard notifications --unread
    """
    views = run_async(_list, get_config(), cached)
    if unread:
        views = [v for v in views if not v.read]

    if not views:
        console.print("[dim]No notifications[/dim]")
        return

    table = Table(title=f"Notifications ({sum(1 for v in views if not v.read)} unread)")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Time", no_wrap=True)
    table.add_column("Title")
    table.add_column("Message")
    table.add_column("Read", justify="center")

    for view in views:
        style = VARIANT_STYLES.get(view.variant, "")
        table.add_row(
            view.id,
            view.display_time,
            Text(view.title, style=style),
            Text(view.message),
            "✓" if view.read else "",
        )
    console.print(table)


async def _mark(config: ClassboardConfig, notification_id: str | None) -> int:
    client = create_client(config)
    async with client:
        orchestrator = build_orchestrator(config, client)
        try:
            if notification_id is not None:
                orchestrator.hydrate()
                orchestrator.mark_read(notification_id)
                count = 1
            else:
                await _load(orchestrator, cached=False)
                count = orchestrator.mark_all_read()
            await orchestrator.flush()
        finally:
            orchestrator.close()
    return count


def read(
    notification_id: str | None = typer.Argument(
        None,
        help="Notification ID to mark as read",
    ),
    all_: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Mark every unread notification as read",
    ),
) -> None:
    """
    Mark notifications as read.

    The local view is updated immediately; a failed server update is
    ignored and corrected by the next refresh.

    Examples:
        classboard read notif-42
        classboard read --all
    """
    if (notification_id is None) == (not all_):
        console.print("[red]Error:[/red] Give a notification ID or --all (not both)")
        raise typer.Exit(1)

    count = run_async(_mark, get_config(), None if all_ else notification_id)
    if all_:
        console.print(f"[green]✓[/green] Marked {count} notification(s) as read")
    else:
        console.print(f"[green]✓[/green] Marked {notification_id} as read")
