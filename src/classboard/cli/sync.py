"""
Classboard CLI - Sync and watch commands.

`sync` runs one cycle and prints the dashboard; `watch` keeps a live
dashboard open with notification polling.
"""

import asyncio
import json
import logging

import typer
from rich.console import Console

from classboard.cli.runtime import (
    build_orchestrator,
    create_client,
    get_config,
    is_debug,
    run_async,
)
from classboard.core.config import ClassboardConfig
from classboard.core.dashboard.models import DashboardState, SyncPhase, SyncResult
from classboard.dashboard.renderer import DashboardRenderer

console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


async def _sync_once(config: ClassboardConfig) -> tuple[DashboardState, SyncResult]:
    client = create_client(config)
    async with client:
        orchestrator = build_orchestrator(config, client)
        try:
            result = await orchestrator.start()
            state = orchestrator.state
        finally:
            orchestrator.close()
    return state, result


def _summary_line(result: SyncResult) -> str:
    if result.phase == SyncPhase.SUCCEEDED:
        return f"[green]✓[/green] Sync complete in {result.duration_seconds:.2f}s"
    if result.phase == SyncPhase.PARTIALLY_FAILED:
        return (
            f"[yellow]![/yellow] Sync complete with no data from: "
            f"{', '.join(result.degraded_sources)}"
        )
    return "[red]✗[/red] Sync failed: no source could be reached"


def sync(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output the sync result and snapshot as JSON",
    ),
) -> None:
    """
    Run one sync cycle and print the dashboard.

    The cached snapshot (if any) is loaded first and replaced by the live
    result. Exits with status 1 when every source failed.

    Examples:
        classboard sync
        classboard sync --json
    """
    debug = is_debug(ctx)
    config = get_config()

    state, result = run_async(_sync_once, config)

    if json_output:
        snapshot = state.snapshot.model_dump(mode="json") if state.snapshot else None
        typer.echo(
            json.dumps(
                {"result": result.model_dump(mode="json"), "snapshot": snapshot},
                indent=2,
            )
        )
    else:
        renderer = DashboardRenderer(console)
        console.print(renderer.render_static(state))
        console.print(_summary_line(result))
        if debug:
            for error in result.errors:
                console.print(f"  [dim]• {error}[/dim]")

    if result.phase == SyncPhase.FAILED:
        raise typer.Exit(1)


async def _watch(config: ClassboardConfig, interval: float | None) -> None:
    renderer = DashboardRenderer(console)

    # Each pass mounts a fresh orchestrator; the one-time reload ends the pass
    while True:
        remount = asyncio.Event()
        client = create_client(config)
        orchestrator = build_orchestrator(config, client, on_reload=remount.set)

        with renderer.start_live(orchestrator.state) as live:
            orchestrator.subscribe(lambda state: live.update(renderer.render(state)))
            try:
                orchestrator.hydrate()
                orchestrator.begin_cycle()
                orchestrator.start_polling(interval)
                await remount.wait()
            finally:
                orchestrator.close()
                await client.aclose()

        logger.info("Remounting dashboard after first notifications")


def watch(
    ctx: typer.Context,
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        help="Seconds between notification polls (default: from config)",
        min=0.1,
    ),
) -> None:
    """
    Show a live dashboard that keeps notifications up to date.

    The cached snapshot is shown immediately while the live sync runs.
    Press Ctrl+C to stop.

    Examples:
        classboard watch
        classboard watch --interval 5
    """
    if is_debug(ctx):
        err_console.print("[dim]Debug mode enabled[/dim]")

    config = get_config()
    try:
        run_async(_watch, config, interval)
    except KeyboardInterrupt:
        console.print("\n[yellow]Dashboard stopped[/yellow]")
        raise typer.Exit(0)
