"""
Shared wiring for CLI commands.

Builds the client, session storage and orchestrator from configuration so
every command sees the same session cache.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from classboard.core.config import ClassboardConfig, load_config
from classboard.core.dashboard.cache import SessionStore, SnapshotCache
from classboard.core.dashboard.client import DashboardClient
from classboard.core.dashboard.sync import SyncOrchestrator
from classboard.utils.logging import SyncLogger

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def get_config() -> ClassboardConfig:
    """
    Load configuration for a command.

    Raises:
        typer.Exit: If the configuration is invalid
    """
    try:
        return load_config()
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        raise typer.Exit(1)


def create_client(config: ClassboardConfig) -> DashboardClient:
    """Create the backend client for a command."""
    return DashboardClient(config.api)


def get_store(config: ClassboardConfig) -> SessionStore:
    """Session storage for the current terminal session."""
    return SessionStore.from_config(config)


def build_orchestrator(
    config: ClassboardConfig,
    client: DashboardClient,
    on_reload: Callable[[], None] | None = None,
) -> SyncOrchestrator:
    """
    Wire an orchestrator to the session cache and event log.

    Args:
        config: Loaded configuration
        client: Backend client (owned by the caller)
        on_reload: Callback for the one-time reload

    Returns:
        Orchestrator ready for hydrate()/start()
    """
    store = get_store(config)
    event_log = SyncLogger.init(store.session_id) if config.session.event_log else None
    return SyncOrchestrator(
        client,
        cache=SnapshotCache(store),
        config=config.sync,
        on_reload=on_reload,
        event_log=event_log,
    )


def run_async(func: Any, *args: Any) -> Any:
    """
    Run an async function from a sync context.

    Uses asyncio.run() to execute async code from Typer's sync CLI context.
    """
    return asyncio.run(func(*args))


def is_debug(ctx: typer.Context) -> bool:
    """Debug flag stored by the main callback."""
    return bool(ctx.obj.get("debug", False)) if ctx.obj else False
