"""
Configuration data models for classboard.

These models define the structure of .classboard.json and
~/.config/classboard/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_endpoints() -> dict[str, list[str]]:
    return {
        "events": ["/api/events"],
        "staff": ["/api/teachers"],
        "students": ["/api/students"],
        "notifications": ["/api/notifications"],
        "results": ["/api/results", "/results"],
    }


class ApiConfig(BaseModel):
    """
    Backend API connection settings.

    Each source maps to an ordered list of paths; later paths are tried
    only when earlier ones fail or return non-JSON bodies.
    """
    base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the school backend"
    )
    endpoints: dict[str, list[str]] = Field(
        default_factory=_default_endpoints,
        description="Collection paths per source, in fallback order"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request timeout in seconds"
    )
    max_retries: int = Field(
        default=2,
        ge=0,
        description="Retries for transient failures (5xx, timeouts, connection errors)"
    )
    retry_base_delay: float = Field(
        default=0.5,
        gt=0.0,
        description="Initial backoff delay in seconds"
    )
    headers: dict[str, str] = Field(
        default_factory=lambda: {"Content-Type": "application/json"},
        description="Static headers sent with every request"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended directly."""
        return v.rstrip("/")


class SyncConfig(BaseModel):
    """
    Sync cycle and polling behavior.
    """
    chunk_size: int = Field(
        default=150,
        ge=1,
        description="Notifications formatted per slice before yielding"
    )
    poll_interval_seconds: float = Field(
        default=15.0,
        gt=0.0,
        description="Interval between notification polls"
    )
    reload_delay_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Delay before the one-time reload after the first notifications arrive"
    )
    reload_on_first_notification: bool = Field(
        default=True,
        description="Enable the one-time reload when notifications first appear"
    )


class SessionConfig(BaseModel):
    """
    Session-scoped storage settings.

    The session id defaults to the parent process id, so storage survives
    restarts from the same terminal but not a new terminal session.
    """
    session_id: Optional[str] = Field(
        default=None,
        description="Explicit session id (defaults to the parent process id)"
    )
    state_dir: Optional[Path] = Field(
        default=None,
        description="Directory for session storage (defaults to XDG state home)"
    )
    event_log: bool = Field(
        default=True,
        description="Write structured JSONL sync events for the session"
    )


class ClassboardConfig(BaseModel):
    """
    Top-level classboard configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = ClassboardConfig(
        ...     api=ApiConfig(base_url="https://school.example.com"),
        ...     sync=SyncConfig(poll_interval_seconds=30),
        ... )
    """

    api: ApiConfig = Field(
        default_factory=ApiConfig,
        description="Backend API connection settings"
    )
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync and polling behavior"
    )
    session: SessionConfig = Field(
        default_factory=SessionConfig,
        description="Session storage settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
