"""
Structured JSONL logging for classboard sync sessions.

Provides a SyncLogger class that writes timestamped JSON Lines events for
debugging. Events are written to ~/.local/share/classboard/logs/{session}.jsonl

Each log line is valid JSON with the format:
{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "cycle_end",
  "data": { ... event-specific data ... }
}
"""

import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SyncEventType(str, Enum):
    """Types of events that can be logged."""

    CYCLE_START = "cycle_start"
    CYCLE_END = "cycle_end"
    SOURCE_DEGRADED = "source_degraded"
    CACHE_HYDRATED = "cache_hydrated"
    POLL_APPLIED = "poll_applied"
    RELOAD_TRIGGERED = "reload_triggered"
    ERROR = "error"


class LogEntry(BaseModel):
    """A single structured log entry in JSONL format."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601 format)")
    event_type: SyncEventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


class SyncLogger:
    """
    Structured JSONL logger for sync events.

    Writes timestamped JSON Lines to ~/.local/share/classboard/logs/{session}.jsonl
    Each line is valid JSON that can be queried with jq.

    Example:
        logger = SyncLogger.init("4242")
        logger.log_cycle_start(1)
        logger.log_cycle_end(1, "succeeded", 0.42, degraded=[])
    """

    def __init__(self, log_file: Path):
        """
        Initialize logger with a log file path.

        Args:
            log_file: Path to the JSONL log file (will be created if needed)
        """
        self.log_file = Path(log_file)
        self._ensure_log_dir()

    def _ensure_log_dir(self) -> None:
        """Create log directory if it doesn't exist."""
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def init(session_id: str) -> "SyncLogger":
        """
        Initialize a logger for a terminal session.

        Logs are written to ~/.local/share/classboard/logs/{session_id}.jsonl

        Args:
            session_id: Session identifier (used for filename)

        Returns:
            SyncLogger instance ready to log events

        Raises:
            ValueError: If session_id is empty
        """
        if not session_id:
            raise ValueError("session_id cannot be empty")

        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        if not xdg_data_home:
            xdg_data_home = os.path.expanduser("~/.local/share")

        log_file = Path(xdg_data_home) / "classboard" / "logs" / f"{session_id}.jsonl"
        return SyncLogger(log_file)

    def log_event(self, event_type: SyncEventType, data: dict[str, Any] | None = None) -> None:
        """
        Write a log event to the JSONL file.

        Write failures are reported on stdout and never raised, so logging
        cannot break a sync cycle.

        Args:
            event_type: Type of event (from SyncEventType enum)
            data: Event-specific data (optional, defaults to {})
        """
        if data is None:
            data = {}

        try:
            entry = LogEntry(timestamp=datetime.now(timezone.utc), event_type=event_type, data=data)
            log_line = entry.model_dump_json(exclude_none=True, by_alias=False) + "\n"

            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(log_line)

        except OSError as e:
            print(f"Warning: Failed to write to log file {self.log_file}: {e}", flush=True)

    def log_cycle_start(self, cycle_id: int) -> None:
        """Log the start of a sync cycle."""
        self.log_event(SyncEventType.CYCLE_START, {"cycle_id": cycle_id})

    def log_cycle_end(
        self,
        cycle_id: int,
        phase: str,
        duration_sec: float,
        degraded: list[str] | None = None,
    ) -> None:
        """
        Log the end of a sync cycle.

        Args:
            cycle_id: Cycle number
            phase: Terminal phase (succeeded, partially_failed, failed, aborted)
            duration_sec: Duration in seconds
            degraded: Sources that contributed no data
        """
        self.log_event(
            SyncEventType.CYCLE_END,
            {
                "cycle_id": cycle_id,
                "phase": phase,
                "duration_sec": round(duration_sec, 3),
                "degraded": degraded or [],
            },
        )

    def log_source_degraded(self, cycle_id: int, source: str, error: str) -> None:
        """Log a source that fell back to an empty contribution."""
        self.log_event(
            SyncEventType.SOURCE_DEGRADED,
            {"cycle_id": cycle_id, "source": source, "error": error},
        )

    def log_cache_hydrated(self, notification_count: int, person_count: int) -> None:
        """Log a warm start from the snapshot cache."""
        self.log_event(
            SyncEventType.CACHE_HYDRATED,
            {"notifications": notification_count, "persons": person_count},
        )

    def log_poll_applied(self, notification_count: int, unread_count: int) -> None:
        """Log a notification poll that changed state."""
        self.log_event(
            SyncEventType.POLL_APPLIED,
            {"notifications": notification_count, "unread": unread_count},
        )

    def log_reload_triggered(self, delay_sec: float) -> None:
        """Log the one-time reload after the first notifications arrived."""
        self.log_event(SyncEventType.RELOAD_TRIGGERED, {"delay_sec": delay_sec})

    def log_error(self, error_msg: str, error_type: str | None = None) -> None:
        """
        Log an error.

        Args:
            error_msg: Error message
            error_type: Type/category of error (optional)
        """
        data: dict[str, Any] = {"error_msg": error_msg}
        if error_type is not None:
            data["error_type"] = error_type
        self.log_event(SyncEventType.ERROR, data)
