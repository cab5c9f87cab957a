"""Utility modules for classboard."""

from classboard.utils.logging import LogEntry, SyncEventType, SyncLogger

__all__ = ["LogEntry", "SyncEventType", "SyncLogger"]
