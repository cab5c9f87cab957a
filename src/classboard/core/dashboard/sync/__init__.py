"""
Sync layer for the dashboard.

Fetches the backend collections (events, staff, students, notifications,
results) and reconciles them into one immutable AggregateSnapshot.

The sync layer handles:
- Extracting record lists from arbitrarily shaped envelopes (shapes)
- Normalizing records into frozen models (parsers/)
- Formatting large collections without blocking the loop (chunked)
- Cancelling superseded cycles (cancellation)
- Re-polling notifications with a single-flight guard (poller)

Architecture:
- parsers/: Individual parsers for each collection
- orchestrator: Coordinates fetch, aggregation, caching and polling
"""

from classboard.core.dashboard.sync.cancellation import CycleToken
from classboard.core.dashboard.sync.orchestrator import SyncOrchestrator
from classboard.core.dashboard.sync.poller import NotificationPoller

__all__ = [
    "CycleToken",
    "NotificationPoller",
    "SyncOrchestrator",
]
