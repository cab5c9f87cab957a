"""
Record parsers for the dashboard collections.

Each parser takes raw records (already extracted from their envelope by
shapes.normalize) and produces frozen domain models.
"""

from .events import event_payload, parse_event, parse_events
from .notifications import (
    detect_variant,
    format_notification,
    format_notifications,
    format_notifications_basic,
    parse_timestamp,
)
from .people import PeopleSummary, classify, normalize_person
from .results import parse_result, parse_results

__all__ = [
    "PeopleSummary",
    "classify",
    "detect_variant",
    "event_payload",
    "format_notification",
    "format_notifications",
    "format_notifications_basic",
    "normalize_person",
    "parse_event",
    "parse_events",
    "parse_result",
    "parse_results",
    "parse_timestamp",
]
