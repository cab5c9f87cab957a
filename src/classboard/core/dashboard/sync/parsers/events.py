"""Calendar event parsing."""

import hashlib
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from classboard.core.dashboard.models import EventDraft, EventEntry, RawRecord
from classboard.core.dashboard.sync.parsers.notifications import parse_timestamp


def _event_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value if type(value) is date else value.date()
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    resolved = parse_timestamp(value)
    return resolved.date() if resolved else None


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def parse_event(raw: Any) -> EventEntry:
    """Normalize one raw event record."""
    record: RawRecord = dict(raw) if isinstance(raw, Mapping) else {}
    title = str(record.get("title") or record.get("name") or "").strip()
    identity = record.get("id", record.get("_id"))
    if identity is None or str(identity).strip() == "":
        # Stable across polls as long as the record itself is unchanged
        digest = hashlib.sha1(repr(sorted(record.items(), key=str)).encode()).hexdigest()
        identity = f"event-{digest[:8]}"
    return EventEntry(
        id=str(identity),
        title=title,
        event_date=_event_date(record.get("date", record.get("eventDate"))),
        description=str(record.get("description") or ""),
        for_teachers=_truthy(record.get("forTeachers", record.get("for_teachers"))),
        source_record=record,
    )


def parse_events(records: Iterable[Any]) -> list[EventEntry]:
    """Normalize events, soonest first; undated events go last."""
    events = [parse_event(r) for r in records]
    return sorted(events, key=lambda e: (e.event_date is None, e.event_date or date.min))


def event_payload(draft: EventDraft) -> dict[str, Any]:
    """Request body for creating an event."""
    return {
        "title": draft.title,
        "date": draft.event_date.isoformat(),
        "description": draft.description,
        "forTeachers": draft.for_teachers,
    }
