"""
Notification formatting.

Turns raw notification records into NotificationView objects: a stable id,
a display time, a semantic variant used for colouring, newest first.

The variant is decided by the first matching rule:
    1. status or free text matches the failure vocabulary -> failed
    2. action/type or free text matches the deletion vocabulary -> delete
    3. action/type or free text matches the creation vocabulary -> create
    4. status is a false-ish literal ("false", "0") -> failed
    5. status is a true-ish literal: creation text -> create, else default
    6. default

Records whose time cannot be resolved display "Just now" and sort as the
oldest. Records without any id get a random one; those are not
deduplicated across polls.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from classboard.core.dashboard.models import NotificationVariant, NotificationView, RawRecord
from classboard.core.dashboard.sync.chunked import DEFAULT_CHUNK_SIZE, map_chunked

logger = logging.getLogger(__name__)

FAILURE_WORDS = (
    "fail",
    "error",
    "unsuccessful",
    "not sent",
    "not-sent",
    "not delivered",
    "not-delivered",
)
DELETE_WORDS = ("delete", "removed", "remove")
CREATE_WORDS = ("create", "created", "added", "new", "joined", "registered")

FALSE_LITERALS = ("false", "0")

ID_FIELDS = ("id", "_id", "notificationId", "uid", "key")
TITLE_FIELDS = ("title", "subject", "heading")
MESSAGE_FIELDS = ("message", "body", "text", "description")
TIME_FIELDS = ("createdAt", "timestamp", "time", "date", "sentAt", "updatedAt")
READ_FIELDS = ("read", "isRead", "seen")
ACTION_FIELDS = ("action", "type")

JUST_NOW = "Just now"
DISPLAY_FORMAT = "%d %b %Y, %H:%M"

# Epoch values below this magnitude are seconds, otherwise milliseconds
EPOCH_MS_THRESHOLD = 10**12


def _as_record(raw: Any) -> RawRecord:
    return dict(raw) if isinstance(raw, Mapping) else {}


def _first_text(record: Mapping[str, Any], fields: Iterable[str]) -> str:
    for field in fields:
        value = record.get(field)
        if value is None or isinstance(value, (Mapping, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def _matches(text: str, vocabulary: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in vocabulary)


def _status_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value).strip().lower()


def _from_epoch(value: float) -> datetime:
    seconds = value if abs(value) < EPOCH_MS_THRESHOLD else value / 1000.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Resolve a loosely typed time value to an aware datetime.

    Accepts, in order: datetime objects, objects with a to_datetime()
    method, {"_seconds"|"seconds": ...} mappings, numeric epochs (seconds
    below 10**12, otherwise milliseconds), numeric strings, ISO-8601 and
    RFC-2822 strings.

    Returns:
        Aware datetime, or None when nothing matched
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            return _aware(value)

        converter = getattr(value, "to_datetime", None)
        if callable(converter):
            converted = converter()
            return _aware(converted) if isinstance(converted, datetime) else None

        if isinstance(value, Mapping):
            seconds = value.get("_seconds", value.get("seconds"))
            if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
                nanos = value.get("_nanoseconds", value.get("nanoseconds", 0)) or 0
                return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
            return None

        if isinstance(value, (int, float)):
            return _from_epoch(value)

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return _from_epoch(float(text))
            except ValueError:
                pass
            try:
                return _aware(datetime.fromisoformat(text.replace("Z", "+00:00")))
            except ValueError:
                pass
            try:
                return _aware(parsedate_to_datetime(text))
            except (TypeError, ValueError):
                return None
    except (OverflowError, OSError, ValueError) as e:
        logger.debug(f"Unusable timestamp {value!r}: {e}")

    return None


def format_display_time(dt: datetime | None) -> str:
    """Format a resolved time for display, or "Just now" when unknown."""
    if dt is None:
        return JUST_NOW
    return dt.astimezone().strftime(DISPLAY_FORMAT)


def detect_variant(record: Mapping[str, Any]) -> NotificationVariant:
    """Classify a raw notification into a semantic variant."""
    status = _status_literal(record.get("status"))
    action = " ".join(_first_text(record, (f,)) for f in ACTION_FIELDS).strip()
    text = " ".join(
        part
        for part in (_first_text(record, TITLE_FIELDS), _first_text(record, MESSAGE_FIELDS), action)
        if part
    )

    if (status and _matches(status, FAILURE_WORDS)) or _matches(text, FAILURE_WORDS):
        return NotificationVariant.FAILED
    if _matches(text, DELETE_WORDS):
        return NotificationVariant.DELETE
    if _matches(text, CREATE_WORDS):
        return NotificationVariant.CREATE
    if status in FALSE_LITERALS:
        return NotificationVariant.FAILED
    return NotificationVariant.DEFAULT


def _is_read(record: Mapping[str, Any]) -> bool:
    for field in READ_FIELDS:
        value = record.get(field)
        if value is None:
            continue
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "read")
        return bool(value)
    return False


def _notification_id(record: Mapping[str, Any]) -> str:
    return _first_text(record, ID_FIELDS) or f"notif-{uuid.uuid4().hex}"


def _time_value(record: Mapping[str, Any]) -> Any:
    for field in TIME_FIELDS:
        if record.get(field) is not None:
            return record[field]
    return None


def format_notification(raw: Any) -> NotificationView:
    """
    Build the display form of one raw notification.

    Example:
        >>> view = format_notification({"id": 7, "title": "Student Created"})
        >>> view.variant
        <NotificationVariant.CREATE: 'create'>
        >>> view.display_time
        'Just now'
    """
    record = _as_record(raw)
    resolved = parse_timestamp(_time_value(record))
    return NotificationView(
        id=_notification_id(record),
        title=_first_text(record, TITLE_FIELDS),
        message=_first_text(record, MESSAGE_FIELDS),
        display_time=format_display_time(resolved),
        timestamp_ms=int(resolved.timestamp() * 1000) if resolved else 0,
        read=_is_read(record),
        variant=detect_variant(record),
        source_record=record,
    )


def sort_newest_first(views: Iterable[NotificationView]) -> list[NotificationView]:
    """Stable sort by timestamp, newest first; unknown times sort last."""
    return sorted(views, key=lambda v: v.timestamp_ms, reverse=True)


async def format_notifications(
    raw: Sequence[Any], chunk_size: int = DEFAULT_CHUNK_SIZE
) -> list[NotificationView]:
    """
    Format a notification collection without blocking the event loop.

    Any exception from formatting propagates; callers fall back to
    format_notifications_basic() for the whole set.
    """
    views = await map_chunked(raw, format_notification, chunk_size)
    return sort_newest_first(views)


def _format_basic(raw: Any) -> NotificationView:
    record = _as_record(raw)
    try:
        return format_notification(record)
    except Exception as e:
        logger.debug(f"Basic formatting for notification record: {e}")
    identity = record.get("id") or record.get("_id")
    return NotificationView(
        id=str(identity) if identity is not None else f"notif-{uuid.uuid4().hex}",
        title=str(record.get("title") or ""),
        message=str(record.get("message") or ""),
        read=bool(record.get("read")),
        source_record=record,
    )


def format_notifications_basic(raw: Iterable[Any]) -> list[NotificationView]:
    """
    Synchronous best-effort formatting of a whole notification set.

    Never raises: a record that cannot be formatted normally is reduced to
    id, title, message and read flag.
    """
    try:
        items = list(raw)
    except TypeError:
        return []
    return sort_newest_first(_format_basic(item) for item in items)
