"""
Student result parsing.

The backend marks publication with a "published" field of "yes" or "no";
older records carry a plain "status" instead.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from classboard.core.dashboard.models import RawRecord, ResultEntry


def _text(record: Mapping[str, Any], *fields: str, default: str = "") -> str:
    for field in fields:
        value = record.get(field)
        if value is not None and str(value).strip():
            return str(value).strip()
    return default


def _status(record: Mapping[str, Any]) -> str:
    published = record.get("published")
    if published == "yes" or published is True:
        return "published"
    if published == "no" or published is False:
        return "pending"
    return _text(record, "status", default="pending")


def parse_result(raw: Any, index: int = 0) -> ResultEntry:
    """Normalize one raw result record."""
    record: RawRecord = dict(raw) if isinstance(raw, Mapping) else {}
    subjects = record.get("subjects")
    return ResultEntry(
        id=_text(record, "id", "_id", default=f"result-{index}"),
        student_name=_text(record, "studentName", "name", "studentId", default="Unknown"),
        student_id=_text(record, "studentId", "id"),
        group=_text(record, "class", "className"),
        session=_text(record, "session"),
        term=_text(record, "term"),
        subjects=tuple(s for s in subjects if isinstance(s, Mapping)) if isinstance(subjects, list) else (),
        status=_status(record),
        last_updated=_text(record, "publishedAt", "updatedAt", "createdAt"),
        source_record=record,
    )


def parse_results(records: Iterable[Any]) -> list[ResultEntry]:
    """Normalize results, keeping backend order."""
    return [parse_result(r, i) for i, r in enumerate(records)]
