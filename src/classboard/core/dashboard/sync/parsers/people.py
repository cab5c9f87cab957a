"""
Tolerant classification of student records.

Student records come from several generations of the backend and use
different field names for the same thing. Each derived field is resolved
through an ordered fallback chain; whatever cannot be resolved becomes a
DataIssue.
"""

import hashlib
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple

from classboard.core.dashboard.models import (
    DataIssue,
    IssueProblem,
    NormalizedPerson,
    RawRecord,
)

IDENTITY_FIELDS = ("id", "uid", "_id", "studentId")
NAME_FIELDS = ("name", "fullName", "studentName")
CONTACT_FIELDS = ("email", "emailAddress", "contactEmail", "phone")
GROUP_FIELDS = ("class", "className", "classroom", "grade", "class_group", "classNameRaw")
FINGERPRINT_FIELDS = ("admissionNumber", "regNo", "email")


class PeopleSummary(NamedTuple):
    """Output of classify(): normalized persons, class tally and issues."""

    normalized: list[NormalizedPerson]
    tally: dict[str, int]
    issues: list[DataIssue]


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (Mapping, list)):
        return None
    text = str(value).strip()
    return text or None


def _first(record: Mapping[str, Any], fields: Iterable[str]) -> str | None:
    for field in fields:
        if (text := _text(record.get(field))) is not None:
            return text
    return None


def _display_name(record: Mapping[str, Any]) -> str | None:
    if name := _first(record, NAME_FIELDS):
        return name
    first = _text(record.get("firstName")) or ""
    last = _text(record.get("lastName")) or ""
    return f"{first} {last}".strip() or None


def _group(record: Mapping[str, Any]) -> str | None:
    for field in GROUP_FIELDS:
        value = record.get(field)
        if isinstance(value, Mapping):
            value = value.get("name")
        if (text := _text(value)) is not None:
            return text
    return None


def _identity(record: Mapping[str, Any], display_name: str | None) -> str:
    if identity := _first(record, IDENTITY_FIELDS):
        return identity

    fragments = [_text(record.get(f)) for f in FINGERPRINT_FIELDS] + [display_name]
    fingerprint = "|".join(f for f in fragments if f)
    if fingerprint:
        digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()
    else:
        digest = uuid.uuid4().hex
    return f"UNKNOWN-{digest[:8]}"


def normalize_person(record: Any) -> NormalizedPerson:
    """
    Derive identity, name, contact and group from one raw record.

    Non-mapping records are treated as empty records.
    """
    if not isinstance(record, Mapping):
        record = {}
    display_name = _display_name(record)
    return NormalizedPerson(
        identity=_identity(record, display_name),
        display_name=display_name,
        contact=_first(record, CONTACT_FIELDS),
        group=_group(record),
    )


def classify(persons: Iterable[Any]) -> PeopleSummary:
    """
    Normalize student records, tally them per class and list data issues.

    One issue is emitted per missing field, in the order name, contact,
    group. Students without a class are left out of the tally.

    Args:
        persons: Raw student records

    Returns:
        PeopleSummary(normalized, tally, issues)

    Example:
        >>> summary = classify([{"id": "s1", "name": "Ada", "class": "JSS1"}])
        >>> summary.tally
        {'JSS1': 1}
        >>> [i.problem for i in summary.issues]
        [<IssueProblem.MISSING_CONTACT: 'missing-contact'>]
    """
    normalized: list[NormalizedPerson] = []
    tally: dict[str, int] = {}
    issues: list[DataIssue] = []

    for record in persons:
        raw: RawRecord = dict(record) if isinstance(record, Mapping) else {}
        person = normalize_person(raw)
        normalized.append(person)

        missing = []
        if person.display_name is None:
            missing.append(IssueProblem.MISSING_NAME)
        if person.contact is None:
            missing.append(IssueProblem.MISSING_CONTACT)
        if person.group is None:
            missing.append(IssueProblem.NO_GROUP_ASSIGNED)
        else:
            tally[person.group] = tally.get(person.group, 0) + 1

        for problem in missing:
            issues.append(
                DataIssue(
                    identity=person.identity,
                    display_name=person.display_name,
                    problem=problem,
                    source_record=raw,
                )
            )

    return PeopleSummary(normalized=normalized, tally=tally, issues=issues)
