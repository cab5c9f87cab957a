"""
Envelope shape normalization.

Backend collections arrive in several shapes: a bare list, a mapping with
the list under a domain key ("students", "teachers"), under a generic key
("data", "items"), or nested a few levels deep. normalize() extracts the
list without ever raising; an empty list means "no data".
"""

from collections.abc import Iterable, Mapping
from typing import Any

from classboard.core.dashboard.models import RawRecord

DOMAIN_KEYS: tuple[str, ...] = (
    "events",
    "teachers",
    "staff",
    "students",
    "notifications",
    "results",
)
GENERIC_KEYS: tuple[str, ...] = ("items", "data")
DEFAULT_KEYS: tuple[str, ...] = DOMAIN_KEYS + GENERIC_KEYS

MAX_SEARCH_DEPTH = 4


def _key_order(keys: Iterable[str] | None) -> list[str]:
    # Caller keys first, then the defaults not already listed
    order: list[str] = []
    for key in list(keys or ()) + list(DEFAULT_KEYS):
        if key not in order:
            order.append(key)
    return order


def _find_first_list(value: Any, depth: int) -> list[Any] | None:
    if depth > MAX_SEARCH_DEPTH or not isinstance(value, Mapping):
        return None

    # A level's own list values win over anything nested below it
    for child in value.values():
        if isinstance(child, list):
            return child

    for child in value.values():
        if isinstance(child, Mapping):
            found = _find_first_list(child, depth + 1)
            if found is not None:
                return found

    return None


def normalize(envelope: Any, keys: Iterable[str] | None = None) -> list[RawRecord]:
    """
    Extract the record list from an arbitrarily shaped response body.

    Resolution order:
        1. envelope is a list: returned as-is
        2. envelope is a mapping with a known key holding a list; keys are
           checked caller keys first, then domain keys, then "items", "data"
        3. depth-first search (depth <= 4) for the first list-valued field
        4. empty list

    Args:
        envelope: Parsed JSON body (any shape, including None)
        keys: Extra collection keys to check before the defaults

    Returns:
        The extracted list (possibly empty)

    Example:
        >>> normalize({"success": True, "data": {"students": [{"id": 1}]}})
        [{'id': 1}]
    """
    if isinstance(envelope, list):
        return envelope

    if not isinstance(envelope, Mapping):
        return []

    for key in _key_order(keys):
        value = envelope.get(key)
        if isinstance(value, list):
            return value

    found = _find_first_list(envelope, 1)
    return found if found is not None else []
