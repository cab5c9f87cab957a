"""
Tests for envelope shape normalization.

normalize() must find the record list in any of the shapes the backend
produces and never raise.
"""

import pytest

from classboard.core.dashboard.sync.shapes import normalize


class TestDirectShapes:
    """Lists and known collection keys."""

    def test_bare_list_returned_as_is(self) -> None:
        """A list envelope is the collection itself."""
        records = [{"id": 1}, {"id": 2}]
        assert normalize(records) is records

    def test_domain_key(self) -> None:
        """A known domain key holding a list is used."""
        assert normalize({"students": [{"id": "s1"}]}) == [{"id": "s1"}]

    def test_generic_data_key(self) -> None:
        """The generic data key is used when no domain key is present."""
        assert normalize({"success": True, "data": [{"id": 1}]}) == [{"id": 1}]

    def test_domain_key_wins_over_data(self) -> None:
        """Domain keys are checked before the generic data key."""
        envelope = {"data": [{"id": "wrong"}], "teachers": [{"id": "t1"}]}
        assert normalize(envelope) == [{"id": "t1"}]

    def test_caller_keys_checked_first(self) -> None:
        """Keys passed by the caller take priority over the defaults."""
        envelope = {"students": [{"id": "s1"}], "staff": [{"id": "t1"}]}
        assert normalize(envelope, ["staff"]) == [{"id": "t1"}]

    def test_non_list_value_under_known_key_is_skipped(self) -> None:
        """A known key whose value is not a list does not count."""
        envelope = {"students": {"count": 3}, "data": [{"id": "s1"}]}
        assert normalize(envelope) == [{"id": "s1"}]


class TestNestedShapes:
    """Bounded depth-first search."""

    def test_nested_under_data(self) -> None:
        """A list nested one level down is found."""
        assert normalize({"data": {"students": [{"id": 1}]}}) == [{"id": 1}]

    def test_first_list_by_insertion_order(self) -> None:
        """The first list-valued field wins, in insertion order."""
        envelope = {"meta": {"page": 1}, "payload": {"rows": [1], "more": [2]}}
        assert normalize(envelope) == [1]

    def test_direct_lists_before_descending(self) -> None:
        """A level's own list values are checked before nested mappings."""
        envelope = {"wrapper": {"inner": {"deep": [1]}, "rows": [2]}}
        assert normalize(envelope) == [2]

    def test_depth_four_is_found(self) -> None:
        """A list at depth four is reachable."""
        envelope = {"a": {"b": {"c": {"d": [1, 2]}}}}
        assert normalize(envelope) == [1, 2]

    def test_beyond_depth_four_is_not_found(self) -> None:
        """A list nested deeper than four levels is ignored."""
        envelope = {"a": {"b": {"c": {"d": {"e": [1]}}}}}
        assert normalize(envelope) == []


class TestDegenerateShapes:
    """Inputs with no usable list."""

    @pytest.mark.parametrize("envelope", [None, "", "error", 42, 3.5, True, {}, {"ok": True}])
    def test_returns_empty_list(self, envelope) -> None:
        """Scalars, None and list-free mappings yield an empty list."""
        assert normalize(envelope) == []

    def test_empty_list_is_no_data(self) -> None:
        """An empty collection is a valid, empty result."""
        assert normalize({"students": []}) == []
