"""Tests for the row diff."""

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from changetrail.audit.diff import RowDiff, compute_diff, values_equal

ROWS = [
    {},
    {"id": 1, "name": "A"},
    {"id": 1, "name": "A", "email": None},
    {"id": 1, "tags": ["a", "b"], "meta": {"k": 1}},
    {"id": 2**70, "at": datetime(2024, 1, 1, tzinfo=UTC)},
]


class TestComputeDiff:
    def test_single_field_change(self) -> None:
        old = {"id": 1, "email": "a@x.com", "name": "A"}
        new = {"id": 1, "email": "a@x.com", "name": "B"}
        assert compute_diff(old, new).changed_fields == ["name"]

    @pytest.mark.parametrize("row", ROWS)
    def test_identical_rows_give_empty_list(self, row) -> None:
        result = compute_diff(row, dict(row))
        assert result.changed_fields == []
        assert result.is_empty

    def test_order_follows_new_row_then_old_only_keys(self) -> None:
        old = {"a": 1, "gone": True, "b": 2, "also_gone": 0}
        new = {"c": 3, "b": 20, "a": 10}
        assert compute_diff(old, new).changed_fields == ["c", "b", "a", "gone", "also_gone"]

    def test_absent_versus_none_is_a_change(self) -> None:
        assert compute_diff({"id": 1}, {"id": 1, "note": None}).changed_fields == ["note"]
        assert compute_diff({"id": 1, "note": None}, {"id": 1}).changed_fields == ["note"]

    def test_equal_values_from_different_round_trips(self) -> None:
        old = {"at": datetime(2024, 1, 1, 12, tzinfo=UTC), "amount": Decimal("1.50")}
        new = {
            "at": datetime(2024, 1, 1, 14, tzinfo=timezone(timedelta(hours=2))),
            "amount": Decimal("1.50"),
        }
        assert compute_diff(old, new).changed_fields == []

    def test_nested_values_compared_by_content(self) -> None:
        old = {"meta": {"a": [1, 2]}}
        assert compute_diff(old, {"meta": {"a": [1, 2]}}).changed_fields == []
        assert compute_diff(old, {"meta": {"a": [2, 1]}}).changed_fields == ["meta"]

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ({"x": 1, "y": 2}, {"x": 1, "y": 3, "z": 4}),
            ({"x": 1, "only_a": 1}, {"only_b": 2}),
            ({}, {"x": 1}),
        ],
    )
    def test_symmetric_as_a_set(self, a, b) -> None:
        assert set(compute_diff(a, b).changed_fields) == set(compute_diff(b, a).changed_fields)

    def test_changed_fields_subset_of_union(self) -> None:
        old = {"a": 1, "b": 2}
        new = {"b": 3, "c": 4}
        changed = compute_diff(old, new).changed_fields
        assert set(changed) <= set(old) | set(new)
        assert "a" in changed and "b" in changed and "c" in changed


class TestValuesEqual:
    def test_compares_by_content(self) -> None:
        assert values_equal(1, 1)
        assert not values_equal(1, "1")

    @pytest.mark.parametrize(
        ("old", "new"),
        [
            (1, 1.0),
            (Decimal("1.50"), 1.5),
            (Decimal("2"), 2),
            (float("nan"), float("nan")),
            ({"a": 1, "b": [2]}, {"b": [2.0], "a": 1}),
        ],
    )
    def test_same_number_from_different_sources(self, old, new) -> None:
        assert values_equal(old, new)

    @pytest.mark.parametrize(
        ("old", "new"),
        [
            (2**70, str(2**70)),
            (1, True),
            (0.1, 0.2),
            (datetime(2024, 1, 1, tzinfo=UTC), "2024-01-01T00:00:00+00:00"),
        ],
    )
    def test_type_stays_part_of_comparison(self, old, new) -> None:
        assert not values_equal(old, new)

    def test_diff_ignores_numeric_representation(self) -> None:
        assert compute_diff({"qty": 1}, {"qty": 1.0}).changed_fields == []
        assert compute_diff({"n": 2**70}, {"n": str(2**70)}).changed_fields == ["n"]

    def test_row_diff_defaults_empty(self) -> None:
        assert RowDiff().changed_fields == []
