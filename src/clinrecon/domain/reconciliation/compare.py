"""Field comparator used by the similarity scorer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import StrEnum


class FieldComparison(StrEnum):
    EQUAL = "equal"
    UNEQUAL = "unequal"


def compare_fields(left: object, right: object) -> FieldComparison:
    """Compare one field pair; two nulls are equal, composites compare structurally."""

    if left is None and right is None:
        return FieldComparison.EQUAL
    if left is None or right is None:
        return FieldComparison.UNEQUAL
    return FieldComparison.EQUAL if _deep_equal(left, right) else FieldComparison.UNEQUAL


def _deep_equal(left: object, right: object) -> bool:
    if isinstance(left, datetime) and isinstance(right, datetime):
        # Naive and aware values never compare equal.
        if (left.tzinfo is None) != (right.tzinfo is None):
            return False
        return left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        left_map: Mapping[object, object] = left  # pyright: ignore[reportUnknownVariableType]
        right_map: Mapping[object, object] = right  # pyright: ignore[reportUnknownVariableType]
        if left_map.keys() != right_map.keys():
            return False
        return all(_deep_equal(left_map[key], right_map[key]) for key in left_map)
    if _is_sequence(left) and _is_sequence(right):
        left_seq: Sequence[object] = left  # type: ignore[assignment]
        right_seq: Sequence[object] = right  # type: ignore[assignment]
        if len(left_seq) != len(right_seq):
            return False
        return all(_deep_equal(a, b) for a, b in zip(left_seq, right_seq, strict=True))
    if type(left) is not type(right) and not _both_numbers(left, right):
        return False
    return left == right


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


def _both_numbers(left: object, right: object) -> bool:
    # bool is an int subclass; True must not equal 1 here.
    numeric = (int, float)
    return (
        isinstance(left, numeric)
        and isinstance(right, numeric)
        and not isinstance(left, bool)
        and not isinstance(right, bool)
    )
