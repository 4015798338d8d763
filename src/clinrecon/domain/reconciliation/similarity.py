"""Similarity scoring between two clinical records of the same patient."""

from __future__ import annotations

from typing import TYPE_CHECKING

from clinrecon.domain.model import COMPARABLE_FIELDS

from .compare import FieldComparison, compare_fields

if TYPE_CHECKING:
    from collections.abc import Sequence

    from clinrecon.domain.model import ClinicalRecord


def similarity(
    first: ClinicalRecord,
    second: ClinicalRecord,
    *,
    fields: Sequence[str] = COMPARABLE_FIELDS,
) -> float:
    """Return the share of matching comparable fields as a percentage.

    Only fields with a value on at least one side are counted. Two records with
    no comparable data at all score ``0``; emptiness is not evidence of
    duplication.
    """

    if first.patient_id != second.patient_id:
        raise ValueError(
            "Similarity is only defined within one patient: "
            f"{first.patient_id!r} != {second.patient_id!r}"
        )

    total_fields = 0
    match_fields = 0
    for name in fields:
        left = getattr(first, name)
        right = getattr(second, name)
        if left is None and right is None:
            continue
        total_fields += 1
        if compare_fields(left, right) is FieldComparison.EQUAL:
            match_fields += 1

    if total_fields == 0:
        return 0.0
    return match_fields / total_fields * 100
