from __future__ import annotations

import pytest

from clinrecon.domain.reconciliation import similarity
from tests.helpers.records import make_clinical_record, make_empty_clinical_record


def test_identical_records_score_100() -> None:
    first = make_clinical_record()
    second = make_clinical_record()

    assert similarity(first, second) == pytest.approx(100.0)


def test_one_differing_field_out_of_nine() -> None:
    first = make_clinical_record(meld=18)
    second = make_clinical_record(meld=22)

    assert similarity(first, second) == pytest.approx(8 / 9 * 100)


def test_fields_null_on_both_sides_are_ignored() -> None:
    first = make_clinical_record(weight=None, height=None, meld=18)
    second = make_clinical_record(weight=None, height=None, meld=22)

    assert similarity(first, second) == pytest.approx(6 / 7 * 100)


def test_null_on_one_side_counts_as_mismatch() -> None:
    first = make_clinical_record(diagnosis=None)
    second = make_clinical_record()

    assert similarity(first, second) == pytest.approx(8 / 9 * 100)


def test_all_null_records_score_zero() -> None:
    assert similarity(make_empty_clinical_record(), make_empty_clinical_record()) == 0.0


def test_similarity_is_commutative() -> None:
    first = make_clinical_record(meld=18, asa=None, blood_type="A+")
    second = make_clinical_record(meld=19, asa="II")

    assert similarity(first, second) == similarity(second, first)


def test_metadata_fields_do_not_count() -> None:
    first = make_clinical_record(clinician_id="dr-a")
    second = make_clinical_record(clinician_id=None)

    assert similarity(first, second) == pytest.approx(100.0)


def test_records_of_different_patients_are_rejected() -> None:
    with pytest.raises(ValueError, match="patient"):
        similarity(make_clinical_record("P1"), make_clinical_record("P2"))
