from __future__ import annotations

from datetime import timedelta

import pytest

from clinrecon.config import ReconcileConfig
from clinrecon.domain.model import TimeGapClass
from clinrecon.domain.reconciliation import classify_gap, detect_duplicates
from tests.helpers.records import BASE_TIME, make_clinical_record


@pytest.mark.parametrize(
    ("gap", "expected"),
    [
        (timedelta(0), TimeGapClass.IMPORT_ERROR),
        (timedelta(seconds=4, milliseconds=999), TimeGapClass.IMPORT_ERROR),
        (timedelta(seconds=5), TimeGapClass.SAME_MINUTE),
        (timedelta(seconds=59), TimeGapClass.SAME_MINUTE),
        (timedelta(seconds=60), TimeGapClass.SAME_DAY),
        (timedelta(hours=23, minutes=59), TimeGapClass.SAME_DAY),
        (timedelta(hours=24), TimeGapClass.NONE),
        (timedelta(days=30), TimeGapClass.NONE),
        (timedelta(seconds=-2), TimeGapClass.IMPORT_ERROR),
    ],
)
def test_classify_gap(gap: timedelta, expected: TimeGapClass) -> None:
    assert classify_gap(gap) is expected


def test_identical_records_two_seconds_apart_are_an_import_error() -> None:
    first = make_clinical_record(created_at=BASE_TIME)
    second = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=2))

    result = detect_duplicates([second, first])

    assert result.total_patients == 1
    assert result.patients_with_multiple == 1
    assert len(result.pairs) == 1
    pair = result.pairs[0]
    assert pair.similarity == pytest.approx(100.0)
    assert pair.gap_class is TimeGapClass.IMPORT_ERROR
    assert pair.exact_duplicate
    assert pair.first is first
    assert result.tally[TimeGapClass.IMPORT_ERROR] == 1
    assert result.exact_duplicate_patients == 1
    assert result.flagged_patient_ids == frozenset({"P1"})


def test_similar_records_days_apart_are_not_flagged() -> None:
    first = make_clinical_record(created_at=BASE_TIME)
    second = make_clinical_record(created_at=BASE_TIME + timedelta(days=3))

    result = detect_duplicates([first, second])

    assert len(result.pairs) == 1
    assert result.pairs[0].gap_class is TimeGapClass.NONE
    assert not result.pairs[0].clustered
    assert result.summaries == ()
    assert result.flagged_patient_ids == frozenset()
    assert result.tally[TimeGapClass.NONE] == 1


def test_records_below_cluster_threshold_are_not_paired() -> None:
    first = make_clinical_record(created_at=BASE_TIME, meld=18)
    second = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1), meld=30)

    result = detect_duplicates([first, second])

    assert result.pairs == ()
    assert result.summaries == ()
    assert result.patients_with_multiple == 1


def test_cluster_threshold_is_configurable() -> None:
    first = make_clinical_record(created_at=BASE_TIME, meld=18)
    second = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1), meld=30)

    result = detect_duplicates(
        [first, second], config=ReconcileConfig(cluster_threshold=80.0, exact_threshold=95.0)
    )

    assert len(result.pairs) == 1
    assert not result.pairs[0].exact_duplicate


def test_patient_summary_uses_first_clustered_pair_in_creation_order() -> None:
    early = make_clinical_record(created_at=BASE_TIME)
    middle = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=30))
    late = make_clinical_record(created_at=BASE_TIME + timedelta(hours=2))

    result = detect_duplicates([late, middle, early])

    assert len(result.pairs) == 3
    assert len(result.summaries) == 1
    summary = result.summaries[0]
    assert summary.record_count == 3
    assert summary.pair.first is early
    assert summary.pair.second is middle
    assert summary.gap_class is TimeGapClass.SAME_MINUTE
    assert result.tally[TimeGapClass.SAME_MINUTE] == 1
    assert result.tally[TimeGapClass.SAME_DAY] == 0


def test_single_record_patients_are_counted_but_not_scanned() -> None:
    result = detect_duplicates([make_clinical_record("P1"), make_clinical_record("P2")])

    assert result.total_patients == 2
    assert result.patients_with_multiple == 0
    assert result.pairs == ()


def test_summaries_by_severity_orders_import_errors_first() -> None:
    records = [
        make_clinical_record("P1", created_at=BASE_TIME),
        make_clinical_record("P1", created_at=BASE_TIME + timedelta(hours=1)),
        make_clinical_record("P2", created_at=BASE_TIME),
        make_clinical_record("P2", created_at=BASE_TIME + timedelta(seconds=1)),
    ]

    result = detect_duplicates(records)

    ordered = result.summaries_by_severity()
    assert [summary.patient_id for summary in ordered] == ["P2", "P1"]


def test_recommendation_depends_on_import_error_count() -> None:
    records = []
    for index in range(3):
        patient_id = f"P{index}"
        records.append(make_clinical_record(patient_id, created_at=BASE_TIME))
        records.append(
            make_clinical_record(patient_id, created_at=BASE_TIME + timedelta(seconds=1))
        )

    result = detect_duplicates(records)

    mass = result.recommendation(mass_import_threshold=2)
    selective = result.recommendation(mass_import_threshold=50)
    assert mass is not None
    assert mass.startswith("Mass import problem: 3 patients")
    assert selective is not None
    assert "manual review" in selective


def test_no_recommendation_without_import_errors() -> None:
    result = detect_duplicates([make_clinical_record()])

    assert result.recommendation(mass_import_threshold=50) is None
