from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from clinrecon.config import ReconcileConfig
from clinrecon.domain.reconciliation import DurationBucket, classify_duration, verify_integrity
from tests.helpers.records import (
    make_case,
    make_child,
    make_children,
    make_clinical_record,
    make_outcome,
    make_patient,
    make_procedure,
)

if TYPE_CHECKING:
    from tests.helpers.store import InMemoryRecordStore


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [
        (-5, DurationBucket.NEGATIVE),
        (0, DurationBucket.TOO_SHORT),
        (30, DurationBucket.TOO_SHORT),
        (60, DurationBucket.TOO_SHORT),
        (61, DurationBucket.PLAUSIBLE),
        (360, DurationBucket.PLAUSIBLE),
        (1439, DurationBucket.PLAUSIBLE),
        (1440, DurationBucket.TOO_LONG),
        (3000, DurationBucket.TOO_LONG),
    ],
)
def test_classify_duration(minutes: int, expected: DurationBucket) -> None:
    assert classify_duration(minutes, config=ReconcileConfig()) is expected


def test_thirty_minute_case_is_not_plausible(store: InMemoryRecordStore) -> None:
    store.add(make_case(hours=0.5))

    report = asyncio.run(verify_integrity(store))

    assert report.durations.too_short == 1
    assert report.durations.plausible == 0
    assert report.pct_plausible == 0.0
    assert report.to_dict()["ratios"]["pctPlausibleDuration"] == 0.0


def test_empty_store_reports_zero_percentages(store: InMemoryRecordStore) -> None:
    report = asyncio.run(verify_integrity(store))

    assert report.cases == 0
    assert report.pct_suspicious == 0.0
    assert report.pct_high_quality == 0.0


def test_counts_ratios_and_coverage(store: InMemoryRecordStore) -> None:
    good = make_case("P1", hours=6)
    thin = make_case("P1", hours=6, is_retransplant=True)
    undated = make_case("P2", start_at=None)
    children = [
        *make_children(good, 7),
        *make_children(thin, 6),
        *make_children(thin, 1, suspicious=True),
    ]
    store.add(
        make_patient("P1"),
        make_patient("P2", identity_suspicious=True),
        good,
        thin,
        undated,
        make_procedure("P1"),
        make_clinical_record("P1", case_id=good.id),
        make_clinical_record("P2"),
        make_outcome(good),
        make_outcome(thin),
        *children,
    )

    report = asyncio.run(verify_integrity(store))

    assert report.patients == 2
    assert report.validated_identities == 1
    assert report.suspicious_identities == 1
    assert report.patients_with_multiple_cases == 1
    assert report.cases == 3
    assert report.cases_with_start == 2
    assert report.cases_without_start == 1
    assert report.retransplant_cases == 1
    assert report.procedures == 1
    assert report.clinical_records == 2
    assert report.outcome_records == 2
    assert report.child_records == 14
    assert report.suspicious_children == 1
    assert report.verified_children == 13
    assert report.durations.plausible == 2
    assert report.dated_cases_with_verified_children == 2
    assert report.cases_with_evaluation == 1
    assert report.cases_with_outcome == 2
    assert report.high_quality_cases == 1
    assert report.pct_high_quality == pytest.approx(50.0)

    data = report.to_dict()
    assert data["ratios"]["pctSuspicious"] == round(1 / 14 * 100, 2)
    assert data["coverage"]["pctCasesWithOutcome"] == round(2 / 3 * 100, 2)
    assert data["identities"] == {"validated": 1, "suspicious": 1, "patientsWithMultipleCases": 1}
    assert data["quality"] == {"highQualityCases": 1, "pctHighQuality": 50.0}


def test_high_quality_threshold_is_configurable(store: InMemoryRecordStore) -> None:
    case = make_case()
    store.add(case, *make_children(case, 3))

    default = asyncio.run(verify_integrity(store))
    relaxed_config = ReconcileConfig(high_quality_min_children=3)
    relaxed = asyncio.run(verify_integrity(store, config=relaxed_config))

    assert default.high_quality_cases == 0
    assert relaxed.high_quality_cases == 1


def test_implausible_case_is_never_high_quality(store: InMemoryRecordStore) -> None:
    case = make_case(hours=30)
    store.add(case, *make_children(case, 10))

    report = asyncio.run(verify_integrity(store))

    assert report.durations.too_long == 1
    assert report.high_quality_cases == 0


def test_verified_samples_are_counted_per_phase(store: InMemoryRecordStore) -> None:
    case = make_case()
    store.add(
        case,
        make_child(case, phase="induction"),
        make_child(case, phase="induction"),
        make_child(case, phase="anhepatic"),
        make_child(case, phase="anhepatic", suspicious=True),
        make_child(case),
    )

    report = asyncio.run(verify_integrity(store))

    assert report.verified_by_phase == {"induction": 2, "anhepatic": 1, "unassigned": 1}
    assert list(report.to_dict()["verifiedByPhase"]) == ["induction", "anhepatic", "unassigned"]
