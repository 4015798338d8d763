from __future__ import annotations

from datetime import timedelta
from itertools import permutations
from uuid import UUID

import pytest

from clinrecon.domain.model import ActionType
from clinrecon.domain.reconciliation import detect_duplicates, plan_merge, resolve_patient
from tests.helpers.records import BASE_TIME, make_clinical_record


def test_clinician_assigned_record_is_kept_over_newer_ones() -> None:
    assigned = make_clinical_record(created_at=BASE_TIME, clinician_id="dr-a")
    newer = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=2))

    resolution = resolve_patient([newer, assigned])

    assert resolution.keeper is assigned
    assert resolution.keep.type is ActionType.KEEP
    assert resolution.keep.rationale == "clinician assigned"
    assert [action.record_id for action in resolution.deletions] == [str(newer.id)]
    assert resolution.deletions[0].type is ActionType.DELETE
    assert resolution.deletions[0].similarity == pytest.approx(100.0)
    assert resolution.deletions[0].time_gap_seconds == pytest.approx(2.0)
    assert resolution.deletions[0].rationale.startswith("exact duplicate of ")


def test_later_update_wins_without_clinician() -> None:
    created_later = make_clinical_record(
        created_at=BASE_TIME + timedelta(seconds=3), updated_at=BASE_TIME + timedelta(minutes=1)
    )
    updated_later = make_clinical_record(
        created_at=BASE_TIME, updated_at=BASE_TIME + timedelta(hours=1)
    )

    resolution = resolve_patient([created_later, updated_later])

    assert resolution.keeper is updated_later
    assert resolution.keep.rationale == "most recent"


def test_later_creation_breaks_equal_updates() -> None:
    stamp = BASE_TIME + timedelta(hours=1)
    older = make_clinical_record(created_at=BASE_TIME, updated_at=stamp)
    newer = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1), updated_at=stamp)

    assert resolve_patient([older, newer]).keeper is newer


def test_record_id_is_the_final_tie_break() -> None:
    low = make_clinical_record(id=UUID("00000000-0000-0000-0000-000000000001"))
    high = make_clinical_record(id=UUID("00000000-0000-0000-0000-000000000002"))

    assert resolve_patient([low, high]).keeper is high
    assert resolve_patient([high, low]).keeper is high


def test_keeper_does_not_depend_on_input_order() -> None:
    records = [
        make_clinical_record(created_at=BASE_TIME),
        make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1)),
        make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1)),
        make_clinical_record(created_at=BASE_TIME + timedelta(seconds=2), meld=30),
    ]

    keepers = {resolve_patient(list(order)).keeper.id for order in permutations(records)}

    assert len(keepers) == 1


def test_lower_similarity_is_marked_superseded() -> None:
    keeper = make_clinical_record(created_at=BASE_TIME + timedelta(seconds=1))
    other = make_clinical_record(created_at=BASE_TIME, meld=30)

    resolution = resolve_patient([keeper, other])

    assert resolution.keeper is keeper
    assert resolution.deletions[0].rationale == f"superseded of {keeper.id}"


def test_resolve_patient_rejects_empty_and_mixed_input() -> None:
    with pytest.raises(ValueError, match="empty"):
        resolve_patient([])
    with pytest.raises(ValueError, match="several patients"):
        resolve_patient([make_clinical_record("P1"), make_clinical_record("P2")])


def test_plan_merge_only_resolves_flagged_patients_by_default() -> None:
    clustered = [
        make_clinical_record("P1", created_at=BASE_TIME),
        make_clinical_record("P1", created_at=BASE_TIME + timedelta(seconds=2)),
    ]
    repeated = [
        make_clinical_record("P2", created_at=BASE_TIME),
        make_clinical_record("P2", created_at=BASE_TIME + timedelta(days=90)),
    ]
    records = clustered + repeated
    detection = detect_duplicates(records)

    plan = plan_merge(records, detection=detection)

    assert [resolution.patient_id for resolution in plan.resolutions] == ["P1"]
    assert plan.delete_ids == [clustered[0].id]
    assert plan.summary.total_duplicates == 1
    assert plan.summary.exact_duplicates == 1
    assert plan.summary.high_similarity == 1
    assert plan.summary.kept_newest == 1
    assert plan.summary.kept_with_clinician == 0


def test_plan_merge_can_collapse_every_patient() -> None:
    records = [
        make_clinical_record("P1", created_at=BASE_TIME, clinician_id="dr-a"),
        make_clinical_record("P1", created_at=BASE_TIME + timedelta(days=90), meld=40),
        make_clinical_record("P2", created_at=BASE_TIME),
    ]

    plan = plan_merge(records, only_clustered=False)

    assert len(plan.resolutions) == 1
    assert plan.to_keep[0].record_id == str(records[0].id)
    assert plan.delete_ids == [records[1].id]
    assert plan.summary.high_similarity == 0
    assert plan.summary.kept_with_clinician == 1


def test_plan_merge_without_duplicates_is_empty() -> None:
    records = [make_clinical_record("P1"), make_clinical_record("P2")]

    plan = plan_merge(records, detection=detect_duplicates(records))

    assert plan.is_empty
    assert plan.resolutions == ()


def test_plan_merge_requires_detection_for_clustered_mode() -> None:
    with pytest.raises(ValueError, match="detection"):
        plan_merge([make_clinical_record()])
