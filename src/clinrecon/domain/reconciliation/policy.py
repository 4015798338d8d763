"""Keep/delete policy for patients with duplicated clinical records.

Responsibilities of this stage:
- order a patient's records by a deterministic total order
- keep the first record, mark every other record for deletion
- attach similarity-to-keeper and creation gap to each decision for audit

The order does not depend on input iteration order; the record id is the last
tie-break so two records with equal timestamps still resolve the same way on
every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from clinrecon.domain.model import ActionType

from .detect import group_by_patient
from .plan import ReconciliationAction
from .similarity import similarity

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Sequence
    from uuid import UUID

    from clinrecon.domain.model import ClinicalRecord

    from .detect import DetectionResult

_EPOCH = datetime.min.replace(tzinfo=UTC)

KEPT_WITH_CLINICIAN = "clinician assigned"
KEPT_NEWEST = "most recent"


def keeper_sort_key(record: ClinicalRecord) -> tuple[bool, datetime, datetime, str]:
    """Sort key, highest first: clinician assigned, later update, later creation, id."""

    return (
        record.has_clinician,
        record.updated_at or _EPOCH,
        record.created_at or _EPOCH,
        str(record.id),
    )


def rank_records(records: Iterable[ClinicalRecord]) -> list[ClinicalRecord]:
    return sorted(records, key=keeper_sort_key, reverse=True)


@dataclass(frozen=True, slots=True, kw_only=True)
class PatientResolution:
    patient_id: str
    keeper: ClinicalRecord
    keep: ReconciliationAction
    deletions: tuple[ReconciliationAction, ...] = ()
    removed: tuple[ClinicalRecord, ...] = ()


def resolve_patient(
    records: Sequence[ClinicalRecord],
    *,
    exact_threshold: float = 100.0,
) -> PatientResolution:
    """Pick the keeper among one patient's records and mark the rest for deletion."""

    if not records:
        raise ValueError("Cannot resolve an empty record set")
    patient_ids = {record.patient_id for record in records}
    if len(patient_ids) != 1:
        raise ValueError(f"Records span several patients: {sorted(patient_ids)}")

    ranked = rank_records(records)
    keeper, *others = ranked
    keep = ReconciliationAction(
        type=ActionType.KEEP,
        record_id=str(keeper.id),
        patient_id=keeper.patient_id,
        rationale=KEPT_WITH_CLINICIAN if keeper.has_clinician else KEPT_NEWEST,
    )
    deletions: list[ReconciliationAction] = []
    for other in others:
        score = similarity(keeper, other)
        kind = "exact duplicate" if score >= exact_threshold else "superseded"
        deletions.append(
            ReconciliationAction(
                type=ActionType.DELETE,
                record_id=str(other.id),
                patient_id=other.patient_id,
                rationale=f"{kind} of {keeper.id}",
                similarity=score,
                time_gap_seconds=abs((other.created_at - keeper.created_at).total_seconds()),
            )
        )
    return PatientResolution(
        patient_id=keeper.patient_id,
        keeper=keeper,
        keep=keep,
        deletions=tuple(deletions),
        removed=tuple(others),
    )


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeSummary:
    total_duplicates: int = 0
    exact_duplicates: int = 0
    high_similarity: int = 0
    kept_with_clinician: int = 0
    kept_newest: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "totalDuplicates": self.total_duplicates,
            "exactDuplicates": self.exact_duplicates,
            "highSimilarity": self.high_similarity,
            "keptWithClinician": self.kept_with_clinician,
            "keptNewest": self.kept_newest,
        }


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePlan:
    resolutions: tuple[PatientResolution, ...] = ()
    summary: MergeSummary = field(default_factory=MergeSummary)

    @property
    def to_keep(self) -> tuple[ReconciliationAction, ...]:
        return tuple(resolution.keep for resolution in self.resolutions)

    @property
    def to_delete(self) -> tuple[ReconciliationAction, ...]:
        return tuple(action for resolution in self.resolutions for action in resolution.deletions)

    @property
    def delete_ids(self) -> list[UUID]:
        return [record.id for resolution in self.resolutions for record in resolution.removed]

    @property
    def is_empty(self) -> bool:
        return not self.to_delete


def plan_merge(
    records: Iterable[ClinicalRecord],
    *,
    detection: DetectionResult | None = None,
    only_clustered: bool = True,
    cluster_threshold: float = 90.0,
    exact_threshold: float = 100.0,
) -> MergePlan:
    """Resolve every eligible patient into keep/delete decisions.

    With ``only_clustered`` (the default) only patients the detector flagged are
    resolved, so legitimately repeated evaluations of other patients survive.
    Without it every patient with more than one record is collapsed.
    """

    if only_clustered and detection is None:
        raise ValueError("only_clustered requires a detection result")
    eligible: Collection[str] | None = (
        detection.flagged_patient_ids if detection is not None and only_clustered else None
    )

    resolutions: list[PatientResolution] = []
    total = exact = high = with_clinician = newest = 0
    for patient_id, group in sorted(group_by_patient(records).items()):
        if len(group) < 2:  # noqa: PLR2004
            continue
        if eligible is not None and patient_id not in eligible:
            continue
        resolution = resolve_patient(group, exact_threshold=exact_threshold)
        resolutions.append(resolution)
        for action in resolution.deletions:
            total += 1
            score = action.similarity or 0.0
            if score >= exact_threshold:
                exact += 1
            if score >= cluster_threshold:
                high += 1
        if resolution.keeper.has_clinician:
            with_clinician += 1
        else:
            newest += 1

    return MergePlan(
        resolutions=tuple(resolutions),
        summary=MergeSummary(
            total_duplicates=total,
            exact_duplicates=exact,
            high_similarity=high,
            kept_with_clinician=with_clinician,
            kept_newest=newest,
        ),
    )
