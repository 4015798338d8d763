"""Duplicate detection over the clinical records of each patient.

Responsibilities of this stage:
- score every unordered pair of a patient's records
- classify near-duplicate pairs by how far apart they were created
- emit one summary row per patient plus the full per-pair listing

Detection is pairwise within a patient, not transitive. Chains of similar
records are collapsed later by the merge policy, which looks at the whole
record set of a patient.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from itertools import combinations
from typing import TYPE_CHECKING

from clinrecon.config.reconcile import ReconcileConfig
from clinrecon.domain.model import TimeGapClass

from .similarity import similarity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from clinrecon.domain.model import ClinicalRecord

IMPORT_ERROR_GAP = timedelta(seconds=5)
SAME_MINUTE_GAP = timedelta(seconds=60)
SAME_DAY_GAP = timedelta(hours=24)


def classify_gap(gap: timedelta) -> TimeGapClass:
    """Bucket an absolute creation-time distance."""

    gap = abs(gap)
    if gap < IMPORT_ERROR_GAP:
        return TimeGapClass.IMPORT_ERROR
    if gap < SAME_MINUTE_GAP:
        return TimeGapClass.SAME_MINUTE
    if gap < SAME_DAY_GAP:
        return TimeGapClass.SAME_DAY
    return TimeGapClass.NONE


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicatePair:
    patient_id: str
    first: ClinicalRecord
    second: ClinicalRecord
    similarity: float
    gap: timedelta
    gap_class: TimeGapClass
    exact_duplicate: bool

    @property
    def clustered(self) -> bool:
        return self.gap_class is not TimeGapClass.NONE


@dataclass(frozen=True, slots=True, kw_only=True)
class PatientDuplicateSummary:
    """The single row a patient contributes to the detection tally."""

    patient_id: str
    record_count: int
    pair: DuplicatePair
    has_exact_duplicate: bool

    @property
    def gap_class(self) -> TimeGapClass:
        return self.pair.gap_class


@dataclass(frozen=True, slots=True, kw_only=True)
class DetectionResult:
    total_patients: int = 0
    patients_with_multiple: int = 0
    summaries: tuple[PatientDuplicateSummary, ...] = ()
    pairs: tuple[DuplicatePair, ...] = ()
    tally: Mapping[TimeGapClass, int] = field(default_factory=dict["TimeGapClass", int])
    exact_duplicate_patients: int = 0

    @property
    def flagged_patient_ids(self) -> frozenset[str]:
        return frozenset(summary.patient_id for summary in self.summaries)

    def summaries_by_severity(self) -> list[PatientDuplicateSummary]:
        return sorted(self.summaries, key=lambda summary: summary.gap_class.severity)

    def recommendation(self, *, mass_import_threshold: int) -> str | None:
        import_errors = self.tally.get(TimeGapClass.IMPORT_ERROR, 0)
        if import_errors > mass_import_threshold:
            return (
                f"Mass import problem: {import_errors} patients have near-identical "
                "evaluations created less than 5 seconds apart. Run the merge pass "
                "and review the import job for repeated execution."
            )
        if import_errors > 0:
            return (
                f"{import_errors} patients show import-error duplicates; "
                "manual review and a selective merge are recommended."
            )
        return None


def group_by_patient(records: Iterable[ClinicalRecord]) -> dict[str, list[ClinicalRecord]]:
    """Group records per patient, each group ordered by ``created_at`` then id."""

    grouped: defaultdict[str, list[ClinicalRecord]] = defaultdict(list)
    for record in records:
        grouped[record.patient_id].append(record)
    for group in grouped.values():
        group.sort(key=lambda record: (record.created_at, str(record.id)))
    return dict(grouped)


def scan_patient(
    records: list[ClinicalRecord],
    *,
    config: ReconcileConfig,
) -> tuple[PatientDuplicateSummary | None, list[DuplicatePair]]:
    """Score every pair of one patient's records (sorted by ``created_at``)."""

    pairs: list[DuplicatePair] = []
    for first, second in combinations(records, 2):
        score = similarity(first, second)
        if score < config.cluster_threshold:
            continue
        gap = abs(second.created_at - first.created_at)
        pairs.append(
            DuplicatePair(
                patient_id=first.patient_id,
                first=first,
                second=second,
                similarity=score,
                gap=gap,
                gap_class=classify_gap(gap),
                exact_duplicate=score >= config.exact_threshold,
            )
        )

    first_clustered = next((pair for pair in pairs if pair.clustered), None)
    if first_clustered is None:
        return None, pairs
    summary = PatientDuplicateSummary(
        patient_id=first_clustered.patient_id,
        record_count=len(records),
        pair=first_clustered,
        has_exact_duplicate=any(pair.exact_duplicate for pair in pairs),
    )
    return summary, pairs


def detect_duplicates(
    records: Iterable[ClinicalRecord],
    *,
    config: ReconcileConfig | None = None,
) -> DetectionResult:
    """Detect near-duplicate clinical records across all patients."""

    effective = config or ReconcileConfig()
    grouped = group_by_patient(records)

    summaries: list[PatientDuplicateSummary] = []
    all_pairs: list[DuplicatePair] = []
    exact_patients = 0
    repeated = 0
    multiple = 0
    for patient_id in sorted(grouped):
        group = grouped[patient_id]
        if len(group) < 2:  # noqa: PLR2004
            continue
        multiple += 1
        summary, pairs = scan_patient(group, config=effective)
        all_pairs.extend(pairs)
        if any(pair.exact_duplicate for pair in pairs):
            exact_patients += 1
        if summary is not None:
            summaries.append(summary)
        elif pairs:
            repeated += 1

    tally = Counter(summary.gap_class for summary in summaries)
    # patients whose similar records are all at least a day apart
    tally[TimeGapClass.NONE] = repeated
    return DetectionResult(
        total_patients=len(grouped),
        patients_with_multiple=multiple,
        summaries=tuple(summaries),
        pairs=tuple(all_pairs),
        tally={gap_class: tally.get(gap_class, 0) for gap_class in TimeGapClass},
        exact_duplicate_patients=exact_patients,
    )
