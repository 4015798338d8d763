"""Read-only integrity verification over the current store state."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.config.reconcile import ReconcileConfig
from clinrecon.domain.model import (
    CaseRecord,
    ChildRecord,
    ClinicalRecord,
    OutcomeRecord,
    Patient,
    ProcedureRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from clinrecon.domain.ports import RecordStore

log = getLogger(__name__)

UNASSIGNED_PHASE = "unassigned"


class DurationBucket(StrEnum):
    NEGATIVE = "negative"
    TOO_SHORT = "too_short"
    PLAUSIBLE = "plausible"
    TOO_LONG = "too_long"


def classify_duration(minutes: int, *, config: ReconcileConfig) -> DurationBucket:
    """Bucket a case duration; plausible is strictly between the configured bounds."""

    if minutes < 0:
        return DurationBucket.NEGATIVE
    if minutes <= config.min_plausible_minutes:
        return DurationBucket.TOO_SHORT
    if minutes >= config.max_plausible_minutes:
        return DurationBucket.TOO_LONG
    return DurationBucket.PLAUSIBLE


def percent(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return part / whole * 100


@dataclass(frozen=True, slots=True, kw_only=True)
class DurationBuckets:
    negative: int = 0
    too_short: int = 0
    plausible: int = 0
    too_long: int = 0

    @property
    def total(self) -> int:
        return self.negative + self.too_short + self.plausible + self.too_long

    @property
    def pct_plausible(self) -> float:
        return percent(self.plausible, self.total)


@dataclass(frozen=True, slots=True, kw_only=True)
class VerificationReport:
    """Counts, ratios and coverage of the registry at one point in time."""

    patients: int = 0
    validated_identities: int = 0
    suspicious_identities: int = 0
    patients_with_multiple_cases: int = 0

    cases: int = 0
    cases_with_start: int = 0
    retransplant_cases: int = 0
    procedures: int = 0
    clinical_records: int = 0
    outcome_records: int = 0

    child_records: int = 0
    suspicious_children: int = 0
    verified_by_phase: dict[str, int] = field(default_factory=dict)

    durations: DurationBuckets = field(default_factory=DurationBuckets)

    dated_cases_with_verified_children: int = 0
    cases_with_evaluation: int = 0
    cases_with_outcome: int = 0
    high_quality_cases: int = 0

    @property
    def cases_without_start(self) -> int:
        return self.cases - self.cases_with_start

    @property
    def verified_children(self) -> int:
        return self.child_records - self.suspicious_children

    @property
    def pct_suspicious(self) -> float:
        return percent(self.suspicious_children, self.child_records)

    @property
    def pct_verified(self) -> float:
        return percent(self.verified_children, self.child_records)

    @property
    def pct_plausible(self) -> float:
        return self.durations.pct_plausible

    @property
    def pct_dated_cases_with_verified_children(self) -> float:
        return percent(self.dated_cases_with_verified_children, self.cases_with_start)

    @property
    def pct_cases_with_evaluation(self) -> float:
        return percent(self.cases_with_evaluation, self.cases)

    @property
    def pct_cases_with_outcome(self) -> float:
        return percent(self.cases_with_outcome, self.cases)

    @property
    def pct_high_quality(self) -> float:
        return percent(self.high_quality_cases, self.cases_with_start)

    def to_dict(self) -> dict[str, object]:
        """Machine-readable form with camelCase keys and two-decimal percentages."""

        return {
            "counts": {
                "patients": self.patients,
                "cases": self.cases,
                "casesWithStart": self.cases_with_start,
                "casesWithoutStart": self.cases_without_start,
                "retransplantCases": self.retransplant_cases,
                "procedures": self.procedures,
                "clinicalRecords": self.clinical_records,
                "outcomeRecords": self.outcome_records,
                "childRecords": self.child_records,
                "verifiedChildRecords": self.verified_children,
                "suspiciousChildRecords": self.suspicious_children,
            },
            "verifiedByPhase": dict(self.verified_by_phase),
            "ratios": {
                "pctSuspicious": round(self.pct_suspicious, 2),
                "pctVerified": round(self.pct_verified, 2),
                "pctPlausibleDuration": round(self.pct_plausible, 2),
            },
            "durations": {
                "negative": self.durations.negative,
                "tooShort": self.durations.too_short,
                "plausible": self.durations.plausible,
                "tooLong": self.durations.too_long,
            },
            "coverage": {
                "datedCasesWithVerifiedChildren": self.dated_cases_with_verified_children,
                "pctDatedCasesWithVerifiedChildren": round(
                    self.pct_dated_cases_with_verified_children, 2
                ),
                "casesWithEvaluation": self.cases_with_evaluation,
                "pctCasesWithEvaluation": round(self.pct_cases_with_evaluation, 2),
                "casesWithOutcome": self.cases_with_outcome,
                "pctCasesWithOutcome": round(self.pct_cases_with_outcome, 2),
            },
            "identities": {
                "validated": self.validated_identities,
                "suspicious": self.suspicious_identities,
                "patientsWithMultipleCases": self.patients_with_multiple_cases,
            },
            "quality": {
                "highQualityCases": self.high_quality_cases,
                "pctHighQuality": round(self.pct_high_quality, 2),
            },
        }


def bucket_durations(cases: Iterable[CaseRecord], *, config: ReconcileConfig) -> DurationBuckets:
    tally = Counter(
        classify_duration(case.duration, config=config)
        for case in cases
        if case.duration is not None
    )
    return DurationBuckets(**{bucket.value: tally.get(bucket, 0) for bucket in DurationBucket})


def count_phases(children: Iterable[ChildRecord]) -> dict[str, int]:
    """Verified samples per phase, most frequent first."""

    tally = Counter(child.phase or UNASSIGNED_PHASE for child in children if not child.suspicious)
    return dict(sorted(tally.items(), key=lambda item: (-item[1], item[0])))


def summarize(
    *,
    patients: Iterable[Patient],
    cases: Iterable[CaseRecord],
    procedures: int,
    clinical_records: Iterable[ClinicalRecord],
    outcomes: Iterable[OutcomeRecord],
    children: Iterable[ChildRecord],
    config: ReconcileConfig,
) -> VerificationReport:
    """Aggregate a snapshot into a report without touching the store."""

    patients = list(patients)
    cases = list(cases)
    clinical_records = list(clinical_records)
    outcomes = list(outcomes)
    children = list(children)

    verified_per_case: Counter[UUID] = Counter(
        child.case_id for child in children if not child.suspicious
    )
    evaluated: set[UUID] = {
        record.case_id for record in clinical_records if record.case_id is not None
    }
    with_outcome: set[UUID] = {outcome.case_id for outcome in outcomes}
    dated = [case for case in cases if case.start_at is not None]
    dated_per_patient = Counter(case.patient_id for case in dated)

    high_quality = sum(
        1
        for case in dated
        if case.duration is not None
        and classify_duration(case.duration, config=config) is DurationBucket.PLAUSIBLE
        and verified_per_case[case.id] >= config.high_quality_min_children
    )
    suspicious_identities = sum(1 for patient in patients if patient.identity_suspicious)

    return VerificationReport(
        patients=len(patients),
        validated_identities=len(patients) - suspicious_identities,
        suspicious_identities=suspicious_identities,
        patients_with_multiple_cases=sum(1 for count in dated_per_patient.values() if count > 1),
        cases=len(cases),
        cases_with_start=len(dated),
        retransplant_cases=sum(1 for case in cases if case.is_retransplant),
        procedures=procedures,
        clinical_records=len(clinical_records),
        outcome_records=len(outcomes),
        child_records=len(children),
        suspicious_children=sum(1 for child in children if child.suspicious),
        verified_by_phase=count_phases(children),
        durations=bucket_durations(cases, config=config),
        dated_cases_with_verified_children=sum(1 for case in dated if verified_per_case[case.id]),
        cases_with_evaluation=sum(1 for case in cases if case.id in evaluated),
        cases_with_outcome=sum(1 for case in cases if case.id in with_outcome),
        high_quality_cases=high_quality,
    )


async def verify_integrity(
    store: RecordStore, *, config: ReconcileConfig | None = None
) -> VerificationReport:
    """Read the store and build a ``VerificationReport``; nothing is written."""

    effective = config or ReconcileConfig()
    report = summarize(
        patients=await store.find_many(Patient),
        cases=await store.find_many(CaseRecord),
        procedures=await store.count(ProcedureRecord),
        clinical_records=await store.find_many(ClinicalRecord),
        outcomes=await store.find_many(OutcomeRecord),
        children=await store.find_many(ChildRecord),
        config=effective,
    )
    log.info(
        "Verified %d cases and %d child records (%.2f%% suspicious)",
        report.cases,
        report.child_records,
        report.pct_suspicious,
    )
    return report

