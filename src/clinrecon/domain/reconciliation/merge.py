"""Duplicate merge pass: detect, resolve, back up, then delete on request."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.config.reconcile import ReconcileConfig
from clinrecon.domain.model import ClinicalRecord
from clinrecon.domain.ports import asc

from .apply import delete_in_batches
from .detect import DetectionResult, detect_duplicates
from .plan import (
    ApplyResult,
    BackupEntry,
    BackupKind,
    BackupSnapshot,
    RunSummary,
    record_state,
)
from .policy import MergePlan, plan_merge

if TYPE_CHECKING:
    from pathlib import Path

    from clinrecon.domain.ports import ArtifactWriter, RecordStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePassResult:
    records_read: int
    detection: DetectionResult
    plan: MergePlan
    backup_path: Path
    executed: bool
    applied: ApplyResult
    remaining_records: int | None = None
    patients_with_multiple_remaining: int | None = None

    @property
    def summary(self) -> RunSummary:
        return RunSummary(
            processed=self.records_read,
            fixed=self.applied.applied,
            errors=self.applied.errors,
        )


def build_merge_backup(plan: MergePlan, detection: DetectionResult) -> BackupSnapshot:
    to_keep: list[BackupEntry] = []
    to_delete: list[BackupEntry] = []
    for resolution in plan.resolutions:
        to_keep.append(
            BackupEntry(action=resolution.keep, pre_state=record_state(resolution.keeper))
        )
        to_delete.extend(
            BackupEntry(action=action, pre_state=record_state(record))
            for action, record in zip(resolution.deletions, resolution.removed, strict=True)
        )
    summary: dict[str, object] = {
        **plan.summary.as_dict(),
        "patientsScanned": detection.total_patients,
        "patientsWithMultiple": detection.patients_with_multiple,
        "patientsFlagged": len(detection.summaries),
    }
    return BackupSnapshot(
        kind=BackupKind.CLINICAL_DUPLICATES,
        summary=summary,
        to_delete=tuple(to_delete),
        to_keep=tuple(to_keep),
    )


async def run_detection(
    store: RecordStore, *, config: ReconcileConfig | None = None
) -> DetectionResult:
    """Read every clinical record and report near-duplicates; nothing is written."""

    records = await store.find_many(
        ClinicalRecord, order_by=(asc("patient_id"), asc("created_at"))
    )
    log.info("Read %d clinical records", len(records))
    return detect_duplicates(records, config=config)


async def count_patients_with_multiple(store: RecordStore) -> tuple[int, int]:
    """Return ``(total records, patients with more than one record)``."""

    remaining = await store.find_many(ClinicalRecord)
    per_patient = Counter(record.patient_id for record in remaining)
    return len(remaining), sum(1 for count in per_patient.values() if count > 1)


async def run_merge_pass(
    store: RecordStore,
    writer: ArtifactWriter,
    *,
    execute: bool = False,
    only_clustered: bool = True,
    config: ReconcileConfig | None = None,
) -> MergePassResult:
    """Run detection and the keep/delete policy, deleting only when ``execute`` is set.

    The backup is written on every run, dry or not. A failing backup aborts the
    pass before any deletion.
    """

    effective = config or ReconcileConfig()
    records = await store.find_many(
        ClinicalRecord, order_by=(asc("patient_id"), asc("created_at"))
    )
    log.info("Read %d clinical records", len(records))

    detection = detect_duplicates(records, config=effective)
    plan = plan_merge(
        records,
        detection=detection,
        only_clustered=only_clustered,
        cluster_threshold=effective.cluster_threshold,
        exact_threshold=effective.exact_threshold,
    )
    log.info(
        "Merge plan: keep=%d delete=%d (exact=%d, high_similarity=%d)",
        len(plan.to_keep),
        len(plan.to_delete),
        plan.summary.exact_duplicates,
        plan.summary.high_similarity,
    )

    backup_path = writer.write_backup(build_merge_backup(plan, detection))
    log.info("Backup written to %s", backup_path)

    if not execute or plan.is_empty:
        if not execute:
            log.info("Dry run: no records deleted")
        return MergePassResult(
            records_read=len(records),
            detection=detection,
            plan=plan,
            backup_path=backup_path,
            executed=False,
            applied=ApplyResult(requested=len(plan.to_delete)),
        )

    applied = await delete_in_batches(
        store, ClinicalRecord, plan.delete_ids, batch_size=effective.batch_size
    )
    remaining, with_multiple = await count_patients_with_multiple(store)
    log.info(
        "Post-merge: %d clinical records, %d patients still with several records",
        remaining,
        with_multiple,
    )
    if with_multiple:
        log.info("Remaining multiples can be legitimate repeated evaluations over time")
    return MergePassResult(
        records_read=len(records),
        detection=detection,
        plan=plan,
        backup_path=backup_path,
        executed=True,
        applied=applied,
        remaining_records=remaining,
        patients_with_multiple_remaining=with_multiple,
    )
