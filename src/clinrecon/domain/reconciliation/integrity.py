"""Integrity fix pass over case windows and intra-procedure samples.

Responsibilities of this stage:
- swap ``start_at``/``end_at`` on cases and procedures stored inverted
- recompute the cached duration of every swapped window
- flag samples timestamped outside their case window, unflag those back inside

Sample timestamps are never moved; a sample outside its window is only marked
``suspicious`` so the verifier can exclude it.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.domain.model import (
    ActionType,
    CaseRecord,
    ChildRecord,
    ProcedureRecord,
    TimedEntity,
    duration_minutes,
)
from clinrecon.domain.ports import asc
from clinrecon.domain.time_windows import OPEN_CASE_WINDOW, ensure_utc

from .apply import update_each
from .plan import (
    ApplyResult,
    BackupEntry,
    BackupKind,
    BackupSnapshot,
    FixEntry,
    FixReport,
    ReconciliationAction,
    RunSummary,
    record_state,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from pathlib import Path

    from clinrecon.domain.model import Record
    from clinrecon.domain.ports import ArtifactWriter, Patch, RecordStore

log = getLogger(__name__)

INVERTED_WINDOW = "end before start; bounds swapped"
OUTSIDE_WINDOW = "timestamp outside case window"
CASE_UNDATED = "owning case has no start; timestamp unverifiable"
CASE_MISSING = "owning case not found"
BACK_IN_WINDOW = "timestamp inside case window"


@dataclass(frozen=True, slots=True, kw_only=True)
class IntegritySnapshot:
    cases: tuple[CaseRecord, ...] = ()
    procedures: tuple[ProcedureRecord, ...] = ()
    children: tuple[ChildRecord, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class PlannedFix:
    """A patch for one record plus the audit entry describing it."""

    kind: type[Record]
    record: Record
    action: ReconciliationAction
    entry: FixEntry

    @property
    def patch(self) -> Patch:
        return self.entry.fixed


@dataclass(frozen=True, slots=True, kw_only=True)
class IntegrityPlan:
    cases: tuple[PlannedFix, ...] = ()
    procedures: tuple[PlannedFix, ...] = ()
    children: tuple[PlannedFix, ...] = ()

    @property
    def all(self) -> tuple[PlannedFix, ...]:
        return self.cases + self.procedures + self.children

    @property
    def is_empty(self) -> bool:
        return not self.all


def _swap_window(
    kind: type[Record], record: TimedEntity, start: datetime, end: datetime
) -> PlannedFix:
    fixed = {"start_at": start, "end_at": end, "duration": duration_minutes(start, end)}
    return PlannedFix(
        kind=kind,
        record=record,
        action=ReconciliationAction(
            type=ActionType.REWINDOW,
            record_id=str(record.id),
            patient_id=record.patient_id,
            rationale=INVERTED_WINDOW,
        ),
        entry=FixEntry(
            record_id=str(record.id),
            owner_id=record.patient_id,
            original={
                "start_at": record.start_at,
                "end_at": record.end_at,
                "duration": record.duration,
            },
            fixed=fixed,
            reason=INVERTED_WINDOW,
        ),
    )


def plan_window_fixes(
    kind: type[Record], records: Iterable[TimedEntity]
) -> tuple[PlannedFix, ...]:
    return tuple(
        _swap_window(kind, record, record.end_at, record.start_at)
        for record in records
        if record.start_at is not None
        and record.end_at is not None
        and record.end_at < record.start_at
    )


def case_window(case: CaseRecord) -> tuple[datetime, datetime] | None:
    """Return the ordered ``[start, end]`` of a case; open ends span 24 hours."""

    if case.start_at is None:
        return None
    start = ensure_utc(case.start_at)
    end = ensure_utc(case.end_at) if case.end_at is not None else start + OPEN_CASE_WINDOW
    return (end, start) if end < start else (start, end)


def sample_reason(sample: ChildRecord, case: CaseRecord | None) -> str | None:
    """Return why ``sample`` is suspicious, or ``None`` when it lies in its case window."""

    if case is None:
        return CASE_MISSING
    window = case_window(case)
    if window is None:
        return CASE_UNDATED
    start, end = window
    if start <= ensure_utc(sample.timestamp) <= end:
        return None
    return OUTSIDE_WINDOW


def plan_sample_flags(
    children: Iterable[ChildRecord], cases: Iterable[CaseRecord]
) -> tuple[PlannedFix, ...]:
    by_id = {case.id: case for case in cases}
    fixes: list[PlannedFix] = []
    for sample in children:
        case = by_id.get(sample.case_id)
        reason = sample_reason(sample, case)
        suspicious = reason is not None
        if suspicious == sample.suspicious:
            continue
        rationale = reason or BACK_IN_WINDOW
        fixes.append(
            PlannedFix(
                kind=ChildRecord,
                record=sample,
                action=ReconciliationAction(
                    type=ActionType.FLAG,
                    record_id=str(sample.id),
                    patient_id=case.patient_id if case is not None else None,
                    target_case_id=str(sample.case_id),
                    rationale=rationale,
                ),
                entry=FixEntry(
                    record_id=str(sample.id),
                    owner_id=str(sample.case_id),
                    original={"suspicious": sample.suspicious, "timestamp": sample.timestamp},
                    fixed={"suspicious": suspicious},
                    reason=rationale,
                ),
            )
        )
    return tuple(fixes)


def plan_integrity_fixes(snapshot: IntegritySnapshot) -> IntegrityPlan:
    """Compute every window swap and sample flag change for ``snapshot``."""

    return IntegrityPlan(
        cases=plan_window_fixes(CaseRecord, snapshot.cases),
        procedures=plan_window_fixes(ProcedureRecord, snapshot.procedures),
        children=plan_sample_flags(snapshot.children, snapshot.cases),
    )


async def read_integrity_snapshot(store: RecordStore) -> IntegritySnapshot:
    cases = await store.find_many(CaseRecord, order_by=(asc("start_at"),))
    procedures = await store.find_many(ProcedureRecord, order_by=(asc("start_at"),))
    children = await store.find_many(ChildRecord, order_by=(asc("timestamp"),))
    log.info(
        "Read %d cases, %d procedures, %d child records",
        len(cases),
        len(procedures),
        len(children),
    )
    return IntegritySnapshot(
        cases=tuple(cases), procedures=tuple(procedures), children=tuple(children)
    )


def build_integrity_backup(plan: IntegrityPlan) -> BackupSnapshot:
    return BackupSnapshot(
        kind=BackupKind.INTEGRITY_FIX,
        summary={
            "casesToFix": len(plan.cases),
            "proceduresToFix": len(plan.procedures),
            "intraopRecordsToFix": len(plan.children),
        },
        to_update=tuple(
            BackupEntry(action=fix.action, pre_state=record_state(fix.record)) for fix in plan.all
        ),
    )


async def _apply_group(
    store: RecordStore, fixes: Sequence[PlannedFix]
) -> tuple[ApplyResult, tuple[FixEntry, ...]]:
    if not fixes:
        return ApplyResult(), ()
    kind = fixes[0].kind
    result = await update_each(store, kind, [(fix.record.id, fix.patch) for fix in fixes])
    failed = {error.record_id for error in result.errors}
    log.info("Updated %d/%d %s rows", result.applied, len(fixes), kind.__name__)
    return result, tuple(fix.entry for fix in fixes if fix.entry.record_id not in failed)


@dataclass(frozen=True, slots=True, kw_only=True)
class IntegrityPassResult:
    records_read: int
    plan: IntegrityPlan
    backup_path: Path
    executed: bool
    applied: ApplyResult
    report: FixReport | None = None
    report_path: Path | None = None

    @property
    def summary(self) -> RunSummary:
        return RunSummary(
            processed=self.records_read, fixed=self.applied.applied, errors=self.applied.errors
        )


async def run_integrity_fix_pass(
    store: RecordStore,
    writer: ArtifactWriter,
    *,
    execute: bool = False,
) -> IntegrityPassResult:
    """Plan window and sample fixes, back them up, and apply them when ``execute`` is set.

    The fix report is written after an executed run and lists only the records
    actually updated.
    """

    snapshot = await read_integrity_snapshot(store)
    records_read = len(snapshot.cases) + len(snapshot.procedures) + len(snapshot.children)
    plan = plan_integrity_fixes(snapshot)
    log.info(
        "Integrity plan: cases=%d procedures=%d intraop=%d",
        len(plan.cases),
        len(plan.procedures),
        len(plan.children),
    )

    backup_path = writer.write_backup(build_integrity_backup(plan))
    log.info("Backup written to %s", backup_path)

    if not execute:
        log.info("Dry run: no records updated")
        return IntegrityPassResult(
            records_read=records_read,
            plan=plan,
            backup_path=backup_path,
            executed=False,
            applied=ApplyResult(requested=len(plan.all)),
        )

    cases_result, cases_fixed = await _apply_group(store, plan.cases)
    procedures_result, procedures_fixed = await _apply_group(store, plan.procedures)
    children_result, children_fixed = await _apply_group(store, plan.children)
    applied = cases_result + procedures_result + children_result

    report = FixReport(
        cases_fixed=cases_fixed,
        procedures_fixed=procedures_fixed,
        intraop_records_fixed=children_fixed,
        errors=applied.errors,
    )
    report_path = writer.write_fix_report(report)
    log.info("Fix report written to %s", report_path)
    return IntegrityPassResult(
        records_read=records_read,
        plan=plan,
        backup_path=backup_path,
        executed=True,
        applied=applied,
        report=report,
        report_path=report_path,
    )

