"""Identity reassignment for child records filed under the wrong patient.

Responsibilities of this stage:
- resolve each correction entry to the correct patient's case on that day
- collect the wrong patient's child records timestamped on that day
- move them in one bulk update per entry, leaving the wrong case in place

Corrections are supplied from outside and never inferred here. Moved records
remember the identity they were taken from and are never moved back to it, so
a second run over the same entries finds nothing to move, crossed pairs
(``X -> Y`` and ``Y -> X`` on one day) included.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.domain.errors import MalformedInputError, NotFoundError, RecordError
from clinrecon.domain.model import ActionType, CaseRecord, ChildRecord
from clinrecon.domain.ports import asc, eq, gte, in_, lt, not_null
from clinrecon.domain.time_windows import DayWindow, day_key

from .apply import update_many_guarded
from .plan import (
    ApplyResult,
    BackupEntry,
    BackupKind,
    BackupSnapshot,
    ReconciliationAction,
    RunSummary,
    record_state,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path
    from uuid import UUID

    from clinrecon.domain.ports import ArtifactWriter, RecordStore

log = getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class CorrectionMapping:
    """Records of ``wrong_identity`` on ``date`` belong to ``correct_identity``."""

    wrong_identity: str
    correct_identity: str
    date: str
    rationale: str = ""
    patient_name: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ReassignmentEntryPlan:
    mapping: CorrectionMapping
    target_case: CaseRecord
    source_case_ids: tuple[UUID, ...]
    records: tuple[ChildRecord, ...]
    actions: tuple[ReconciliationAction, ...]

    @property
    def record_ids(self) -> list[UUID]:
        return [record.id for record in self.records]


@dataclass(frozen=True, slots=True, kw_only=True)
class ReassignmentPlan:
    entries: tuple[ReassignmentEntryPlan, ...] = ()
    skipped: tuple[CorrectionMapping, ...] = ()
    errors: tuple[RecordError, ...] = ()

    @property
    def actions(self) -> tuple[ReconciliationAction, ...]:
        return tuple(action for entry in self.entries for action in entry.actions)

    @property
    def is_empty(self) -> bool:
        return not self.entries


async def plan_entry(
    store: RecordStore, mapping: CorrectionMapping
) -> ReassignmentEntryPlan | None:
    """Plan one correction entry.

    Returns ``None`` when the wrong patient has no child records on that day,
    ignoring records that an earlier correction moved away from the correct patient.
    Raises ``MalformedInputError`` for an unusable entry and ``NotFoundError``
    when the correct patient has no case starting on that day.
    """

    if mapping.wrong_identity == mapping.correct_identity:
        raise MalformedInputError(f"Correction maps {mapping.wrong_identity} onto itself")
    window = DayWindow.parse(mapping.date)

    targets = await store.find_many(
        CaseRecord,
        where=(
            eq("patient_id", mapping.correct_identity),
            gte("start_at", window.start),
            lt("start_at", window.end),
        ),
        order_by=(asc("start_at"),),
    )
    if not targets:
        raise NotFoundError(
            f"No case for {mapping.correct_identity} starting on {window.day.isoformat()}"
        )
    if len(targets) > 1:
        log.warning(
            "%d cases for %s on %s; using the earliest",
            len(targets),
            mapping.correct_identity,
            window.day.isoformat(),
        )
    target = targets[0]

    source_cases = await store.find_many(
        CaseRecord, where=(eq("patient_id", mapping.wrong_identity),)
    )
    source_ids = tuple(case.id for case in source_cases)
    if not source_ids:
        return None
    records = await store.find_many(
        ChildRecord,
        where=(
            in_("case_id", source_ids),
            gte("timestamp", window.start),
            lt("timestamp", window.end),
        ),
        order_by=(asc("timestamp"),),
    )
    records = [
        record for record in records if record.reassigned_from != mapping.correct_identity
    ]
    if not records:
        return None

    rationale = mapping.rationale or (
        f"records of {mapping.wrong_identity} belong to {mapping.correct_identity}"
    )
    actions = tuple(
        ReconciliationAction(
            type=ActionType.REASSIGN,
            record_id=str(record.id),
            patient_id=mapping.correct_identity,
            target_case_id=str(target.id),
            rationale=rationale,
        )
        for record in records
    )
    return ReassignmentEntryPlan(
        mapping=mapping,
        target_case=target,
        source_case_ids=tuple(sorted({record.case_id for record in records}, key=str)),
        records=tuple(records),
        actions=actions,
    )


async def plan_reassignment(
    store: RecordStore, mappings: Iterable[CorrectionMapping]
) -> ReassignmentPlan:
    """Plan every correction entry; per-entry failures are collected, not raised."""

    entries: list[ReassignmentEntryPlan] = []
    skipped: list[CorrectionMapping] = []
    errors: list[RecordError] = []
    for mapping in mappings:
        context = {
            "wrongIdentity": mapping.wrong_identity,
            "correctIdentity": mapping.correct_identity,
            "date": mapping.date,
        }
        try:
            entry = await plan_entry(store, mapping)
        except (MalformedInputError, NotFoundError) as exc:
            log.warning(
                "Skipping %s -> %s on %s: %s",
                mapping.wrong_identity,
                mapping.correct_identity,
                mapping.date,
                exc,
            )
            errors.append(RecordError.from_exception(exc, context=context))
            continue
        if entry is None:
            log.info(
                "Nothing to fix for %s -> %s on %s",
                mapping.wrong_identity,
                mapping.correct_identity,
                mapping.date,
            )
            skipped.append(mapping)
            continue
        log.info(
            "%s -> %s on %s: %d records to move into case %s",
            mapping.wrong_identity,
            mapping.correct_identity,
            mapping.date,
            len(entry.records),
            entry.target_case.id,
        )
        entries.append(entry)
    return ReassignmentPlan(entries=tuple(entries), skipped=tuple(skipped), errors=tuple(errors))


def build_reassignment_backup(plan: ReassignmentPlan) -> BackupSnapshot:
    to_reassign = tuple(
        BackupEntry(action=action, pre_state=record_state(record))
        for entry in plan.entries
        for action, record in zip(entry.actions, entry.records, strict=True)
    )
    return BackupSnapshot(
        kind=BackupKind.IDENTITY_REASSIGNMENT,
        summary={
            "entriesPlanned": len(plan.entries),
            "entriesSkipped": len(plan.skipped),
            "entriesFailed": len(plan.errors),
            "recordsToReassign": len(to_reassign),
        },
        to_reassign=to_reassign,
    )


async def count_orphan_dates(store: RecordStore) -> int:
    """Count days on which some patient has child records but no case starting that day."""

    cases = await store.find_many(CaseRecord)
    owner_by_case = {case.id: case.patient_id for case in cases}
    dated: defaultdict[str, set[str]] = defaultdict(set)
    for case in cases:
        if case.start_at is not None:
            dated[case.patient_id].add(day_key(case.start_at))

    orphan_days: set[str] = set()
    for record in await store.find_many(ChildRecord, where=(not_null("timestamp"),)):
        owner = owner_by_case.get(record.case_id)
        if owner is None:
            continue
        day = day_key(record.timestamp)
        if day not in dated[owner]:
            orphan_days.add(day)
    return len(orphan_days)


async def find_emptied_cases(store: RecordStore, case_ids: Sequence[UUID]) -> list[UUID]:
    emptied: list[UUID] = []
    for case_id in case_ids:
        if await store.count(ChildRecord, where=(eq("case_id", case_id),)) == 0:
            emptied.append(case_id)
    return emptied


@dataclass(frozen=True, slots=True, kw_only=True)
class ReassignmentPassResult:
    plan: ReassignmentPlan
    backup_path: Path
    executed: bool
    applied: ApplyResult
    emptied_case_ids: tuple[UUID, ...] = ()
    orphan_dates: int | None = None

    @property
    def errors(self) -> tuple[RecordError, ...]:
        return self.plan.errors + self.applied.errors

    @property
    def summary(self) -> RunSummary:
        return RunSummary(
            processed=len(self.plan.entries) + len(self.plan.skipped) + len(self.plan.errors),
            fixed=self.applied.applied,
            errors=self.errors,
        )


async def run_reassignment_pass(
    store: RecordStore,
    writer: ArtifactWriter,
    mappings: Iterable[CorrectionMapping],
    *,
    execute: bool = False,
) -> ReassignmentPassResult:
    """Plan corrections, back up the affected records, and move them when ``execute`` is set.

    Cases left without child records are reported, never deleted.
    """

    plan = await plan_reassignment(store, mappings)
    backup_path = writer.write_backup(build_reassignment_backup(plan))
    log.info("Backup written to %s", backup_path)

    if not execute or plan.is_empty:
        if not execute:
            log.info("Dry run: %d records would be reassigned", len(plan.actions))
        return ReassignmentPassResult(
            plan=plan,
            backup_path=backup_path,
            executed=False,
            applied=ApplyResult(requested=len(plan.actions)),
        )

    applied = ApplyResult()
    touched: list[UUID] = []
    for entry in plan.entries:
        result = await update_many_guarded(
            store,
            ChildRecord,
            entry.record_ids,
            {"case_id": entry.target_case.id, "reassigned_from": entry.mapping.wrong_identity},
            context={
                "wrongIdentity": entry.mapping.wrong_identity,
                "correctIdentity": entry.mapping.correct_identity,
                "date": entry.mapping.date,
            },
        )
        log.info(
            "Moved %d/%d records of %s into case %s",
            result.applied,
            len(entry.records),
            entry.mapping.wrong_identity,
            entry.target_case.id,
        )
        applied += result
        touched.extend(case_id for case_id in entry.source_case_ids if case_id not in touched)

    emptied = await find_emptied_cases(store, touched)
    for case_id in emptied:
        log.info("Case %s has no child records left; kept as evidence", case_id)
    orphans = await count_orphan_dates(store)
    log.info("Orphan dates after reassignment: %d", orphans)
    return ReassignmentPassResult(
        plan=plan,
        backup_path=backup_path,
        executed=True,
        applied=applied,
        emptied_case_ids=tuple(emptied),
        orphan_dates=orphans,
    )
