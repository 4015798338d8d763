"""Decision and result types shared by the detection/policy/apply/report stages.

Every pass follows the same shape: read a snapshot, compute a plan of
``ReconciliationAction`` values without touching the store, persist a backup of
the affected rows, and only then apply the plan. The types below are that
contract; they are immutable so results can be folded by the caller instead of
being accumulated in shared state.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from clinrecon.domain.errors import RecordError
    from clinrecon.domain.model import ActionType, Record


def utcnow() -> datetime:
    return datetime.now(UTC)


def record_state(record: Record) -> dict[str, object]:
    """Return a plain field snapshot of ``record`` for backups."""

    return {item.name: getattr(record, item.name) for item in dataclasses.fields(record)}


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationAction:
    """One decision taken by a pass, kept for the audit trail."""

    type: ActionType
    record_id: str
    rationale: str
    patient_id: str | None = None
    target_case_id: str | None = None
    similarity: float | None = None
    time_gap_seconds: float | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class BackupEntry:
    action: ReconciliationAction
    pre_state: Mapping[str, object]


class BackupKind(StrEnum):
    CLINICAL_DUPLICATES = "clinical-duplicates"
    IDENTITY_REASSIGNMENT = "identity-reassignment"
    INTEGRITY_FIX = "integrity-fix"


@dataclass(frozen=True, slots=True, kw_only=True)
class BackupSnapshot:
    """Pre-mutation snapshot written before any destructive action."""

    kind: BackupKind
    summary: Mapping[str, object]
    to_delete: tuple[BackupEntry, ...] = ()
    to_keep: tuple[BackupEntry, ...] = ()
    to_reassign: tuple[BackupEntry, ...] = ()
    to_update: tuple[BackupEntry, ...] = ()
    created_at: datetime = field(default_factory=utcnow)

    @property
    def affected(self) -> int:
        return len(self.to_delete) + len(self.to_reassign) + len(self.to_update)


@dataclass(frozen=True, slots=True, kw_only=True)
class FixEntry:
    record_id: str
    owner_id: str
    original: Mapping[str, object]
    fixed: Mapping[str, object]
    reason: str


@dataclass(frozen=True, slots=True, kw_only=True)
class FixReport:
    """Per-run report emitted by the integrity fix pass."""

    cases_fixed: tuple[FixEntry, ...] = ()
    procedures_fixed: tuple[FixEntry, ...] = ()
    intraop_records_fixed: tuple[FixEntry, ...] = ()
    errors: tuple[RecordError, ...] = ()
    created_at: datetime = field(default_factory=utcnow)

    @property
    def total_fixed(self) -> int:
        return len(self.cases_fixed) + len(self.procedures_fixed) + len(self.intraop_records_fixed)


@dataclass(frozen=True, slots=True, kw_only=True)
class ApplyResult:
    """Summary of store mutations performed by one apply stage."""

    requested: int = 0
    applied: int = 0
    batches: int = 0
    errors: tuple[RecordError, ...] = ()

    def __add__(self, other: ApplyResult) -> ApplyResult:
        return ApplyResult(
            requested=self.requested + other.requested,
            applied=self.applied + other.applied,
            batches=self.batches + other.batches,
            errors=self.errors + other.errors,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class RunSummary:
    """Totals printed at the end of every run."""

    processed: int = 0
    fixed: int = 0
    errors: tuple[RecordError, ...] = ()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def __add__(self, other: RunSummary) -> RunSummary:
        return RunSummary(
            processed=self.processed + other.processed,
            fixed=self.fixed + other.fixed,
            errors=self.errors + other.errors,
        )
