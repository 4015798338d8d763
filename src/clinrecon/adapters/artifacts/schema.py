"""Pydantic models for backup files, fix reports and correction mapping files."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from clinrecon.domain.errors import RecordError
from clinrecon.domain.reconciliation.plan import (
    BackupEntry,
    BackupSnapshot,
    FixEntry,
    FixReport,
    ReconciliationAction,
)
from clinrecon.domain.reconciliation.reassign import CorrectionMapping


def _camel_keys(values: Mapping[str, object]) -> dict[str, Any]:
    return {to_camel(key): value for key, value in values.items()}


def _strip(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


class ArtifactModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ActionDocument(ArtifactModel):
    type: str
    record_id: str
    rationale: str
    patient_id: str | None = None
    target_case_id: str | None = None
    similarity: float | None = None
    time_gap_seconds: float | None = None

    @classmethod
    def from_action(cls, action: ReconciliationAction) -> ActionDocument:
        return cls(
            type=str(action.type),
            record_id=action.record_id,
            rationale=action.rationale,
            patient_id=action.patient_id,
            target_case_id=action.target_case_id,
            similarity=None if action.similarity is None else round(action.similarity, 2),
            time_gap_seconds=action.time_gap_seconds,
        )


class BackupEntryDocument(ArtifactModel):
    action: ActionDocument
    pre_state: dict[str, Any]

    @classmethod
    def from_entry(cls, entry: BackupEntry) -> BackupEntryDocument:
        return cls(
            action=ActionDocument.from_action(entry.action),
            pre_state=_camel_keys(entry.pre_state),
        )


class BackupDocument(ArtifactModel):
    """``{timestamp, summary, toDelete, toKeep}`` plus the entries of the other passes."""

    timestamp: datetime
    kind: str
    summary: dict[str, Any]
    to_delete: list[BackupEntryDocument] = Field(default_factory=list[BackupEntryDocument])
    to_keep: list[BackupEntryDocument] = Field(default_factory=list[BackupEntryDocument])
    to_reassign: list[BackupEntryDocument] = Field(default_factory=list[BackupEntryDocument])
    to_update: list[BackupEntryDocument] = Field(default_factory=list[BackupEntryDocument])

    @classmethod
    def from_snapshot(cls, snapshot: BackupSnapshot) -> BackupDocument:
        return cls(
            timestamp=snapshot.created_at,
            kind=str(snapshot.kind),
            summary=dict(snapshot.summary),
            to_delete=[BackupEntryDocument.from_entry(entry) for entry in snapshot.to_delete],
            to_keep=[BackupEntryDocument.from_entry(entry) for entry in snapshot.to_keep],
            to_reassign=[BackupEntryDocument.from_entry(entry) for entry in snapshot.to_reassign],
            to_update=[BackupEntryDocument.from_entry(entry) for entry in snapshot.to_update],
        )


class RecordErrorDocument(ArtifactModel):
    kind: str
    message: str
    record_id: str | None = None
    context: dict[str, str] = Field(default_factory=dict[str, str])

    @classmethod
    def from_error(cls, error: RecordError) -> RecordErrorDocument:
        return cls(
            kind=str(error.kind),
            message=error.message,
            record_id=error.record_id,
            context=dict(error.context),
        )


class FixEntryDocument(ArtifactModel):
    record_id: str
    owner_id: str
    original: dict[str, Any]
    fixed: dict[str, Any]
    reason: str

    @classmethod
    def from_entry(cls, entry: FixEntry) -> FixEntryDocument:
        return cls(
            record_id=entry.record_id,
            owner_id=entry.owner_id,
            original=_camel_keys(entry.original),
            fixed=_camel_keys(entry.fixed),
            reason=entry.reason,
        )


class FixReportDocument(ArtifactModel):
    timestamp: datetime
    cases_fixed: list[FixEntryDocument]
    procedures_fixed: list[FixEntryDocument]
    intraop_records_fixed: list[FixEntryDocument]
    errors: list[RecordErrorDocument]

    @classmethod
    def from_report(cls, report: FixReport) -> FixReportDocument:
        return cls(
            timestamp=report.created_at,
            cases_fixed=[FixEntryDocument.from_entry(entry) for entry in report.cases_fixed],
            procedures_fixed=[
                FixEntryDocument.from_entry(entry) for entry in report.procedures_fixed
            ],
            intraop_records_fixed=[
                FixEntryDocument.from_entry(entry) for entry in report.intraop_records_fixed
            ],
            errors=[RecordErrorDocument.from_error(error) for error in report.errors],
        )


class CorrectionMappingEntry(ArtifactModel):
    """One row of a correction mapping file.

    The date stays a string here; an unparseable date is reported for its entry
    alone when the reassignment pass runs.
    """

    wrong_identity: str = Field(
        min_length=1,
        validation_alias=AliasChoices("wrongIdentity", "wrong_identity", "wrong"),
    )
    correct_identity: str = Field(
        min_length=1,
        validation_alias=AliasChoices("correctIdentity", "correct_identity", "correct"),
    )
    date: str
    rationale: str = Field(
        default="", validation_alias=AliasChoices("rationale", "reason", "note")
    )
    patient_name: str | None = Field(
        default=None, validation_alias=AliasChoices("patientName", "patient_name", "name")
    )

    _strip_values = field_validator(
        "wrong_identity", "correct_identity", "date", "rationale", "patient_name", mode="before"
    )(_strip)

    def to_mapping(self) -> CorrectionMapping:
        return CorrectionMapping(
            wrong_identity=self.wrong_identity,
            correct_identity=self.correct_identity,
            date=self.date,
            rationale=self.rationale,
            patient_name=self.patient_name or None,
        )


class CorrectionMappingFile(ArtifactModel):
    mappings: list[CorrectionMappingEntry]
