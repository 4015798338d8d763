"""Public domain model surface."""

from __future__ import annotations

from clinrecon.domain.model.base import Entity, TimedEntity, duration_minutes, new_id
from clinrecon.domain.model.enums import ActionType, ErrorKind, TimeGapClass
from clinrecon.domain.model.records import (
    COMPARABLE_FIELDS,
    CaseRecord,
    ChildRecord,
    ClinicalRecord,
    OutcomeRecord,
    Patient,
    ProcedureRecord,
    Record,
)

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "TimedEntity",
    "duration_minutes",
    "new_id",
    # records
    "COMPARABLE_FIELDS",
    "CaseRecord",
    "ChildRecord",
    "ClinicalRecord",
    "OutcomeRecord",
    "Patient",
    "ProcedureRecord",
    "Record",
    # enums
    "ActionType",
    "ErrorKind",
    "TimeGapClass",
]
