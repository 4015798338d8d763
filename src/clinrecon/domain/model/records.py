"""Registry records read and mutated by the reconciliation passes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from clinrecon.domain.model.base import Entity, TimedEntity

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class Patient:
    """A patient keyed by national identity number."""

    id: str
    name: str
    identity_suspicious: bool = False


@dataclass(eq=False, kw_only=True)
class ClinicalRecord(Entity):
    """One pre-procedure evaluation; the unit of duplicate detection."""

    patient_id: str
    case_id: UUID | None = None
    evaluation_date: date | None = None

    meld: int | None = None
    asa: str | None = None
    child: str | None = None
    in_list: bool | None = None
    weight: float | None = None
    height: float | None = None
    blood_type: str | None = None
    diagnosis: str | None = None

    clinician_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def has_clinician(self) -> bool:
        return self.clinician_id is not None


COMPARABLE_FIELDS: Final[tuple[str, ...]] = (
    "evaluation_date",
    "meld",
    "asa",
    "child",
    "in_list",
    "weight",
    "height",
    "blood_type",
    "diagnosis",
)


@dataclass(eq=False, kw_only=True)
class CaseRecord(TimedEntity):
    """One transplant occurrence; owns the intra-procedure samples."""

    is_retransplant: bool = False


@dataclass(eq=False, kw_only=True)
class ProcedureRecord(TimedEntity):
    """A non-transplant procedure with its own time window."""

    procedure_type: str | None = None


@dataclass(eq=False, kw_only=True)
class ChildRecord(Entity):
    """Timestamped intra-procedure sample owned by a case."""

    case_id: UUID
    timestamp: datetime
    phase: str | None = None
    heart_rate: int | None = None
    systolic: int | None = None
    diastolic: int | None = None
    temperature: float | None = None
    suspicious: bool = False
    # identity the sample was moved away from by a correction
    reassigned_from: str | None = None


@dataclass(eq=False, kw_only=True)
class OutcomeRecord(Entity):
    """Post-procedure outcome attached to a case."""

    case_id: UUID
    patient_id: str
    recorded_at: datetime | None = None


type Record = Patient | ClinicalRecord | CaseRecord | ProcedureRecord | ChildRecord | OutcomeRecord
