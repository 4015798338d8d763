"""SQLAlchemy mapping metadata for the registry records."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    Uuid,
    orm,
)

from clinrecon.domain.model import (
    CaseRecord,
    ChildRecord,
    ClinicalRecord,
    OutcomeRecord,
    Patient,
    ProcedureRecord,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from clinrecon.domain.model import Record

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

patient_table = Table(
    "patient",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("identity_suspicious", Boolean, nullable=False, default=False),
)

case_record_table = Table(
    "case_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("patient_id", String, ForeignKey("patient.id"), nullable=False),
    Column("start_at", UTCDateTime, nullable=True),
    Column("end_at", UTCDateTime, nullable=True),
    Column("duration", Integer, nullable=True),
    Column("is_retransplant", Boolean, nullable=False, default=False),
    Index("ix_case_record_patient_start", "patient_id", "start_at"),
)

procedure_record_table = Table(
    "procedure_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("patient_id", String, ForeignKey("patient.id"), nullable=False),
    Column("start_at", UTCDateTime, nullable=True),
    Column("end_at", UTCDateTime, nullable=True),
    Column("duration", Integer, nullable=True),
    Column("procedure_type", String, nullable=True),
)

clinical_record_table = Table(
    "clinical_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("patient_id", String, ForeignKey("patient.id"), nullable=False),
    Column("case_id", UUIDColumnType, ForeignKey("case_record.id"), nullable=True),
    Column("evaluation_date", Date, nullable=True),
    Column("meld", Integer, nullable=True),
    Column("asa", String, nullable=True),
    Column("child", String, nullable=True),
    Column("in_list", Boolean, nullable=True),
    Column("weight", Float, nullable=True),
    Column("height", Float, nullable=True),
    Column("blood_type", String, nullable=True),
    Column("diagnosis", String, nullable=True),
    Column("clinician_id", String, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    Index("ix_clinical_record_patient_created", "patient_id", "created_at"),
)

child_record_table = Table(
    "child_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("case_id", UUIDColumnType, ForeignKey("case_record.id"), nullable=False),
    Column("timestamp", UTCDateTime, nullable=False),
    Column("phase", String, nullable=True),
    Column("heart_rate", Integer, nullable=True),
    Column("systolic", Integer, nullable=True),
    Column("diastolic", Integer, nullable=True),
    Column("temperature", Float, nullable=True),
    Column("suspicious", Boolean, nullable=False, default=False),
    Column("reassigned_from", String, nullable=True),
    Index("ix_child_record_case_timestamp", "case_id", "timestamp"),
)

outcome_record_table = Table(
    "outcome_record",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("case_id", UUIDColumnType, ForeignKey("case_record.id"), nullable=False),
    Column("patient_id", String, ForeignKey("patient.id"), nullable=False),
    Column("recorded_at", UTCDateTime, nullable=True),
)

TABLE_BY_KIND: Final[dict[type[Record], Table]] = {
    Patient: patient_table,
    CaseRecord: case_record_table,
    ProcedureRecord: procedure_record_table,
    ClinicalRecord: clinical_record_table,
    ChildRecord: child_record_table,
    OutcomeRecord: outcome_record_table,
}


def table_for(kind: type[Record]) -> Table:
    try:
        return TABLE_BY_KIND[kind]
    except KeyError:
        raise TypeError(f"No table mapped for {kind.__name__}") from None


@cache
def start_mappers() -> orm.registry:
    """Map the record dataclasses onto their tables."""

    log.info("Starting SQLAlchemy mappers")
    for kind, table in TABLE_BY_KIND.items():
        mapper_registry.map_imperatively(kind, table)
    return mapper_registry


def create_all_tables(connection: Connection) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(connection)
