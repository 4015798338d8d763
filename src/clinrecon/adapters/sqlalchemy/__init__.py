"""SQLAlchemy adapter package for clinrecon."""

from __future__ import annotations

from .mappings import (
    TABLE_BY_KIND,
    create_all_tables,
    mapper_registry,
    start_mappers,
    table_for,
)
from .store import (
    SqlAlchemyRecordStore,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_KIND",
    "SqlAlchemyRecordStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "table_for",
]
