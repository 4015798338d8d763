"""
Base building blocks: identity and the time-window contract shared by
cases and procedures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


def new_id() -> UUID:
    return uuid4()


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)


@dataclass(eq=False, kw_only=True)
class TimedEntity(Entity):
    """Anything that spans ``[start_at, end_at]`` with a cached duration in minutes."""

    patient_id: str
    start_at: datetime | None = None
    end_at: datetime | None = None
    duration: int | None = None


def duration_minutes(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)
