"""Domain port definitions for adapters."""

from __future__ import annotations

from .artifacts import ArtifactWriter
from .persistence import (
    Criterion,
    Operator,
    Ordering,
    OrderBy,
    Patch,
    RecordStore,
    Where,
    asc,
    desc,
    eq,
    gt,
    gte,
    in_,
    is_null,
    lt,
    lte,
    not_null,
)

__all__ = [
    "ArtifactWriter",
    "Criterion",
    "Operator",
    "OrderBy",
    "Ordering",
    "Patch",
    "RecordStore",
    "Where",
    "asc",
    "desc",
    "eq",
    "gt",
    "gte",
    "in_",
    "is_null",
    "lt",
    "lte",
    "not_null",
]
