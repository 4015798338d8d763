"""Ports for reading and mutating registry records.

The reconciliation passes never compose SQL; they describe what they need with
``Criterion`` and ``Ordering`` values and let an adapter translate them.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from clinrecon.domain.model import Record


class Operator(StrEnum):
    EQ = "eq"
    IN = "in"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


_COMPARATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.GT: operator.gt,
    Operator.GTE: operator.ge,
    Operator.LT: operator.lt,
    Operator.LTE: operator.le,
}


@dataclass(frozen=True, slots=True)
class Criterion:
    """A single ``field <op> value`` predicate; criteria in a query are AND-ed."""

    field: str
    op: Operator
    value: object = None

    def matches(self, record: object) -> bool:
        """Evaluate the predicate against an in-memory record."""

        actual = getattr(record, self.field)
        match self.op:
            case Operator.EQ:
                return actual == self.value
            case Operator.IN:
                return actual in _as_collection(self.value)
            case Operator.IS_NULL:
                return actual is None
            case Operator.NOT_NULL:
                return actual is not None
            case _:
                if actual is None:
                    return False
                return _compare(self.op, actual, self.value)


def _as_collection(value: object) -> Sequence[object]:
    if isinstance(value, Iterable) and not isinstance(value, str | bytes):
        return list(value)  # pyright: ignore[reportUnknownArgumentType]
    raise TypeError(f"IN criterion requires a collection, got {type(value).__name__}")


def _compare(op: Operator, actual: object, expected: object) -> bool:
    return _COMPARATORS[op](actual, expected)


def eq(field: str, value: object) -> Criterion:
    return Criterion(field, Operator.EQ, value)


def in_(field: str, values: Iterable[object]) -> Criterion:
    return Criterion(field, Operator.IN, tuple(values))


def gt(field: str, value: object) -> Criterion:
    return Criterion(field, Operator.GT, value)


def gte(field: str, value: object) -> Criterion:
    return Criterion(field, Operator.GTE, value)


def lt(field: str, value: object) -> Criterion:
    return Criterion(field, Operator.LT, value)


def lte(field: str, value: object) -> Criterion:
    return Criterion(field, Operator.LTE, value)


def is_null(field: str) -> Criterion:
    return Criterion(field, Operator.IS_NULL)


def not_null(field: str) -> Criterion:
    return Criterion(field, Operator.NOT_NULL)


@dataclass(frozen=True, slots=True)
class Ordering:
    field: str
    descending: bool = False


def asc(field: str) -> Ordering:
    return Ordering(field)


def desc(field: str) -> Ordering:
    return Ordering(field, descending=True)


type Where = Sequence[Criterion]
type OrderBy = Sequence[Ordering]
type Patch = Mapping[str, object]


@runtime_checkable
class RecordStore(Protocol):
    """Abstract persistence contract consumed by every pass.

    Write methods raise ``WriteConflictError`` when the store rejects a write and
    ``StoreUnavailable`` when it cannot be reached.
    """

    async def find_many[TRecord: Record](
        self,
        kind: type[TRecord],
        *,
        where: Where = (),
        order_by: OrderBy = (),
    ) -> list[TRecord]: ...

    async def count(self, kind: type[Record], *, where: Where = ()) -> int: ...

    async def create[TRecord: Record](self, record: TRecord) -> TRecord: ...

    async def update(self, kind: type[Record], record_id: object, patch: Patch) -> None: ...

    async def update_many(
        self, kind: type[Record], ids: Sequence[object], patch: Patch
    ) -> int: ...

    async def delete_many(self, kind: type[Record], ids: Sequence[object]) -> int: ...
