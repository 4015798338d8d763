"""In-memory ``RecordStore`` for exercising the passes without a database."""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from typing import TYPE_CHECKING

from clinrecon.domain.errors import StoreUnavailable, WriteConflictError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from clinrecon.domain.model import Record
    from clinrecon.domain.ports import OrderBy, Patch, Where


def _sort_key(value: object) -> tuple[bool, object]:
    return (value is None, value)


class InMemoryRecordStore:
    """Rows are kept per record class; reads hand out copies like a real store would.

    Ids listed in ``rejected_ids`` make every write touching them raise
    ``WriteConflictError``; bulk writes are rejected as a whole, like a
    transaction. ``unavailable`` makes every call raise ``StoreUnavailable``.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self.rows: defaultdict[type[Record], dict[object, Record]] = defaultdict(dict)
        self.rejected_ids: set[object] = set()
        self.unavailable = False
        self.calls: list[tuple[str, str, int]] = []
        self.add(*records)

    def add(self, *records: Record) -> None:
        for record in records:
            self.rows[type(record)][record.id] = record

    def all[TRecord: Record](self, kind: type[TRecord]) -> list[TRecord]:
        rows = self.rows[kind].values()
        return [dataclasses.replace(record) for record in rows]  # type: ignore[misc]

    def get[TRecord: Record](self, kind: type[TRecord], record_id: object) -> TRecord:
        return self.rows[kind][record_id]  # type: ignore[return-value]

    def _check(self, operation: str, kind: type[Record], size: int = 0) -> None:
        if self.unavailable:
            raise StoreUnavailable("in-memory store switched off")
        self.calls.append((operation, kind.__name__, size))

    def _reject(self, kind: type[Record], ids: Sequence[object]) -> None:
        rejected = [record_id for record_id in ids if record_id in self.rejected_ids]
        if rejected:
            raise WriteConflictError(f"{kind.__name__} rows rejected: {rejected}")

    async def find_many[TRecord: Record](
        self,
        kind: type[TRecord],
        *,
        where: Where = (),
        order_by: OrderBy = (),
    ) -> list[TRecord]:
        self._check("find_many", kind)
        rows = [
            record
            for record in self.all(kind)
            if all(criterion.matches(record) for criterion in where)
        ]
        for ordering in reversed(order_by):
            rows.sort(
                key=lambda record: _sort_key(getattr(record, ordering.field)),
                reverse=ordering.descending,
            )
        return rows

    async def count(self, kind: type[Record], *, where: Where = ()) -> int:
        return len(await self.find_many(kind, where=where))

    async def create[TRecord: Record](self, record: TRecord) -> TRecord:
        self._check("create", type(record), 1)
        self._reject(type(record), [record.id])
        self.add(record)
        return record

    async def update(self, kind: type[Record], record_id: object, patch: Patch) -> None:
        self._check("update", kind, 1)
        self._reject(kind, [record_id])
        record = self.rows[kind].get(record_id)
        if record is None:
            raise WriteConflictError(f"No {kind.__name__} row with id {record_id}")
        for field, value in patch.items():
            setattr(record, field, value)

    async def update_many(self, kind: type[Record], ids: Sequence[object], patch: Patch) -> int:
        self._check("update_many", kind, len(ids))
        self._reject(kind, ids)
        updated = 0
        for record_id in ids:
            record = self.rows[kind].get(record_id)
            if record is None:
                continue
            for field, value in patch.items():
                setattr(record, field, value)
            updated += 1
        return updated

    async def delete_many(self, kind: type[Record], ids: Sequence[object]) -> int:
        self._check("delete_many", kind, len(ids))
        self._reject(kind, ids)
        return sum(1 for record_id in ids if self.rows[kind].pop(record_id, None) is not None)
