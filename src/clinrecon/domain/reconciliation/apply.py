"""Store mutation stage for reconciliation plans.

Responsibilities of this stage:
- apply precomputed decisions to the store in fixed-size chunks
- keep going when a single record is rejected, recording the failure
- never decide anything; all decisions come from the plan

Chunks bound the size of one store round-trip. A chunk that was applied stays
applied even if a later chunk fails; the backup written before this stage is
the recovery point.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.domain.errors import RecordError, WriteConflictError

from .plan import ApplyResult

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from clinrecon.domain.model import Record
    from clinrecon.domain.ports import Patch, RecordStore

log = getLogger(__name__)


def chunked[T](items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("Chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def delete_in_batches(
    store: RecordStore,
    kind: type[Record],
    ids: Sequence[object],
    *,
    batch_size: int,
) -> ApplyResult:
    """Delete ``ids`` chunk by chunk; a rejected chunk is retried record by record."""

    result = ApplyResult(requested=len(ids))
    done = 0
    for batch in chunked(ids, batch_size):
        try:
            deleted = await store.delete_many(kind, list(batch))
            batch_result = ApplyResult(applied=deleted, batches=1)
        except WriteConflictError as exc:
            log.warning(
                "Batch delete rejected (%s); retrying %d records one by one", exc, len(batch)
            )
            batch_result = await _delete_one_by_one(store, kind, batch)
        result += batch_result
        done += len(batch)
        log.info("Deleted %d/%d %s rows", done, len(ids), kind.__name__)
    return result


async def _delete_one_by_one(
    store: RecordStore,
    kind: type[Record],
    batch: Sequence[object],
) -> ApplyResult:
    applied = 0
    errors: list[RecordError] = []
    for record_id in batch:
        try:
            applied += await store.delete_many(kind, [record_id])
        except WriteConflictError as exc:
            log.warning("Could not delete %s %s: %s", kind.__name__, record_id, exc)
            errors.append(
                RecordError.from_exception(
                    exc, record_id=str(record_id), context={"kind": kind.__name__}
                )
            )
    return ApplyResult(applied=applied, batches=1, errors=tuple(errors))


async def update_many_guarded(
    store: RecordStore,
    kind: type[Record],
    ids: Sequence[object],
    patch: Patch,
    *,
    context: dict[str, str] | None = None,
) -> ApplyResult:
    """Apply one bulk update, turning a store rejection into a recorded error."""

    try:
        updated = await store.update_many(kind, list(ids), patch)
    except WriteConflictError as exc:
        log.warning("Bulk update of %d %s rows rejected: %s", len(ids), kind.__name__, exc)
        error = RecordError.from_exception(exc, context={"kind": kind.__name__, **(context or {})})
        return ApplyResult(requested=len(ids), batches=1, errors=(error,))
    return ApplyResult(requested=len(ids), applied=updated, batches=1)


async def update_each(
    store: RecordStore,
    kind: type[Record],
    patches: Sequence[tuple[object, Patch]],
) -> ApplyResult:
    """Apply per-record patches; failures are recorded and the loop continues."""

    applied = 0
    errors: list[RecordError] = []
    for record_id, patch in patches:
        try:
            await store.update(kind, record_id, patch)
        except WriteConflictError as exc:
            log.warning("Could not update %s %s: %s", kind.__name__, record_id, exc)
            errors.append(
                RecordError.from_exception(
                    exc, record_id=str(record_id), context={"kind": kind.__name__}
                )
            )
            continue
        applied += 1
    return ApplyResult(
        requested=len(patches), applied=applied, batches=len(patches), errors=tuple(errors)
    )
