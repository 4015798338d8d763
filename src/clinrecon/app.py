"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from clinrecon.adapters.artifacts import JsonArtifactWriter, load_correction_mappings
from clinrecon.adapters.sqlalchemy.store import SqlAlchemyRecordStore, shutdown, startup
from clinrecon.config import get_reconcile_config, get_storage_config
from clinrecon.domain.reconciliation import (
    run_detection,
    run_integrity_fix_pass,
    run_merge_pass,
    run_reassignment_pass,
    verify_integrity,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from pathlib import Path

    from clinrecon.config import ReconcileConfig
    from clinrecon.domain.ports import ArtifactWriter, RecordStore
    from clinrecon.domain.reconciliation import (
        CorrectionMapping,
        DetectionResult,
        IntegrityPassResult,
        MergePassResult,
        ReassignmentPassResult,
        VerificationReport,
    )

log = getLogger(__name__)


async def _with_store[T](
    operation: Callable[[RecordStore], Awaitable[T]],
    store: RecordStore | None,
) -> T:
    if store is not None:
        return await operation(store)
    await startup()
    try:
        return await operation(SqlAlchemyRecordStore())
    finally:
        await shutdown()


def _default_writer() -> ArtifactWriter:
    return JsonArtifactWriter(get_storage_config().backup_path())


def detect_duplicates(
    *,
    store: RecordStore | None = None,
    config: ReconcileConfig | None = None,
) -> DetectionResult:
    """Report near-duplicate clinical records without writing anything."""

    effective = config or get_reconcile_config()
    log.info(
        "Starting duplicate detection: cluster_threshold=%s, exact_threshold=%s",
        effective.cluster_threshold,
        effective.exact_threshold,
    )
    return asyncio.run(_with_store(lambda s: run_detection(s, config=effective), store))


def merge_duplicates(
    *,
    execute: bool = False,
    only_clustered: bool = True,
    store: RecordStore | None = None,
    writer: ArtifactWriter | None = None,
    config: ReconcileConfig | None = None,
) -> MergePassResult:
    """Back up and, when ``execute`` is set, delete superseded clinical records."""

    effective = config or get_reconcile_config()
    effective_writer = writer or _default_writer()
    log.info(
        "Starting duplicate merge: execute=%s, only_clustered=%s, batch_size=%s",
        execute,
        only_clustered,
        effective.batch_size,
    )
    return asyncio.run(
        _with_store(
            lambda s: run_merge_pass(
                s,
                effective_writer,
                execute=execute,
                only_clustered=only_clustered,
                config=effective,
            ),
            store,
        )
    )


def reassign_identities(
    *,
    mappings: Sequence[CorrectionMapping] | None = None,
    mapping_file: Path | None = None,
    execute: bool = False,
    store: RecordStore | None = None,
    writer: ArtifactWriter | None = None,
) -> ReassignmentPassResult:
    """Move child records filed under the wrong patient to the correct case."""

    if mappings is None:
        if mapping_file is None:
            raise ValueError("Either mappings or mapping_file is required")
        mappings = load_correction_mappings(mapping_file)
    effective_writer = writer or _default_writer()
    entries = list(mappings)
    log.info("Starting identity reassignment: entries=%d, execute=%s", len(entries), execute)
    return asyncio.run(
        _with_store(
            lambda s: run_reassignment_pass(s, effective_writer, entries, execute=execute),
            store,
        )
    )


def fix_integrity(
    *,
    execute: bool = False,
    store: RecordStore | None = None,
    writer: ArtifactWriter | None = None,
) -> IntegrityPassResult:
    """Swap inverted case/procedure windows and (un)flag out-of-window samples."""

    effective_writer = writer or _default_writer()
    log.info("Starting integrity fixes: execute=%s", execute)
    return asyncio.run(
        _with_store(
            lambda s: run_integrity_fix_pass(s, effective_writer, execute=execute),
            store,
        )
    )


def verify(
    *,
    store: RecordStore | None = None,
    config: ReconcileConfig | None = None,
) -> VerificationReport:
    """Build the read-only integrity report."""

    effective = config or get_reconcile_config()
    return asyncio.run(_with_store(lambda s: verify_integrity(s, config=effective), store))
