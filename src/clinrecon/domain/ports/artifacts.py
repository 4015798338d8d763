"""Ports for the JSON artifacts written around destructive passes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pathlib import Path

    from clinrecon.domain.reconciliation.plan import BackupSnapshot, FixReport


@runtime_checkable
class ArtifactWriter(Protocol):
    """Persist backups and fix reports.

    Implementations raise ``BackupWriteFailure`` when the artifact cannot be
    written; callers treat that as fatal.
    """

    def write_backup(self, snapshot: BackupSnapshot) -> Path: ...

    def write_fix_report(self, report: FixReport) -> Path: ...
