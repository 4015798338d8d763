"""Write backups and fix reports as timestamped JSON files."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from clinrecon.domain.errors import BackupWriteFailure

from .schema import BackupDocument, FixReportDocument

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from pydantic import BaseModel

    from clinrecon.domain.reconciliation.plan import BackupSnapshot, FixReport

log = getLogger(__name__)

BACKUP_PREFIX: Final[str] = "backup"
FIX_REPORT_PREFIX: Final[str] = "data-integrity-fixes"
TIMESTAMP_FORMAT: Final[str] = "%Y%m%dT%H%M%S%fZ"


def artifact_filename(prefix: str, created_at: datetime) -> str:
    """Return ``<prefix>-<sortable UTC timestamp>.json``."""

    return f"{prefix}-{created_at.strftime(TIMESTAMP_FORMAT)}.json"


class JsonArtifactWriter:
    """Artifacts land in ``directory``; existing files are never overwritten."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def write_backup(self, snapshot: BackupSnapshot) -> Path:
        document = BackupDocument.from_snapshot(snapshot)
        name = artifact_filename(f"{BACKUP_PREFIX}-{snapshot.kind}", snapshot.created_at)
        path = self._write(name, document)
        log.info("Backup of %d affected records written to %s", snapshot.affected, path)
        return path

    def write_fix_report(self, report: FixReport) -> Path:
        document = FixReportDocument.from_report(report)
        path = self._write(artifact_filename(FIX_REPORT_PREFIX, report.created_at), document)
        log.info("Fix report with %d entries written to %s", report.total_fixed, path)
        return path

    def _write(self, name: str, document: BaseModel) -> Path:
        path = self.directory / name
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with path.open("x", encoding="utf-8") as handle:
                handle.write(document.model_dump_json(by_alias=True, indent=2))
        except OSError as exc:
            raise BackupWriteFailure(f"Cannot write {path}: {exc}") from exc
        return path

