"""JSON artifacts written and read around the reconciliation passes."""

from __future__ import annotations

from .mapping_file import load_correction_mappings
from .schema import (
    BackupDocument,
    CorrectionMappingEntry,
    CorrectionMappingFile,
    FixReportDocument,
)
from .writer import FIX_REPORT_PREFIX, JsonArtifactWriter, artifact_filename

__all__ = [
    "FIX_REPORT_PREFIX",
    "BackupDocument",
    "CorrectionMappingEntry",
    "CorrectionMappingFile",
    "FixReportDocument",
    "JsonArtifactWriter",
    "artifact_filename",
    "load_correction_mappings",
]
