"""Reconciliation passes over the clinical registry.

Every pass follows the same flow:
1) read a snapshot through the ``RecordStore`` port
2) compute decisions without touching the store
3) write a backup of every affected row
4) apply the decisions in chunks, only when asked to execute
5) return an immutable result with processed/fixed/error totals
"""

from __future__ import annotations

from .compare import FieldComparison, compare_fields
from .detect import (
    DetectionResult,
    DuplicatePair,
    PatientDuplicateSummary,
    classify_gap,
    detect_duplicates,
)
from .integrity import (
    IntegrityPassResult,
    IntegrityPlan,
    IntegritySnapshot,
    plan_integrity_fixes,
    run_integrity_fix_pass,
)
from .merge import MergePassResult, run_detection, run_merge_pass
from .plan import (
    ApplyResult,
    BackupEntry,
    BackupKind,
    BackupSnapshot,
    FixEntry,
    FixReport,
    ReconciliationAction,
    RunSummary,
)
from .policy import MergePlan, MergeSummary, PatientResolution, plan_merge, resolve_patient
from .reassign import (
    CorrectionMapping,
    ReassignmentPassResult,
    ReassignmentPlan,
    plan_reassignment,
    run_reassignment_pass,
)
from .report import (
    render_detection,
    render_integrity,
    render_merge,
    render_reassignment,
    render_report,
    render_summary,
)
from .similarity import similarity
from .verify import DurationBucket, VerificationReport, classify_duration, verify_integrity

__all__ = [
    "ApplyResult",
    "BackupEntry",
    "BackupKind",
    "BackupSnapshot",
    "CorrectionMapping",
    "DetectionResult",
    "DuplicatePair",
    "DurationBucket",
    "FieldComparison",
    "FixEntry",
    "FixReport",
    "IntegrityPassResult",
    "IntegrityPlan",
    "IntegritySnapshot",
    "MergePassResult",
    "MergePlan",
    "MergeSummary",
    "PatientDuplicateSummary",
    "PatientResolution",
    "ReassignmentPassResult",
    "ReassignmentPlan",
    "ReconciliationAction",
    "RunSummary",
    "VerificationReport",
    "classify_duration",
    "classify_gap",
    "compare_fields",
    "detect_duplicates",
    "plan_integrity_fixes",
    "plan_merge",
    "plan_reassignment",
    "render_detection",
    "render_integrity",
    "render_merge",
    "render_reassignment",
    "render_report",
    "render_summary",
    "resolve_patient",
    "run_detection",
    "run_integrity_fix_pass",
    "run_merge_pass",
    "run_reassignment_pass",
    "similarity",
    "verify_integrity",
]
