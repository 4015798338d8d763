"""Console renderings of pass results and the verification report."""

from __future__ import annotations

from typing import TYPE_CHECKING

from clinrecon.domain.model import TimeGapClass

from .verify import percent

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .detect import DetectionResult
    from .integrity import IntegrityPassResult
    from .merge import MergePassResult
    from .plan import RunSummary
    from .reassign import ReassignmentPassResult
    from .verify import VerificationReport

RULE = "=" * 80
_LABEL_WIDTH = 44

GAP_LABELS: dict[TimeGapClass, str] = {
    TimeGapClass.IMPORT_ERROR: "Import error (< 5 s apart)",
    TimeGapClass.SAME_MINUTE: "Same minute (< 60 s apart)",
    TimeGapClass.SAME_DAY: "Same day (< 24 h apart)",
    TimeGapClass.NONE: "Repeated evaluation (>= 24 h apart)",
}


def _line(label: str, value: object) -> str:
    return f"  {label + ':':<{_LABEL_WIDTH}} {value}"


def _share(part: int, pct: float) -> str:
    return f"{part} ({pct:.2f}%)"


def _section(title: str, lines: Iterable[str]) -> list[str]:
    return [RULE, title, "", *lines, ""]


def render_summary(summary: RunSummary) -> str:
    lines = [
        f"Processed: {summary.processed}",
        f"Fixed: {summary.fixed}",
        f"Errors: {summary.error_count}",
    ]
    lines.extend(
        f"  - [{error.kind}] {error.record_id or '-'}: {error.message}" for error in summary.errors
    )
    return "\n".join(lines)


def render_detection(result: DetectionResult, *, mass_import_threshold: int = 50) -> str:
    lines = _section(
        "DUPLICATE DETECTION",
        [
            _line("Patients scanned", result.total_patients),
            _line("Patients with several records", result.patients_with_multiple),
            _line("Patients with near-duplicates", len(result.summaries)),
            _line("Patients with exact duplicates", result.exact_duplicate_patients),
        ],
    )
    lines.extend(_line(GAP_LABELS[gap_class], count) for gap_class, count in result.tally.items())
    lines.append("")
    for summary in result.summaries_by_severity():
        pair = summary.pair
        lines.append(
            f"  {summary.patient_id}: {summary.record_count} records, "
            f"similarity {pair.similarity:.1f}%, "
            f"{pair.gap.total_seconds():.0f} s apart [{summary.gap_class}]"
        )
    recommendation = result.recommendation(mass_import_threshold=mass_import_threshold)
    if recommendation:
        lines.extend(["", recommendation])
    return "\n".join(lines)


def render_merge(result: MergePassResult) -> str:
    summary = result.plan.summary
    lines = _section(
        "DUPLICATE MERGE",
        [
            _line("Records to keep", len(result.plan.to_keep)),
            _line("Records to delete", summary.total_duplicates),
            _line("Exact duplicates", summary.exact_duplicates),
            _line("High similarity", summary.high_similarity),
            _line("Kept for assigned clinician", summary.kept_with_clinician),
            _line("Kept as most recent", summary.kept_newest),
            _line("Backup", result.backup_path),
        ],
    )
    if result.executed:
        lines.append(_line("Deleted", f"{result.applied.applied}/{result.applied.requested}"))
        lines.append(_line("Batches", result.applied.batches))
        lines.append(
            _line("Patients still with several records", result.patients_with_multiple_remaining)
        )
    else:
        lines.append("  Dry run: nothing deleted")
    return "\n".join(lines)


def render_reassignment(result: ReassignmentPassResult) -> str:
    plan = result.plan
    lines = _section(
        "IDENTITY REASSIGNMENT",
        [
            _line("Entries with records to move", len(plan.entries)),
            _line("Entries with nothing to fix", len(plan.skipped)),
            _line("Entries rejected", len(plan.errors)),
            _line("Records to reassign", len(plan.actions)),
            _line("Backup", result.backup_path),
        ],
    )
    for entry in plan.entries:
        mapping = entry.mapping
        lines.append(
            f"  {mapping.wrong_identity} -> {mapping.correct_identity} on {mapping.date}: "
            f"{len(entry.records)} records into case {entry.target_case.id}"
        )
    if result.executed:
        lines.append("")
        lines.append(_line("Reassigned", f"{result.applied.applied}/{result.applied.requested}"))
        lines.append(_line("Cases left empty (kept)", len(result.emptied_case_ids)))
        lines.append(_line("Orphan dates", result.orphan_dates))
    else:
        lines.append("  Dry run: nothing reassigned")
    return "\n".join(lines)


def render_integrity(result: IntegrityPassResult) -> str:
    plan = result.plan
    lines = _section(
        "INTEGRITY FIXES",
        [
            _line("Cases with inverted windows", len(plan.cases)),
            _line("Procedures with inverted windows", len(plan.procedures)),
            _line("Intraop records to (un)flag", len(plan.children)),
            _line("Backup", result.backup_path),
        ],
    )
    if result.executed:
        lines.append(_line("Updated", f"{result.applied.applied}/{result.applied.requested}"))
        lines.append(_line("Fix report", result.report_path))
    else:
        lines.append("  Dry run: nothing updated")
    return "\n".join(lines)


def render_report(report: VerificationReport) -> str:
    """Render the verification report as console sections with two-decimal percentages."""

    durations = report.durations
    lines = [
        *_section(
            "1. GENERAL COUNTS",
            [
                _line("Patients", report.patients),
                _line("Cases", report.cases),
                _line("  with start date", report.cases_with_start),
                _line("  without start date", report.cases_without_start),
                _line("  retransplants", report.retransplant_cases),
                _line("Procedures", report.procedures),
                _line("Clinical evaluations", report.clinical_records),
                _line("Outcome records", report.outcome_records),
            ],
        ),
        *_section(
            "2. INTRAOP RECORDS",
            [
                _line("Total", report.child_records),
                _line("Verified", _share(report.verified_children, report.pct_verified)),
                _line("Suspicious", _share(report.suspicious_children, report.pct_suspicious)),
                "",
                "  Verified by phase:",
                *(
                    _line(f"  {phase}", _share(count, percent(count, report.verified_children)))
                    for phase, count in report.verified_by_phase.items()
                ),
            ],
        ),
        *_section(
            "3. CASE DURATIONS",
            [
                _line("Negative (< 0 min)", durations.negative),
                _line("Too short (<= 60 min)", durations.too_short),
                _line("Plausible (60-1440 min)", _share(durations.plausible, report.pct_plausible)),
                _line("Too long (>= 1440 min)", durations.too_long),
            ],
        ),
        *_section(
            "4. COVERAGE",
            [
                _line(
                    "Dated cases with verified intraop",
                    _share(
                        report.dated_cases_with_verified_children,
                        report.pct_dated_cases_with_verified_children,
                    ),
                ),
                _line(
                    "Cases with clinical evaluation",
                    _share(report.cases_with_evaluation, report.pct_cases_with_evaluation),
                ),
                _line(
                    "Cases with outcome record",
                    _share(report.cases_with_outcome, report.pct_cases_with_outcome),
                ),
            ],
        ),
        *_section(
            "5. IDENTITIES",
            [
                _line("Validated identities", report.validated_identities),
                _line("Suspicious identities", report.suspicious_identities),
                _line("Patients with several dated cases", report.patients_with_multiple_cases),
            ],
        ),
        *_section(
            "6. ANALYSIS QUALITY",
            [
                _line(
                    "High-quality cases",
                    _share(report.high_quality_cases, report.pct_high_quality),
                ),
            ],
        ),
        RULE,
    ]
    return "\n".join(lines)
