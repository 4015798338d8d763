from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from clinrecon.app import (
    detect_duplicates,
    fix_integrity,
    merge_duplicates,
    reassign_identities,
    verify,
)
from clinrecon.config import configure_logging, get_reconcile_config, get_storage_config
from clinrecon.domain.errors import MalformedInputError
from clinrecon.domain.reconciliation import (
    render_detection,
    render_integrity,
    render_merge,
    render_reassignment,
    render_report,
    render_summary,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from clinrecon.config import ReconcileConfig
    from clinrecon.domain.reconciliation import RunSummary

log = logging.getLogger(__name__)

EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_RECORD_ERRORS = 3
EXIT_INTERRUPTED = 130


def _add_execute_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Apply the planned changes after confirmation (default: dry run)",
    )
    parser.add_argument(
        "--confirm",
        type=str,
        help="Confirmation token; skips the interactive prompt",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile clinical registry records")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("detect", help="Report near-duplicate clinical records")

    merge = subparsers.add_parser("merge", help="Back up and delete duplicate clinical records")
    _add_execute_flags(merge)
    merge.add_argument(
        "--all-patients",
        action="store_true",
        help="Collapse every patient with several records, not only flagged clusters",
    )

    reassign = subparsers.add_parser(
        "reassign",
        help="Move child records filed under the wrong patient",
    )
    reassign.add_argument(
        "--mapping",
        type=Path,
        required=True,
        help="JSON or CSV file with wrongIdentity, correctIdentity, date, rationale",
    )
    _add_execute_flags(reassign)

    fix = subparsers.add_parser(
        "fix-integrity",
        help="Swap inverted time windows and flag out-of-window samples",
    )
    _add_execute_flags(fix)

    verify_parser = subparsers.add_parser("verify", help="Print the integrity report")
    verify_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the machine-readable report instead of the console rendering",
    )

    return parser.parse_args(list(argv))


def _prompt(message: str) -> str:
    return input(message)


def _confirmed(args: argparse.Namespace, config: ReconcileConfig) -> bool:
    token = args.confirm
    if token is None:
        token = _prompt(f"Type {config.confirmation_token} to apply these changes: ")
    if token.strip() == config.confirmation_token:
        return True
    log.warning("Confirmation token did not match; nothing was changed")
    return False


def _emit(text: str) -> None:
    print(text)  # noqa: T201


def _finish(summary: RunSummary) -> int:
    _emit(render_summary(summary))
    log.info(
        "Run finished: processed=%d, fixed=%d, errors=%d",
        summary.processed,
        summary.fixed,
        summary.error_count,
    )
    return EXIT_RECORD_ERRORS if summary.error_count else 0


def _run_merge(args: argparse.Namespace, config: ReconcileConfig) -> int:
    only_clustered = not args.all_patients
    result = merge_duplicates(execute=False, only_clustered=only_clustered, config=config)
    _emit(render_merge(result))
    if args.execute and not result.plan.is_empty and _confirmed(args, config):
        result = merge_duplicates(execute=True, only_clustered=only_clustered, config=config)
        _emit(render_merge(result))
    return _finish(result.summary)


def _run_reassign(args: argparse.Namespace, config: ReconcileConfig) -> int:
    result = reassign_identities(mapping_file=args.mapping, execute=False)
    _emit(render_reassignment(result))
    if args.execute and not result.plan.is_empty and _confirmed(args, config):
        result = reassign_identities(mapping_file=args.mapping, execute=True)
        _emit(render_reassignment(result))
    return _finish(result.summary)


def _run_fix_integrity(args: argparse.Namespace, config: ReconcileConfig) -> int:
    result = fix_integrity(execute=False)
    _emit(render_integrity(result))
    if args.execute and not result.plan.is_empty and _confirmed(args, config):
        result = fix_integrity(execute=True)
        _emit(render_integrity(result))
    return _finish(result.summary)


def _dispatch(args: argparse.Namespace, config: ReconcileConfig) -> int:
    if args.command == "detect":
        result = detect_duplicates(config=config)
        _emit(render_detection(result, mass_import_threshold=config.mass_import_threshold))
        return 0
    if args.command == "merge":
        return _run_merge(args, config)
    if args.command == "reassign":
        return _run_reassign(args, config)
    if args.command == "fix-integrity":
        return _run_fix_integrity(args, config)
    if args.command == "verify":
        report = verify(config=config)
        _emit(json.dumps(report.to_dict(), indent=2) if args.json else render_report(report))
        return 0
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(EXIT_USAGE)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        config = get_reconcile_config()
        code = _dispatch(parsed_args, config)
    except MalformedInputError:
        log.exception("Invalid input")
        sys.exit(EXIT_USAGE)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(EXIT_FATAL)
    if code:
        sys.exit(code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Stop on Ctrl+C with a non-zero exit; batches already applied are not rolled back."""
    log.warning(
        "Interrupted by user (Ctrl+C). Batches already applied stay applied; "
        "restore from the most recent backup in %s if needed",
        get_storage_config().backup_path(),
    )
    sys.exit(EXIT_INTERRUPTED)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
