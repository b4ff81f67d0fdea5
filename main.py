"""CLI entry point for achfile."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence
import argparse
import logging

from achfile.assembler import Assembler
from achfile.builder import build_file, load_payload
from achfile.controls import compute_batch_totals, entry_hash, reconcile
from achfile.errors import AchError
from achfile.records import AchFile
from achfile.reporter import Reporter
from achfile.sanitizer import Sanitizer
from achfile.utils import (
    IssueSeverity,
    RecordCounters,
    RecordKind,
    SectionReport,
    Totalizers,
    ValidationIssue,
    ValidationStatus,
    ValidationSummary,
    compute_status,
    configure_logging,
)
from achfile.writer import write_file

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read, validate and build NACHA ACH files")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("validate", help="Validate structure and control totals of an ACH file")
    check.add_argument("input", type=Path, help="ACH file to validate")
    check.add_argument(
        "--reports-dir",
        type=Path,
        help="Base directory for reports (default: current directory)",
    )
    check.add_argument(
        "--no-reports",
        dest="reports",
        action="store_false",
        help="Only log the outcome, do not write JSON/TXT reports",
    )
    check.set_defaults(reports=True)
    check.add_argument("--workers", type=int, default=None, help="Threads used to reconcile batches")

    build = commands.add_parser("build", help="Build an ACH file from a JSON payload")
    build.add_argument("payload", type=Path, help="JSON payload describing header, batches and entries")
    build.add_argument("output", type=Path, help="Destination ACH file")
    build.add_argument("--crlf", action="store_true", help="Terminate lines with CRLF instead of LF")
    return parser.parse_args(argv)


def _issue_from_error(exc: AchError) -> ValidationIssue:
    return ValidationIssue(
        severity=IssueSeverity.CRITICAL,
        message=str(exc),
        line_number=getattr(exc, "line_number", None),
        record_kind=getattr(exc, "kind", None),
        code=type(exc).__name__,
    )


def build_summary(path: Path, workers: Optional[int] = None) -> ValidationSummary:
    """Run sanitizer, assembler and reconciliation, collecting issues."""

    sanitize_result = Sanitizer().sanitize(path)
    lines = sanitize_result.lines

    structure_issues: list[ValidationIssue] = []
    reconciliation_issues: list[ValidationIssue] = []
    counters = RecordCounters(total=len(lines))
    totalizers = Totalizers()

    ach_file: Optional[AchFile] = None
    if lines:
        try:
            ach_file = Assembler().assemble(lines)
        except AchError as exc:
            logger.error("Structure check failed: %s", exc)
            structure_issues.append(_issue_from_error(exc))

    if ach_file is not None:
        counters.batches = len(ach_file.batches)
        counters.entries = len(ach_file.entries)
        counters.addenda = sum(len(entry.addenda) for entry in ach_file.entries)
        counters.padding = len(lines) - ach_file.record_count

        batch_totals = [compute_batch_totals(batch.entries) for batch in ach_file.batches]
        totalizers.computed_debit = sum(totals.total_debit for totals in batch_totals)
        totalizers.computed_credit = sum(totals.total_credit for totals in batch_totals)
        totalizers.computed_entry_hash = entry_hash(ach_file.entries)
        if ach_file.control is not None:
            totalizers.declared_debit = ach_file.control.total_debit_entry_dollar_amount_in_file
            totalizers.declared_credit = ach_file.control.total_credit_entry_dollar_amount_in_file
            totalizers.declared_entry_hash = ach_file.control.entry_hash

        for mismatch in reconcile(ach_file, workers=workers):
            issue = _issue_from_error(mismatch)
            issue.record_kind = RecordKind.FILE_CONTROL if mismatch.scope == "file" else RecordKind.BATCH_CONTROL
            reconciliation_issues.append(issue)
    elif not structure_issues:
        structure_issues.append(
            ValidationIssue(severity=IssueSeverity.CRITICAL, message="Structure not checked: no records")
        )

    return ValidationSummary(
        source_path=path,
        encoding=sanitize_result.section,
        structure=SectionReport(status=compute_status(structure_issues), issues=structure_issues),
        reconciliation=SectionReport(status=compute_status(reconciliation_issues), issues=reconciliation_issues),
        record_counters=counters,
        totalizers=totalizers,
        newline=sanitize_result.newline,
        offending_codepoints=sanitize_result.offending_codepoints,
    )


def run_validate(args: argparse.Namespace) -> int:
    summary = build_summary(args.input, workers=args.workers)

    if args.reports:
        base_dir = args.reports_dir.resolve() if args.reports_dir else Path.cwd()
        report_paths = Reporter().render(summary, base_dir)
        print("Reports written:")
        print(f"- JSON: {report_paths.json_path}")
        print(f"- TXT: {report_paths.txt_path}")

    sections = [summary.encoding, summary.structure, summary.reconciliation]
    if any(section.status is ValidationStatus.ERROR for section in sections):
        logger.error("%s rejected", args.input)
        return 2
    if any(section.status is ValidationStatus.WARN for section in sections):
        logger.warning("%s accepted with warnings", args.input)
        return 1
    logger.info("%s accepted", args.input)
    return 0


def run_build(args: argparse.Namespace) -> int:
    try:
        ach_file = build_file(load_payload(args.payload))
        write_file(args.output, ach_file, newline="\r\n" if args.crlf else "\n")
    except (AchError, KeyError, OSError, ValueError) as exc:
        logger.error("Could not build %s: %s", args.output, exc)
        return 2
    print(f"ACH file written: {args.output}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(getattr(logging, args.log_level.upper(), logging.INFO))

    if args.command == "validate":
        return run_validate(args)
    return run_build(args)


if __name__ == "__main__":
    raise SystemExit(main())
