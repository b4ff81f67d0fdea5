"""Shared constants and helpers for achfile."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import json
import logging

RECORD_LENGTH = 94
BLOCKING_FACTOR = 10
ENTRY_HASH_MODULUS = 10**10
PADDING_LINE = "9" * RECORD_LENGTH


class RecordKind(str, Enum):
    """The five record kinds of a NACHA file plus addenda."""

    FILE_HEADER = "file header"
    BATCH_HEADER = "batch header"
    ENTRY_DETAIL = "entry detail"
    ADDENDA = "addenda"
    BATCH_CONTROL = "batch control"
    FILE_CONTROL = "file control"


LEADING_CODES: dict[RecordKind, str] = {
    RecordKind.FILE_HEADER: "1",
    RecordKind.BATCH_HEADER: "5",
    RecordKind.ENTRY_DETAIL: "6",
    RecordKind.ADDENDA: "7",
    RecordKind.BATCH_CONTROL: "8",
    RecordKind.FILE_CONTROL: "9",
}

KIND_BY_CODE: dict[str, RecordKind] = {code: kind for kind, code in LEADING_CODES.items()}

SERVICE_CLASS_MIXED = 200
SERVICE_CLASS_CREDITS = 220
SERVICE_CLASS_DEBITS = 225
SERVICE_CLASS_CODES = frozenset({SERVICE_CLASS_MIXED, SERVICE_CLASS_CREDITS, SERVICE_CLASS_DEBITS})

STANDARD_ENTRY_CLASSES = frozenset({"PPD", "CCD", "CTX"})

# Demand, savings, general ledger and loan accounts. Second digit 1-4 is a
# credit (return, live, prenote, zero dollar), 5-9 a debit.
CREDIT_TRANSACTION_CODES = frozenset(
    {21, 22, 23, 24, 31, 32, 33, 34, 41, 42, 43, 44, 51, 52, 53, 54}
)
DEBIT_TRANSACTION_CODES = frozenset(
    {26, 27, 28, 29, 36, 37, 38, 39, 46, 47, 48, 49, 55, 56}
)
PRENOTE_TRANSACTION_CODES = frozenset({23, 28, 33, 38, 43, 48, 53})
TRANSACTION_CODES = CREDIT_TRANSACTION_CODES | DEBIT_TRANSACTION_CODES


class IssueSeverity(str, Enum):
    """Enumeration of validation severities."""

    WARNING = "warning"
    CRITICAL = "critical"


class ValidationStatus(str, Enum):
    """High-level status for validation sections."""

    OK = "OK"
    WARN = "WARN"
    ERROR = "ERROR"


@dataclass
class ValidationIssue:
    """Container for individual validation issues."""

    severity: IssueSeverity
    message: str
    line_number: Optional[int] = None
    record_kind: Optional[RecordKind] = None
    code: Optional[str] = None


@dataclass
class SectionReport:
    """Summary for a validation section."""

    status: ValidationStatus
    issues: list[ValidationIssue]

    @property
    def has_errors(self) -> bool:
        return any(issue.severity is IssueSeverity.CRITICAL for issue in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(issue.severity is IssueSeverity.WARNING for issue in self.issues)


@dataclass
class RecordCounters:
    """Track record counts for the processed payload."""

    total: int = 0
    batches: int = 0
    entries: int = 0
    addenda: int = 0
    padding: int = 0


@dataclass
class Totalizers:
    """Declared file control totals next to the recomputed ones."""

    computed_debit: int = 0
    computed_credit: int = 0
    computed_entry_hash: int = 0
    declared_debit: Optional[int] = None
    declared_credit: Optional[int] = None
    declared_entry_hash: Optional[int] = None


@dataclass
class ValidationSummary:
    """Aggregate validation outcome for reporting."""

    source_path: Path
    encoding: SectionReport
    structure: SectionReport
    reconciliation: SectionReport
    record_counters: RecordCounters
    totalizers: Totalizers
    newline: str
    offending_codepoints: list[int] = field(default_factory=list)


def ensure_reports_dir(base_dir: Path) -> Path:
    """Ensure that the reports directory exists."""

    reports_dir = base_dir / "reports"
    reports_dir.mkdir(parents=True, exist_ok=True)
    return reports_dir


def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logger when the CLI runs."""

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Persist text content to disk ensuring parent directories exist."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding=encoding, newline="") as handle:
        handle.write(content)


def write_json(path: Path, payload: dict) -> None:
    """Persist JSON content to disk with UTF-8 encoding."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)


def detect_newline(data: bytes) -> str:
    """Detect newline type used in the byte buffer."""

    if b"\r\n" in data:
        return "CRLF"
    if b"\n" in data:
        return "LF"
    return "NONE"


def strip_bom(data: bytes) -> bytes:
    """Remove UTF-8 BOM when present."""

    bom = b"\xef\xbb\xbf"
    if data.startswith(bom):
        return data[len(bom) :]
    return data


def ensure_ascii(text: str) -> tuple[str, list[int]]:
    """Convert text to ASCII, tracking offending code points."""

    offending: list[int] = []
    result_chars: list[str] = []
    for char in text:
        if ord(char) > 127:
            offending.append(ord(char))
            result_chars.append("?")
        else:
            result_chars.append(char)
    return "".join(result_chars), offending


def compute_status(issues: list[ValidationIssue]) -> ValidationStatus:
    """Compute section status based on collected issues."""

    if any(issue.severity is IssueSeverity.CRITICAL for issue in issues):
        return ValidationStatus.ERROR
    if any(issue.severity is IssueSeverity.WARNING for issue in issues):
        return ValidationStatus.WARN
    return ValidationStatus.OK


__all__ = [
    "BLOCKING_FACTOR",
    "CREDIT_TRANSACTION_CODES",
    "DEBIT_TRANSACTION_CODES",
    "ENTRY_HASH_MODULUS",
    "IssueSeverity",
    "KIND_BY_CODE",
    "LEADING_CODES",
    "PADDING_LINE",
    "PRENOTE_TRANSACTION_CODES",
    "RECORD_LENGTH",
    "RecordCounters",
    "RecordKind",
    "SERVICE_CLASS_CODES",
    "SERVICE_CLASS_CREDITS",
    "SERVICE_CLASS_DEBITS",
    "SERVICE_CLASS_MIXED",
    "STANDARD_ENTRY_CLASSES",
    "SectionReport",
    "TRANSACTION_CODES",
    "Totalizers",
    "ValidationIssue",
    "ValidationStatus",
    "ValidationSummary",
    "compute_status",
    "configure_logging",
    "detect_newline",
    "ensure_ascii",
    "ensure_reports_dir",
    "strip_bom",
    "write_json",
    "write_text",
]
