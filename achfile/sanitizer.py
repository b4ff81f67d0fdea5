"""Turn raw ACH payloads into a list of 94-character lines."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List
import logging

from .utils import (
    RECORD_LENGTH,
    IssueSeverity,
    SectionReport,
    ValidationIssue,
    compute_status,
    detect_newline,
    ensure_ascii,
    strip_bom,
)

logger = logging.getLogger(__name__)


@dataclass
class SanitizeResult:
    """Outcome of the sanitization pipeline."""

    section: SectionReport
    lines: list[str]
    newline: str
    offending_codepoints: list[int]


class Sanitizer:
    """Prepare raw ACH payloads for assembly."""

    def sanitize(self, file_path: Path) -> SanitizeResult:
        file_path = file_path.expanduser().resolve()
        logger.info("Sanitizing %s", file_path)

        try:
            raw_bytes = file_path.read_bytes()
        except OSError as exc:
            issue = ValidationIssue(
                severity=IssueSeverity.CRITICAL,
                message=f"Could not read file: {exc}",
            )
            section = SectionReport(status=compute_status([issue]), issues=[issue])
            return SanitizeResult(section=section, lines=[], newline="NONE", offending_codepoints=[])

        return self.sanitize_bytes(raw_bytes)

    def sanitize_bytes(self, raw_bytes: bytes) -> SanitizeResult:
        issues: List[ValidationIssue] = []
        newline = detect_newline(raw_bytes)

        if b"\x00" in raw_bytes:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    message="NUL bytes found in file",
                )
            )

        stripped_bytes = strip_bom(raw_bytes)
        if stripped_bytes is not raw_bytes:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message="UTF-8 BOM removed",
                )
            )

        # latin-1 maps every byte, so decoding cannot fail
        ascii_text, offending = ensure_ascii(stripped_bytes.decode("latin-1"))
        if offending:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message="Characters outside the ASCII range replaced by '?'",
                )
            )

        lines: list[str]
        if newline == "NONE":
            # unbroken 940-byte blocks
            if len(ascii_text) % RECORD_LENGTH:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        message=(
                            f"No line breaks and length {len(ascii_text)} is not a multiple of {RECORD_LENGTH}"
                        ),
                    )
                )
            lines = [ascii_text[idx : idx + RECORD_LENGTH] for idx in range(0, len(ascii_text), RECORD_LENGTH)]
        else:
            lines = ascii_text.splitlines()
            if lines and not lines[-1]:
                while lines and not lines[-1]:
                    lines.pop()
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        message="Blank lines at end of file removed",
                    )
                )

        normalized: list[str] = []
        for index, line in enumerate(lines, start=1):
            if not line:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        message="Blank line inside the file",
                        line_number=index,
                    )
                )
            elif len(line) < RECORD_LENGTH:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        message=f"Line has {len(line)} characters, blank-padded to {RECORD_LENGTH}",
                        line_number=index,
                    )
                )
                line = line.ljust(RECORD_LENGTH)
            elif len(line) > RECORD_LENGTH:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.CRITICAL,
                        message=f"Line has {len(line)} characters (expected {RECORD_LENGTH})",
                        line_number=index,
                    )
                )
            normalized.append(line)

        if not normalized:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.CRITICAL,
                    message="File contains no records after sanitization",
                )
            )

        section = SectionReport(status=compute_status(issues), issues=issues)
        return SanitizeResult(section=section, lines=normalized, newline=newline, offending_codepoints=offending)


__all__ = ["Sanitizer", "SanitizeResult"]
