"""Generate achfile validation reports."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List
import datetime as _dt

from .utils import (
    IssueSeverity,
    ValidationSummary,
    ensure_reports_dir,
    write_json,
    write_text,
)


@dataclass
class ReportPaths:
    """Location for generated artifacts."""

    json_path: Path
    txt_path: Path


class Reporter:
    """Materialize validation results into human-readable reports."""

    def render(self, summary: ValidationSummary, base_dir: Path) -> ReportPaths:
        reports_dir = ensure_reports_dir(base_dir)
        stem = summary.source_path.stem
        target_dir = reports_dir / stem
        target_dir.mkdir(parents=True, exist_ok=True)
        timestamp = _dt.datetime.now().strftime("%Y%m%d%H%M%S")
        json_path = target_dir / f"{stem}.{timestamp}.json"
        txt_path = target_dir / f"{stem}.{timestamp}.txt"

        write_json(json_path, self._build_json(summary))
        write_text(txt_path, self._build_text(summary))
        return ReportPaths(json_path=json_path, txt_path=txt_path)

    def _build_json(self, summary: ValidationSummary) -> Dict[str, object]:
        counters = summary.record_counters
        totals = summary.totalizers
        return {
            "file": summary.source_path.name,
            "source": str(summary.source_path),
            "validation": {
                "encoding": summary.encoding.status.value,
                "structure": summary.structure.status.value,
                "reconciliation": summary.reconciliation.status.value,
                "errors": self._collect_messages(summary, IssueSeverity.CRITICAL),
                "warnings": self._collect_messages(summary, IssueSeverity.WARNING),
                "newline": summary.newline,
                "invalid_codepoints": summary.offending_codepoints,
            },
            "records": {
                "total": counters.total,
                "batches": counters.batches,
                "entries": counters.entries,
                "addenda": counters.addenda,
                "padding": counters.padding,
            },
            "totals": {
                "debit": {"computed": totals.computed_debit, "declared": totals.declared_debit},
                "credit": {"computed": totals.computed_credit, "declared": totals.declared_credit},
                "entry_hash": {"computed": totals.computed_entry_hash, "declared": totals.declared_entry_hash},
            },
        }

    def _build_text(self, summary: ValidationSummary) -> str:
        counters = summary.record_counters
        totals = summary.totalizers
        lines: List[str] = []
        lines.append(f"File: {summary.source_path.name}")
        lines.append(f"Source: {summary.source_path}")
        lines.append("")
        lines.append("[Validation]")
        lines.append(f"- Encoding: {summary.encoding.status.value}")
        lines.append(f"- Structure: {summary.structure.status.value}")
        lines.append(f"- Reconciliation: {summary.reconciliation.status.value}")
        lines.append(f"- Records: {counters.total}")
        lines.append(f"- Batches: {counters.batches}")
        lines.append(f"- Entries: {counters.entries} (+{counters.addenda} addenda)")
        lines.append(f"- Padding lines: {counters.padding}")
        lines.append(f"- Newline: {summary.newline}")
        if summary.offending_codepoints:
            lines.append(
                "- Replaced codepoints: "
                + ", ".join(str(cp) for cp in summary.offending_codepoints)
            )
        lines.append("")

        criticals = self._collect_messages(summary, IssueSeverity.CRITICAL)
        warnings = self._collect_messages(summary, IssueSeverity.WARNING)

        if criticals:
            lines.append("[Errors]")
            lines.extend(f"- {msg}" for msg in criticals)
            lines.append("")
        if warnings:
            lines.append("[Warnings]")
            lines.extend(f"- {msg}" for msg in warnings)
            lines.append("")

        lines.append("[Totals]")
        lines.append(f"- Debits: computed {totals.computed_debit}, declared {self._declared(totals.declared_debit)}")
        lines.append(f"- Credits: computed {totals.computed_credit}, declared {self._declared(totals.declared_credit)}")
        lines.append(
            f"- Entry hash: computed {totals.computed_entry_hash:010d}, "
            f"declared {self._declared(totals.declared_entry_hash)}"
        )

        return "\n".join(lines) + "\n"

    def _declared(self, value: object) -> str:
        return str(value) if value is not None else "not available"

    def _collect_messages(self, summary: ValidationSummary, severity: IssueSeverity) -> List[str]:
        messages: List[str] = []
        for section in (summary.encoding, summary.structure, summary.reconciliation):
            for issue in section.issues:
                if issue.severity is severity:
                    message = issue.message
                    if issue.line_number is not None:
                        message = f"Line {issue.line_number}: {message}"
                    messages.append(message)
        return messages


__all__ = ["Reporter", "ReportPaths"]
