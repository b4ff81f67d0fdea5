"""Render ACH files to lines and text, and read them back."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional
import logging

from .assembler import Assembler
from .controls import fill_controls, validate
from .errors import AchError, RecordError
from .records import AchFile, encode_record
from .sanitizer import SanitizeResult, Sanitizer
from .utils import BLOCKING_FACTOR, PADDING_LINE, IssueSeverity, write_text

logger = logging.getLogger(__name__)


def render_lines(ach_file: AchFile, pad_blocks: bool = True) -> List[str]:
    """File as 94-character lines; missing controls are computed first."""

    if ach_file.control is None or any(batch.control is None for batch in ach_file.batches):
        ach_file = fill_controls(ach_file)

    lines = [encode_record(ach_file.header)]
    for batch in ach_file.batches:
        lines.append(encode_record(batch.header))
        for entry in batch.entries:
            lines.append(encode_record(entry.detail))
            lines.extend(encode_record(addenda) for addenda in entry.addenda)
        lines.append(encode_record(batch.control))  # type: ignore[arg-type]
    lines.append(encode_record(ach_file.control))  # type: ignore[arg-type]

    if pad_blocks and len(lines) % BLOCKING_FACTOR:
        lines.extend([PADDING_LINE] * (BLOCKING_FACTOR - len(lines) % BLOCKING_FACTOR))
    return lines


def dumps(ach_file: AchFile, newline: str = "\n") -> str:
    return newline.join(render_lines(ach_file)) + newline


def write_file(path: Path, ach_file: AchFile, newline: str = "\n") -> Path:
    content = dumps(ach_file, newline=newline)
    write_text(path, content, encoding="ascii")
    logger.info("Wrote %s (%d lines)", path, content.count(newline))
    return path


def loads(text: str, workers: Optional[int] = None) -> AchFile:
    """Parse and reconcile ACH text; any violation raises."""

    return _load(Sanitizer().sanitize_bytes(text.encode("latin-1", errors="replace")), workers)


def read_file(path: Path, workers: Optional[int] = None) -> AchFile:
    return _load(Sanitizer().sanitize(Path(path)), workers)


def _load(result: SanitizeResult, workers: Optional[int]) -> AchFile:
    for issue in result.section.issues:
        if issue.severity is IssueSeverity.CRITICAL:
            if issue.line_number is not None:
                raise RecordError(None, issue.message, line_number=issue.line_number)
            raise AchError(issue.message)
    return validate(Assembler().assemble(result.lines), workers=workers)


__all__ = ["dumps", "loads", "read_file", "render_lines", "write_file"]
