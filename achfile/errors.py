"""Exceptions raised while decoding, assembling or reconciling ACH files."""
from __future__ import annotations

from typing import Optional

from .utils import RecordKind


class AchError(ValueError):
    """Base class for every ACH format violation."""


class FieldError(AchError):
    """A single fixed-width field is malformed or cannot be rendered."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class RecordError(AchError):
    """A 94-character record is malformed."""

    def __init__(
        self,
        kind: Optional[RecordKind],
        reason: str,
        *,
        field: Optional[str] = None,
        line_number: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.reason = reason
        self.field = field
        self.line_number = line_number
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"line {self.line_number}: " if self.line_number is not None else ""
        label = self.kind.value if self.kind is not None else "record"
        what = f"{label}.{self.field}" if self.field else label
        return f"{where}{what}: {self.reason}"

    def at_line(self, line_number: int) -> "RecordError":
        return RecordError(self.kind, self.reason, field=self.field, line_number=line_number)


class SequenceError(AchError):
    """Records appear in an order the file structure does not allow."""

    def __init__(self, line_number: int, expected: str, found: str) -> None:
        self.line_number = line_number
        self.expected = expected
        self.found = found
        super().__init__(f"line {line_number}: expected {expected}, found {found}")


class ReconciliationError(AchError):
    """A declared control total disagrees with the recomputed value."""

    def __init__(self, scope: str, field: str, expected: object, actual: object) -> None:
        self.scope = scope
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"{scope}: {field} declared {actual}, computed {expected}")


class PaddingError(AchError):
    """Trailing block filler after the file control record is malformed."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"line {line_number}: {reason}")


class IncompleteFileError(AchError):
    """Input ended before a complete file was read."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


__all__ = [
    "AchError",
    "FieldError",
    "IncompleteFileError",
    "PaddingError",
    "ReconciliationError",
    "RecordError",
    "SequenceError",
]
