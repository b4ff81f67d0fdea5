"""Assemble raw 94-character lines into the File -> Batch -> Entry hierarchy."""
from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional
import logging

from .errors import IncompleteFileError, PaddingError, RecordError, SequenceError
from .records import (
    AchFile,
    Addenda,
    Batch,
    BatchControl,
    BatchHeader,
    Entry,
    EntryDetail,
    FileControl,
    FileHeader,
    Record,
    decode_record,
    record_class_for,
)
from .utils import BLOCKING_FACTOR, KIND_BY_CODE, LEADING_CODES, PADDING_LINE, RecordKind

logger = logging.getLogger(__name__)


class State(str, Enum):
    EXPECT_FILE_HEADER = "file header"
    EXPECT_BATCH_OR_FILE_CONTROL = "batch header or file control"
    IN_BATCH = "entry detail, addenda or batch control"
    EXPECT_ADDENDA = "addenda"
    PADDING = "block padding"


def _describe(line: str) -> str:
    if line == PADDING_LINE:
        return "block padding"
    kind = KIND_BY_CODE.get(line[:1])
    if kind is None:
        return f"unknown record type {line[:1]!r}"
    return kind.value


class _OpenBatch:
    """Mutable accumulator for the batch currently being read."""

    def __init__(self, header: BatchHeader, line_number: int) -> None:
        self.header = header
        self.line_number = line_number
        self.entries: List[Entry] = []
        self.detail: Optional[EntryDetail] = None
        self.addenda: List[Addenda] = []

    def flush_entry(self) -> None:
        if self.detail is not None:
            self.entries.append(Entry(detail=self.detail, addenda=tuple(self.addenda)))
        self.detail = None
        self.addenda = []

    def close(self, control: BatchControl) -> Batch:
        self.flush_entry()
        return Batch(header=self.header, entries=tuple(self.entries), control=control)


class Assembler:
    """Strict state machine over leading record codes.

    The first structural violation raises; nothing is skipped or repaired.
    """

    def assemble(self, lines: Iterable[str]) -> AchFile:
        lines = list(lines)
        logger.info("Assembling ACH hierarchy (%d lines)", len(lines))

        state = State.EXPECT_FILE_HEADER
        header: Optional[FileHeader] = None
        control: Optional[FileControl] = None
        batches: List[Batch] = []
        current: Optional[_OpenBatch] = None
        padding = 0

        for index, line in enumerate(lines, start=1):
            code = line[:1]

            if state is State.PADDING:
                if line != PADDING_LINE:
                    raise PaddingError(index, f"trailing line after file control is not nine-filled: {line[:20]!r}")
                padding += 1
                continue

            if state is State.EXPECT_FILE_HEADER:
                if code != LEADING_CODES[RecordKind.FILE_HEADER]:
                    raise SequenceError(index, state.value, _describe(line))
                header = self._decode(FileHeader, line, index)
                state = State.EXPECT_BATCH_OR_FILE_CONTROL

            elif state is State.EXPECT_BATCH_OR_FILE_CONTROL:
                if code == LEADING_CODES[RecordKind.BATCH_HEADER]:
                    current = _OpenBatch(self._decode(BatchHeader, line, index), index)
                    state = State.IN_BATCH
                elif code == LEADING_CODES[RecordKind.FILE_CONTROL] and line != PADDING_LINE:
                    if not batches:
                        raise SequenceError(index, "batch header", "file control before any batch")
                    control = self._decode(FileControl, line, index)
                    state = State.PADDING
                else:
                    raise SequenceError(index, state.value, _describe(line))

            elif state is State.EXPECT_ADDENDA:
                assert current is not None
                if code != LEADING_CODES[RecordKind.ADDENDA]:
                    raise SequenceError(
                        index,
                        "addenda for entry with addenda indicator 1",
                        _describe(line),
                    )
                current.addenda.append(self._decode_addenda(line, index))
                state = State.IN_BATCH

            else:
                assert current is not None
                if code == LEADING_CODES[RecordKind.ENTRY_DETAIL]:
                    current.flush_entry()
                    detail = self._decode(EntryDetail, line, index)
                    current.detail = detail
                    if detail.has_addenda:
                        state = State.EXPECT_ADDENDA
                elif code == LEADING_CODES[RecordKind.ADDENDA]:
                    if current.detail is None or not current.detail.has_addenda:
                        raise SequenceError(
                            index,
                            "entry detail or batch control",
                            "addenda without an entry detail flagged for addenda",
                        )
                    current.addenda.append(self._decode_addenda(line, index))
                elif code == LEADING_CODES[RecordKind.BATCH_CONTROL]:
                    batch_control = self._decode(BatchControl, line, index)
                    if current.detail is None and not current.entries:
                        raise SequenceError(index, "entry detail", "batch control closing an empty batch")
                    if batch_control.batch_number != current.header.batch_number:
                        raise SequenceError(
                            index,
                            f"batch control for batch {current.header.batch_number:07d}",
                            f"batch control for batch {batch_control.batch_number:07d}",
                        )
                    batches.append(current.close(batch_control))
                    logger.debug(
                        "Batch %07d closed at line %d (%d entries)",
                        current.header.batch_number,
                        index,
                        len(batches[-1].entries),
                    )
                    current = None
                    state = State.EXPECT_BATCH_OR_FILE_CONTROL
                else:
                    raise SequenceError(
                        index,
                        f"{state.value} for batch opened at line {current.line_number}",
                        _describe(line),
                    )

        if header is None:
            raise IncompleteFileError("input ended before a file header was read")
        if control is None:
            if current is not None:
                raise IncompleteFileError(
                    f"input ended inside batch {current.header.batch_number:07d} opened at line {current.line_number}"
                )
            raise IncompleteFileError("input ended before the file control record")

        if padding:
            total = len(lines)
            if total % BLOCKING_FACTOR:
                raise PaddingError(
                    total,
                    f"{total} lines do not end on a {BLOCKING_FACTOR}-line block boundary",
                )
            if padding >= BLOCKING_FACTOR:
                raise PaddingError(total, f"{padding} padding lines exceed one block")

        logger.info("Assembled %d batches (%d padding lines)", len(batches), padding)
        return AchFile(header=header, batches=tuple(batches), control=control)

    def _decode(self, cls: type, line: str, index: int) -> Record:
        try:
            return decode_record(cls, line)
        except RecordError as exc:
            raise exc.at_line(index) from exc

    def _decode_addenda(self, line: str, index: int) -> Addenda:
        cls = record_class_for(line) or Addenda
        return self._decode(cls, line, index)  # type: ignore[return-value]


def assemble(lines: Iterable[str]) -> AchFile:
    """Module-level shortcut for :meth:`Assembler.assemble`."""

    return Assembler().assemble(lines)


__all__ = ["Assembler", "State", "assemble"]
