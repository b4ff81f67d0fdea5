"""Typed NACHA records and the 94-character record codec."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import ClassVar, Dict, Optional, Tuple, Type, TypeVar
import datetime as _dt
import logging

from .errors import FieldError, RecordError
from .fields import FieldSpec, alpha, constant, decode_field, digits, encode_field, numeric, routing
from .routing import compute_check_digit, routing_token_error
from .utils import (
    KIND_BY_CODE,
    LEADING_CODES,
    RECORD_LENGTH,
    SERVICE_CLASS_CODES,
    STANDARD_ENTRY_CLASSES,
    TRANSACTION_CODES,
    RecordKind,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="Record")


class Record:
    """Base for all record dataclasses.

    Subclasses define ``KIND`` and a ``LAYOUT`` that covers all 94 columns.
    Constant fields in the layout have no dataclass attribute.
    """

    KIND: ClassVar[RecordKind]
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]]

    def check(self) -> None:
        """Record-level invariants checked after decoding; raise FieldError."""

    def to_line(self) -> str:
        return encode_record(self)

    @classmethod
    def from_line(cls: Type[R], line: str) -> R:
        return decode_record(cls, line)


def _record_type(kind: RecordKind) -> FieldSpec:
    return constant("record_type", 0, LEADING_CODES[kind])


@dataclass(frozen=True)
class FileHeader(Record):
    KIND: ClassVar[RecordKind] = RecordKind.FILE_HEADER
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.FILE_HEADER),
        constant("priority_code", 1, "01"),
        routing("immediate_destination", 3, 10),
        routing("immediate_origin", 13, 10),
        digits("file_creation_date", 23, 6),
        digits("file_creation_time", 29, 4, blank_ok=True),
        alpha("file_id_modifier", 33, 1),
        constant("record_size", 34, "094"),
        constant("blocking_factor", 37, "10"),
        constant("format_code", 39, "1"),
        alpha("immediate_destination_name", 40, 23),
        alpha("immediate_origin_name", 63, 23),
        alpha("reference_code", 86, 8),
    )

    immediate_destination: str
    immediate_origin: str
    file_creation_date: str
    file_creation_time: str = ""
    file_id_modifier: str = "A"
    immediate_destination_name: str = ""
    immediate_origin_name: str = ""
    reference_code: str = ""

    def check(self) -> None:
        for name in ("immediate_destination", "immediate_origin"):
            problem = routing_token_error(getattr(self, name))
            if problem:
                raise FieldError(name, problem)
        try:
            _dt.datetime.strptime(self.file_creation_date + (self.file_creation_time or "0000"), "%y%m%d%H%M")
        except ValueError:
            raise FieldError(
                "file_creation_date",
                f"not a date and time: {self.file_creation_date!r} {self.file_creation_time!r}",
            ) from None

    @property
    def created_at(self) -> _dt.datetime:
        stamp = self.file_creation_date + (self.file_creation_time or "0000")
        return _dt.datetime.strptime(stamp, "%y%m%d%H%M")


@dataclass(frozen=True)
class BatchHeader(Record):
    KIND: ClassVar[RecordKind] = RecordKind.BATCH_HEADER
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.BATCH_HEADER),
        numeric("service_class_code", 1, 3, allowed=SERVICE_CLASS_CODES),
        alpha("company_name", 4, 16),
        alpha("company_discretionary_data", 20, 20),
        alpha("company_identification", 40, 10),
        alpha("standard_entry_class_code", 50, 3, allowed=STANDARD_ENTRY_CLASSES),
        alpha("company_entry_description", 53, 10),
        alpha("company_descriptive_date", 63, 6),
        digits("effective_entry_date", 69, 6),
        digits("settlement_date", 75, 3, blank_ok=True),
        numeric("originator_status_code", 78, 1),
        numeric("odfi_identification", 79, 8),
        numeric("batch_number", 87, 7),
    )

    service_class_code: int
    company_name: str
    company_identification: str
    standard_entry_class_code: str
    company_entry_description: str
    effective_entry_date: str
    odfi_identification: int
    batch_number: int = 1
    company_discretionary_data: str = ""
    company_descriptive_date: str = ""
    settlement_date: str = ""
    originator_status_code: int = 1

    def check(self) -> None:
        try:
            _dt.datetime.strptime(self.effective_entry_date, "%y%m%d")
        except ValueError:
            raise FieldError("effective_entry_date", f"not a YYMMDD date: {self.effective_entry_date!r}") from None

    @property
    def effective_date(self) -> _dt.date:
        return _dt.datetime.strptime(self.effective_entry_date, "%y%m%d").date()


@dataclass(frozen=True)
class EntryDetail(Record):
    KIND: ClassVar[RecordKind] = RecordKind.ENTRY_DETAIL
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.ENTRY_DETAIL),
        numeric("transaction_code", 1, 2, allowed=TRANSACTION_CODES),
        numeric("rdfi_identification", 3, 8),
        numeric("check_digit", 11, 1),
        alpha("dfi_account_number", 12, 17),
        numeric("amount", 29, 10),
        alpha("individual_identification_number", 39, 15),
        alpha("individual_name", 54, 22),
        alpha("discretionary_data", 76, 2),
        numeric("addenda_record_indicator", 78, 1, allowed=frozenset({0, 1})),
        numeric("trace_number", 79, 15),
    )

    transaction_code: int
    rdfi_identification: int
    check_digit: int
    dfi_account_number: str
    amount: int
    individual_name: str
    trace_number: int = 0
    individual_identification_number: str = ""
    discretionary_data: str = ""
    addenda_record_indicator: int = 0

    def check(self) -> None:
        expected = compute_check_digit(self.rdfi_identification)
        if expected != self.check_digit:
            raise FieldError(
                "check_digit",
                f"routing {self.rdfi_identification:08d} expects check digit {expected}, got {self.check_digit}",
            )

    @property
    def routing_number(self) -> str:
        return f"{self.rdfi_identification:08d}{self.check_digit}"

    @property
    def has_addenda(self) -> bool:
        return self.addenda_record_indicator == 1

    @property
    def trace_odfi(self) -> int:
        return self.trace_number // 10_000_000

    @property
    def trace_sequence(self) -> int:
        return self.trace_number % 10_000_000


class AddendaFormat(str, Enum):
    """Capability tag for addenda variants.

    Only ``OPAQUE`` is decoded today; a structured variant registers its
    class in ``ADDENDA_FORMATS`` under the addenda type code it handles.
    """

    OPAQUE = "opaque"


@dataclass(frozen=True)
class Addenda(Record):
    KIND: ClassVar[RecordKind] = RecordKind.ADDENDA
    FORMAT: ClassVar[AddendaFormat] = AddendaFormat.OPAQUE
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.ADDENDA),
        numeric("addenda_type", 1, 2),
        alpha("payment_related_information", 3, 80),
        numeric("addenda_sequence_number", 83, 4),
        numeric("entry_detail_sequence_number", 87, 7),
    )

    payment_related_information: str = ""
    addenda_type: int = 5
    addenda_sequence_number: int = 1
    entry_detail_sequence_number: int = 0


ADDENDA_FORMATS: Dict[int, Type[Addenda]] = {}


@dataclass(frozen=True)
class BatchControl(Record):
    KIND: ClassVar[RecordKind] = RecordKind.BATCH_CONTROL
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.BATCH_CONTROL),
        numeric("service_class_code", 1, 3, allowed=SERVICE_CLASS_CODES),
        numeric("entry_addenda_count", 4, 6),
        numeric("entry_hash", 10, 10),
        numeric("total_debit_entry_dollar_amount", 20, 12),
        numeric("total_credit_entry_dollar_amount", 32, 12),
        alpha("company_identification", 44, 10),
        alpha("message_authentication_code", 54, 19),
        alpha("reserved", 73, 6),
        numeric("odfi_identification", 79, 8),
        numeric("batch_number", 87, 7),
    )

    service_class_code: int
    entry_addenda_count: int
    entry_hash: int
    total_debit_entry_dollar_amount: int
    total_credit_entry_dollar_amount: int
    company_identification: str
    odfi_identification: int
    batch_number: int
    message_authentication_code: str = ""
    reserved: str = ""


@dataclass(frozen=True)
class FileControl(Record):
    KIND: ClassVar[RecordKind] = RecordKind.FILE_CONTROL
    LAYOUT: ClassVar[Tuple[FieldSpec, ...]] = (
        _record_type(RecordKind.FILE_CONTROL),
        numeric("batch_count", 1, 6),
        numeric("block_count", 7, 6),
        numeric("entry_addenda_count", 13, 8),
        numeric("entry_hash", 21, 10),
        numeric("total_debit_entry_dollar_amount_in_file", 31, 12),
        numeric("total_credit_entry_dollar_amount_in_file", 43, 12),
        alpha("reserved", 55, 39),
    )

    batch_count: int
    block_count: int
    entry_addenda_count: int
    entry_hash: int
    total_debit_entry_dollar_amount_in_file: int
    total_credit_entry_dollar_amount_in_file: int
    reserved: str = ""


RECORD_CLASSES: Dict[RecordKind, Type[Record]] = {
    cls.KIND: cls for cls in (FileHeader, BatchHeader, EntryDetail, Addenda, BatchControl, FileControl)
}


def decode_record(cls: Type[R], line: str) -> R:
    """Parse one 94-character line into a record of type ``cls``."""

    kind = cls.KIND
    if len(line) != RECORD_LENGTH:
        raise RecordError(kind, f"expected {RECORD_LENGTH} characters, got {len(line)}")
    if line[:1] != LEADING_CODES[kind]:
        raise RecordError(kind, f"wrong type: leading code {line[:1]!r}, expected {LEADING_CODES[kind]!r}")

    values = {}
    for spec in cls.LAYOUT:
        try:
            value = decode_field(line[spec.start : spec.end], spec)
        except FieldError as exc:
            raise RecordError(kind, exc.reason, field=exc.field) from exc
        if not spec.is_constant:
            values[spec.name] = value

    record = cls(**values)
    try:
        record.check()
    except FieldError as exc:
        raise RecordError(kind, exc.reason, field=exc.field) from exc
    return record


def encode_record(record: Record) -> str:
    """Render ``record`` as exactly 94 characters; overflow is an error."""

    parts = []
    for spec in record.LAYOUT:
        value = None if spec.is_constant else getattr(record, spec.name)
        try:
            parts.append(encode_field(value, spec))
        except FieldError as exc:
            raise RecordError(record.KIND, exc.reason, field=exc.field) from exc
    line = "".join(parts)
    if len(line) != RECORD_LENGTH:
        raise RecordError(record.KIND, f"rendered {len(line)} characters, expected {RECORD_LENGTH}")
    return line


def record_class_for(line: str) -> Optional[Type[Record]]:
    """Record class for a line's leading code, or None for unknown codes."""

    kind = KIND_BY_CODE.get(line[:1])
    if kind is None:
        return None
    if kind is RecordKind.ADDENDA and len(line) >= 3 and line[1:3].isdigit():
        return ADDENDA_FORMATS.get(int(line[1:3]), Addenda)
    return RECORD_CLASSES[kind]


def parse_line(line: str) -> Record:
    """Decode a line of any record kind by looking at its leading code."""

    cls = record_class_for(line)
    if cls is None:
        raise RecordError(None, f"unknown record type {line[:1]!r}", field="record_type")
    return decode_record(cls, line)


@dataclass(frozen=True)
class Entry:
    """An entry detail record and the addenda that follow it."""

    detail: EntryDetail
    addenda: Tuple[Addenda, ...] = ()

    def __post_init__(self) -> None:
        if self.detail.has_addenda != bool(self.addenda):
            raise RecordError(
                RecordKind.ENTRY_DETAIL,
                f"indicator {self.detail.addenda_record_indicator} with {len(self.addenda)} addenda records",
                field="addenda_record_indicator",
            )

    @property
    def record_count(self) -> int:
        return 1 + len(self.addenda)


@dataclass(frozen=True)
class Batch:
    header: BatchHeader
    entries: Tuple[Entry, ...]
    control: Optional[BatchControl] = None

    def __post_init__(self) -> None:
        if not self.entries:
            raise RecordError(
                RecordKind.BATCH_HEADER, f"batch {self.header.batch_number:07d} has no entries", field="entries"
            )

    @property
    def batch_number(self) -> int:
        return self.header.batch_number

    @property
    def record_count(self) -> int:
        """Physical lines of the batch, header and control included."""
        return 2 + sum(entry.record_count for entry in self.entries)


@dataclass(frozen=True)
class AchFile:
    header: FileHeader
    batches: Tuple[Batch, ...]
    control: Optional[FileControl] = None

    def __post_init__(self) -> None:
        if not self.batches:
            raise RecordError(RecordKind.FILE_HEADER, "file has no batches", field="batches")

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return tuple(entry for batch in self.batches for entry in batch.entries)

    @property
    def record_count(self) -> int:
        """Physical lines without block padding."""
        return 2 + sum(batch.record_count for batch in self.batches)

    def with_control(self, control: FileControl) -> "AchFile":
        return replace(self, control=control)


__all__ = [
    "ADDENDA_FORMATS",
    "AchFile",
    "Addenda",
    "AddendaFormat",
    "Batch",
    "BatchControl",
    "BatchHeader",
    "Entry",
    "EntryDetail",
    "FileControl",
    "FileHeader",
    "RECORD_CLASSES",
    "Record",
    "decode_record",
    "encode_record",
    "parse_line",
    "record_class_for",
]
