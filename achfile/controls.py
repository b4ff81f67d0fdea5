"""Control totals: compute them for new files, reconcile them for read files.

Batch control records carry the entry/addenda count, the entry hash and the
debit and credit dollar totals of their batch; the file control record
carries the same figures for the whole file plus batch and block counts.

The entry hash is the sum of the 8-digit receiving DFI identifications,
keeping only the rightmost ten digits. The file-level hash is recomputed over
every entry in the file rather than summed from the (already truncated)
batch hashes.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Sequence
import logging
import math

from .errors import ReconciliationError
from .records import AchFile, Batch, BatchControl, BatchHeader, Entry, FileControl
from .routing import compute_check_digit, is_valid_routing
from .utils import (
    BLOCKING_FACTOR,
    CREDIT_TRANSACTION_CODES,
    DEBIT_TRANSACTION_CODES,
    ENTRY_HASH_MODULUS,
    SERVICE_CLASS_CREDITS,
    SERVICE_CLASS_DEBITS,
    SERVICE_CLASS_MIXED,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchTotals:
    entry_addenda_count: int
    entry_hash: int
    total_debit: int
    total_credit: int


@dataclass(frozen=True)
class FileTotals:
    batch_count: int
    block_count: int
    entry_addenda_count: int
    entry_hash: int
    total_debit: int
    total_credit: int


def entry_hash(entries: Iterable[Entry]) -> int:
    """Sum of RDFI identifications, truncated to the rightmost ten digits."""

    return sum(entry.detail.rdfi_identification for entry in entries) % ENTRY_HASH_MODULUS


def block_count(record_count: int) -> int:
    return math.ceil(record_count / BLOCKING_FACTOR)


def compute_batch_totals(entries: Sequence[Entry]) -> BatchTotals:
    debit = 0
    credit = 0
    for entry in entries:
        code = entry.detail.transaction_code
        if code in DEBIT_TRANSACTION_CODES:
            debit += entry.detail.amount
        elif code in CREDIT_TRANSACTION_CODES:
            credit += entry.detail.amount
    return BatchTotals(
        entry_addenda_count=sum(entry.record_count for entry in entries),
        entry_hash=entry_hash(entries),
        total_debit=debit,
        total_credit=credit,
    )


def compute_file_totals(batches: Sequence[Batch]) -> FileTotals:
    """File totals for ``batches``, whose controls must already be set.

    Dollar totals are the sum of the batch control records; counts and the
    entry hash are recomputed from the ordered entries.
    """

    record_count = 2 + sum(batch.record_count for batch in batches)
    return FileTotals(
        batch_count=len(batches),
        block_count=block_count(record_count),
        entry_addenda_count=sum(batch.record_count - 2 for batch in batches),
        entry_hash=entry_hash(entry for batch in batches for entry in batch.entries),
        total_debit=sum(_require_control(batch).total_debit_entry_dollar_amount for batch in batches),
        total_credit=sum(_require_control(batch).total_credit_entry_dollar_amount for batch in batches),
    )


def _require_control(batch: Batch) -> BatchControl:
    if batch.control is None:
        raise ValueError(f"batch {batch.batch_number:07d} has no control record; call fill_controls first")
    return batch.control


def service_class_for(entries: Sequence[Entry]) -> int:
    """Narrowest service class code that covers ``entries``."""

    codes = {entry.detail.transaction_code for entry in entries}
    if codes and codes <= CREDIT_TRANSACTION_CODES:
        return SERVICE_CLASS_CREDITS
    if codes and codes <= DEBIT_TRANSACTION_CODES:
        return SERVICE_CLASS_DEBITS
    return SERVICE_CLASS_MIXED


# Generate mode


def build_batch_control(header: BatchHeader, entries: Sequence[Entry]) -> BatchControl:
    totals = compute_batch_totals(entries)
    return BatchControl(
        service_class_code=header.service_class_code,
        entry_addenda_count=totals.entry_addenda_count,
        entry_hash=totals.entry_hash,
        total_debit_entry_dollar_amount=totals.total_debit,
        total_credit_entry_dollar_amount=totals.total_credit,
        company_identification=header.company_identification,
        odfi_identification=header.odfi_identification,
        batch_number=header.batch_number,
    )


def build_batch(header: BatchHeader, entries: Iterable[Entry]) -> Batch:
    entries = tuple(entries)
    return Batch(header=header, entries=entries, control=build_batch_control(header, entries))


def build_file_control(batches: Sequence[Batch]) -> FileControl:
    totals = compute_file_totals(batches)
    return FileControl(
        batch_count=totals.batch_count,
        block_count=totals.block_count,
        entry_addenda_count=totals.entry_addenda_count,
        entry_hash=totals.entry_hash,
        total_debit_entry_dollar_amount_in_file=totals.total_debit,
        total_credit_entry_dollar_amount_in_file=totals.total_credit,
    )


def fill_controls(ach_file: AchFile) -> AchFile:
    """Return a copy of ``ach_file`` with every control record computed."""

    batches = tuple(build_batch(batch.header, batch.entries) for batch in ach_file.batches)
    logger.debug("Computed controls for %d batches", len(batches))
    return replace(ach_file, batches=batches, control=build_file_control(batches))


# Validate mode


def _compare(
    mismatches: List[ReconciliationError], scope: str, field: str, computed: object, declared: object
) -> None:
    if computed != declared:
        mismatches.append(ReconciliationError(scope, field, computed, declared))


def reconcile_batch(batch: Batch) -> List[ReconciliationError]:
    """Every mismatch between a batch control record and its entries."""

    control = _require_control(batch)
    header = batch.header
    scope = f"batch {header.batch_number:07d}"
    totals = compute_batch_totals(batch.entries)
    mismatches: List[ReconciliationError] = []

    _compare(mismatches, scope, "entry_addenda_count", totals.entry_addenda_count, control.entry_addenda_count)
    _compare(mismatches, scope, "entry_hash", totals.entry_hash, control.entry_hash)
    _compare(
        mismatches, scope, "total_debit_entry_dollar_amount", totals.total_debit, control.total_debit_entry_dollar_amount
    )
    _compare(
        mismatches,
        scope,
        "total_credit_entry_dollar_amount",
        totals.total_credit,
        control.total_credit_entry_dollar_amount,
    )
    _compare(mismatches, scope, "service_class_code", header.service_class_code, control.service_class_code)
    _compare(
        mismatches, scope, "company_identification", header.company_identification, control.company_identification
    )
    _compare(mismatches, scope, "odfi_identification", header.odfi_identification, control.odfi_identification)

    # 220 batches may only carry credits, 225 batches only debits
    required = service_class_for(batch.entries)
    if header.service_class_code != SERVICE_CLASS_MIXED and required != header.service_class_code:
        mismatches.append(ReconciliationError(scope, "service_class_code", required, header.service_class_code))
    return mismatches


def reconcile_file_control(ach_file: AchFile) -> List[ReconciliationError]:
    control = ach_file.control
    if control is None:
        raise ValueError("file has no control record; call fill_controls first")
    totals = compute_file_totals(ach_file.batches)
    mismatches: List[ReconciliationError] = []
    scope = "file"

    _compare(mismatches, scope, "batch_count", totals.batch_count, control.batch_count)
    _compare(mismatches, scope, "block_count", totals.block_count, control.block_count)
    _compare(mismatches, scope, "entry_addenda_count", totals.entry_addenda_count, control.entry_addenda_count)
    _compare(mismatches, scope, "entry_hash", totals.entry_hash, control.entry_hash)
    _compare(
        mismatches,
        scope,
        "total_debit_entry_dollar_amount_in_file",
        totals.total_debit,
        control.total_debit_entry_dollar_amount_in_file,
    )
    _compare(
        mismatches,
        scope,
        "total_credit_entry_dollar_amount_in_file",
        totals.total_credit,
        control.total_credit_entry_dollar_amount_in_file,
    )
    return mismatches


def reconcile(ach_file: AchFile, workers: Optional[int] = None) -> List[ReconciliationError]:
    """All control-total mismatches: batches in file order, then the file.

    With ``workers`` above one the batch checks run on a thread pool;
    ``map`` keeps results in batch order.
    """

    logger.info("Reconciling %d batches", len(ach_file.batches))
    if workers and workers > 1 and len(ach_file.batches) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            per_batch = list(executor.map(reconcile_batch, ach_file.batches))
    else:
        per_batch = [reconcile_batch(batch) for batch in ach_file.batches]

    mismatches = [error for errors in per_batch for error in errors]
    mismatches.extend(reconcile_file_control(ach_file))
    for error in mismatches:
        logger.debug("Mismatch: %s", error)
    return mismatches


def validate(ach_file: AchFile, workers: Optional[int] = None) -> AchFile:
    """Raise the first :class:`ReconciliationError`, else return the file."""

    mismatches = reconcile(ach_file, workers=workers)
    if mismatches:
        raise mismatches[0]
    return ach_file


__all__ = [
    "BatchTotals",
    "FileTotals",
    "block_count",
    "build_batch",
    "build_batch_control",
    "build_file_control",
    "compute_batch_totals",
    "compute_check_digit",
    "compute_file_totals",
    "entry_hash",
    "fill_controls",
    "is_valid_routing",
    "reconcile",
    "reconcile_batch",
    "reconcile_file_control",
    "service_class_for",
    "validate",
]
