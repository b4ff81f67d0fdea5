"""Build complete ACH files from plain payloads.

A payload is a mapping such as::

    {
        "immediate_destination": "021000021",
        "immediate_origin": "121000358",
        "immediate_destination_name": "JPMORGAN CHASE",
        "immediate_origin_name": "ACME CORP",
        "batches": [
            {
                "company_name": "ACME CORP",
                "company_identification": "1234567890",
                "standard_entry_class_code": "PPD",
                "company_entry_description": "PAYROLL",
                "effective_entry_date": "2026-10-20",
                "entries": [
                    {
                        "transaction_code": 22,
                        "routing_number": "071000013",
                        "dfi_account_number": "12345678",
                        "amount_dollars": "1250.00",
                        "individual_name": "JANE DOE",
                        "addenda": ["BONUS OCTOBER"]
                    }
                ]
            }
        ]
    }

Batch numbers, trace numbers, addenda indicators, service class codes (when
omitted) and every control total are filled in.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence
import datetime as _dt
import json
import logging

from .controls import build_batch, build_file_control, service_class_for
from .errors import FieldError
from .records import AchFile, Addenda, Batch, BatchHeader, Entry, EntryDetail, FileHeader
from .routing import is_valid_routing
from .utils import PRENOTE_TRANSACTION_CODES

logger = logging.getLogger(__name__)


def load_payload(path: Path) -> Dict[str, Any]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def build_file(payload: Mapping[str, Any], now: Optional[_dt.datetime] = None) -> AchFile:
    now = now or _dt.datetime.now()
    destination = _routing(payload, "immediate_destination")
    origin = str(payload["immediate_origin"]).strip()

    header = FileHeader(
        immediate_destination=destination,
        immediate_origin=origin,
        file_creation_date=payload.get("file_creation_date") or now.strftime("%y%m%d"),
        file_creation_time=payload.get("file_creation_time") or now.strftime("%H%M"),
        file_id_modifier=payload.get("file_id_modifier", "A"),
        immediate_destination_name=payload.get("immediate_destination_name", ""),
        immediate_origin_name=payload.get("immediate_origin_name", ""),
        reference_code=payload.get("reference_code", ""),
    )
    header.check()

    default_odfi = int(destination[:8])
    batches: List[Batch] = []
    for number, batch_payload in enumerate(payload.get("batches", []), start=1):
        batches.append(_build_batch(batch_payload, number, default_odfi, now))

    if not batches:
        raise FieldError("batches", "at least one batch is required")

    logger.info("Built ACH file with %d batches", len(batches))
    return AchFile(header=header, batches=tuple(batches), control=build_file_control(batches))


def _build_batch(payload: Mapping[str, Any], number: int, default_odfi: int, now: _dt.datetime) -> Batch:
    odfi = int(payload.get("odfi_identification", default_odfi))
    entries = tuple(
        _build_entry(entry_payload, odfi, sequence)
        for sequence, entry_payload in enumerate(payload.get("entries", []), start=1)
    )
    if not entries:
        raise FieldError("entries", f"batch {number} has no entries")

    header = BatchHeader(
        service_class_code=int(payload.get("service_class_code") or service_class_for(entries)),
        company_name=payload["company_name"],
        company_identification=str(payload["company_identification"]),
        standard_entry_class_code=payload.get("standard_entry_class_code", "PPD"),
        company_entry_description=payload["company_entry_description"],
        effective_entry_date=_yymmdd(payload.get("effective_entry_date"), now + _dt.timedelta(days=1)),
        odfi_identification=odfi,
        batch_number=int(payload.get("batch_number", number)),
        company_discretionary_data=payload.get("company_discretionary_data", ""),
        company_descriptive_date=payload.get("company_descriptive_date", ""),
    )
    header.check()
    return build_batch(header, entries)


def _build_entry(payload: Mapping[str, Any], odfi: int, sequence: int) -> Entry:
    routing_number = _routing(payload, "routing_number")
    trace_number = int(payload.get("trace_number") or odfi * 10_000_000 + sequence)
    texts: Sequence[str] = payload.get("addenda", [])

    detail = EntryDetail(
        transaction_code=int(payload["transaction_code"]),
        rdfi_identification=int(routing_number[:8]),
        check_digit=int(routing_number[8]),
        dfi_account_number=str(payload["dfi_account_number"]),
        amount=_amount(payload),
        individual_name=payload.get("individual_name", ""),
        trace_number=trace_number,
        individual_identification_number=payload.get("individual_identification_number", ""),
        discretionary_data=payload.get("discretionary_data", ""),
        addenda_record_indicator=1 if texts else 0,
    )
    if detail.transaction_code in PRENOTE_TRANSACTION_CODES and detail.amount:
        raise FieldError("amount", f"prenote transaction code {detail.transaction_code} requires a zero amount")
    addenda = tuple(
        Addenda(
            payment_related_information=text,
            addenda_sequence_number=index,
            entry_detail_sequence_number=detail.trace_sequence,
        )
        for index, text in enumerate(texts, start=1)
    )
    return Entry(detail=detail, addenda=addenda)


def _routing(payload: Mapping[str, Any], key: str) -> str:
    value = str(payload[key]).strip()
    if not is_valid_routing(value):
        raise FieldError(key, f"invalid routing number {value!r}")
    return value


def _amount(payload: Mapping[str, Any]) -> int:
    """Integer cents from ``amount`` (cents) or ``amount_dollars`` (decimal text)."""

    if "amount" in payload:
        amount = payload["amount"]
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise FieldError("amount", f"expected integer cents, got {amount!r}")
        return amount
    try:
        dollars = Decimal(str(payload["amount_dollars"]))
    except (KeyError, InvalidOperation) as exc:
        raise FieldError("amount", f"missing or invalid amount: {exc}") from exc
    cents = dollars * 100
    if cents != cents.to_integral_value():
        raise FieldError("amount", f"{dollars} has fractional cents")
    return int(cents)


def _yymmdd(value: Optional[str], default: _dt.datetime) -> str:
    if not value:
        return default.strftime("%y%m%d")
    if "-" in value:
        return _dt.date.fromisoformat(value).strftime("%y%m%d")
    return value


__all__ = ["build_file", "load_payload"]
