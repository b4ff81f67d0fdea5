from typing import Callable, Sequence

import pytest

from achfile.controls import build_batch, build_file_control
from achfile.records import AchFile, Addenda, BatchHeader, Entry, EntryDetail, FileHeader
from achfile.routing import compute_check_digit

ODFI = 12100035


def make_entry(
    rdfi: int,
    amount: int,
    transaction_code: int = 22,
    sequence: int = 1,
    addenda: Sequence[str] = (),
    name: str = "JANE DOE",
) -> Entry:
    trace = ODFI * 10_000_000 + sequence
    detail = EntryDetail(
        transaction_code=transaction_code,
        rdfi_identification=rdfi,
        check_digit=compute_check_digit(rdfi),
        dfi_account_number=f"ACCT{sequence:06d}",
        amount=amount,
        individual_name=name,
        trace_number=trace,
        addenda_record_indicator=1 if addenda else 0,
    )
    records = tuple(
        Addenda(payment_related_information=text, addenda_sequence_number=index, entry_detail_sequence_number=sequence)
        for index, text in enumerate(addenda, start=1)
    )
    return Entry(detail=detail, addenda=records)


def make_batch_header(batch_number: int = 1, service_class_code: int = 200) -> BatchHeader:
    return BatchHeader(
        service_class_code=service_class_code,
        company_name="ACME CORP",
        company_identification="1234567890",
        standard_entry_class_code="PPD",
        company_entry_description="PAYROLL",
        effective_entry_date="261020",
        odfi_identification=ODFI,
        batch_number=batch_number,
    )


def make_file_header() -> FileHeader:
    return FileHeader(
        immediate_destination="021000021",
        immediate_origin="121000358",
        file_creation_date="261019",
        file_creation_time="0930",
        immediate_destination_name="JPMORGAN CHASE",
        immediate_origin_name="ACME CORP",
    )


@pytest.fixture
def entry_factory() -> Callable[..., Entry]:
    return make_entry


@pytest.fixture
def batch_header_factory() -> Callable[..., BatchHeader]:
    return make_batch_header


@pytest.fixture
def file_header() -> FileHeader:
    return make_file_header()


@pytest.fixture
def sample_file() -> AchFile:
    """Two batches, one addenda, eleven records before padding."""

    first = build_batch(
        make_batch_header(1, 200),
        [
            make_entry(7100001, 125000, 22, 1, addenda=["BONUS OCTOBER"]),
            make_entry(1100001, 5000, 27, 2),
        ],
    )
    second = build_batch(
        make_batch_header(2, 220),
        [
            make_entry(2100002, 99, 22, 1),
            make_entry(7100001, 1, 32, 2),
        ],
    )
    batches = (first, second)
    return AchFile(header=make_file_header(), batches=batches, control=build_file_control(batches))
