import datetime as _dt
from dataclasses import replace

import pytest

from achfile.errors import RecordError
from achfile.records import (
    AchFile,
    Addenda,
    Batch,
    BatchControl,
    BatchHeader,
    Entry,
    EntryDetail,
    FileControl,
    FileHeader,
    decode_record,
    encode_record,
    parse_line,
)
from achfile.utils import RecordKind


def test_file_header_layout(file_header: FileHeader) -> None:
    line = encode_record(file_header)

    assert len(line) == 94
    assert line[0] == "1"
    assert line[1:3] == "01"
    assert line[3:13] == " 021000021"
    assert line[13:23] == " 121000358"
    assert line[23:29] == "261019"
    assert line[29:33] == "0930"
    assert line[33:40] == "A094101"
    assert line[40:63].rstrip() == "JPMORGAN CHASE"


def test_entry_detail_layout(entry_factory) -> None:
    entry = entry_factory(7100001, 125000, 22, 3, addenda=["X"])
    line = encode_record(entry.detail)

    assert line[0:3] == "622"
    assert line[3:12] == "071000013"
    assert line[12:29] == "ACCT000003       "
    assert line[29:39] == "0000125000"
    assert line[78] == "1"
    assert line[79:94] == "121000350000003"


def test_every_record_kind_round_trips(sample_file) -> None:
    batch = sample_file.batches[0]
    records = [
        sample_file.header,
        batch.header,
        batch.entries[0].detail,
        batch.entries[0].addenda[0],
        batch.control,
        sample_file.control,
    ]

    for record in records:
        line = encode_record(record)
        assert len(line) == 94
        decoded = decode_record(type(record), line)
        assert decoded == record
        assert encode_record(decoded) == line
        assert parse_line(line) == record


def test_decode_requires_exact_length(file_header: FileHeader) -> None:
    line = encode_record(file_header)

    with pytest.raises(RecordError) as excinfo:
        decode_record(FileHeader, line[:93])
    assert excinfo.value.kind is RecordKind.FILE_HEADER


def test_decode_rejects_wrong_leading_code(file_header: FileHeader) -> None:
    line = encode_record(file_header)

    with pytest.raises(RecordError, match="wrong type"):
        decode_record(BatchHeader, line)


def test_field_failures_name_record_and_field(sample_file) -> None:
    line = encode_record(sample_file.batches[0].entries[0].detail)
    broken = line[:29] + "00000X5000" + line[39:]

    with pytest.raises(RecordError) as excinfo:
        decode_record(EntryDetail, broken)
    assert excinfo.value.kind is RecordKind.ENTRY_DETAIL
    assert excinfo.value.field == "amount"


def test_file_header_constants_are_checked(file_header: FileHeader) -> None:
    line = encode_record(file_header)
    broken = line[:34] + "095" + line[37:]

    with pytest.raises(RecordError) as excinfo:
        decode_record(FileHeader, broken)
    assert excinfo.value.field == "record_size"


def test_file_header_routing_check_digit(file_header: FileHeader) -> None:
    bad = replace(file_header, immediate_destination="021000022")
    line = encode_record(bad)

    with pytest.raises(RecordError) as excinfo:
        decode_record(FileHeader, line)
    assert excinfo.value.field == "immediate_destination"
    assert "check digit" in excinfo.value.reason


def test_entry_detail_check_digit(entry_factory) -> None:
    detail = replace(entry_factory(7100001, 100).detail, check_digit=4)

    with pytest.raises(RecordError) as excinfo:
        decode_record(EntryDetail, encode_record(detail))
    assert excinfo.value.field == "check_digit"


def test_unknown_transaction_code_is_rejected(entry_factory) -> None:
    line = encode_record(entry_factory(7100001, 100).detail)

    with pytest.raises(RecordError) as excinfo:
        decode_record(EntryDetail, line[:1] + "99" + line[3:])
    assert excinfo.value.field == "transaction_code"


def test_overlong_company_name_fails_encode(batch_header_factory) -> None:
    header = replace(batch_header_factory(), company_name="ACME INDUSTRIAL SUPPLY")

    with pytest.raises(RecordError) as excinfo:
        encode_record(header)
    assert excinfo.value.kind is RecordKind.BATCH_HEADER
    assert excinfo.value.field == "company_name"


def test_addenda_is_kept_opaque() -> None:
    text = "ANY FREE FORM *X12* PAYLOAD\\"
    addenda = Addenda(payment_related_information=text, addenda_sequence_number=1, entry_detail_sequence_number=42)
    line = encode_record(addenda)

    assert line.startswith("705")
    assert line[83:87] == "0001"
    assert line[87:94] == "0000042"
    assert decode_record(Addenda, line).payment_related_information == text


def test_control_records_decode_totals() -> None:
    line = "9" + "000002" + "000002" + "00000005" + "0017400005" + "000000005000" + "000000125100" + " " * 39
    control = decode_record(FileControl, line)

    assert control.batch_count == 2
    assert control.entry_hash == 17400005
    assert control.total_credit_entry_dollar_amount_in_file == 125100

    batch_line = (
        "8200" + "000003" + "0008200002" + "000000005000" + "000000125000" + "1234567890"
        + " " * 19 + " " * 6 + "12100035" + "0000001"
    )
    batch_control = decode_record(BatchControl, batch_line)
    assert batch_control.batch_number == 1
    assert batch_control.total_debit_entry_dollar_amount == 5000


def test_parse_line_rejects_unknown_code() -> None:
    with pytest.raises(RecordError, match="unknown record type"):
        parse_line("4" + " " * 93)


def test_record_accessors(sample_file) -> None:
    header = sample_file.header
    batch_header = sample_file.batches[0].header
    detail = sample_file.batches[0].entries[1].detail

    assert header.created_at == _dt.datetime(2026, 10, 19, 9, 30)
    assert batch_header.effective_date == _dt.date(2026, 10, 20)
    assert detail.trace_odfi == 12100035
    assert detail.trace_sequence == 2
    assert detail.routing_number == "011000015"
    assert EntryDetail.from_line(detail.to_line()) == detail


def test_file_header_dates_must_be_digits(file_header: FileHeader) -> None:
    line = encode_record(file_header)

    with pytest.raises(RecordError) as excinfo:
        decode_record(FileHeader, line[:23] + "ABCDEF" + line[29:])
    assert excinfo.value.field == "file_creation_date"

    with pytest.raises(RecordError) as excinfo:
        decode_record(FileHeader, line[:23] + "261399" + line[29:])
    assert excinfo.value.field == "file_creation_date"

    with pytest.raises(RecordError):
        encode_record(replace(file_header, file_creation_date="ABCDEF"))

    untimed = replace(file_header, file_creation_time="")
    assert decode_record(FileHeader, encode_record(untimed)) == untimed


def test_batch_header_effective_date_is_checked(batch_header_factory) -> None:
    line = encode_record(batch_header_factory())

    with pytest.raises(RecordError) as excinfo:
        decode_record(BatchHeader, line[:69] + "261340" + line[75:])
    assert excinfo.value.field == "effective_entry_date"


def test_entry_indicator_must_match_addenda(entry_factory) -> None:
    flagged = entry_factory(7100001, 100, addenda=["X"])
    plain = entry_factory(7100001, 100)

    with pytest.raises(RecordError) as excinfo:
        Entry(detail=flagged.detail)
    assert excinfo.value.field == "addenda_record_indicator"

    with pytest.raises(RecordError):
        Entry(detail=plain.detail, addenda=flagged.addenda)


def test_empty_batches_and_files_cannot_be_built(sample_file) -> None:
    batch = sample_file.batches[0]

    with pytest.raises(RecordError) as excinfo:
        Batch(header=batch.header, entries=())
    assert excinfo.value.field == "entries"

    with pytest.raises(RecordError) as excinfo:
        AchFile(header=sample_file.header, batches=())
    assert excinfo.value.field == "batches"

    with pytest.raises(RecordError):
        replace(batch, entries=())
