from dataclasses import replace

import pytest

from achfile.assembler import Assembler
from achfile.errors import IncompleteFileError, PaddingError, RecordError, SequenceError
from achfile.records import encode_record
from achfile.utils import PADDING_LINE
from achfile.writer import render_lines


def test_assembler_builds_hierarchy(sample_file) -> None:
    lines = render_lines(sample_file)

    result = Assembler().assemble(lines)

    assert result == sample_file
    assert len(result.batches) == 2
    assert [len(batch.entries) for batch in result.batches] == [2, 2]
    assert result.batches[0].entries[0].addenda[0].payment_related_information == "BONUS OCTOBER"


def test_entry_without_batch_header_is_sequence_error(sample_file) -> None:
    header = encode_record(sample_file.header)
    entry = encode_record(sample_file.batches[0].entries[1].detail)
    control = encode_record(sample_file.control)

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble([header, entry, control])

    assert excinfo.value.line_number == 2
    assert excinfo.value.found == "entry detail"


def test_file_must_start_with_header(sample_file) -> None:
    lines = render_lines(sample_file)

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines[1:])
    assert excinfo.value.line_number == 1
    assert excinfo.value.expected == "file header"


def test_second_file_header_is_rejected(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    lines.insert(1, lines[0])

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 2


def test_nested_batch_header_is_rejected(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    # second batch header placed before the first batch is closed
    lines.insert(2, lines[1])

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 3
    assert excinfo.value.found == "batch header"


def test_addenda_requires_flagged_entry(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    addenda = lines[3]
    # line 5 is the second entry of batch 1, which has indicator 0
    lines.insert(5, addenda)

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 6


def test_flagged_entry_requires_addenda(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    del lines[3]

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 4
    assert excinfo.value.found == "entry detail"


def test_multiple_addenda_attach_to_same_entry(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    second = lines[3][:83] + "0002" + lines[3][87:]
    lines.insert(4, second)

    result = Assembler().assemble(lines)
    assert len(result.batches[0].entries[0].addenda) == 2


def test_batch_control_must_match_batch_number(sample_file) -> None:
    batch = sample_file.batches[0]
    lines = render_lines(sample_file, pad_blocks=False)
    lines[5] = encode_record(replace(batch.control, batch_number=9))

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 6
    assert "0000009" in excinfo.value.found


def test_empty_batch_is_rejected(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    del lines[2:5]

    with pytest.raises(SequenceError, match="empty batch"):
        Assembler().assemble(lines)


def test_file_control_inside_open_batch(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    del lines[5]

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 6


def test_padding_is_accepted_and_dropped(sample_file) -> None:
    lines = render_lines(sample_file)

    assert len(lines) == 20
    assert lines[11:] == [PADDING_LINE] * 9
    assert Assembler().assemble(lines) == sample_file


def test_unpadded_file_is_accepted(sample_file) -> None:
    assert Assembler().assemble(render_lines(sample_file, pad_blocks=False)) == sample_file


def test_garbage_after_file_control_is_padding_error(sample_file) -> None:
    lines = render_lines(sample_file)
    lines[15] = "9" * 93 + "8"

    with pytest.raises(PaddingError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 16


def test_second_file_control_is_padding_error(sample_file) -> None:
    lines = render_lines(sample_file)
    lines[11] = lines[10]

    with pytest.raises(PaddingError):
        Assembler().assemble(lines)


def test_partial_padding_is_padding_error(sample_file) -> None:
    lines = render_lines(sample_file)

    with pytest.raises(PaddingError, match="block boundary"):
        Assembler().assemble(lines[:-2])


def test_padding_before_file_control_is_sequence_error(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    lines.insert(10, PADDING_LINE)

    with pytest.raises(SequenceError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.found == "block padding"


def test_missing_file_control_is_incomplete(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)

    with pytest.raises(IncompleteFileError):
        Assembler().assemble(lines[:-1])
    with pytest.raises(IncompleteFileError, match="inside batch 0000002"):
        Assembler().assemble(lines[:-2])
    with pytest.raises(IncompleteFileError, match="file header"):
        Assembler().assemble([])


def test_record_errors_carry_line_number(sample_file) -> None:
    lines = render_lines(sample_file, pad_blocks=False)
    lines[4] = lines[4][:29] + "ABCDEFGHIJ" + lines[4][39:]

    with pytest.raises(RecordError) as excinfo:
        Assembler().assemble(lines)
    assert excinfo.value.line_number == 5
    assert excinfo.value.field == "amount"
