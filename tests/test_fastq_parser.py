import pytest

from fastq_errors import FASTQFatalError, FASTQSyntaxError
from fastq_parser import iter_fastq_records, parse_fastq_records_from_buffer

TWO_BAD_RECORDS = (
    b"@bad|one\nACGT\n+\nIIII\n"
    b"@good\nAC\n+\nII\n"
    b"@bad|two\nACGT\n+\nIIII\n"
    b"@last\nGG\n+\nII\n"
)


@pytest.fixture
def fastq_file(tmp_path):
    path = tmp_path / "reads.fastq"
    path.write_bytes(
        b"@EAS139:136:FC706VJ:2:2104:15343:197393 1:N:18:ATCACG\nACGTACGT\n+\nIIIIIIII\n"
        b"@EAS139:136:FC706VJ:2:2104:15343:197394 2:Y:18:ATCACG\nTTGG\n+\nJJJJ\n"
    )
    return path


def test_parse_buffer():
    records, state = parse_fastq_records_from_buffer(b"@a/1\nAC\n+\nII\n@a/2\nGT\n+\nII\n")
    assert [r.read_number for r in records] == [1, 2]
    assert state.records_parsed == 2
    assert state.syntax_errors == 0


def test_start_index():
    records, _ = parse_fastq_records_from_buffer(b"@a\nAC\n+\nII\n", start_index=10)
    assert records[0].index == 10


def test_malformed_records_are_skipped():
    records, state = parse_fastq_records_from_buffer(TWO_BAD_RECORDS)
    assert [r.spot_name for r in records] == ["good", "last"]
    assert state.syntax_errors == 2


def test_max_errors_zero_stops_at_first_error():
    with pytest.raises(FASTQSyntaxError):
        parse_fastq_records_from_buffer(TWO_BAD_RECORDS, max_errors=0)


def test_max_errors_limit():
    with pytest.raises(FASTQSyntaxError) as excinfo:
        parse_fastq_records_from_buffer(TWO_BAD_RECORDS, max_errors=1)
    assert "bad|two" in excinfo.value.line_text

    records, state = parse_fastq_records_from_buffer(TWO_BAD_RECORDS, max_errors=2)
    assert len(records) == 2


def test_malformed_sequence_skips_whole_record():
    records, state = parse_fastq_records_from_buffer(b"@r\nACGT\nAC-GT\n+\nIIIIIIIII\n@s\nAC\n+\nII\n")
    assert [r.spot_name for r in records] == ["s"]
    assert state.syntax_errors == 1


def test_quality_length_mismatches_are_skipped():
    data = (
        b"@short\nACGT\n+\nII\n"
        b"@long\nAC\n+\nIIII\n"
        b"@ok\nAC\n+\nII\n"
    )
    records, state = parse_fastq_records_from_buffer(data)
    assert [r.spot_name for r in records] == ["ok"]
    assert records[0].quality == b"II"
    assert state.syntax_errors == 2


def test_max_errors_zero_rejects_first_malformed_record():
    with pytest.raises(FASTQSyntaxError, match="Syntax error in record 0"):
        parse_fastq_records_from_buffer(b"@bad|x\nAC\n+\nII\n@s\nAC\n+\nII\n", max_errors=0)

    records, _ = parse_fastq_records_from_buffer(b"@bad|x\nAC\n+\nII\n@s\nAC\n+\nII\n", max_errors=-1)
    assert [r.spot_name for r in records] == ["s"]


def test_fatal_error_propagates():
    with pytest.raises(FASTQFatalError):
        parse_fastq_records_from_buffer(b"@a\nAC\n+\nII\n@b\nAC\n+\nI\x7f\n")


def test_session_state_carries_across_buffers():
    _, state = parse_fastq_records_from_buffer(b"@a/3\nAC\n+\nII\n")
    assert state.secondary_read_number == 3

    records, state = parse_fastq_records_from_buffer(b"@b/3\nAC\n+\nII\n", start_index=1, state=state)
    assert records[0].index == 1
    assert state.records_parsed == 2

    with pytest.raises(FASTQFatalError, match="previously used 3, now seen 4"):
        parse_fastq_records_from_buffer(b"@c/4\nAC\n+\nII\n", state=state)


def test_fresh_sessions_are_independent():
    parse_fastq_records_from_buffer(b"@a/3\nAC\n+\nII\n")
    records, state = parse_fastq_records_from_buffer(b"@b/4\nAC\n+\nII\n")
    assert records[0].read_number == 2
    assert state.secondary_read_number == 4


def test_unsupported_offset():
    with pytest.raises(ValueError):
        parse_fastq_records_from_buffer(b"@a\nA\n+\nI\n", phred_offset=40)


def test_iter_fastq_records_from_file(fastq_file):
    records = list(iter_fastq_records(str(fastq_file)))
    assert len(records) == 2
    assert records[0].spot_name == "EAS139:136:FC706VJ:2:2104:15343:197393"
    assert records[0].sequence == b"ACGTACGT"
    assert records[1].low_quality
    assert records[1].read_number == 2
    assert all(r.spot_group == "ATCACG" for r in records)


def test_iter_fastq_records_empty_file(tmp_path):
    path = tmp_path / "empty.fastq"
    path.write_bytes(b"")
    assert list(iter_fastq_records(str(path))) == []
