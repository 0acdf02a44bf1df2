import pytest

from stream_processor import parse_files_in_parallel, process_file_worker


@pytest.fixture
def input_files(tmp_path):
    """Three inputs: two valid files using different secondary read numbers, one with a bad quality"""
    paths = []
    contents = [
        b"@a/1\nACGT\n+\nIIII\n@a/2\nACGT\n+\nIIII\n",
        b"@b/1\nAC\n+\nII\n@b/3\nAC\n+\nII\n",
        b"@c/1\nAC\n+\nI \n",
    ]
    for i, data in enumerate(contents):
        path = tmp_path / f"input_{i}.fastq"
        path.write_bytes(data)
        paths.append(str(path))
    return paths


def test_worker_success(input_files):
    job_id, path, records, summary = process_file_worker((0, input_files[0]))
    assert job_id == 0
    assert path == input_files[0]
    assert [r.read_number for r in records] == [1, 2]
    assert summary["error"] is None
    assert summary["secondary_read_number"] == 2
    assert summary["records_parsed"] == 2


def test_worker_rejects_file_on_fatal_error(input_files):
    _, _, records, summary = process_file_worker((2, input_files[2]))
    assert records == []
    assert summary["fatal_error"] is True
    assert "Invalid quality value" in summary["error"]


def test_worker_syntax_error_limit(tmp_path):
    path = tmp_path / "bad.fastq"
    path.write_bytes(b"@bad|name\nAC\n+\nII\n")
    _, _, records, summary = process_file_worker((0, str(path)), max_errors=0)
    assert records == []
    assert summary["syntax_errors"] == 1
    assert summary["error"]


def test_worker_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_file_worker((0, str(tmp_path / "missing.fastq")))


def test_sessions_are_independent_per_file(input_files):
    results = list(parse_files_in_parallel(input_files))
    assert [job_id for job_id, _, _, _ in results] == [0, 1, 2]
    assert results[0][3]["secondary_read_number"] == 2
    assert results[1][3]["secondary_read_number"] == 3
    assert results[0][3]["error"] is None
    assert results[1][3]["error"] is None
    assert results[2][3]["error"] is not None


def test_parallel_matches_sequential(input_files):
    sequential = list(parse_files_in_parallel(input_files, num_workers=1))
    parallel = list(parse_files_in_parallel(input_files, num_workers=2))
    assert [(job_id, path) for job_id, path, _, _ in parallel] == [(job_id, path) for job_id, path, _, _ in sequential]
    assert [records for _, _, records, _ in parallel] == [records for _, _, records, _ in sequential]


def test_worker_options_are_forwarded(tmp_path):
    path = tmp_path / "pacbio.fastq"
    path.write_bytes(b"@m1_2/77/0_10\nACGT\n+\nhhhh\n")
    results = list(parse_files_in_parallel([str(path)], phred_offset=64, pacbio=True))
    _, _, records, summary = results[0]
    assert records[0].spot_name == "m1_2/77/0_10"
    assert summary["pacbio"] is True
    assert summary["phred_offset"] == 64
