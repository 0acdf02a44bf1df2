import pandas as pd
import pytest

from fastq_load import load_fastq_files, main


@pytest.fixture
def good_file(tmp_path):
    path = tmp_path / "good.fastq"
    path.write_bytes(b"@r1 1:N:0:ACGT\nACGT\n+\nIIII\n@r1 2:N:0:ACGT\nTTGG\n+\nIIII\n")
    return str(path)


@pytest.fixture
def bad_file(tmp_path):
    path = tmp_path / "bad.fastq"
    path.write_bytes(b"@r1\nACGT\n+\nII I\n")
    return str(path)


def test_main_writes_tsv(good_file, tmp_path):
    output = tmp_path / "out.tsv"
    assert main([good_file, "-o", str(output)]) == 0

    df = pd.read_csv(output, sep="\t", keep_default_na=False)
    assert df["spot_name"].tolist() == ["r1", "r1"]
    assert df["spot_group"].tolist() == ["ACGT", "ACGT"]
    assert df["read_number"].tolist() == [1, 2]


def test_main_reports_rejected_input(good_file, bad_file, tmp_path):
    output = tmp_path / "out.tsv"
    assert main([good_file, bad_file, "-o", str(output), "--summary", "0"]) == 1

    df = pd.read_csv(output, sep="\t", keep_default_na=False)
    assert len(df) == 2


def test_main_quality_validation_disabled(bad_file):
    assert main([bad_file, "--phred_off", "0"]) == 0


def test_main_rejects_unknown_offset(good_file):
    with pytest.raises(SystemExit):
        main([good_file, "--phred_off", "50"])


def test_load_fastq_files_counts_rejections(good_file, bad_file):
    assert load_fastq_files([good_file, bad_file, good_file]) == 1
    assert load_fastq_files([good_file], pacbio=True, summary=False) == 0
