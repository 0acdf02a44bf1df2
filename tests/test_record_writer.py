import pandas as pd

from data_structures import FASTQRecord
from record_writer import RECORD_COLUMNS, records_to_dataframe, summarize_records, write_records_tsv


def sample_records():
    return [
        FASTQRecord(index=0, spot_name="r1", sequence=b"ACGT", quality=b"IIII", read_number=1,
                    spot_group="ACGT", low_quality=True),
        FASTQRecord(index=1, spot_name="r1", sequence=b"TTGG", quality=b"!!!!", read_number=2),
        FASTQRecord(index=2, spot_name="r2", sequence=b"T0123", quality=b"", is_colorspace=True),
    ]


def test_records_to_dataframe():
    df = records_to_dataframe(sample_records())
    assert list(df.columns) == RECORD_COLUMNS
    assert len(df) == 3
    assert df.loc[0, "spot_group"] == "ACGT"
    assert df.loc[1, "spot_group"] == ""
    assert df.loc[0, "sequence"] == "ACGT"


def test_write_and_append_tsv(tmp_path):
    path = tmp_path / "records.tsv"
    records = sample_records()
    write_records_tsv(records[:2], str(path))
    write_records_tsv(records[2:], str(path), append=True)

    df = pd.read_csv(path, sep="\t", keep_default_na=False)
    assert list(df.columns) == RECORD_COLUMNS
    assert df["spot_name"].tolist() == ["r1", "r1", "r2"]
    assert df["read_number"].tolist() == [1, 2, 0]


def test_summarize_records():
    stats = summarize_records(sample_records(), phred_offset=33)
    assert stats["records"] == 3
    assert stats["read_numbers"] == {0: 1, 1: 1, 2: 1}
    assert stats["low_quality"] == 1
    assert stats["colorspace"] == 1
    assert stats["with_spot_group"] == 1
    assert stats["mean_phred"] == 20.0


def test_summarize_without_quality_decoding():
    stats = summarize_records(sample_records(), phred_offset=0)
    assert stats["mean_phred"] is None


def test_summarize_empty():
    stats = summarize_records([])
    assert stats["records"] == 0
    assert stats["read_numbers"] == {}
    assert stats["mean_phred"] is None
