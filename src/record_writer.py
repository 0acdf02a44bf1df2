from typing import List

import numpy as np
import pandas as pd

from data_structures import FASTQRecord
from quality_processing import phred_scores

RECORD_COLUMNS = [
    "spot_name",
    "spot_group",
    "read_number",
    "is_colorspace",
    "low_quality",
    "sequence",
    "quality",
]


def records_to_dataframe(records: List[FASTQRecord]) -> pd.DataFrame:
    """Tabulate parsed records, one row per spot"""
    rows = [
        {
            "spot_name": r.spot_name,
            "spot_group": r.spot_group if r.spot_group is not None else "",
            "read_number": r.read_number,
            "is_colorspace": r.is_colorspace,
            "low_quality": r.low_quality,
            "sequence": r.sequence.decode("ascii", errors="replace"),
            "quality": r.quality.decode("ascii", errors="replace"),
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def write_records_tsv(records: List[FASTQRecord], output_path: str, append: bool = False):
    """Write records as tab separated values; the header row is only written on a fresh file"""
    df = records_to_dataframe(records)
    df.to_csv(output_path, sep="\t", index=False, mode="a" if append else "w", header=not append)


def summarize_records(records: List[FASTQRecord], phred_offset: int = 33) -> dict:
    """
    Per-input counts used for logging.
    mean_phred is None when qualities are not decoded (offset 0) or absent.
    """
    read_numbers = np.array([r.read_number for r in records], dtype=np.int8)
    values, counts = np.unique(read_numbers, return_counts=True)

    all_scores = [phred_scores(r.quality, phred_offset) for r in records if r.quality]
    mean_phred = None
    if phred_offset != 0 and all_scores:
        mean_phred = float(np.concatenate(all_scores).mean())

    return {
        "records": len(records),
        "read_numbers": {int(v): int(c) for v, c in zip(values, counts)},
        "low_quality": sum(1 for r in records if r.low_quality),
        "colorspace": sum(1 for r in records if r.is_colorspace),
        "with_spot_group": sum(1 for r in records if r.spot_group is not None),
        "mean_phred": mean_phred,
    }
