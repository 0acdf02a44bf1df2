import numpy as np
import pytest

from quality_processing import (MAX_PHRED_33, MAX_PHRED_64, MIN_PHRED_33, MIN_PHRED_64,
                                find_invalid_quality, get_encoding_name, get_quality_range,
                                phred_scores)


def test_default_ranges():
    assert get_quality_range(33) == (MIN_PHRED_33, MAX_PHRED_33)
    assert get_quality_range(64) == (MIN_PHRED_64, MAX_PHRED_64)


def test_max_phred_overrides_ceiling_only():
    assert get_quality_range(33, max_phred=ord("J")) == (MIN_PHRED_33, ord("J"))
    assert get_quality_range(64, max_phred=ord("h")) == (MIN_PHRED_64, ord("h"))


def test_unsupported_offset_rejected():
    with pytest.raises(ValueError, match="Unsupported phred offset"):
        get_quality_range(50)


def test_find_invalid_quality():
    assert find_invalid_quality(b"IIII", MIN_PHRED_33, MAX_PHRED_33) == -1
    assert find_invalid_quality(b"III ", MIN_PHRED_33, MAX_PHRED_33) == 3
    assert find_invalid_quality(b"5hhh", MIN_PHRED_64, MAX_PHRED_64) == 0
    assert find_invalid_quality(b"", MIN_PHRED_33, MAX_PHRED_33) == -1


def test_encoding_names():
    assert get_encoding_name(33) == "Phred33"
    assert get_encoding_name(64) == "Phred64"


def test_phred_scores():
    assert np.array_equal(phred_scores(b"!I", 33), np.array([0, 40]))
    assert np.array_equal(phred_scores(b"@h", 64), np.array([0, 40]))
    assert phred_scores(b"II", 0).size == 0
