from typing import Tuple

import numpy as np
from numba import njit


# Printable quality character bounds per encoding
MIN_PHRED_33 = 33
MAX_PHRED_33 = 126
MIN_PHRED_64 = 64
MAX_PHRED_64 = 126

SUPPORTED_PHRED_OFFSETS = (0, 33, 64)


def get_encoding_name(phred_offset: int) -> str:
    """Returns the display name used in diagnostics for each encoding"""
    if phred_offset == 33:
        return "Phred33"
    elif phred_offset == 64:
        return "Phred64"
    return "none"


def get_quality_range(phred_offset: int, max_phred: int = 0) -> Tuple[int, int]:
    """
    Resolve the valid [floor, ceiling] character range for an encoding.
    A non-zero max_phred replaces the encoding's default ceiling.
    """
    if phred_offset not in SUPPORTED_PHRED_OFFSETS:
        raise ValueError(f"Unsupported phred offset {phred_offset}; expected one of {SUPPORTED_PHRED_OFFSETS}")

    floor = MIN_PHRED_33 if phred_offset == 33 else MIN_PHRED_64
    if max_phred != 0:
        ceiling = max_phred
    else:
        ceiling = MAX_PHRED_33 if phred_offset == 33 else MAX_PHRED_64
    return floor, ceiling


@njit
def first_invalid_quality(values, floor, ceiling):
    """
    Position of the first quality code outside [floor, ceiling], or -1.

    WARNING: This function is JIT-compiled with @njit. Only pass uint8 arrays and ints.
    """
    for i in range(values.shape[0]):
        ch = values[i]
        if ch < floor or ch > ceiling:
            return i
    return -1


def find_invalid_quality(quality: bytes, floor: int, ceiling: int) -> int:
    """Scan a quality run; returns the offending position or -1"""
    if not quality:
        return -1
    values = np.frombuffer(quality, dtype=np.uint8)
    return int(first_invalid_quality(values, floor, ceiling))


def create_phred_quality_map(phred_offset=33):
    """Create mapping from ASCII quality characters to numeric quality scores"""
    phred_map = np.zeros(256, dtype=np.int16)

    for ascii_val in range(256):
        phred_map[ascii_val] = max(0, ascii_val - phred_offset)

    return phred_map


def phred_scores(quality: bytes, phred_offset: int = 33) -> np.ndarray:
    """Decode a quality string into numeric Phred scores"""
    if phred_offset == 0 or not quality:
        return np.array([], dtype=np.int16)
    phred_map = create_phred_quality_map(phred_offset)
    return phred_map[np.frombuffer(quality, dtype=np.uint8)]
