import logging
from dataclasses import dataclass, field
from typing import Tuple

from fastq_errors import FASTQFatalError
from quality_processing import find_invalid_quality, get_encoding_name, get_quality_range

logger = logging.getLogger(__name__)


# Default read number marking PacBio files: trailing "/digits" belong to the name
PACBIO_READ_NUMBER = -1
ILLUMINA_READ_NUMBER = 0

# All secondary reads are represented as 2 in records
SECONDARY_READ_NUMBER = 2


@dataclass
class ParseState:
    """
    File-scoped state shared by every record of one parsing session.
    Create a fresh instance per input; nothing here may be shared across sessions.
    """
    phred_offset: int = 33
    max_phred: int = 0
    default_read_number: int = ILLUMINA_READ_NUMBER
    secondary_read_number: int = 0
    fatal_error: bool = False
    records_parsed: int = 0
    syntax_errors: int = 0
    quality_range: Tuple[int, int] = field(init=False, repr=False)

    def __post_init__(self):
        # Raises ValueError for unsupported offsets
        self.quality_range = get_quality_range(self.phred_offset, self.max_phred)
        if self.default_read_number not in (ILLUMINA_READ_NUMBER, PACBIO_READ_NUMBER):
            raise ValueError(f"Unsupported default read number {self.default_read_number}")

    @classmethod
    def for_platform(cls, phred_offset: int = 33, max_phred: int = 0, pacbio: bool = False) -> "ParseState":
        default_read_number = PACBIO_READ_NUMBER if pacbio else ILLUMINA_READ_NUMBER
        return cls(phred_offset=phred_offset, max_phred=max_phred, default_read_number=default_read_number)

    @property
    def is_pacbio(self) -> bool:
        return self.default_read_number == PACBIO_READ_NUMBER

    def fail(self, message: str):
        self.fatal_error = True
        logger.error(message)
        raise FASTQFatalError(message)

    def check_quality(self, quality: bytes):
        """Validate one quality run against the active encoding range"""
        if self.phred_offset == 0:
            return

        floor, ceiling = self.quality_range
        position = find_invalid_quality(quality, floor, ceiling)
        if position >= 0:
            ch = quality[position]
            self.fail(
                f"Invalid quality value ('{chr(ch)}'={ch}, position {position}): "
                f"for {get_encoding_name(self.phred_offset)}, valid range is from {floor} to {ceiling}."
            )

    def resolve_read_number(self, digits: bytes) -> int:
        """
        Map a numeric read-number token to the record's read number.
        Only single digits are interpreted; secondary digits must agree across the file.
        """
        if self.is_pacbio:
            return 0
        if len(digits) != 1:
            # multi-digit read numbers are not supported
            return self.default_read_number

        if digits == b"1":
            return 1
        if digits == b"0":
            return self.default_read_number

        read_num = digits[0] - ord("0")
        if self.secondary_read_number == 0:
            logger.debug(f"Secondary read number for this input is {read_num}")
            self.secondary_read_number = read_num
        elif self.secondary_read_number != read_num:
            self.fail(
                f"Inconsistent secondary read number: previously used {self.secondary_read_number}, "
                f"now seen {read_num}"
            )
        return SECONDARY_READ_NUMBER

    def summary(self) -> dict:
        return {
            "phred_offset": self.phred_offset,
            "pacbio": self.is_pacbio,
            "secondary_read_number": self.secondary_read_number,
            "records_parsed": self.records_parsed,
            "syntax_errors": self.syntax_errors,
            "fatal_error": self.fatal_error,
        }
