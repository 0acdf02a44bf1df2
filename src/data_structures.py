from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TokenKind(Enum):
    END_OF_TEXT = "fqENDOFTEXT"
    NUMBER = "fqNUMBER"
    ALPHANUM = "fqALPHANUM"
    WHITESPACE = "fqWS"
    END_OF_LINE = "fqENDLINE"
    BASE_SEQUENCE_RUN = "fqBASESEQ"
    COLORSPACE_RUN = "fqCOLORSEQ"
    GENERIC_TOKEN = "fqTOKEN"
    QUALITY_RUN = "fqASCQUAL"
    COORDINATE_RUN = "fqCOORDS"
    UNRECOGNIZED = "fqUNRECOGNIZED"
    PUNCTUATION = "fqPUNCT"  # single-character literal, matched by value


class ScanMode(Enum):
    """Lexical modes the grammar engine can ask the tokenizer to re-scan under."""
    LINE_START = "line_start"
    INLINE_SEQUENCE = "inline_sequence"
    INLINE_QUALITY = "inline_quality"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class FASTQRecord:
    index: int
    spot_name: str
    sequence: bytes
    quality: bytes
    read_number: int = 0
    spot_group: Optional[str] = None
    is_colorspace: bool = False
    low_quality: bool = False
    header: str = ""
    marker: str = "@"
