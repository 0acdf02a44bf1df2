from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from data_structures import FASTQRecord, Token, TokenKind
from parse_state import ParseState


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


@dataclass
class RecordAccumulator:
    """
    Per-record spans into the source buffer, filled in header order and then
    sequence/quality order. Reset (recreated) before every record.

    The spot name is a single contiguous span that only grows while
    spot_name_done is False. The header span grows with every header token,
    so it always reconstructs the full defline.
    """
    spot_name_offset: int = 0
    spot_name_length: int = 0
    spot_name_done: bool = False
    spot_group_offset: int = 0
    spot_group_length: int = 0
    header_offset: int = 0
    header_length: int = 0
    read_number: int = 0
    is_colorspace: bool = False
    low_quality: bool = False
    marker: str = ""
    read_kind: Optional[TokenKind] = None
    read_spans: List[Tuple[int, int]] = field(default_factory=list)
    quality_spans: List[Tuple[int, int]] = field(default_factory=list)

    # Spot name

    def start_spot_name(self, offset: int):
        self.spot_name_offset = offset
        self.spot_name_length = 0
        self.header_offset = offset
        self.header_length = 0

    def grow_spot_name(self, token: Token):
        if not self.spot_name_done:
            self.spot_name_length += token.length
        self.grow_header(token)

    def stop_spot_name(self):
        # more tokens may follow; they are not part of the spot name
        self.spot_name_done = True

    def reopen_spot_name(self):
        self.spot_name_done = False

    def grow_header(self, token: Token):
        self.header_length = max(self.header_length, token.end - self.header_offset)

    # Spot group

    def set_spot_group(self, token: Token, text: bytes):
        if text == b"0":
            return  # barcode 0 means no barcode
        self.spot_group_offset = token.start
        self.spot_group_length = token.length

    def extend_spot_group(self, token: Token):
        if self.spot_group_length:
            self.spot_group_length = token.end - self.spot_group_offset

    # Read and quality

    @property
    def read_length(self) -> int:
        return sum(length for _, length in self.read_spans)

    @property
    def read_offset(self) -> int:
        return self.read_spans[0][0] if self.read_spans else 0

    @property
    def quality_length(self) -> int:
        return sum(length for _, length in self.quality_spans)

    @property
    def quality_offset(self) -> int:
        return self.quality_spans[0][0] if self.quality_spans else 0

    def add_read(self, token: Token):
        if self.read_kind is None:
            self.read_kind = token.kind
            self.is_colorspace = token.kind == TokenKind.COLORSPACE_RUN
        self.read_spans.append((token.start, token.length))

    def add_quality(self, token: Token, text: bytes, state: ParseState):
        state.check_quality(text)
        self.quality_spans.append((token.start, token.length))

    def set_read_number(self, text: bytes, state: ParseState):
        if not state.is_pacbio:
            self.read_number = state.resolve_read_number(text)

    def set_filter_flag(self, text: bytes):
        if text == b"Y":
            self.low_quality = True

    def to_record(self, buffer, index: int) -> FASTQRecord:
        """Copy every span out of the shared buffer into an owned record"""
        spot_group = None
        if self.spot_group_length:
            spot_group = _decode(bytes(buffer[self.spot_group_offset:self.spot_group_offset + self.spot_group_length]))

        return FASTQRecord(
            index=index,
            spot_name=_decode(bytes(buffer[self.spot_name_offset:self.spot_name_offset + self.spot_name_length])),
            sequence=b"".join(bytes(buffer[start:start + length]) for start, length in self.read_spans),
            quality=b"".join(bytes(buffer[start:start + length]) for start, length in self.quality_spans),
            read_number=self.read_number,
            spot_group=spot_group,
            is_colorspace=self.is_colorspace,
            low_quality=self.low_quality,
            header=_decode(bytes(buffer[self.header_offset:self.header_offset + self.header_length])),
            marker=self.marker,
        )
