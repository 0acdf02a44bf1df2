import re
from typing import Optional

from data_structures import ScanMode, Token, TokenKind


# Scanner states
_LINE = 0            # at a line boundary, or inside a sequence line
_TAG = 1             # inside a defline (or an inline record)
_QUALITY_HEADER = 2  # rest of the '+' line
_QUALITY = 3         # quality lines, one QUALITY_RUN per line

EOL_PATTERN = re.compile(rb"\r?\n")
WHITESPACE_PATTERN = re.compile(rb"[ \t]+")
WORD_PATTERN = re.compile(rb"[A-Za-z0-9]+")
# lane:tile:x:y style coordinates (at least four numeric groups)
COORDS_PATTERN = re.compile(rb"(?::[0-9]+){4}(?![0-9A-Za-z])")
# IUPAC nucleotide codes, '.' for no-calls
BASE_RUN_PATTERN = re.compile(rb"[ACGTUNRYKMSWBDHVacgtunrykmswbdhv.]+")
# SOLiD reads: optional primer base followed by color calls
COLOR_RUN_PATTERN = re.compile(rb"[ACGTacgt]?[0-3.]+")
REST_OF_LINE_PATTERN = re.compile(rb"[^\r\n]+")

PUNCTUATION = frozenset(b"@>+:_.-#/=")


class FASTQTokenizer:
    """
    Pull tokenizer over a FASTQ buffer (bytes or mmap).
    Tokens only carry offsets; use token_text() to read the bytes behind them.
    """

    def __init__(self, buffer):
        self.buffer = buffer
        self.size = len(buffer)
        self.pos = 0
        self.state = _LINE
        self.whitespace_seen = False
        self.last: Optional[Token] = None

    def token_text(self, token: Token) -> bytes:
        return bytes(self.buffer[token.start:token.end])

    def line_number(self, offset: int) -> int:
        return bytes(self.buffer[:offset]).count(b"\n") + 1

    def line_text(self, offset: int) -> str:
        line_start = self.buffer.rfind(b"\n", 0, offset) + 1
        line_end = self.buffer.find(b"\n", offset)
        if line_end == -1:
            line_end = self.size
        return bytes(self.buffer[line_start:line_end]).rstrip(b"\r").decode("utf-8", errors="ignore")

    def next_token(self) -> Token:
        if self.state == _TAG:
            token = self._scan_tag()
        elif self.state == _QUALITY_HEADER:
            token = self._scan_rest_of_line(TokenKind.GENERIC_TOKEN, next_state=_QUALITY)
        elif self.state == _QUALITY:
            token = self._scan_rest_of_line(TokenKind.QUALITY_RUN, next_state=_QUALITY)
        else:
            token = self._scan_line()
        self.last = token
        return token

    def rescan_as(self, mode: ScanMode) -> Token:
        """Re-classify the most recently returned token under another lexical mode"""
        if self.last is not None:
            self.pos = self.last.start

        if mode == ScanMode.LINE_START:
            self.state = _LINE
            return self.next_token()

        self.state = _TAG
        if mode == ScanMode.INLINE_SEQUENCE:
            token = self._match_read_run()
            if token is None:
                token = self._scan_tag()
        else:
            token = self._match(REST_OF_LINE_PATTERN, TokenKind.QUALITY_RUN)
            if token is None:
                token = self._scan_tag()
        self.last = token
        return token

    # Scanner internals

    def _emit(self, kind: TokenKind, length: int) -> Token:
        token = Token(kind, self.pos, length)
        self.pos += length
        return token

    def _match(self, pattern, kind: TokenKind) -> Optional[Token]:
        m = pattern.match(self.buffer, self.pos)
        if m is None:
            return None
        return self._emit(kind, m.end() - m.start())

    def _end_of_line(self, next_state: int) -> Optional[Token]:
        m = EOL_PATTERN.match(self.buffer, self.pos)
        if m is None:
            return None
        self.state = next_state
        return self._emit(TokenKind.END_OF_LINE, m.end() - m.start())

    def _match_read_run(self) -> Optional[Token]:
        """Longest of base / color run at pos; ties go to bases"""
        base = BASE_RUN_PATTERN.match(self.buffer, self.pos)
        color = COLOR_RUN_PATTERN.match(self.buffer, self.pos)
        base_len = base.end() - self.pos if base else 0
        color_len = color.end() - self.pos if color else 0
        if base_len == 0 and color_len == 0:
            return None
        if color_len > base_len:
            return self._emit(TokenKind.COLORSPACE_RUN, color_len)
        return self._emit(TokenKind.BASE_SEQUENCE_RUN, base_len)

    def _ends_line(self, offset: int) -> bool:
        return offset >= self.size or EOL_PATTERN.match(self.buffer, offset) is not None

    def _scan_line(self) -> Token:
        if self.pos >= self.size:
            return Token(TokenKind.END_OF_TEXT, self.size, 0)

        eol = self._end_of_line(_LINE)
        if eol is not None:
            return eol

        ch = self.buffer[self.pos:self.pos + 1]
        if ch in (b"@", b">"):
            self.state = _TAG
            self.whitespace_seen = False
            return self._emit(TokenKind.PUNCTUATION, 1)
        if ch == b"+":
            self.state = _QUALITY_HEADER
            return self._emit(TokenKind.PUNCTUATION, 1)

        start = self.pos
        run = self._match_read_run()
        if run is not None and self._ends_line(run.end):
            return run

        # not a sequence line: scan it like a defline (inline records)
        self.pos = start
        self.state = _TAG
        self.whitespace_seen = False
        return self._scan_tag()

    def _scan_tag(self) -> Token:
        if self.pos >= self.size:
            return Token(TokenKind.END_OF_TEXT, self.size, 0)

        eol = self._end_of_line(_LINE)
        if eol is not None:
            return eol

        ws = self._match(WHITESPACE_PATTERN, TokenKind.WHITESPACE)
        if ws is not None:
            self.whitespace_seen = True
            return ws

        if not self.whitespace_seen:
            coords = self._match(COORDS_PATTERN, TokenKind.COORDINATE_RUN)
            if coords is not None:
                return coords

        m = WORD_PATTERN.match(self.buffer, self.pos)
        if m is not None:
            kind = TokenKind.NUMBER if m.group().isdigit() else TokenKind.ALPHANUM
            return self._emit(kind, m.end() - m.start())

        if self.buffer[self.pos] in PUNCTUATION:
            return self._emit(TokenKind.PUNCTUATION, 1)
        return self._emit(TokenKind.UNRECOGNIZED, 1)

    def _scan_rest_of_line(self, kind: TokenKind, next_state: int) -> Token:
        if self.pos >= self.size:
            return Token(TokenKind.END_OF_TEXT, self.size, 0)

        eol = self._end_of_line(_QUALITY)
        if eol is not None:
            return eol

        self.state = next_state
        token = self._match(REST_OF_LINE_PATTERN, kind)
        if token is None:
            # stray carriage return
            return self._emit(TokenKind.UNRECOGNIZED, 1)
        return token
