"""
Grammar engine for FASTQ records.

One record at a time, tokens pulled from a token source are driven through
the header / sequence / quality productions:

    record := header sequenceLines ('+' qualityHeader? qualityLines)?
            | '+' qualityHeader? qualityLines
            | name COORDS ':' inlineRead ':' inlineQuality

The header grammar accepts legacy Illumina (name/1), Casava 1.8
(name 1:N:0:INDEX) and PacBio (movie/zmw/start_end) deflines without knowing
in advance which one a file uses. PacBio handling is selected by the session's
default read number, never sniffed from content.
"""
import logging
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from data_structures import FASTQRecord, ScanMode, Token, TokenKind
from fastq_errors import FASTQFatalError, FASTQSyntaxError
from parse_state import ParseState
from record_assembler import RecordAccumulator

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    buffer: object

    def next_token(self) -> Token: ...

    def rescan_as(self, mode: ScanMode) -> Token: ...

    def token_text(self, token: Token) -> bytes: ...

    def line_number(self, offset: int) -> int: ...

    def line_text(self, offset: int) -> str: ...


class Production(Enum):
    RECORD_START = "record"
    NAME = "name"
    SPOT_GROUP = "spotGroup"
    READ_NUMBER_OR_TAIL = "readNumberOrTail"
    READ_NUMBER = "readNumber"
    CASAVA = "casava1_8"
    TAIL_OR_END = "tailOrEnd"
    TAIL = "tail"
    HEADER_END = "headerEnd"
    SEQUENCE = "read"
    QUALITY_HEADER = "qualityHeader"
    QUALITY_LINES = "qualityLines"
    INLINE_READ = "inlineRead"
    INLINE_QUALITY = "inlineQuality"
    DONE = "done"


NAME_WORDS = (TokenKind.ALPHANUM, TokenKind.NUMBER)
NAME_PUNCTUATION = (b"_", b"-", b".", b":")
READ_RUNS = (TokenKind.BASE_SEQUENCE_RUN, TokenKind.COLORSPACE_RUN)
NAME_TERMINATORS = (TokenKind.WHITESPACE, TokenKind.END_OF_LINE, TokenKind.END_OF_TEXT, b"/", b"#")
LINE_ENDS = (TokenKind.END_OF_LINE, TokenKind.END_OF_TEXT)


class GrammarEngine:
    """
    Deterministic record parser over a token source.

    Syntax errors raise FASTQSyntaxError and leave the engine usable: call
    resync() to skip to the next header. Semantic errors (quality range,
    secondary read numbers) mark the session fatal and raise FASTQFatalError;
    no further records are parsed.
    """

    def __init__(self, source: TokenSource, state: ParseState, start_index: int = 0):
        self.source = source
        self.state = state
        self.record = RecordAccumulator()
        self.index = start_index
        self._lookahead: Optional[Token] = None
        self._inline = False
        self._casava_required = False
        self._at_end = False
        self._handlers: Dict[Production, Callable[[], Production]] = {
            Production.RECORD_START: self._record_start,
            Production.NAME: self._name,
            Production.SPOT_GROUP: self._spot_group,
            Production.READ_NUMBER_OR_TAIL: self._read_number_or_tail,
            Production.READ_NUMBER: self._read_number,
            Production.CASAVA: self._casava,
            Production.TAIL_OR_END: self._tail_or_end,
            Production.TAIL: self._tail,
            Production.HEADER_END: self._header_end,
            Production.SEQUENCE: self._sequence,
            Production.QUALITY_HEADER: self._quality_header,
            Production.QUALITY_LINES: self._quality_lines,
            Production.INLINE_READ: self._inline_read,
            Production.INLINE_QUALITY: self._inline_quality,
        }

    def parse_record(self) -> Optional[FASTQRecord]:
        """Parse the next record; None at end of text"""
        if self.state.fatal_error:
            raise FASTQFatalError("Parsing stopped: a fatal error was already reported for this input")

        self.record = RecordAccumulator()
        self._inline = False
        self._casava_required = False
        self._at_end = False

        production = Production.RECORD_START
        while production is not Production.DONE:
            production = self._handlers[production]()

        if self._at_end:
            return None

        record = self.record.to_record(self.source.buffer, self.index)
        self.index += 1
        self.state.records_parsed += 1
        return record

    def resync(self):
        """Skip the rest of the current line, then every line up to the next header"""
        # a pending quality run is re-scanned as a whole line below
        while self._peek().kind != TokenKind.QUALITY_RUN:
            token = self._peek()
            if token.kind == TokenKind.END_OF_TEXT:
                return
            self._advance()
            if token.kind == TokenKind.END_OF_LINE:
                break

        while True:
            token = self._peek()
            if token.kind == TokenKind.QUALITY_RUN:
                token = self._rescan(ScanMode.LINE_START)
            if token.kind == TokenKind.END_OF_TEXT or self._punct(token) in (b"@", b">"):
                return
            while token.kind not in LINE_ENDS:
                self._advance()
                token = self._peek()
            self._advance()

    # Token helpers

    def _peek(self) -> Token:
        if self._lookahead is None:
            self._lookahead = self.source.next_token()
        return self._lookahead

    def _advance(self) -> Token:
        token = self._peek()
        self._lookahead = None
        return token

    def _rescan(self, mode: ScanMode) -> Token:
        self._peek()
        self._lookahead = self.source.rescan_as(mode)
        return self._lookahead

    def _text(self, token: Token) -> bytes:
        return self.source.token_text(token)

    def _punct(self, token: Token) -> bytes:
        if token.kind != TokenKind.PUNCTUATION:
            return b""
        return self._text(token)

    def _accepts(self, token: Token, accepted) -> bool:
        for item in accepted:
            if isinstance(item, TokenKind):
                if token.kind == item:
                    return True
            elif self._punct(token) == item:
                return True
        return False

    def _expect(self, *accepted) -> Token:
        token = self._peek()
        if not self._accepts(token, accepted):
            self._syntax_error(token, accepted)
        return self._advance()

    def _describe(self, token: Token) -> str:
        if token.kind == TokenKind.END_OF_TEXT:
            return "end of text"
        if token.kind == TokenKind.END_OF_LINE:
            return "end of line"
        return repr(self._text(token).decode("utf-8", errors="replace"))

    def _syntax_error(self, token: Token, accepted, reason: str = ""):
        self.state.syntax_errors += 1
        expected = [item.name if isinstance(item, TokenKind) else repr(item.decode()) for item in accepted]
        message = f"Syntax error in record {self.index}: unexpected {self._describe(token)}"
        if reason:
            message += f", {reason}"
        raise FASTQSyntaxError(
            message,
            token_text=self._describe(token),
            expected=expected,
            line_number=self.source.line_number(token.start),
            line_text=self.source.line_text(token.start),
        )

    # Productions

    def _record_start(self) -> Production:
        while True:
            token = self._peek()
            if token.kind == TokenKind.QUALITY_RUN:
                # tokenizer is still in quality mode from the previous record
                token = self._rescan(ScanMode.LINE_START)

            if token.kind == TokenKind.END_OF_LINE:
                self._advance()
                continue
            if token.kind == TokenKind.END_OF_TEXT:
                self._at_end = True
                return Production.DONE

            marker = self._punct(token)
            if marker in (b"@", b">"):
                self._advance()
                self.record.marker = marker.decode()
                self.record.start_spot_name(token.end)
                return Production.NAME
            if marker == b"+":
                self.record.marker = ""
                self.record.start_spot_name(token.start)
                return Production.QUALITY_HEADER
            if token.kind in NAME_WORDS:
                self._inline = True
                self.record.start_spot_name(token.start)
                return Production.NAME

            self._syntax_error(token, (b"@", b">", b"+", TokenKind.ALPHANUM, TokenKind.NUMBER))

    def _name(self) -> Production:
        token = self._expect(*NAME_WORDS)
        self.record.grow_spot_name(token)
        after_coords = False

        while True:
            token = self._peek()
            punct = self._punct(token)

            if after_coords:
                if self._inline:
                    self.record.grow_spot_name(self._expect(b":"))
                    return Production.INLINE_READ
                if punct == b"_":
                    # Illumina variant using "_" in place of the space before the tagline
                    self.record.stop_spot_name()
                    self.record.grow_spot_name(self._advance())
                    self._casava_required = True
                    return Production.CASAVA
                if punct in (b":", b"."):
                    self.record.grow_spot_name(self._advance())
                    after_coords = False
                    continue
                if not self._accepts(token, NAME_TERMINATORS):
                    self._syntax_error(token, (b":", b".", b"_") + NAME_TERMINATORS)
                break

            if token.kind in NAME_WORDS or punct in NAME_PUNCTUATION:
                self.record.grow_spot_name(self._advance())
                continue
            if token.kind == TokenKind.COORDINATE_RUN:
                self.record.grow_spot_name(self._advance())
                if self._inline:
                    self.record.stop_spot_name()
                after_coords = True
                continue
            if self._accepts(token, NAME_TERMINATORS):
                break
            self._syntax_error(token, NAME_WORDS + tuple(NAME_PUNCTUATION) + NAME_TERMINATORS)

        if self._inline:
            self._syntax_error(token, (TokenKind.COORDINATE_RUN,), "inline records need coordinates")
        self.record.stop_spot_name()
        return Production.SPOT_GROUP

    def _spot_group(self) -> Production:
        if self._punct(self._peek()) != b"#":
            return Production.READ_NUMBER_OR_TAIL

        self.record.grow_spot_name(self._advance())
        token = self._expect(*NAME_WORDS)
        self.record.set_spot_group(token, self._text(token))
        self.record.grow_spot_name(token)
        return Production.READ_NUMBER_OR_TAIL

    def _read_number_or_tail(self) -> Production:
        token = self._peek()
        if self._punct(token) == b"/":
            return Production.READ_NUMBER
        if token.kind != TokenKind.WHITESPACE:
            return Production.HEADER_END

        self.record.grow_spot_name(self._advance())
        token = self._peek()
        if token.kind == TokenKind.NUMBER:
            return Production.CASAVA
        if token.kind in LINE_ENDS:
            return Production.HEADER_END
        return Production.TAIL

    def _read_number(self) -> Production:
        pacbio = self.state.is_pacbio

        # in PacBio files "/digits" continue the spot name instead of giving a read number
        slash = self._advance()
        if pacbio:
            self.record.reopen_spot_name()
        self.record.grow_spot_name(slash)

        number = self._expect(TokenKind.NUMBER)
        self.record.set_read_number(self._text(number), self.state)
        self.record.grow_spot_name(number)
        self.record.stop_spot_name()

        while self._punct(self._peek()) == b"/":
            slash = self._advance()
            if pacbio:
                self.record.reopen_spot_name()
            self.record.grow_spot_name(slash)
            self.record.grow_spot_name(self._expect(*NAME_WORDS))
            while True:
                token = self._peek()
                if token.kind not in NAME_WORDS and self._punct(token) not in NAME_PUNCTUATION:
                    break
                self.record.grow_spot_name(self._advance())
            if pacbio:
                self.record.stop_spot_name()

        return Production.TAIL_OR_END

    def _casava(self) -> Production:
        number = self._expect(TokenKind.NUMBER)
        if self._punct(self._peek()) != b":":
            if self._casava_required:
                self._syntax_error(self._peek(), (b":",))
            # a tail that happens to start with digits
            self.record.grow_header(number)
            return Production.TAIL

        self.record.set_read_number(self._text(number), self.state)
        self.record.grow_spot_name(number)
        self.record.stop_spot_name()

        self.record.grow_spot_name(self._expect(b":"))
        flag = self._expect(TokenKind.ALPHANUM)
        self.record.set_filter_flag(self._text(flag))
        self.record.grow_spot_name(flag)
        self.record.grow_spot_name(self._expect(b":"))
        self.record.grow_spot_name(self._expect(TokenKind.NUMBER))
        self.record.grow_spot_name(self._expect(b":"))

        # index sequence: optional, dual indexes joined by '+' or '-'
        token = self._peek()
        if token.kind in NAME_WORDS:
            self._advance()
            self.record.set_spot_group(token, self._text(token))
            self.record.grow_spot_name(token)
            while self._punct(self._peek()) in (b"+", b"-"):
                self.record.grow_spot_name(self._advance())
                token = self._expect(*NAME_WORDS)
                self.record.extend_spot_group(token)
                self.record.grow_spot_name(token)

        return Production.TAIL_OR_END

    def _tail_or_end(self) -> Production:
        if self._peek().kind != TokenKind.WHITESPACE:
            return Production.HEADER_END
        self.record.grow_header(self._advance())
        if self._peek().kind in LINE_ENDS:
            return Production.HEADER_END
        return Production.TAIL

    def _tail(self) -> Production:
        while True:
            token = self._peek()
            if token.kind in LINE_ENDS:
                return Production.HEADER_END
            if token.kind == TokenKind.UNRECOGNIZED:
                self._syntax_error(token, NAME_WORDS + (TokenKind.PUNCTUATION, TokenKind.WHITESPACE) + LINE_ENDS)
            self.record.grow_header(self._advance())

    def _header_end(self) -> Production:
        self._expect(TokenKind.END_OF_LINE)
        return Production.SEQUENCE

    def _sequence(self) -> Production:
        while True:
            token = self._peek()
            if token.kind in READ_RUNS:
                kind = self.record.read_kind
                if kind is not None and token.kind != kind:
                    self._syntax_error(token, (kind,), "base and color runs mixed in one read")
                self.record.add_read(self._advance())
                self._expect(*LINE_ENDS)
                continue

            if self.record.read_kind is None:
                self._syntax_error(token, READ_RUNS)

            punct = self._punct(token)
            if punct == b"+":
                return Production.QUALITY_HEADER
            # no quality section: next record, blank line or end of text
            if punct in (b"@", b">") or token.kind in LINE_ENDS:
                return Production.DONE
            self._syntax_error(token, (self.record.read_kind, b"+", b"@", b">"), "not a sequence line")

    def _quality_header(self) -> Production:
        self._expect(b"+")
        if self._peek().kind == TokenKind.GENERIC_TOKEN:
            # repeated spot name; only its shape matters
            self._advance()
        self._expect(TokenKind.END_OF_LINE)
        return Production.QUALITY_LINES

    def _quality_lines(self) -> Production:
        read_length = self.record.read_length
        last = None

        while True:
            token = self._peek()
            quality = token.kind == TokenKind.QUALITY_RUN
            text = self._text(token) if quality else b""
            if last is not None and quality:
                if read_length == 0 and text.startswith(b"+"):
                    # quality-only input: next record header
                    return Production.DONE
                if read_length and text.startswith(b"@"):
                    # a short quality never continues into the next header
                    quality = False

            if not quality:
                if last is None:
                    self._syntax_error(token, (TokenKind.QUALITY_RUN,))
                if read_length:
                    self._check_quality_length(last, self.record.quality_length)
                return Production.DONE

            if read_length:
                self._check_quality_length(token, self.record.quality_length + token.length, partial=True)

            self._advance()
            self.record.add_quality(token, text, self.state)
            self._expect(*LINE_ENDS)
            last = token

            if read_length and self.record.quality_length == read_length:
                return Production.DONE

    def _check_quality_length(self, token: Token, quality_length: int, partial: bool = False):
        read_length = self.record.read_length
        if quality_length > read_length or (quality_length < read_length and not partial):
            self._syntax_error(
                token, (TokenKind.QUALITY_RUN,),
                f"quality length {quality_length} does not match read length {read_length}",
            )

    def _inline_read(self) -> Production:
        token = self._rescan(ScanMode.INLINE_SEQUENCE)
        if token.kind not in READ_RUNS:
            self._syntax_error(token, READ_RUNS)
        self.record.add_read(self._advance())
        self._expect(b":")
        return Production.INLINE_QUALITY

    def _inline_quality(self) -> Production:
        token = self._rescan(ScanMode.INLINE_QUALITY)
        if token.kind != TokenKind.QUALITY_RUN:
            self._syntax_error(token, (TokenKind.QUALITY_RUN,))
        self._check_quality_length(token, token.length)
        self._advance()
        self.record.add_quality(token, self._text(token), self.state)
        self._expect(*LINE_ENDS)
        return Production.DONE
