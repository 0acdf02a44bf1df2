from typing import Iterable, Optional


class FASTQParseError(Exception):
    """Base class for everything the grammar engine reports."""


class FASTQSyntaxError(FASTQParseError):
    """
    A token did not fit the production being parsed.
    Recoverable: the caller decides whether to resync at the next header or stop.
    """

    def __init__(self, message: str, token_text: str = "", expected: Iterable[str] = (),
                 line_number: Optional[int] = None, line_text: str = ""):
        self.token_text = token_text
        self.expected = tuple(expected)
        self.line_number = line_number
        self.line_text = line_text
        detail = message
        if self.expected:
            detail += f" (expected one of: {', '.join(self.expected)})"
        if line_number is not None:
            detail += f" at line {line_number}: {line_text!r}"
        super().__init__(detail)


class FASTQFatalError(FASTQParseError):
    """Input does not conform to any supported convention; the session is over."""
