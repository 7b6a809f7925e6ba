"""
Error classes for envledger.

Every error raised while interpreting a journal carries the line and column
of the offending construct, plus a short ``kind`` string that a presentation
layer can group or colour by. The engine collects these instead of stopping
at the first one, so a whole file can be diagnosed in a single pass.
"""

from __future__ import annotations

from decimal import Decimal


class LedgerError(Exception):
    """
    Base class for all journal interpretation errors.

    Attributes:
        message: Human-readable description without position prefix
        line: 1-based line number (None when not tied to a position)
        column: 1-based column number (None when unknown)
    """

    kind = "error"

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(self._fmt(message))

    def _fmt(self, msg: str) -> str:
        """Format the error message with position context."""
        if self.line is None:
            return msg
        if self.column is None:
            return f"[line {self.line}] {msg}"
        return f"[line {self.line}, col {self.column}] {msg}"

    def sort_key(self) -> tuple[int, int]:
        return (self.line or 0, self.column or 0)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "line": self.line,
            "column": self.column,
            "message": self.message,
        }


class ConfigError(LedgerError):
    """Invalid ledger configuration (unknown glyphs, bad decimal symbol, ...)."""

    kind = "config"


class LexError(LedgerError):
    """Unrecognized character outside a comment."""

    kind = "lex"


class ParseError(LedgerError):
    """
    Grammar violation.

    **Common Causes:**
    - Missing transaction status or description
    - `by due` instead of `due by`
    - `every other ...` without a `starting` date
    - Duplicate envelope name under one account
    - Account used in a transaction but never declared
    """

    kind = "parse"


class RecurrenceConfigError(ParseError):
    """Envelope schedule that can't be resolved to concrete due dates."""

    kind = "recurrence"


class BalanceError(LedgerError):
    """Transaction postings that can't be balanced."""

    kind = "balance"


class CurrencyMismatchError(BalanceError):
    """Postings in several currencies with no cost or price bridging them."""

    kind = "currency"


class BalanceAssertionFailedError(LedgerError):
    """A `!` or `!!` balance assertion did not hold after the transaction."""

    kind = "assertion"

    def __init__(
        self,
        account: str,
        expected: Decimal,
        actual: Decimal,
        symbol: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        self.account = account
        self.expected = expected
        self.actual = actual
        self.symbol = symbol
        scope = f"in {symbol!r}" if symbol is not None else "in total"
        super().__init__(
            f"balance assertion failed for {account} {scope}: "
            f"expected {expected}, actual {actual}",
            line,
            column,
        )


class EnvelopeAmbiguityError(LedgerError):
    """An envelope movement can't be attributed to a single (account, envelope)."""

    kind = "envelope-ambiguity"


class EnvelopeNotFoundError(LedgerError):
    """Reference to an envelope that was never defined."""

    kind = "envelope-not-found"


class CsvImportError(LedgerError):
    """
    CSV import failure.

    Raised for a bad rules file, with the rules line, and collected for a
    record that can't be turned into a transaction, with its CSV line.
    """

    kind = "import"
