"""
Tokenizer for journal text.

The journal is line oriented: every non-blank line yields its indentation
width followed by the tokens on it. Transaction header lines (lines that
start with a date at column 1) are lexed in a header mode so the free-form
description survives intact.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from .context import LedgerConfig
from .errors import LexError
from .kinds import K


class TokenType(Enum):
    """Kinds of tokens produced by the lexer."""

    INDENT = "indent"
    NEWLINE = "newline"
    DATE = "date"
    GLYPH = "glyph"
    TEXT = "text"
    PAYEE = "payee"
    KEYWORD = "keyword"
    IDENT = "ident"
    AMOUNT = "amount"
    SYMBOL = "symbol"
    OP = "op"


@dataclass(frozen=True)
class Token:
    """
    A single lexical token.

    Attributes:
        type: Token kind
        value: Source text (unquoted for quoted identifiers)
        line: 1-based line number
        column: 1-based column number
        number: Parsed quantity for AMOUNT tokens
        symbol: Currency symbol for AMOUNT tokens ('' if none)
        quoted: True for identifiers written in double quotes
    """

    type: TokenType
    value: str
    line: int
    column: int
    number: Decimal | None = None
    symbol: str = ""
    quoted: bool = False

    def is_keyword(self, *words: str) -> bool:
        return self.type is TokenType.KEYWORD and (not words or self.value in words)

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


@dataclass
class Line:
    """Tokens of one non-blank source line."""

    number: int
    indent: int
    tokens: list[Token] = field(default_factory=list)
    error: LexError | None = None

    @property
    def is_top_level(self) -> bool:
        return self.indent == 0


# Characters that terminate bare words and amounts
_STOP = r"\s;\"\[\]=@!"
_SYMBOL_CHARS = r"[^\s\d\-+.,;:\"'\[\]=@!?~*/\\#%^&|(){}<>`]"
_PREFIX_CHARS = r"[^\s\w\-+.,;:\"'\[\]=@!?~*/\\#%^&|(){}<>`]"
_BOUNDARY = r"(?=\s|$|[;=@!\]]|//)"

_DATE_RE = re.compile(r"(\d{4})[/-](\d{1,2})[/-](\d{1,2})" + _BOUNDARY)
_PATH_RE = re.compile(
    rf"\w(?:(?!//)[^{_STOP}:])*(?::(?:(?!//)[^{_STOP}:])+)+" + _BOUNDARY
)
_AMOUNT_RE = re.compile(
    rf"(?P<sign>[-+])?(?P<pre>{_PREFIX_CHARS}+)?(?P<sign2>[-+])?"
    rf"(?P<num>\d(?:[\d.,]*\d)?)(?P<post>{_SYMBOL_CHARS}+)?" + _BOUNDARY
)
_WORD_RE = re.compile(rf"[^\W\d](?:(?!//)[^{_STOP}])*")
_SYMBOL_RE = re.compile(rf"{_SYMBOL_CHARS}+" + _BOUNDARY)
_OP_RE = re.compile(r"!!|[=@!]")
_DATE_FORMAT_RE = re.compile(re.escape(K.DATE_FORMAT) + r"(?=\s|$)")

KEYWORDS = K.all_keywords()


def _indent_width(raw: str, tab_width: int) -> tuple[int, int]:
    """Return (indent width in columns, index of first non-blank char)."""
    width = 0
    for idx, ch in enumerate(raw):
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += tab_width - (width % tab_width)
        else:
            return width, idx
    return width, len(raw)


def parse_number(raw: str, config: LedgerConfig, line: int = 0, column: int = 0) -> Decimal:
    """
    Turn a written quantity ('1,234.50') into a Decimal.

    Thousands separators may only appear in the integer part, between groups
    of exactly three digits, so '1,5' is rejected instead of read as 15.
    """
    separator = config.thousands_separator
    whole, point, fraction = raw.partition(config.decimal_symbol)
    if config.decimal_symbol in fraction or separator in fraction:
        raise LexError(f"malformed number {raw!r}", line, column)
    if separator in whole and not re.fullmatch(
        rf"\d{{1,3}}(?:{re.escape(separator)}\d{{3}})+", whole
    ):
        raise LexError(f"misplaced thousands separator in {raw!r}", line, column)
    cleaned = whole.replace(separator, "") + ("." + fraction if point else "")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise LexError(f"malformed number {raw!r}", line, column) from None


# strptime directives a journal date may use, and what each one matches
_DATE_CODES = {
    "Y": r"\d{4}",
    "y": r"\d{2}",
    "m": r"\d{1,2}",
    "d": r"\d{1,2}",
    "b": r"[A-Za-z]{3}",
    "B": r"[A-Za-z]+",
}


def date_pattern(date_format: str) -> str:
    """
    Regex matching dates written with a strptime format such as '%d.%m.%Y'.

    Raises:
        ValueError: If the format uses an unsupported directive, contains
            whitespace, or lacks a year, month or day
    """
    if not date_format or any(ch.isspace() for ch in date_format):
        raise ValueError(f"date format {date_format!r} can't be empty or contain spaces")
    parts = []
    seen = set()
    pos = 0
    while pos < len(date_format):
        ch = date_format[pos]
        if ch != "%":
            parts.append(re.escape(ch))
            pos += 1
            continue
        code = date_format[pos + 1 : pos + 2]
        if code == "%":
            parts.append("%")
        elif code in _DATE_CODES:
            parts.append(_DATE_CODES[code])
            seen.add(code)
        else:
            raise ValueError(f"unsupported directive %{code} in date format {date_format!r}")
        pos += 2
    if not (seen & {"Y", "y"} and seen & {"m", "b", "B"} and "d" in seen):
        raise ValueError(f"date format {date_format!r} needs a year, a month and a day")
    return "".join(parts)


class Lexer:
    """
    Journal tokenizer.

    Args:
        config: Ledger configuration (status glyphs, decimal symbol, tab width)
        date_format: strptime format of journal dates; None reads
            YYYY/MM/DD (or YYYY-MM-DD)
    """

    def __init__(self, config: LedgerConfig | None = None, date_format: str | None = None):
        self.config = config or LedgerConfig()
        self._date_re = (
            _DATE_RE if date_format is None else re.compile(date_pattern(date_format) + _BOUNDARY)
        )

    def lines(self, text: str) -> list[Line]:
        """
        Lex the text into lines of tokens.

        Lex errors don't stop the scan: the failing line keeps the tokens
        read before the error and records it in ``Line.error``.
        """
        result = []
        for number, raw in enumerate(text.splitlines(), start=1):
            indent, start = _indent_width(raw, self.config.tab_width)
            if start == len(raw) or self._is_comment(raw, start):
                continue
            line = Line(number=number, indent=indent)
            try:
                self._scan(raw, start, line)
            except LexError as e:
                line.error = e
            if line.tokens or line.error:
                result.append(line)
        return result

    def tokenize(self, text: str) -> list[Token]:
        """Flat token stream with INDENT/NEWLINE markers; raises the first LexError."""
        tokens: list[Token] = []
        for line in self.lines(text):
            if line.error:
                raise line.error
            tokens.append(Token(TokenType.INDENT, str(line.indent), line.number, 1))
            tokens.extend(line.tokens)
            end = line.tokens[-1].column + len(line.tokens[-1].value) if line.tokens else 1
            tokens.append(Token(TokenType.NEWLINE, "\n", line.number, end))
        return tokens

    @staticmethod
    def _is_comment(raw: str, pos: int) -> bool:
        return raw.startswith(";", pos) or raw.startswith("//", pos)

    def _scan(self, raw: str, pos: int, line: Line) -> None:
        if line.indent == 0 and _DATE_FORMAT_RE.match(raw, pos):
            self._scan_date_format(raw, pos, line)
            return
        header = line.indent == 0 and self._date_re.match(raw, pos) is not None
        if header:
            pos = self._scan_header(raw, pos, line)
        while pos < len(raw):
            ch = raw[pos]
            if ch.isspace():
                pos += 1
                continue
            if self._is_comment(raw, pos):
                return
            pos = self._scan_token(raw, pos, line)

    def _emit(self, line: Line, type_: TokenType, value: str, pos: int, **extra) -> None:
        line.tokens.append(Token(type_, value, line.number, pos + 1, **extra))

    def _scan_date_format(self, raw: str, pos: int, line: Line) -> None:
        """Lex `date_format <format>`; the format runs to the end of the line."""
        m = _DATE_FORMAT_RE.match(raw, pos)
        self._emit(line, TokenType.KEYWORD, K.DATE_FORMAT, pos)
        pos = m.end()
        while pos < len(raw) and raw[pos].isspace():
            pos += 1
        end = pos
        while end < len(raw) and not self._is_comment(raw, end):
            end += 1
        value = raw[pos:end].rstrip()
        if value:
            self._emit(line, TokenType.TEXT, value, pos)

    def _scan_header(self, raw: str, pos: int, line: Line) -> int:
        """Lex `<date> <glyph> <description> [<payee>]`."""
        m = self._date_re.match(raw, pos)
        self._emit(line, TokenType.DATE, m.group(0), pos)
        pos = m.end()
        while pos < len(raw) and raw[pos].isspace():
            pos += 1
        if (
            pos < len(raw)
            and not raw[pos].isalnum()
            and raw[pos] not in "[\";/"
            and (pos + 1 == len(raw) or raw[pos + 1].isspace())
        ):
            self._emit(line, TokenType.GLYPH, raw[pos], pos)
            pos += 1
        while pos < len(raw) and raw[pos].isspace():
            pos += 1
        if pos < len(raw) and raw[pos] == '"':
            return self._scan_quoted(raw, pos, line, TokenType.TEXT)
        end = pos
        while end < len(raw) and raw[end] != "[" and not self._is_comment(raw, end):
            end += 1
        text = raw[pos:end].rstrip()
        if text:
            self._emit(line, TokenType.TEXT, text, pos)
        return end

    def _scan_quoted(self, raw: str, pos: int, line: Line, type_: TokenType) -> int:
        end = raw.find('"', pos + 1)
        if end < 0:
            raise LexError("unterminated quoted string", line.number, pos + 1)
        self._emit(line, type_, raw[pos + 1 : end], pos, quoted=True)
        return end + 1

    def _scan_token(self, raw: str, pos: int, line: Line) -> int:
        ch = raw[pos]
        if ch == '"':
            return self._scan_quoted(raw, pos, line, TokenType.IDENT)
        if ch == "[":
            end = raw.find("]", pos + 1)
            if end < 0:
                raise LexError("unterminated payee, missing ']'", line.number, pos + 1)
            self._emit(line, TokenType.PAYEE, raw[pos + 1 : end].strip(), pos)
            return end + 1

        m = self._date_re.match(raw, pos)
        if m:
            self._emit(line, TokenType.DATE, m.group(0), pos)
            return m.end()

        m = _PATH_RE.match(raw, pos)
        if m:
            self._emit(line, TokenType.IDENT, m.group(0), pos)
            return m.end()

        m = _AMOUNT_RE.match(raw, pos)
        if m:
            return self._emit_amount(m, pos, line)

        m = _OP_RE.match(raw, pos)
        if m:
            self._emit(line, TokenType.OP, m.group(0), pos)
            return m.end()

        m = _WORD_RE.match(raw, pos)
        if m:
            word = m.group(0)
            type_ = TokenType.KEYWORD if word in KEYWORDS else TokenType.IDENT
            self._emit(line, type_, word, pos)
            return m.end()

        m = _SYMBOL_RE.match(raw, pos)
        if m:
            self._emit(line, TokenType.SYMBOL, m.group(0), pos)
            return m.end()

        raise LexError(f"unrecognized character {ch!r}", line.number, pos + 1)

    def _emit_amount(self, m: re.Match, pos: int, line: Line) -> int:
        pre, post = m.group("pre"), m.group("post")
        if pre and post:
            raise LexError(
                f"amount {m.group(0)!r} has a currency symbol on both sides",
                line.number,
                pos + 1,
            )
        if m.group("sign") and m.group("sign2"):
            raise LexError(f"amount {m.group(0)!r} has two signs", line.number, pos + 1)
        number = parse_number(m.group("num"), self.config, line.number, pos + 1)
        if (m.group("sign") or m.group("sign2")) == "-":
            number = -number
        self._emit(
            line, TokenType.AMOUNT, m.group(0), pos, number=number, symbol=pre or post or ""
        )
        return m.end()


def tokenize(text: str, config: LedgerConfig | None = None) -> list[Token]:
    """Tokenize journal text, raising LexError on the first bad character."""
    return Lexer(config).tokenize(text)
