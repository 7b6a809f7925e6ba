"""
Grammar parser for journal text.

Top-level items are an `account` declaration (with nested envelope blocks),
a `currency` or `date_format` directive, or a transaction. Both directives
apply to the whole file wherever they appear. Each item is parsed on its own:
a malformed item is reported and dropped while the rest of the file is
still parsed, so a single pass reports every problem.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from .accounts import Account, AccountRegistry
from .context import LedgerConfig, ParseContext
from .currency import Amount, get_currency
from .envelopes import (
    AnnualRule,
    BimonthlyRule,
    BiweeklyRule,
    EnvelopeDefinition,
    MonthlyRule,
    OnceRule,
    RecurrenceRule,
    WeeklyRule,
    parse_weekday,
)
from .errors import LedgerError, ParseError, RecurrenceConfigError
from .journal import BalanceAssertion, EnvelopeDirective, Posting, Transaction
from .kinds import EnvelopeKind, FundingPolicy, K
from .lexer import Lexer, Line, Token, TokenType, date_pattern

logger = logging.getLogger(__name__)

ORDINAL_SUFFIXES = ("", "st", "nd", "rd", "th")


@dataclass
class ParsedJournal:
    """
    Structured result of parsing one journal text.

    Attributes:
        context: Parse context carrying the default currency
        accounts: Declared accounts
        envelopes: Envelope definitions in declaration order
        transactions: Well-formed transactions in input order
        errors: Lex and parse errors, ordered by position
        date_format: strptime format set by `date_format`, None for the default
    """

    context: ParseContext
    accounts: AccountRegistry = field(default_factory=AccountRegistry)
    envelopes: list[EnvelopeDefinition] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    errors: list[LedgerError] = field(default_factory=list)
    date_format: Optional[str] = None


@dataclass
class _Item:
    """One top-level line and the indented lines under it."""

    head: Line
    body: list[Line] = field(default_factory=list)

    @property
    def lines(self) -> list[Line]:
        return [self.head, *self.body]


class _Cursor:
    """Sequential reader over the tokens of a single line."""

    def __init__(self, line: Line):
        self.line = line
        self.tokens = line.tokens
        self.pos = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def next(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.pos += 1
        return token

    def error(self, message: str, token: Optional[Token] = None) -> ParseError:
        token = token or self.peek()
        if token is None:
            last = self.tokens[-1] if self.tokens else None
            column = last.column + len(last.value) if last else self.line.indent + 1
            return ParseError(message, self.line.number, column)
        return ParseError(message, token.line, token.column)

    def expect(self, type_: TokenType, what: str) -> Token:
        token = self.peek()
        if token is None or token.type is not type_:
            found = "end of line" if token is None else repr(token.value)
            raise self.error(f"expected {what}, found {found}")
        self.pos += 1
        return token

    def expect_name(self, what: str) -> Token:
        """An identifier; quoted keywords are accepted as plain names."""
        return self.expect(TokenType.IDENT, what)

    def accept_keyword(self, *words: str) -> Optional[Token]:
        token = self.peek()
        if token is not None and token.is_keyword(*words):
            self.pos += 1
            return token
        return None

    def expect_end(self) -> None:
        token = self.peek()
        if token is not None:
            raise self.error(f"unexpected {token.value!r}", token)


def _amount(token: Token) -> Amount:
    return Amount(token.number, get_currency(token.symbol))


class Parser:
    """
    Recursive-descent parser over lexed lines.

    Args:
        config: Ledger configuration
    """

    def __init__(self, config: LedgerConfig | None = None):
        self.config = config or LedgerConfig()
        self._statuses = self.config.status_glyphs()
        self._date_format: Optional[str] = None

    def parse(self, text: str) -> ParsedJournal:
        """Parse journal text, collecting every lex and parse error."""
        errors: list[LedgerError] = []
        lines = Lexer(self.config).lines(text)
        self._date_format = self._scan_date_format(self._group(lines, []), errors)
        if self._date_format is not None:
            lines = Lexer(self.config, self._date_format).lines(text)
        items = self._group(lines, errors)

        context = self._default_currency(items, errors)
        result = ParsedJournal(context=context, date_format=self._date_format)
        envelope_keys: set[tuple[str, str]] = set()

        for item in items:
            lex_errors = [line.error for line in item.lines if line.error is not None]
            if lex_errors:
                errors.extend(lex_errors)
                continue
            first = item.head.tokens[0]
            try:
                if first.is_keyword(K.ACCOUNT):
                    self._account_block(item, result, envelope_keys, errors)
                elif first.is_keyword(K.CURRENCY, K.DATE_FORMAT):
                    continue
                elif first.type is TokenType.DATE:
                    result.transactions.append(self._transaction(item))
                else:
                    raise ParseError(
                        "expected `account`, `currency`, `date_format` or a transaction date, "
                        f"found {first.value!r}",
                        first.line,
                        first.column,
                    )
            except ParseError as e:
                errors.append(e)

        result.transactions = self._check_references(result, errors)
        result.errors = sorted(errors, key=lambda e: e.sort_key())
        logger.debug(
            "parsed %d accounts, %d envelopes, %d transactions (%d errors)",
            len(result.accounts),
            len(result.envelopes),
            len(result.transactions),
            len(result.errors),
        )
        return result

    # ------------------------------------------------------------------
    # item structure

    @staticmethod
    def _group(lines: list[Line], errors: list[LedgerError]) -> list[_Item]:
        items: list[_Item] = []
        for line in lines:
            if line.is_top_level:
                items.append(_Item(head=line))
            elif items:
                items[-1].body.append(line)
            elif line.error is not None:
                errors.append(line.error)
            else:
                errors.append(
                    ParseError("indented line outside of any block", line.number, line.indent + 1)
                )
        return items

    def _default_currency(self, items: list[_Item], errors: list[LedgerError]) -> ParseContext:
        symbol: Optional[str] = None
        first_line: Optional[int] = None
        for item in items:
            head = item.head
            if head.error is not None or not head.tokens[0].is_keyword(K.CURRENCY):
                continue
            try:
                cursor = _Cursor(head)
                cursor.next()
                token = cursor.peek()
                if token is None or token.type not in (TokenType.SYMBOL, TokenType.IDENT):
                    raise cursor.error("expected a currency symbol after `currency`")
                cursor.next()
                cursor.expect_end()
                if item.body:
                    raise ParseError(
                        "`currency` takes no indented block", item.body[0].number, item.body[0].indent + 1
                    )
                if symbol is not None and token.value != symbol:
                    raise ParseError(
                        f"default currency already set to {symbol!r} on line {first_line}",
                        token.line,
                        token.column,
                    )
                symbol, first_line = token.value, head.number
            except ParseError as e:
                errors.append(e)
        return ParseContext(config=self.config, default_symbol=symbol or "")

    def _scan_date_format(self, items: list[_Item], errors: list[LedgerError]) -> Optional[str]:
        fmt: Optional[str] = None
        first_line: Optional[int] = None
        for item in items:
            head = item.head
            if head.error is not None or not head.tokens[0].is_keyword(K.DATE_FORMAT):
                continue
            try:
                cursor = _Cursor(head)
                cursor.next()
                token = cursor.expect(TokenType.TEXT, "a date format after `date_format`")
                if item.body:
                    raise ParseError(
                        "`date_format` takes no indented block",
                        item.body[0].number,
                        item.body[0].indent + 1,
                    )
                if fmt is not None and token.value != fmt:
                    raise ParseError(
                        f"date format already set to {fmt!r} on line {first_line}",
                        token.line,
                        token.column,
                    )
                try:
                    date_pattern(token.value)
                except ValueError as e:
                    raise ParseError(str(e), token.line, token.column) from None
                fmt, first_line = token.value, head.number
            except ParseError as e:
                errors.append(e)
        return fmt

    def _date(self, token: Token) -> date:
        try:
            if self._date_format is not None:
                return datetime.strptime(token.value, self._date_format).date()
            year, month, day = (int(part) for part in re.split("[/-]", token.value))
            return date(year, month, day)
        except ValueError as e:
            raise ParseError(f"invalid date {token.value!r}: {e}", token.line, token.column) from None

    # ------------------------------------------------------------------
    # accounts and envelopes

    def _account_block(
        self,
        item: _Item,
        result: ParsedJournal,
        envelope_keys: set[tuple[str, str]],
        errors: list[LedgerError],
    ) -> None:
        cursor = _Cursor(item.head)
        cursor.next()
        path = cursor.expect_name("an account name after `account`")
        cursor.expect_end()
        result.accounts.register_account(Account(path.value, path.line, path.column))

        if not item.body:
            return
        header_indent = item.body[0].indent
        blocks: list[list[Line]] = []
        for line in item.body:
            if line.indent > header_indent and blocks:
                blocks[-1].append(line)
            elif line.indent == header_indent:
                blocks.append([line])
            else:
                errors.append(
                    ParseError(
                        "inconsistent indentation in account block", line.number, line.indent + 1
                    )
                )
                blocks.append([])  # detach following lines from the previous envelope

        for block in blocks:
            if not block:
                continue
            try:
                definition = self._envelope(path.value, block, result.context)
            except ParseError as e:
                errors.append(e)
                continue
            if definition.key in envelope_keys:
                errors.append(
                    ParseError(
                        f"duplicate envelope {definition.name!r} under account {path.value!r}",
                        definition.line,
                        definition.column,
                    )
                )
                continue
            envelope_keys.add(definition.key)
            result.envelopes.append(definition)

    def _envelope(self, account: str, block: list[Line], ctx: ParseContext) -> EnvelopeDefinition:
        header = _Cursor(block[0])
        kind_token = header.accept_keyword(K.EXPENSE, K.GOAL)
        if kind_token is None:
            raise header.error("expected `expense` or `goal`")
        name = header.expect_name("an envelope name")
        self._due_keyword(header)
        rule_tokens = []
        while not header.at_end() and not header.peek().is_keyword(K.STARTING):
            rule_tokens.append(header.next())
        starting = None
        if header.accept_keyword(K.STARTING):
            starting = self._date(header.expect(TokenType.DATE, "a date after `starting`"))
        header.expect_end()
        rule = self._recurrence(header, rule_tokens, starting)
        try:
            rule.validate()
        except RecurrenceConfigError as e:
            raise RecurrenceConfigError(e.message, name.line, name.column) from None

        target: Optional[Amount] = None
        policy: Optional[FundingPolicy] = None
        for_accounts: list[str] = []
        for line in block[1:]:
            body = _Cursor(line)
            prop = body.peek()
            if body.accept_keyword(K.AMOUNT):
                if target is not None:
                    raise body.error("envelope `amount` given twice", prop)
                target = ctx.resolve(_amount(body.expect(TokenType.AMOUNT, "an amount")))
            elif body.accept_keyword(K.FOR):
                for_accounts.append(body.expect_name("an account after `for`").value)
            elif body.accept_keyword(K.FUNDING):
                if policy is not None:
                    raise body.error("envelope `funding` given twice", prop)
                word = body.expect_name("a funding method")
                try:
                    policy = FundingPolicy.from_keyword(word.value)
                except ValueError as e:
                    raise body.error(str(e), word) from None
            else:
                raise body.error(
                    f"unknown envelope property {prop.value!r}; "
                    "expected `amount`, `for` or `funding`",
                    prop,
                )
            body.expect_end()

        if target is None:
            raise ParseError(
                f"envelope {name.value!r} is missing its `amount`", name.line, name.column
            )
        return EnvelopeDefinition(
            account=account,
            name=name.value,
            kind=EnvelopeKind(kind_token.value),
            target=target,
            rule=rule,
            starting=starting,
            policy=policy or FundingPolicy.NONE,
            for_accounts=tuple(for_accounts),
            line=name.line,
            column=name.column,
        )

    @staticmethod
    def _due_keyword(cursor: _Cursor) -> None:
        """Accept `due`, `by` or `due by`; `by due` is rejected."""
        if cursor.accept_keyword(K.DUE):
            cursor.accept_keyword(K.BY)
            return
        by = cursor.accept_keyword(K.BY)
        if by is None:
            raise cursor.error("expected `due`, `by` or `due by`")
        token = cursor.peek()
        if token is not None and token.is_keyword(K.DUE):
            raise cursor.error("`by due` is not valid; write `due by`", token)

    def _recurrence(
        self, cursor: _Cursor, tokens: list[Token], starting: Optional[date]
    ) -> RecurrenceRule:
        if not tokens:
            raise cursor.error("expected a due date or `every ...`")
        first = tokens[0]
        if first.type is TokenType.DATE:
            if len(tokens) > 1:
                raise cursor.error(f"unexpected {tokens[1].value!r}", tokens[1])
            return OnceRule(self._date(first))
        if not first.is_keyword(K.EVERY):
            raise cursor.error(f"expected a due date or `every`, found {first.value!r}", first)

        rest = tokens[1:]
        other = bool(rest) and rest[0].is_keyword(K.OTHER)
        if other:
            rest = rest[1:]
        if len(rest) != 1:
            token = rest[1] if len(rest) > 1 else None
            raise cursor.error("expected a single weekday, day of month or `year`", token)
        unit = rest[0]
        if other and starting is None:
            raise ParseError(
                "`every other` needs a `starting` date to know which weeks or months to use",
                first.line,
                first.column,
            )

        weekday = parse_weekday(unit.value) if unit.type is TokenType.IDENT else None
        if weekday is not None:
            return BiweeklyRule(weekday, starting) if other else WeeklyRule(weekday)
        if unit.type is TokenType.AMOUNT and unit.symbol in ORDINAL_SUFFIXES:
            day = unit.number
            if day != day.to_integral_value() or day < 0:
                raise RecurrenceConfigError(
                    f"{unit.value!r} is not a day of the month", unit.line, unit.column
                )
            return BimonthlyRule(int(day), starting) if other else MonthlyRule(int(day))
        if unit.type is TokenType.IDENT and unit.value == "year":
            if other:
                raise RecurrenceConfigError(
                    "`every other year` isn't supported", unit.line, unit.column
                )
            if starting is None:
                raise ParseError(
                    "`every year` needs a `starting` date to know the day of the year",
                    unit.line,
                    unit.column,
                )
            return AnnualRule(starting.month, starting.day)
        if unit.type is TokenType.IDENT and unit.value == "day":
            raise RecurrenceConfigError(
                "daily due dates aren't supported", unit.line, unit.column
            )
        raise RecurrenceConfigError(
            f"{unit.value!r} is not a weekday or day of the month", unit.line, unit.column
        )

    # ------------------------------------------------------------------
    # transactions

    def _transaction(self, item: _Item) -> Transaction:
        header = _Cursor(item.head)
        when = self._date(header.next())
        glyph = header.peek()
        if glyph is None or glyph.type is not TokenType.GLYPH:
            raise header.error("transaction is missing its status (`?`, `~` or `*`)")
        if glyph.value not in self._statuses:
            known = " ".join(sorted(self._statuses))
            raise header.error(f"unknown status {glyph.value!r}; expected one of {known}", glyph)
        header.next()
        description = header.peek()
        if description is None or description.type is not TokenType.TEXT:
            raise header.error("transaction is missing its description")
        header.next()
        payee = None
        if header.peek() is not None and header.peek().type is TokenType.PAYEE:
            payee = header.next().value
        header.expect_end()

        postings: list[Posting] = []
        envelope: Optional[EnvelopeDirective] = None
        for line in item.body:
            cursor = _Cursor(line)
            keyword = cursor.accept_keyword(K.ENVELOPE)
            if keyword is not None:
                if envelope is not None:
                    raise cursor.error("a transaction takes a single `envelope` line", keyword)
                envelope = self._envelope_directive(cursor, keyword)
            else:
                postings.append(self._posting(cursor))

        if len(postings) < 2:
            raise ParseError(
                "a transaction needs at least two postings", item.head.number, 1
            )
        return Transaction(
            date=when,
            status=self._statuses[glyph.value],
            description=description.value,
            postings=tuple(postings),
            payee=payee,
            envelope=envelope,
            line=item.head.number,
        )

    def parse_posting(self, text: str) -> Posting:
        """
        Parse a single posting line such as `assets:checking $30 ! $100`.

        Raises:
            LexError: If the text has an unrecognized character
            ParseError: If it isn't exactly one well-formed posting
        """
        lines = Lexer(self.config, self._date_format).lines(text)
        if len(lines) != 1:
            raise ParseError(f"expected a single posting, got {text!r}", 1, 1)
        if lines[0].error is not None:
            raise lines[0].error
        return self._posting(_Cursor(lines[0]))

    @staticmethod
    def _posting(cursor: _Cursor) -> Posting:
        account = cursor.expect_name("an account name")
        amount = None
        if cursor.peek() is not None and cursor.peek().type is TokenType.AMOUNT:
            amount = _amount(cursor.next())

        annotations: dict[str, tuple[Token, Amount]] = {}
        while not cursor.at_end():
            op = cursor.expect(TokenType.OP, "`=`, `@`, `!` or `!!`")
            slot = "assertion" if op.value in ("!", "!!") else op.value
            if slot in annotations:
                raise cursor.error(f"`{op.value}` given twice on one posting", op)
            annotations[slot] = (op, _amount(cursor.expect(TokenType.AMOUNT, "an amount")))

        if "=" in annotations and "@" in annotations:
            raise cursor.error("a posting takes a cost (`=`) or a price (`@`), not both", annotations["@"][0])
        if amount is None and ("=" in annotations or "@" in annotations):
            op = (annotations.get("=") or annotations.get("@"))[0]
            raise cursor.error("a cost or price needs an amount to convert", op)

        assertion = None
        if "assertion" in annotations:
            op, asserted = annotations["assertion"]
            assertion = BalanceAssertion(asserted, total=op.value == "!!")
        return Posting(
            account=account.value,
            amount=amount,
            cost=annotations["="][1] if "=" in annotations else None,
            price=annotations["@"][1] if "@" in annotations else None,
            assertion=assertion,
            line=account.line,
            column=account.column,
        )

    @staticmethod
    def _envelope_directive(cursor: _Cursor, keyword: Token) -> EnvelopeDirective:
        names = []
        while cursor.peek() is not None and cursor.peek().type is TokenType.IDENT:
            names.append(cursor.next())
        if not names:
            raise cursor.error("expected an envelope name after `envelope`")
        if len(names) > 2:
            raise cursor.error(f"unexpected {names[2].value!r}", names[2])
        amount = None
        if not cursor.at_end():
            amount = _amount(cursor.expect(TokenType.AMOUNT, "an amount"))
        cursor.expect_end()
        return EnvelopeDirective(
            name=names[-1].value,
            account=names[0].value if len(names) == 2 else None,
            amount=amount,
            line=keyword.line,
            column=keyword.column,
        )

    # ------------------------------------------------------------------
    # cross-item validation

    @staticmethod
    def _check_references(result: ParsedJournal, errors: list[LedgerError]) -> list[Transaction]:
        """Drop transactions that use undeclared accounts."""
        accounts = result.accounts
        valid = []
        for tx in result.transactions:
            problems = [
                ParseError(
                    f"account {posting.account!r} is used but never declared",
                    posting.line,
                    posting.column,
                )
                for posting in tx.postings
                if not accounts.has_account(posting.account)
            ]
            directive = tx.envelope
            if (
                directive is not None
                and directive.account is not None
                and not accounts.has_account(directive.account)
            ):
                problems.append(
                    ParseError(
                        f"account {directive.account!r} is used but never declared",
                        directive.line,
                        directive.column,
                    )
                )
            if problems:
                errors.extend(problems)
            else:
                valid.append(tx)
        return valid


def parse(text: str, config: LedgerConfig | None = None) -> ParsedJournal:
    """Parse journal text into accounts, envelopes and transactions."""
    return Parser(config).parse(text)
