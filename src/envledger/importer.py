"""
CSV import for envledger.

A rules file maps the columns of a bank export to journal transactions.
Each rule is a line `<name> <value>`; values are templates where `%field%`
is replaced by the record's value for that field and `%%` by a literal
percent sign::

    fields date, description, amount
    date_format %d.%m.%Y
    skip 1
    account1 assets:checking
    amount1 %amount%
    account2 expenses:misc

    if coffee
    starbucks
        account2 expenses:coffee

An `if` line starts a subrule: the lines right after it that are not
indented are more patterns, the indented lines are rules applied on top of
a copy of the rules read so far. A record uses the first subrule with a
pattern found (case-insensitively) anywhere in the record. A value of `-`
resets a rule to its default.

Postings are paired by suffix: `account1` with `amount1`, `account` with
`amount`. A record that yields a single posting is balanced against
`expenses:unknown`, `income:unknown` or `unknown` depending on its sign.
"""

from __future__ import annotations

import copy
import csv
import io
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from .core.context import LedgerConfig
from .core.errors import CsvImportError, LedgerError
from .core.journal import Posting, Transaction
from .core.parser import Parser

logger = logging.getLogger(__name__)

_VARIABLE_RE = re.compile(r"%(\w*)%")
_COMMENT_PREFIXES = (";", "#", "//")


@dataclass
class ImportRules:
    """
    Rules for turning one CSV record into a transaction.

    Attributes:
        fields: Names given to the record's columns, in order
        date: Template of the transaction date
        date_format: strptime format the injected date is read with
        description: Template of the description
        payee: Template of the payee; empty for none
        comment: Template of a comment written above the transaction
        decimal_symbol: Decimal symbol of the amounts in the CSV
        skip: Header records to skip
        status: Status glyph of the imported transactions
        accounts: Posting suffix -> account template
        amounts: Posting suffix -> amount template
    """

    fields: tuple[str, ...] = ()
    date: str = "%date%"
    date_format: str = "%Y/%m/%d"
    description: str = "%description%"
    payee: str = ""
    comment: str = ""
    decimal_symbol: str = "."
    skip: int = 1
    status: str = "~"
    accounts: dict[str, str] = field(default_factory=dict)
    amounts: dict[str, str] = field(default_factory=dict)

    def apply(self, name: str, value: str, line: int) -> None:
        """
        Apply one `<name> <value>` rule.

        Raises:
            CsvImportError: If the rule is unknown or its value is invalid
        """
        name = _ALIASES.get(name, name)
        if value == "-":
            self._reset(name, line)
            return
        if not value:
            raise CsvImportError(f"rule `{name}` needs a value", line)

        if name == "fields":
            fields = tuple(part.strip() for part in value.split(","))
            if not all(fields):
                raise CsvImportError(f"empty field name in {value!r}", line)
            self.fields = fields
        elif name in ("date", "date_format", "description", "payee", "comment"):
            setattr(self, name, value)
        elif name == "decimal_symbol":
            if value not in (".", ","):
                raise CsvImportError(f"decimal symbol must be '.' or ',', got {value!r}", line)
            self.decimal_symbol = value
        elif name == "skip":
            if not value.isdigit():
                raise CsvImportError(f"`skip` takes a number of records, got {value!r}", line)
            self.skip = int(value)
        elif name == "status":
            if len(value) != 1:
                raise CsvImportError(f"status must be a single glyph, got {value!r}", line)
            self.status = value
        elif name.startswith("account"):
            self.accounts[name[len("account") :]] = value
        elif name.startswith("amount"):
            self.amounts[name[len("amount") :]] = value
        elif name in ("include", "use"):
            raise CsvImportError("rules can't include other files", line)
        else:
            raise CsvImportError(f"unknown rule {name!r}", line)

    def _reset(self, name: str, line: int) -> None:
        if name.startswith("account") and name != "accounts":
            self.accounts.pop(name[len("account") :], None)
        elif name.startswith("amount") and name != "amounts":
            self.amounts.pop(name[len("amount") :], None)
        elif name in _RESETTABLE:
            setattr(self, name, getattr(ImportRules(), name))
        else:
            raise CsvImportError(f"unknown rule {name!r}", line)

    def validate(self, line: int | None = None) -> None:
        """Every amount needs an account with the same suffix."""
        for suffix in self.amounts:
            if suffix not in self.accounts:
                raise CsvImportError(
                    f"`amount{suffix}` has no matching `account{suffix}`", line
                )


_ALIASES = {"note": "comment", "decimal": "decimal_symbol"}
_RESETTABLE = (
    "fields",
    "date",
    "date_format",
    "description",
    "payee",
    "comment",
    "decimal_symbol",
    "skip",
    "status",
)


@dataclass
class Subrule:
    """Rules used instead of the root rules for records matching a pattern."""

    patterns: list[str]
    rules: ImportRules
    line: int

    def matches(self, record: list[str]) -> bool:
        text = ",".join(record).lower()
        return any(pattern.lower() in text for pattern in self.patterns)


@dataclass
class RuleSet:
    """Root rules plus their `if` subrules, in file order."""

    root: ImportRules = field(default_factory=ImportRules)
    subrules: list[Subrule] = field(default_factory=list)

    def for_record(self, record: list[str]) -> ImportRules:
        for subrule in self.subrules:
            if subrule.matches(record):
                return subrule.rules
        return self.root


def parse_rules(text: str) -> RuleSet:
    """
    Read a rules file.

    Raises:
        CsvImportError: On the first invalid rule, with its line number
    """
    rules = RuleSet()
    current: Optional[Subrule] = None
    collecting_patterns = False

    for number, raw in enumerate(text.splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith(_COMMENT_PREFIXES):
            continue
        indented = raw[0].isspace()
        name, _, value = stripped.partition(" ")
        value = value.strip()

        if indented:
            if current is None:
                raise CsvImportError("indented rule outside of an `if` block", number)
            collecting_patterns = False
            current.rules.apply(name, value, number)
            continue

        if name == "if":
            if not value:
                raise CsvImportError("`if` needs a pattern", number)
            current = Subrule([value], copy.deepcopy(rules.root), number)
            rules.subrules.append(current)
            collecting_patterns = True
        elif collecting_patterns:
            current.patterns.append(stripped)
        else:
            current = None
            rules.root.apply(name, value, number)

    rules.root.validate()
    for subrule in rules.subrules:
        subrule.rules.validate(subrule.line)
    return rules


@dataclass(frozen=True)
class ImportedTransaction:
    """A transaction read from one CSV record, with its optional comment."""

    transaction: Transaction
    comment: Optional[str] = None

    def to_journal(self, config: LedgerConfig | None = None) -> str:
        text = self.transaction.to_journal(config)
        if self.comment:
            text = f"; {self.comment}\n{text}"
        return text


@dataclass
class ImportResult:
    """
    Outcome of importing a CSV text.

    Attributes:
        entries: Transactions in record order
        errors: Records that couldn't be imported, with their CSV line
    """

    entries: list[ImportedTransaction] = field(default_factory=list)
    errors: list[LedgerError] = field(default_factory=list)

    def ok(self) -> bool:
        return not self.errors

    def to_journal(self, config: LedgerConfig | None = None) -> str:
        """Journal text of every imported transaction, separated by blank lines."""
        return "".join(entry.to_journal(config) + "\n\n" for entry in self.entries)


class CsvImporter:
    """
    Turn CSV records into transactions.

    Args:
        rules: Parsed rules file
        config: Configuration whose status glyphs the `status` rule uses
    """

    def __init__(self, rules: RuleSet, config: LedgerConfig | None = None):
        self.rules = rules
        self.config = config or LedgerConfig()
        self._statuses = self.config.status_glyphs()

    def run(self, text: str) -> ImportResult:
        """Import every record, collecting the ones that fail."""
        result = ImportResult()
        reader = csv.reader(io.StringIO(text))
        for index, record in enumerate(reader):
            if index < self.rules.root.skip or not any(cell.strip() for cell in record):
                continue
            try:
                result.entries.append(self._entry(record, reader.line_num))
            except CsvImportError as e:
                result.errors.append(e)
        logger.debug(
            "imported %d transactions (%d errors)", len(result.entries), len(result.errors)
        )
        return result

    def _entry(self, record: list[str], line: int) -> ImportedTransaction:
        rules = self.rules.for_record(record)
        if len(record) < len(rules.fields):
            raise CsvImportError(
                f"record has {len(record)} fields, the rules name {len(rules.fields)}", line
            )
        values = dict(zip(rules.fields, record))

        def inject(template: str) -> str:
            def variable(m: re.Match) -> str:
                name = m.group(1)
                if not name:
                    return "%"
                if name not in values:
                    raise CsvImportError(f"unknown field %{name}% in {template!r}", line)
                return values[name].strip()

            return _VARIABLE_RE.sub(variable, template).strip()

        written = inject(rules.date)
        try:
            when = datetime.strptime(written, rules.date_format).date()
        except ValueError:
            raise CsvImportError(
                f"date {written!r} doesn't match format {rules.date_format!r}", line
            ) from None
        description = inject(rules.description)
        if not description:
            raise CsvImportError("record has an empty description", line)
        if rules.status not in self._statuses:
            raise CsvImportError(f"unknown status {rules.status!r}", line)

        tx = Transaction(
            date=when,
            status=self._statuses[rules.status],
            description=description,
            postings=tuple(self._postings(rules, inject, line)),
            payee=inject(rules.payee) or None,
            line=line,
        )
        try:
            tx.to_journal(self.config)
        except ValueError as e:
            raise CsvImportError(str(e), line) from None
        return ImportedTransaction(tx, comment=inject(rules.comment) or None)

    def _postings(self, rules: ImportRules, inject, line: int) -> list[Posting]:
        parser = Parser(replace(self.config, decimal_symbol=rules.decimal_symbol))
        postings = []
        for suffix, template in rules.accounts.items():
            account = inject(template)
            if not account:
                raise CsvImportError(f"`account{suffix}` is empty for this record", line)
            if any(ch.isspace() for ch in account):
                account = f'"{account}"'
            text = f"{account} {inject(rules.amounts.get(suffix, ''))}"
            try:
                postings.append(parser.parse_posting(text))
            except LedgerError as e:
                raise CsvImportError(f"bad posting {text.strip()!r}: {e.message}", line) from None

        if not postings:
            raise CsvImportError("the rules give this record no postings", line)
        if len(postings) == 1:
            amount = postings[0].amount
            if amount is None:
                raise CsvImportError("a single posting needs an amount", line)
            if amount.value < 0:
                counter = "expenses:unknown"
            elif amount.value > 0:
                counter = "income:unknown"
            else:
                counter = "unknown"
            postings.append(Posting(counter))
        return [replace(p, line=line, column=None) for p in postings]


def import_csv(
    text: str, rules_text: str, config: LedgerConfig | None = None
) -> ImportResult:
    """
    Import CSV text using the rules in rules_text.

    Raises:
        CsvImportError: If the rules file is invalid; bad records are
            collected in ``ImportResult.errors`` instead
    """
    return CsvImporter(parse_rules(rules_text), config).run(text)
