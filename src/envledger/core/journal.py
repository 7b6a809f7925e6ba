"""
Double-entry journal model for envledger.

Transactions and postings are immutable once parsed. The Journal keeps the
running per-account, per-currency balances derived from them.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from .context import LedgerConfig
from .currency import Amount
from .kinds import Status


def _quote(name: str) -> str:
    return f'"{name}"' if any(ch.isspace() for ch in name) else name


def _fmt_amount(amount: Amount, config: LedgerConfig) -> str:
    text = str(amount)
    if config.decimal_symbol != ".":
        text = text.replace(".", config.decimal_symbol)
    return text


@dataclass(frozen=True)
class BalanceAssertion:
    """
    Expected post-transaction balance of a posting's account.

    Attributes:
        amount: Asserted balance
        total: False for `!` (this currency only), True for `!!` (all
            currencies summed at face value)
    """

    amount: Amount
    total: bool = False

    @property
    def operator(self) -> str:
        return "!!" if self.total else "!"


@dataclass(frozen=True)
class Posting:
    """
    A single posting in a transaction.

    Attributes:
        account: Full account path
        amount: Signed amount (None when it should be inferred)
        cost: `=` total default-currency equivalent of a foreign amount
        price: `@` per-unit rate of a foreign amount
        assertion: Optional balance assertion
        line: Source line
        column: Source column
    """

    account: str
    amount: Amount | None = None
    cost: Amount | None = None
    price: Amount | None = None
    assertion: BalanceAssertion | None = None
    line: int | None = field(default=None, compare=False)
    column: int | None = field(default=None, compare=False)

    def __post_init__(self):
        """Validate posting after initialization."""
        if self.cost is not None and self.price is not None:
            raise ValueError("a posting can carry a cost or a price, not both")

    def weight(self) -> Amount | None:
        """
        Amount this posting contributes to its transaction's zero-sum.

        A cost or price replaces the foreign amount by its equivalent in the
        cost/price currency; otherwise the amount itself counts.
        """
        if self.amount is None:
            return None
        if self.cost is not None:
            value = abs(self.cost.value)
            return Amount(-value if self.amount.value < 0 else value, self.cost.currency)
        if self.price is not None:
            return Amount(self.amount.value * self.price.value, self.price.currency)
        return self.amount

    def to_journal(self, config: LedgerConfig | None = None) -> str:
        config = config or LedgerConfig()
        parts = [_quote(self.account)]
        if self.amount is not None:
            parts.append(_fmt_amount(self.amount, config))
        if self.cost is not None:
            parts += ["=", _fmt_amount(self.cost, config)]
        if self.price is not None:
            parts += ["@", _fmt_amount(self.price, config)]
        if self.assertion is not None:
            parts += [self.assertion.operator, _fmt_amount(self.assertion.amount, config)]
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_journal()


@dataclass(frozen=True)
class EnvelopeDirective:
    """
    Manual `envelope [<account>] <name> [<amount>]` line of a transaction.

    The amount is signed from the owning account's point of view: negative
    spends from the envelope, positive funds it.
    """

    name: str
    account: str | None = None
    amount: Amount | None = None
    line: int | None = field(default=None, compare=False)
    column: int | None = field(default=None, compare=False)

    def to_journal(self, config: LedgerConfig | None = None) -> str:
        config = config or LedgerConfig()
        parts = ["envelope"]
        if self.account is not None:
            parts.append(_quote(self.account))
        parts.append(_quote(self.name))
        if self.amount is not None:
            parts.append(_fmt_amount(self.amount, config))
        return " ".join(parts)


@dataclass(frozen=True)
class Transaction:
    """
    A dated, balanced-by-construction set of postings.

    Attributes:
        date: Transaction date
        status: Pending, Cleared or Reconciled
        description: Free-form description
        postings: Ordered postings (at least two)
        payee: Optional payee
        envelope: Optional manual envelope directive
        line: Line of the header in the source text
    """

    date: date
    status: Status
    description: str
    postings: tuple[Posting, ...]
    payee: str | None = None
    envelope: EnvelopeDirective | None = None
    line: int | None = field(default=None, compare=False)

    def missing_postings(self) -> list[Posting]:
        """Postings whose amount still has to be inferred."""
        return [p for p in self.postings if p.amount is None]

    def is_resolved(self) -> bool:
        return not self.missing_postings()

    def get_currency_totals(self) -> dict[str, Decimal]:
        """Get summed posting weights by currency symbol."""
        currency_totals: dict[str, Decimal] = {}

        for posting in self.postings:
            weight = posting.weight()
            if weight is None:
                continue
            currency_totals.setdefault(weight.symbol, Decimal("0"))
            currency_totals[weight.symbol] += weight.value

        return currency_totals

    def get_accounts(self) -> set[str]:
        """Get all accounts posted to in this transaction."""
        return {posting.account for posting in self.postings}

    def with_postings(self, postings: Iterable[Posting]) -> Transaction:
        return replace(self, postings=tuple(postings))

    def to_journal(
        self, config: LedgerConfig | None = None, date_format: str = "%Y/%m/%d"
    ) -> str:
        """
        Render the transaction as journal text that parses back to itself.

        Quoted descriptions have no escapes, so a description that needs
        quoting can't hold a double quote, and a payee can't hold ']'.

        Raises:
            ValueError: If the description or payee can't be written back
        """
        config = config or LedgerConfig()
        description = self.description
        if description.startswith('"') or "[" in description or ";" in description or "//" in description:
            if '"' in description:
                raise ValueError(f"can't write description {description!r}: quotes can't be escaped")
            description = f'"{description}"'
        header = f"{self.date.strftime(date_format)} {config.glyph_for(self.status)} {description}"
        if self.payee:
            if "]" in self.payee:
                raise ValueError(f"can't write payee {self.payee!r}: it contains ']'")
            header += f" [{self.payee}]"
        lines = [header]
        lines += [f"    {p.to_journal(config)}" for p in self.postings]
        if self.envelope is not None:
            lines.append(f"    {self.envelope.to_journal(config)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.to_journal()

    def __repr__(self) -> str:
        return (
            f"Transaction(date={self.date}, description={self.description!r}, "
            f"postings={len(self.postings)})"
        )


class Journal:
    """
    Running balances of replayed transactions.

    Attributes:
        entries: Transactions posted so far, in posting order
    """

    def __init__(self):
        self.entries: list[Transaction] = []
        self._balances: dict[str, dict[str, Decimal]] = {}  # account -> symbol -> balance

    def post(self, entry: Transaction) -> None:
        """
        Post a resolved transaction to the journal.

        Raises:
            ValueError: If the transaction still has postings without amounts
        """
        if not entry.is_resolved():
            raise ValueError(f"transaction on line {entry.line} has unresolved postings")

        self.entries.append(entry)
        self._update_balances(entry)

    def _update_balances(self, entry: Transaction) -> None:
        """Update account balances from a transaction."""
        for posting in entry.postings:
            balances = self._balances.setdefault(posting.account, {})
            symbol = posting.amount.symbol
            balances[symbol] = balances.get(symbol, Decimal("0")) + posting.amount.value

    def balance(self, account: str, symbol: str) -> Decimal:
        """Current balance of an account in one currency."""
        return self._balances.get(account, {}).get(symbol, Decimal("0"))

    def total(self, account: str) -> Decimal:
        """Sum of an account's balances across currencies, at face value."""
        return sum(self._balances.get(account, {}).values(), Decimal("0"))

    def trial_balance(self) -> dict[str, dict[str, Decimal]]:
        """Copy of all balances: account -> symbol -> balance."""
        return {account: dict(pool) for account, pool in self._balances.items()}

    def get_entries_by_account(self, account: str) -> list[Transaction]:
        """Get all entries touching an account."""
        return [
            entry
            for entry in self.entries
            if any(posting.account == account for posting in entry.postings)
        ]

    def get_entries_by_time_range(self, start: date, end: date) -> list[Transaction]:
        """Get entries within a date range (both ends inclusive)."""
        return [entry for entry in self.entries if start <= entry.date <= end]

    def __len__(self) -> int:
        """Get number of entries in journal."""
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Journal(entries={len(self.entries)})"
