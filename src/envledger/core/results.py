"""
Results and report tables for envledger.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pandas as pd

from .accounts import AccountRegistry
from .envelopes import EnvelopeDefinition, EnvelopeState
from .errors import LedgerError
from .journal import Journal, Transaction
from .scheduler import FundingTransfer
from .validation import ErrorReport


class LedgerResults:
    """
    Outcome of replaying a journal up to a reporting date.

    The plain attributes hold exact Decimal values. The ``*_frame`` methods
    give pandas views of them for reporting and analysis; money columns keep
    the Decimal objects (object dtype) so nothing is rounded through float.

    Attributes:
        transactions: Balanced transactions in replay order
        balances: account -> currency symbol -> balance
        envelopes: Final state of every envelope
        errors: Every collected error, ordered by position
        transfers: Scheduled funding transfers in the order they happened
        as_of: Reporting date the replay was advanced to
    """

    def __init__(
        self,
        journal: Journal,
        accounts: AccountRegistry,
        envelopes: dict[EnvelopeDefinition, EnvelopeState],
        report: ErrorReport,
        transfers: list[FundingTransfer] | None = None,
        as_of: date | None = None,
    ):
        self.journal = journal
        self.accounts = accounts
        self.envelopes = envelopes
        self.report = report
        self.transfers = transfers or []
        self.as_of = as_of

    @property
    def transactions(self) -> list[Transaction]:
        return list(self.journal.entries)

    @property
    def balances(self) -> dict[str, dict[str, Decimal]]:
        return self.journal.trial_balance()

    @property
    def errors(self) -> list[LedgerError]:
        return list(self.report.errors)

    def ok(self) -> bool:
        return self.report.is_valid()

    def envelope(self, account: str, name: str) -> EnvelopeState:
        """Get the state of one envelope."""
        for definition, state in self.envelopes.items():
            if definition.key == (account, name):
                return state
        raise KeyError(f"no envelope {name!r} under account {account!r}")

    def balances_frame(self) -> pd.DataFrame:
        """
        Balance table.

        Returns:
            DataFrame with one row per (account, currency): account, currency,
            balance. Accounts declared but never posted to are listed with a
            zero balance.
        """
        rows = []
        balances = self.balances
        for path in sorted(set(self.accounts.paths()) | set(balances)):
            pools = balances.get(path) or {"": Decimal("0")}
            for symbol, value in sorted(pools.items()):
                rows.append({"account": path, "currency": symbol, "balance": value})
        return pd.DataFrame(rows, columns=["account", "currency", "balance"])

    def envelopes_frame(self) -> pd.DataFrame:
        """
        Envelope table.

        Returns:
            DataFrame with one row per envelope: account, envelope, kind,
            funding, target, currency, ready, next, total, due, period_start,
            finished
        """
        columns = [
            "account",
            "envelope",
            "kind",
            "funding",
            "target",
            "currency",
            "ready",
            "next",
            "total",
            "due",
            "period_start",
            "finished",
        ]
        rows = [
            {
                "account": definition.account,
                "envelope": definition.name,
                "kind": definition.kind.value,
                "funding": definition.policy.value,
                "target": definition.target.value,
                "currency": definition.target.symbol,
                "ready": state.ready,
                "next": state.next,
                "total": state.total,
                "due": state.current_due_date,
                "period_start": state.period_start,
                "finished": state.finished,
            }
            for definition, state in self.envelopes.items()
        ]
        return pd.DataFrame(rows, columns=columns)

    def transfers_frame(self) -> pd.DataFrame:
        """Scheduled funding transfers: date, account, envelope, amount, currency."""
        rows = [
            {
                "date": t.date,
                "account": t.account,
                "envelope": t.envelope,
                "amount": t.amount,
                "currency": t.symbol,
            }
            for t in self.transfers
        ]
        df = pd.DataFrame(rows, columns=["date", "account", "envelope", "amount", "currency"])
        if not df.empty:
            df["date"] = pd.to_datetime(df["date"])
        return df

    def register_frame(
        self,
        account: str | None = None,
        begin: date | None = None,
        end: date | None = None,
    ) -> pd.DataFrame:
        """
        Postings register with a running total.

        Args:
            account: Keep postings whose account contains this text
            begin: First date to include
            end: Last date to include

        Returns:
            DataFrame with columns date, status, description, payee, account,
            amount, currency, running_total. The running total is kept per
            currency, in replay order.
        """
        columns = [
            "date",
            "status",
            "description",
            "payee",
            "account",
            "amount",
            "currency",
            "running_total",
        ]
        rows = []
        running: dict[str, Decimal] = {}
        for tx in self.journal.entries:
            if begin is not None and tx.date < begin:
                continue
            if end is not None and tx.date > end:
                continue
            for posting in tx.postings:
                if account is not None and account not in posting.account:
                    continue
                symbol = posting.amount.symbol
                running[symbol] = running.get(symbol, Decimal("0")) + posting.amount.value
                rows.append(
                    {
                        "date": tx.date,
                        "status": tx.status.value,
                        "description": tx.description,
                        "payee": tx.payee,
                        "account": posting.account,
                        "amount": posting.amount.value,
                        "currency": symbol,
                        "running_total": running[symbol],
                    }
                )

        df = pd.DataFrame(rows, columns=columns)
        if df.empty:
            return df
        df["date"] = pd.to_datetime(df["date"])
        return df

    def __repr__(self) -> str:
        return (
            f"LedgerResults(transactions={len(self.journal)}, "
            f"envelopes={len(self.envelopes)}, errors={len(self.report.errors)})"
        )
