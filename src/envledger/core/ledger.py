"""
Ledger engine: chronological replay of a parsed journal.

Transactions are replayed in date order (stable for equal dates). Each one
is balanced, its envelope movements are resolved, and only then is it
posted, checked against its balance assertions and applied to the
envelopes. Funding runs once for every calendar day: the quiet days before
a transaction day are funded from the balances they actually had, and the
transaction day itself after its transactions, so conservative accrual
keeps advancing between transactions.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from itertools import groupby

from .balancer import balance_transaction, check_assertions
from .context import LedgerConfig
from .envelopes import EnvelopeDefinition, EnvelopeState
from .errors import BalanceError, EnvelopeAmbiguityError, EnvelopeNotFoundError, LedgerError
from .journal import Journal, Transaction
from .parser import ParsedJournal, parse
from .registry import EnvelopeRegistry
from .resolver import EnvelopeMovementResolver
from .results import LedgerResults
from .scheduler import FundingScheduler, FundingTransfer
from .validation import ErrorReport

logger = logging.getLogger(__name__)


class Ledger:
    """
    Replay engine owning the running balances and envelope states.

    Args:
        parsed: Output of the parser
    """

    def __init__(self, parsed: ParsedJournal):
        self.parsed = parsed
        self.ctx = parsed.context
        self.config = self.ctx.config
        self.journal = Journal()
        self.registry = EnvelopeRegistry(parsed.envelopes, parsed.accounts)
        self.states: dict[EnvelopeDefinition, EnvelopeState] = {
            definition: EnvelopeState() for definition in self.registry
        }
        self.scheduler = FundingScheduler(self.registry, self.states, self.config)
        self.resolver = EnvelopeMovementResolver(self.registry)
        self.transfers: list[FundingTransfer] = []
        self.errors: list[LedgerError] = []
        for error in [*parsed.errors, *self.registry.errors, *self.scheduler.errors]:
            self._record(error)
        self._last_day: date | None = None

    def _record(self, error: LedgerError) -> None:
        logger.warning("%s", error)
        self.errors.append(error)

    def run(self, as_of: date | None = None) -> LedgerResults:
        """
        Replay every transaction dated on or before `as_of`.

        Args:
            as_of: Reporting date funding is advanced to. Defaults to the
                date of the last transaction.

        Returns:
            LedgerResults with balances, envelope states and collected errors
        """
        ordered = sorted(self.parsed.transactions, key=lambda tx: tx.date)
        if as_of is None and ordered:
            as_of = ordered[-1].date
        if as_of is not None:
            skipped = sum(1 for tx in ordered if tx.date > as_of)
            if skipped:
                logger.debug("leaving out %d transactions dated after %s", skipped, as_of)
            ordered = [tx for tx in ordered if tx.date <= as_of]

        for day, group in groupby(ordered, key=lambda tx: tx.date):
            if self._last_day is not None:
                self.advance(day - timedelta(days=1))
            for tx in group:
                self.replay(tx)
            self.advance(day)
        if as_of is not None:
            self.advance(as_of)

        logger.debug(
            "replayed %d transactions, %d funding transfers, %d errors",
            len(self.journal),
            len(self.transfers),
            len(self.errors),
        )
        return LedgerResults(
            journal=self.journal,
            accounts=self.parsed.accounts,
            envelopes=self.states,
            report=ErrorReport(errors=self.errors, warnings=self._warnings()),
            transfers=self.transfers,
            as_of=as_of,
        )

    def replay(self, tx: Transaction) -> bool:
        """
        Apply one transaction. Returns False if it was left out.

        A transaction is applied whole or not at all: one that can't be
        balanced, or whose envelope movements can't be resolved, is reported
        and skipped. A failed assertion is reported after posting.
        """
        try:
            resolved = balance_transaction(tx, self.ctx)
        except BalanceError as e:
            self._record(e)
            return False

        try:
            movements = self.resolver.resolve(resolved)
        except (EnvelopeAmbiguityError, EnvelopeNotFoundError) as e:
            self._record(e)
            return False

        self.journal.post(resolved)
        for failure in check_assertions(resolved, self.journal):
            self._record(failure)
        self.resolver.apply(movements, self.states)
        logger.debug("replayed %s", repr(resolved))
        return True

    def advance(self, day: date) -> None:
        """Run funding for every day after the last funded day, up to `day`."""
        if self._last_day is not None and day <= self._last_day:
            return
        start = day if self._last_day is None else self._last_day + timedelta(days=1)
        self.transfers.extend(self.scheduler.run_until(start, day, self.journal))
        self._last_day = day

    def _warnings(self) -> list[str]:
        return [
            f"envelope {definition} is overdrawn by {-state.total}"
            for definition, state in self.states.items()
            if state.total < 0
        ]


def load(
    text: str,
    as_of: date | None = None,
    config: LedgerConfig | dict | None = None,
) -> LedgerResults:
    """
    Parse and replay a journal.

    Args:
        text: Full journal text
        as_of: Reporting date (defaults to the last transaction date)
        config: LedgerConfig or a plain dict of its fields

    Returns:
        LedgerResults; errors are collected in ``results.errors`` rather
        than raised

    Raises:
        ConfigError: If the configuration is invalid
    """
    if isinstance(config, dict):
        config = LedgerConfig.from_dict(config)
    return Ledger(parse(text, config)).run(as_of)
