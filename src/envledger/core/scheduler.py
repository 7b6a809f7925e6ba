"""
Envelope funding scheduler.

Once per replay day, moves money from each owning account into its
envelopes according to their funding policy, then rolls envelopes over
their due dates. Money already held by any envelope of an account is never
handed out a second time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .context import LedgerConfig
from .envelopes import EnvelopeDefinition, EnvelopeState
from .errors import ConfigError
from .interfaces import IFundingStrategy
from .journal import Journal
from .kinds import FundingPolicy
from .registry import EnvelopeRegistry

logger = logging.getLogger(__name__)

# Global registry mapping funding policies to strategy implementations
FundingRegistry: dict[FundingPolicy, IFundingStrategy] = {}


@dataclass(frozen=True)
class FundingTransfer:
    """One scheduled move of money into an envelope."""

    date: date
    account: str
    envelope: str
    amount: Decimal
    symbol: str = ""


def get_strategy(policy: FundingPolicy) -> IFundingStrategy:
    """Look up the strategy registered for a funding policy."""
    if policy not in FundingRegistry:
        raise ConfigError(f"Unknown funding strategy: {policy.value}")
    return FundingRegistry[policy]


class FundingScheduler:
    """
    Daily funding of envelopes.

    Args:
        registry: Validated envelope definitions
        states: Envelope states owned by the ledger engine, keyed by definition
        config: Ledger configuration (funding precision)
    """

    def __init__(
        self,
        registry: EnvelopeRegistry,
        states: dict[EnvelopeDefinition, EnvelopeState],
        config: LedgerConfig | None = None,
    ):
        self.registry = registry
        self.states = states
        self.config = config or LedgerConfig()
        self._order = {definition: idx for idx, definition in enumerate(registry)}
        self.last_day: date | None = None
        self.errors: list[ConfigError] = []
        self._disabled: set[EnvelopeDefinition] = set()
        for definition in registry:
            if definition.policy is FundingPolicy.NONE:
                continue
            try:
                get_strategy(definition.policy).prepare(definition)
            except ValueError as e:
                self.errors.append(ConfigError(str(e), definition.line, definition.column))
                self._disabled.add(definition)

    def available(self, account: str, symbol: str, journal: Journal) -> Decimal:
        """Balance of `account` in `symbol` not yet committed to any envelope."""
        committed = sum(
            (
                self.states[d].committed
                for d in self.registry.by_account(account)
                if d.target.symbol == symbol
            ),
            Decimal("0"),
        )
        return max(journal.balance(account, symbol) - committed, Decimal("0"))

    def run_day(self, day: date, journal: Journal) -> list[FundingTransfer]:
        """
        Fund and roll over every envelope for one calendar day.

        Days must be visited in increasing order, each at most once.
        """
        if self.last_day is not None and day <= self.last_day:
            raise ValueError(f"funding day {day} is not after {self.last_day}")
        self.last_day = day

        active = []
        for definition in self.registry:
            if definition.starting is not None and definition.starting > day:
                continue
            state = self.states[definition]
            if not state.started:
                state.start(definition, day)
            active.append(definition)

        transfers = []
        for definition in sorted(active, key=self._priority):
            if (
                definition.policy is FundingPolicy.NONE
                or definition in self._disabled
                or self.states[definition].finished
            ):
                continue
            transfer = self._fund(definition, day, journal)
            if transfer is not None:
                transfers.append(transfer)

        for definition in active:
            state = self.states[definition]
            while (
                not state.finished
                and state.current_due_date is not None
                and day >= state.current_due_date
            ):
                state.rollover(definition)
        return transfers

    def run_until(self, start: date, end: date, journal: Journal) -> list[FundingTransfer]:
        """Run every day from `start` to `end`, both inclusive."""
        transfers = []
        day = start
        while day <= end:
            transfers.extend(self.run_day(day, journal))
            day = date.fromordinal(day.toordinal() + 1)
        return transfers

    def _priority(self, definition: EnvelopeDefinition) -> tuple[date, int]:
        due = self.states[definition].current_due_date or date.max
        return (due, self._order[definition])

    def _fund(
        self, definition: EnvelopeDefinition, day: date, journal: Journal
    ) -> FundingTransfer | None:
        state = self.states[definition]
        currency = definition.target.currency
        strategy = get_strategy(definition.policy)
        goal = currency.quantize(
            strategy.target_to_date(definition, state, day), self.config.funding_precision
        )
        wanted = max(goal - state.funded, Decimal("0"))
        if wanted == 0:
            return None
        amount = min(wanted, self.available(definition.account, currency.symbol, journal))
        if amount <= 0:
            return None
        state.fund(amount)
        logger.debug("funded %s with %s on %s", definition, amount, day)
        return FundingTransfer(day, definition.account, definition.name, amount, currency.symbol)
