"""
Aggressive funding strategy.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from envledger.core.envelopes import EnvelopeDefinition, EnvelopeState
from envledger.core.interfaces import IFundingStrategy


class FundingAggressive(IFundingStrategy):
    """
    Fund the whole target as soon as money is available (policy: 'aggressive').

    Every funding day asks for the full target; the scheduler caps each
    transfer by the owning account's uncommitted balance, so a short account
    tops the envelope up on later days as money comes in.
    """

    def prepare(self, definition: EnvelopeDefinition) -> None:
        if definition.target.value < 0:
            raise ValueError(f"envelope {definition} has a negative target")

    def target_to_date(
        self, definition: EnvelopeDefinition, state: EnvelopeState, day: date
    ) -> Decimal:
        return definition.target.value
