"""
Conservative funding strategy.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from envledger.core.envelopes import EnvelopeDefinition, EnvelopeState
from envledger.core.interfaces import IFundingStrategy


class FundingConservative(IFundingStrategy):
    """
    Spread the target evenly over the accrual period (policy: 'conservative').

    The period runs from the previous due date (or the `starting` date) to
    the current due date. After `elapsed` of `period` days the envelope
    should hold ``target * elapsed / period``, reaching the full target on
    the due date itself.

    Example:
        $1000 due on the 15th, period Jun 15 - Jul 15 (30 days):
        Jun 16 -> 33.33, Jun 17 -> 66.67, ..., Jul 15 -> 1000.00
    """

    def prepare(self, definition: EnvelopeDefinition) -> None:
        if definition.target.value < 0:
            raise ValueError(f"envelope {definition} has a negative target")

    def target_to_date(
        self, definition: EnvelopeDefinition, state: EnvelopeState, day: date
    ) -> Decimal:
        target = definition.target.value
        if state.current_due_date is None or state.period_start is None:
            return target
        period = (state.current_due_date - state.period_start).days
        if period <= 0:
            return target
        elapsed = (day - state.period_start).days
        if elapsed <= 0:
            return Decimal("0")
        if elapsed >= period:
            return target
        return target * elapsed / period
