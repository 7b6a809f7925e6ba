"""
Strategy interface protocols for envledger.
Defines the contract that automatic funding strategies must satisfy.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .envelopes import EnvelopeDefinition, EnvelopeState


@runtime_checkable
class IFundingStrategy(Protocol):
    """
    Contract for envelope funding strategies.
    Responsibilities: say how much of the target should be in the envelope
    by a given day of the current accrual period.
    """

    def prepare(self, definition: EnvelopeDefinition) -> None:
        """
        Validate that the envelope can be funded by this strategy.
        Called once per envelope before the replay starts.
        """
        ...

    def target_to_date(
        self, definition: EnvelopeDefinition, state: EnvelopeState, day: date
    ) -> Decimal:
        """
        Cumulative amount that should have been funded during the current
        period by the end of `day`, before quantization. The scheduler only
        ever moves the difference from what was already funded.
        """
        ...


__all__ = ["IFundingStrategy"]
