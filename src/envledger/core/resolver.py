"""
Envelope movement resolution.

Works out which envelope a transaction spends from (or funds) and by how
much. An explicit `envelope` line always wins; otherwise every posting to
a category account linked with `for` spends from the linked envelope of
the asset account paying for it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .envelopes import EnvelopeDefinition, EnvelopeState
from .errors import EnvelopeAmbiguityError, EnvelopeNotFoundError
from .journal import EnvelopeDirective, Transaction
from .registry import EnvelopeRegistry


@dataclass(frozen=True)
class EnvelopeMovement:
    """
    Signed change of one envelope caused by a transaction.

    Attributes:
        definition: Envelope affected
        amount: Negative spends from the envelope, positive funds it
    """

    definition: EnvelopeDefinition
    amount: Decimal


def _weight_sum(
    tx: Transaction, accounts: set[str] | tuple[str, ...], symbol: str
) -> Optional[Decimal]:
    """Sum of the weights of postings to `accounts` in `symbol`, None if there are none."""
    total = None
    for posting in tx.postings:
        weight = posting.weight()
        if posting.account in accounts and weight is not None and weight.symbol == symbol:
            total = (total or Decimal("0")) + weight.value
    return total


class EnvelopeMovementResolver:
    """
    Resolve manual and automatic envelope movements of balanced transactions.

    Args:
        registry: Validated envelope definitions
    """

    def __init__(self, registry: EnvelopeRegistry):
        self.registry = registry

    def resolve(self, tx: Transaction) -> list[EnvelopeMovement]:
        """
        Movements caused by a balanced transaction.

        Nothing is applied here, so a transaction whose movements can't be
        resolved leaves every envelope untouched.

        Raises:
            EnvelopeNotFoundError: If an `envelope` line names an unknown envelope
            EnvelopeAmbiguityError: If the envelope or its amount can't be
                pinned down
        """
        if tx.envelope is not None:
            return [self._explicit(tx, tx.envelope)]
        return self._automatic(tx)

    def apply(
        self,
        movements: list[EnvelopeMovement],
        states: dict[EnvelopeDefinition, EnvelopeState],
    ) -> None:
        for movement in movements:
            states[movement.definition].apply(movement.amount)

    def _explicit(self, tx: Transaction, directive: EnvelopeDirective) -> EnvelopeMovement:
        definition = self._find(tx, directive)
        symbol = definition.target.symbol
        if directive.amount is not None:
            if directive.amount.symbol != symbol:
                raise EnvelopeAmbiguityError(
                    f"envelope {definition} holds {definition.target.symbol or 'plain amounts'}, "
                    f"not {directive.amount.symbol or 'plain amounts'}",
                    directive.line,
                    directive.column,
                )
            return EnvelopeMovement(definition, directive.amount.value)

        linked = _weight_sum(tx, definition.for_accounts, symbol)
        if linked is not None:
            return EnvelopeMovement(definition, -linked)
        owner = _weight_sum(tx, (definition.account,), symbol)
        if owner is not None:
            return EnvelopeMovement(definition, owner)
        raise EnvelopeAmbiguityError(
            f"can't tell how much to move for envelope {definition}; give an amount",
            directive.line,
            directive.column,
        )

    def _find(self, tx: Transaction, directive: EnvelopeDirective) -> EnvelopeDefinition:
        if directive.account is not None:
            definition = self.registry.get(directive.account, directive.name)
            if definition is None:
                raise EnvelopeNotFoundError(
                    f"account {directive.account!r} has no envelope {directive.name!r}",
                    directive.line,
                    directive.column,
                )
            return definition

        named = self.registry.by_name(directive.name)
        if not named:
            raise EnvelopeNotFoundError(
                f"no envelope named {directive.name!r} is defined",
                directive.line,
                directive.column,
            )
        accounts = tx.get_accounts()
        eligible = [d for d in named if d.account in accounts]
        if len(eligible) == 1:
            return eligible[0]
        if not eligible:
            raise EnvelopeNotFoundError(
                f"no account in this transaction owns an envelope named {directive.name!r}",
                directive.line,
                directive.column,
            )
        owners = ", ".join(d.account for d in eligible)
        raise EnvelopeAmbiguityError(
            f"envelope {directive.name!r} exists under {owners}; "
            f"write `envelope <account> {directive.name}`",
            directive.line,
            directive.column,
        )

    def _automatic(self, tx: Transaction) -> list[EnvelopeMovement]:
        accounts = tx.get_accounts()
        triggered: dict[EnvelopeDefinition, set[str]] = {}
        for posting in tx.postings:
            if not self.registry.is_trigger(posting.account):
                continue
            candidates = [
                d for d in self.registry.triggers(posting.account) if d.account in accounts
            ]
            if len(candidates) > 1:
                pairs = ", ".join(str(d) for d in candidates)
                raise EnvelopeAmbiguityError(
                    f"posting to {posting.account} could spend from {pairs}; "
                    "add an `envelope <account> <name> <amount>` line",
                    posting.line,
                    posting.column,
                )
            if candidates:
                triggered.setdefault(candidates[0], set()).add(posting.account)

        movements = []
        for definition, categories in triggered.items():
            symbol = definition.target.symbol
            spent = _weight_sum(tx, categories, symbol)
            if spent is None or spent == 0:
                continue
            amount = -spent
            paid = _weight_sum(tx, (definition.account,), symbol)
            if paid is not None and abs(paid) < abs(amount):
                amount = abs(paid) if amount > 0 else -abs(paid)
            if amount != 0:
                movements.append(EnvelopeMovement(definition, amount))
        return movements
