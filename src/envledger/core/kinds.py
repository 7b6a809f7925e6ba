"""
envledger closed variant sets (statuses, envelope kinds, funding policies).
"""

from __future__ import annotations

from enum import Enum


class Status(Enum):
    """Transaction status."""

    PENDING = "pending"
    CLEARED = "cleared"
    RECONCILED = "reconciled"


class EnvelopeKind(Enum):
    """Envelope flavour; `expense` and `goal` behave identically."""

    EXPENSE = "expense"
    GOAL = "goal"


class FundingPolicy(Enum):
    """How money is moved into an envelope automatically."""

    NONE = "none"
    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"

    @classmethod
    def from_keyword(cls, word: str) -> FundingPolicy:
        """Resolve a `funding` keyword (with its aliases) to a policy."""
        try:
            return FUNDING_KEYWORDS[word]
        except KeyError:
            raise ValueError(
                f"unknown funding method {word!r}; use one of "
                f"{', '.join(sorted(FUNDING_KEYWORDS))}"
            ) from None


FUNDING_KEYWORDS: dict[str, FundingPolicy] = {
    "manual": FundingPolicy.NONE,
    "none": FundingPolicy.NONE,
    "aggressive": FundingPolicy.AGGRESSIVE,
    "fast": FundingPolicy.AGGRESSIVE,
    "conservative": FundingPolicy.CONSERVATIVE,
    "slow": FundingPolicy.CONSERVATIVE,
}


class K:
    """Top-level journal directive keywords."""

    ACCOUNT = "account"
    CURRENCY = "currency"
    DATE_FORMAT = "date_format"
    EXPENSE = "expense"
    GOAL = "goal"
    FOR = "for"
    FUNDING = "funding"
    AMOUNT = "amount"
    DUE = "due"
    BY = "by"
    EVERY = "every"
    OTHER = "other"
    STARTING = "starting"
    ENVELOPE = "envelope"

    @classmethod
    def all_keywords(cls) -> frozenset[str]:
        """Enumerate all reserved keywords."""
        return frozenset(
            value
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        )
