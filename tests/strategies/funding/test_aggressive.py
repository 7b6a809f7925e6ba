from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from envledger.core.currency import create_amount
from envledger.core.envelopes import EnvelopeDefinition, EnvelopeState, MonthlyRule
from envledger.core.kinds import EnvelopeKind, FundingPolicy
from envledger.strategies.funding.aggressive import FundingAggressive


def _definition(target=1000):
    return EnvelopeDefinition(
        account="assets:checking",
        name="rent",
        kind=EnvelopeKind.EXPENSE,
        target=create_amount(target, "$"),
        rule=MonthlyRule(15),
        policy=FundingPolicy.AGGRESSIVE,
    )


def test_full_target_from_the_first_day():
    definition = _definition()
    state = EnvelopeState()
    state.start(definition, date(2019, 6, 15))

    strategy = FundingAggressive()
    strategy.prepare(definition)

    assert strategy.target_to_date(definition, state, date(2019, 6, 15)) == Decimal("1000")
    assert strategy.target_to_date(definition, state, date(2019, 7, 14)) == Decimal("1000")


def test_negative_target_rejected():
    with pytest.raises(ValueError, match="negative target"):
        FundingAggressive().prepare(_definition(-5))
