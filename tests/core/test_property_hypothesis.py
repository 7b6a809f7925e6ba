"""
Property-based tests using Hypothesis for balancing and journal round trips.
"""

from datetime import date
from decimal import Decimal

from envledger.core.balancer import balance_transaction, zero_sum
from envledger.core.currency import Amount
from envledger.core.journal import Posting, Transaction
from envledger.core.kinds import Status
from envledger.core.parser import parse
from hypothesis import given
from hypothesis import strategies as st

ACCOUNTS = ["assets:checking", "assets:cash", "expenses:food", "income:salary"]

amount_values = st.decimals(
    min_value=Decimal("-100000"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
symbols = st.sampled_from(["", "$", "USD", "€"])
dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2099, 12, 31))


class TestBalancingProperties:
    """Property-based tests for per-currency zero-sum."""

    @given(values=st.lists(amount_values, min_size=1, max_size=5), symbol=symbols)
    def test_inferred_posting_balances(self, values, symbol):
        """Test that inferring the last posting always yields a zero-sum transaction."""
        postings = [
            Posting(ACCOUNTS[i % 3], Amount(value, symbol)) for i, value in enumerate(values)
        ]
        postings.append(Posting("income:salary"))
        tx = Transaction(date(2019, 8, 1), Status.CLEARED, "Pay", tuple(postings))

        resolved = balance_transaction(tx)

        assert zero_sum(resolved)
        inferred = resolved.postings[-1].amount
        assert inferred.value == -sum(values, Decimal("0"))

    @given(values=st.lists(amount_values, min_size=2, max_size=5))
    def test_explicit_amounts_keep_their_values(self, values):
        """Test that balancing a complete transaction changes nothing."""
        postings = [Posting(ACCOUNTS[i % 4], Amount(value, "$")) for i, value in enumerate(values)]
        postings.append(Posting("income:salary", Amount(-sum(values, Decimal("0")), "$")))
        tx = Transaction(date(2019, 8, 1), Status.CLEARED, "Pay", tuple(postings))

        resolved = balance_transaction(tx)

        assert resolved.postings == tx.postings


class TestJournalRoundTrip:
    """Property-based tests for writing transactions back out."""

    @given(
        day=dates,
        status=st.sampled_from(list(Status)),
        description=st.sampled_from(["Groceries", "Paycheck from ACME", "Rent for June"]),
        payee=st.sampled_from([None, "ACME Corp", "Landlord"]),
        values=st.lists(amount_values, min_size=1, max_size=3),
        symbol=symbols,
    )
    def test_written_transaction_parses_back(
        self, day, status, description, payee, values, symbol
    ):
        """Test that to_journal() output parses to an equal transaction."""
        postings = [Posting(ACCOUNTS[i % 3], Amount(value, symbol)) for i, value in enumerate(values)]
        postings.append(Posting("income:salary", Amount(-sum(values, Decimal("0")), symbol)))
        tx = Transaction(day, status, description, tuple(postings), payee=payee)
        header = "\n".join(f"account {account}" for account in ACCOUNTS)

        parsed = parse(header + "\n\n" + tx.to_journal() + "\n")

        assert parsed.errors == []
        assert parsed.transactions == [tx]
