"""
Tests for the journal grammar parser.
"""

from datetime import date
from decimal import Decimal
from textwrap import dedent

import pytest
from envledger.core.context import LedgerConfig
from envledger.core.envelopes import (
    AnnualRule,
    BimonthlyRule,
    BiweeklyRule,
    MonthlyRule,
    OnceRule,
    WeeklyRule,
)
from envledger.core.errors import LexError, ParseError, RecurrenceConfigError
from envledger.core.kinds import EnvelopeKind, FundingPolicy, Status
from envledger.core.parser import parse

ACCOUNTS = dedent(
    """\
    account assets:checking
    account assets:cash
    account expenses:groceries
    account income:salary
    """
)


def _parse(text: str, config=None):
    return parse(ACCOUNTS + dedent(text), config)


def _envelope(header: str, body: str = "amount 100"):
    text = f"account assets:savings\n    {header}\n"
    text += "".join(f"        {line}\n" for line in body.splitlines())
    return parse(text)


class TestTransactions:
    """Test transaction headers and postings."""

    def test_simple_transaction(self):
        """Test a header with payee and two postings."""
        parsed = _parse(
            """
            2019/08/02 * Groceries [Safeway]
                assets:checking -30
                expenses:groceries
            """
        )

        assert parsed.errors == []
        tx = parsed.transactions[0]
        assert tx.date == date(2019, 8, 2)
        assert tx.status is Status.RECONCILED
        assert tx.description == "Groceries"
        assert tx.payee == "Safeway"
        assert [p.account for p in tx.postings] == ["assets:checking", "expenses:groceries"]
        assert tx.postings[0].amount.value == Decimal("-30")
        assert tx.postings[1].amount is None

    @pytest.mark.parametrize(
        "glyph,status",
        [("?", Status.PENDING), ("~", Status.CLEARED), ("*", Status.RECONCILED)],
    )
    def test_status_glyphs(self, glyph, status):
        """Test the default status glyphs."""
        parsed = _parse(
            f"""
            2019/08/02 {glyph} Pay
                assets:checking 10
                income:salary
            """
        )

        assert parsed.transactions[0].status is status

    def test_missing_status_is_parse_error(self):
        """Test that a transaction must have a status."""
        parsed = _parse(
            """
            2019/08/02 Groceries
                assets:checking -30
                expenses:groceries
            """
        )

        assert parsed.transactions == []
        assert isinstance(parsed.errors[0], ParseError)
        assert "status" in parsed.errors[0].message

    def test_configured_cleared_glyph(self):
        """Test that `!` is only a status when configured."""
        text = """
            2019/08/02 ! Pay
                assets:checking 10
                income:salary
            """
        assert _parse(text).transactions == []

        config = LedgerConfig(cleared_glyphs=("~", "!"))
        parsed = _parse(text, config)
        assert parsed.transactions[0].status is Status.CLEARED

    def test_annotations_in_any_order(self):
        """Test cost, price and assertions on postings."""
        parsed = _parse(
            """
            2019/08/02 * Exchange
                assets:cash 100EUR = $110 ! 100EUR
                assets:checking -$110
            2019/08/03 * Exchange back
                assets:cash -50EUR !! 50 @ $1.10
                assets:checking
            """
        )

        assert parsed.errors == []
        first, second = parsed.transactions
        cash = first.postings[0]
        assert cash.cost.value == Decimal("110")
        assert cash.cost.symbol == "$"
        assert cash.assertion.amount.value == Decimal("100")
        assert not cash.assertion.total
        back = second.postings[0]
        assert back.price.value == Decimal("1.10")
        assert back.assertion.total

    def test_cost_and_price_together_rejected(self):
        """Test that a posting can't carry both a cost and a price."""
        parsed = _parse(
            """
            2019/08/02 * Exchange
                assets:cash 100EUR = $110 @ $1.1
                assets:checking
            """
        )

        assert parsed.transactions == []
        assert "not both" in parsed.errors[0].message

    def test_single_posting_rejected(self):
        """Test that a transaction needs two postings."""
        parsed = _parse(
            """
            2019/08/02 * Lonely
                assets:checking 10
            """
        )

        assert parsed.transactions == []
        assert "two postings" in parsed.errors[0].message

    def test_envelope_directive_forms(self):
        """Test the `envelope [<account>] <name> [<amount>]` line."""
        parsed = _parse(
            """
            2019/08/02 * Groceries
                assets:checking -30
                expenses:groceries
                envelope assets:checking food -30
            2019/08/03 * Groceries
                assets:checking -20
                expenses:groceries
                envelope food
            """
        )

        full = parsed.transactions[0].envelope
        assert full.account == "assets:checking"
        assert full.name == "food"
        assert full.amount.value == Decimal("-30")
        short = parsed.transactions[1].envelope
        assert short.account is None
        assert short.amount is None

    def test_two_envelope_lines_rejected(self):
        """Test that a transaction takes one envelope line."""
        parsed = _parse(
            """
            2019/08/02 * Groceries
                assets:checking -30
                expenses:groceries
                envelope food
                envelope fun
            """
        )

        assert parsed.transactions == []

    def test_undeclared_account_rejected(self):
        """Test that postings must use declared accounts."""
        parsed = _parse(
            """
            2019/08/02 * Dinner
                assets:checking -30
                expenses:dining
            """
        )

        assert parsed.transactions == []
        error = parsed.errors[0]
        assert "expenses:dining" in error.message
        assert error.line == 8

    def test_invalid_date(self):
        """Test that impossible dates are rejected."""
        parsed = _parse(
            """
            2019/02/30 * Pay
                assets:checking 10
                income:salary
            """
        )

        assert parsed.transactions == []
        assert "invalid date" in parsed.errors[0].message


class TestDirectives:
    """Test account and currency directives."""

    def test_default_currency(self):
        """Test that `currency` sets the default symbol."""
        parsed = parse("currency $\naccount assets:checking\n")

        assert parsed.context.default_symbol == "$"

    def test_conflicting_currency_directives(self):
        """Test that the default currency can only be set once."""
        parsed = parse("currency $\ncurrency EUR\n")

        assert parsed.context.default_symbol == "$"
        assert len(parsed.errors) == 1
        assert parsed.errors[0].line == 2

    def test_repeated_same_currency_is_fine(self):
        """Test that repeating the same default currency is allowed."""
        parsed = parse("currency $\ncurrency $\n")

        assert parsed.errors == []

    def test_date_format(self):
        """Test that `date_format` changes how every date is read."""
        parsed = _parse(
            """
            date_format %d.%m.%Y

            01.08.2019 * Pay
                assets:checking 10
                income:salary
            """
        )

        assert parsed.errors == []
        assert parsed.date_format == "%d.%m.%Y"
        assert parsed.transactions[0].date == date(2019, 8, 1)

    def test_date_format_applies_to_envelopes(self):
        """Test that envelope due and starting dates use the format too."""
        parsed = parse(
            "account assets:savings\n"
            "    goal trip by 01.06.2020\n"
            "        amount 100\n"
            "    expense rent due every other 1st starting 01.01.2020\n"
            "        amount 100\n"
            "date_format %d.%m.%Y\n"
        )

        assert parsed.errors == []
        assert parsed.envelopes[0].rule == OnceRule(date(2020, 6, 1))
        assert parsed.envelopes[1].starting == date(2020, 1, 1)

    def test_default_dates_rejected_under_a_format(self):
        """Test that a header in the default form no longer starts a transaction."""
        parsed = _parse(
            """
            date_format %d.%m.%Y
            2019/08/01 * Pay
                assets:checking 10
                income:salary
            """
        )

        assert parsed.transactions == []
        assert parsed.errors

    @pytest.mark.parametrize(
        "line, message",
        [
            ("date_format", "date format"),
            ("date_format %Y-%q-%d", "unsupported directive"),
            ("date_format %Y-%m", "needs a year, a month and a day"),
        ],
    )
    def test_invalid_date_format(self, line, message):
        """Test that a missing or unusable format is reported."""
        parsed = parse(line + "\n")

        assert parsed.date_format is None
        assert message in parsed.errors[0].message

    def test_conflicting_date_formats(self):
        """Test that the date format can only be set once."""
        parsed = parse("date_format %d.%m.%Y\ndate_format %m/%d/%Y\n")

        assert parsed.date_format == "%d.%m.%Y"
        assert len(parsed.errors) == 1
        assert parsed.errors[0].line == 2

    def test_impossible_date_under_a_format(self):
        """Test that a date matching the format can still be invalid."""
        parsed = _parse(
            """
            date_format %d.%m.%Y
            31.02.2019 * Pay
                assets:checking 10
                income:salary
            """
        )

        assert parsed.transactions == []
        assert "invalid date" in parsed.errors[0].message

    def test_duplicate_account(self):
        """Test that an account can only be declared once."""
        parsed = parse("account a:b\naccount a:b\n")

        assert len(parsed.accounts) == 1
        assert "already declared" in parsed.errors[0].message

    def test_unknown_top_level_item(self):
        """Test that stray top-level words are reported."""
        parsed = parse("acount a:b\naccount c:d\n")

        assert parsed.accounts.has_account("c:d")
        assert len(parsed.errors) == 1

    def test_errors_do_not_stop_parsing(self):
        """Test that several broken items are all reported."""
        parsed = _parse(
            """
            2019/08/02 Missing status
                assets:checking -30
                expenses:groceries
            account bad #
            2019/08/03 * Fine
                assets:checking -30
                expenses:groceries
            """
        )

        assert len(parsed.transactions) == 1
        assert len(parsed.errors) == 2
        assert any(isinstance(e, LexError) for e in parsed.errors)
        assert [e.line for e in parsed.errors] == sorted(e.line for e in parsed.errors)


class TestEnvelopes:
    """Test envelope blocks under accounts."""

    def test_full_envelope(self):
        """Test every envelope property."""
        parsed = _envelope(
            "expense rent due every 1st starting 2019/01/01",
            "amount $1200\nfor expenses:rent\nfunding slow",
        )
        parsed_accounts = parsed.accounts.paths()

        definition = parsed.envelopes[0]
        assert parsed_accounts == ["assets:savings"]
        assert definition.account == "assets:savings"
        assert definition.name == "rent"
        assert definition.kind is EnvelopeKind.EXPENSE
        assert definition.target.value == Decimal("1200")
        assert definition.rule == MonthlyRule(1)
        assert definition.starting == date(2019, 1, 1)
        assert definition.policy is FundingPolicy.CONSERVATIVE
        assert definition.for_accounts == ("expenses:rent",)

    @pytest.mark.parametrize("keyword", ["due", "by", "due by"])
    def test_due_keyword_aliases(self, keyword):
        """Test that `due`, `by` and `due by` are equivalent."""
        parsed = _envelope(f"goal car {keyword} 2020/06/01")

        assert parsed.errors == []
        assert parsed.envelopes[0].rule == OnceRule(date(2020, 6, 1))
        assert parsed.envelopes[0].kind is EnvelopeKind.GOAL

    def test_by_due_is_rejected(self):
        """Test that `by due` is not an accepted order."""
        parsed = _envelope("goal car by due 2020/06/01")

        assert parsed.envelopes == []
        assert "by due" in parsed.errors[0].message

    @pytest.mark.parametrize(
        "schedule,rule",
        [
            ("every 15th", MonthlyRule(15)),
            ("every 15", MonthlyRule(15)),
            ("every friday", WeeklyRule(4)),
            ("every fri", WeeklyRule(4)),
            (
                "every other 1st starting 2019/01/01",
                BimonthlyRule(1, date(2019, 1, 1)),
            ),
            (
                "every other monday starting 2019/01/07",
                BiweeklyRule(0, date(2019, 1, 7)),
            ),
            ("every year starting 2019/04/15", AnnualRule(4, 15)),
        ],
    )
    def test_recurrence_forms(self, schedule, rule):
        """Test every recurrence form the grammar accepts."""
        parsed = _envelope(f"expense bill due {schedule}")

        assert parsed.errors == []
        assert parsed.envelopes[0].rule == rule

    def test_every_other_requires_starting(self):
        """Test that `every other` without `starting` is rejected."""
        parsed = _envelope("expense water due every other 15th")

        assert parsed.envelopes == []
        assert isinstance(parsed.errors[0], ParseError)
        assert "starting" in parsed.errors[0].message

    @pytest.mark.parametrize(
        "schedule", ["every day", "every 32nd", "every 0", "every blursday", "every other year starting 2019/01/01"]
    )
    def test_unresolvable_recurrence(self, schedule):
        """Test schedules that can't be turned into due dates."""
        parsed = _envelope(f"expense bill due {schedule}")

        assert parsed.envelopes == []
        assert isinstance(parsed.errors[0], RecurrenceConfigError)

    def test_missing_amount(self):
        """Test that an envelope needs an amount."""
        parsed = _envelope("expense rent due every 1st", "funding fast")

        assert parsed.envelopes == []
        assert "amount" in parsed.errors[0].message

    def test_funding_aliases(self):
        """Test the funding keyword aliases."""
        for word, policy in [
            ("fast", FundingPolicy.AGGRESSIVE),
            ("aggressive", FundingPolicy.AGGRESSIVE),
            ("slow", FundingPolicy.CONSERVATIVE),
            ("manual", FundingPolicy.NONE),
        ]:
            parsed = _envelope("expense rent due every 1st", f"amount 10\nfunding {word}")
            assert parsed.envelopes[0].policy is policy

    def test_unknown_funding_method(self):
        """Test that unknown funding methods are rejected."""
        parsed = _envelope("expense rent due every 1st", "amount 10\nfunding eager")

        assert parsed.envelopes == []
        assert "eager" in parsed.errors[0].message

    def test_duplicate_envelope_name(self):
        """Test that envelope names are unique within an account."""
        parsed = parse(
            dedent(
                """\
                account assets:checking
                    expense food due every 1st
                        amount 100
                    goal food by 2020/01/01
                        amount 50
                """
            )
        )

        assert len(parsed.envelopes) == 1
        assert "duplicate envelope" in parsed.errors[0].message

    def test_bad_envelope_keeps_the_others(self):
        """Test that one malformed envelope doesn't drop its siblings."""
        parsed = parse(
            dedent(
                """\
                account assets:checking
                    expense food due every other 1st
                        amount 100
                    expense rent due every 1st
                        amount 900
                """
            )
        )

        assert [d.name for d in parsed.envelopes] == ["rent"]
        assert len(parsed.errors) == 1

    def test_default_currency_applies_to_targets(self):
        """Test that envelope targets take the default currency."""
        parsed = parse("currency $\n" + "account assets:a\n    expense x due every 1st\n        amount 5\n")

        assert parsed.envelopes[0].target.symbol == "$"
