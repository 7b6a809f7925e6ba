"""
Tests for CSV import with a rules file.
"""

from datetime import date
from decimal import Decimal
from textwrap import dedent

import pytest
from envledger.core.currency import create_amount
from envledger.core.errors import CsvImportError
from envledger.core.journal import Posting
from envledger.core.kinds import Status
from envledger.core.parser import parse
from envledger.importer import import_csv, parse_rules

RULES = dedent(
    """\
    fields date, description, amount, currency, native_price, other

    amount %amount%%currency% @ %native_price%
    account assets:test

    decimal_symbol .

    date_format %Y.%m.%d

    comment test comment

    skip 1

    if test0
        comment single condition test

    if test1
    test2
    test3
        comment multiple condition test
        payee Ferris the Crab

    if bad decimal
    test4
    test5
        comment comma decimal_symbol test
        decimal_symbol ,
    """
)

CSV = dedent(
    """\
    date,description,amount,currency,native_price,other
    2020.10.09,Test CSV Entry One,1.2,BTC,11000,
    2020.11.12,Test CSV Entry Two,-3.4,BTC,10000,test0
    2020.12.13,Test CSV Entry Three,5.6,BTC,9000,test1
    2020.01.02,Test CSV Entry Four,-7.8,BTC,8000,test2
    2020.02.14,Test CSV Entry Five,"9,1",BTC,12000,bad decimal
    """
)


@pytest.fixture
def result():
    return import_csv(CSV, RULES)


class TestRules:
    """Test reading the rules file."""

    def test_root_rules(self):
        """Test that top-level rules set the defaults."""
        rules = parse_rules(RULES).root

        assert rules.fields[:3] == ("date", "description", "amount")
        assert rules.date_format == "%Y.%m.%d"
        assert rules.comment == "test comment"
        assert rules.skip == 1
        assert rules.accounts == {"": "assets:test"}

    def test_subrules(self):
        """Test that `if` blocks collect patterns and override a copy of the rules."""
        subrules = parse_rules(RULES).subrules

        assert [s.patterns for s in subrules] == [
            ["test0"],
            ["test1", "test2", "test3"],
            ["bad decimal", "test4", "test5"],
        ]
        assert subrules[1].rules.payee == "Ferris the Crab"
        assert subrules[1].rules.date_format == "%Y.%m.%d"
        assert subrules[2].rules.decimal_symbol == ","

    def test_dash_resets_a_rule(self):
        """Test that `-` restores a rule's default."""
        rules = parse_rules("comment note\npayee Shop\nif x\n    comment -\npayee -\n")

        assert rules.subrules[0].rules.comment == ""
        assert rules.subrules[0].rules.payee == "Shop"
        assert rules.root.payee == ""

    def test_aliases(self):
        """Test that `note` and `decimal` name the comment and decimal symbol."""
        rules = parse_rules("note hello\ndecimal ,\n").root

        assert rules.comment == "hello"
        assert rules.decimal_symbol == ","

    @pytest.mark.parametrize(
        "text, line, message",
        [
            ("fields a\nfrobnicate x\n", 2, "unknown rule"),
            ("    payee x\n", 1, "outside of an `if` block"),
            ("include other.rules\n", 1, "include"),
            ("skip some\n", 1, "number of records"),
            ("decimal_symbol ;\n", 1, "decimal symbol"),
            ("status done\n", 1, "single glyph"),
            ("payee\n", 1, "needs a value"),
        ],
    )
    def test_bad_rules(self, text, line, message):
        """Test that invalid rules are reported with their line."""
        with pytest.raises(CsvImportError, match=message) as exc:
            parse_rules(text)

        assert exc.value.line == line
        assert exc.value.kind == "import"

    def test_amount_needs_an_account(self):
        """Test that every amount template is paired with an account."""
        with pytest.raises(CsvImportError, match="amount2"):
            parse_rules("account1 a:b\namount1 %x%\namount2 %y%\n")


class TestImport:
    """Test turning records into transactions."""

    def test_records(self, result):
        """Test every record of the export, subrules included."""
        assert result.ok()
        assert [e.transaction.date for e in result.entries] == [
            date(2020, 10, 9),
            date(2020, 11, 12),
            date(2020, 12, 13),
            date(2020, 1, 2),
            date(2020, 2, 14),
        ]
        assert [e.comment for e in result.entries] == [
            "test comment",
            "single condition test",
            "multiple condition test",
            "multiple condition test",
            "comma decimal_symbol test",
        ]
        assert [e.transaction.payee for e in result.entries] == [
            None,
            None,
            "Ferris the Crab",
            "Ferris the Crab",
            None,
        ]
        assert all(e.transaction.status is Status.CLEARED for e in result.entries)

    def test_single_posting_gets_a_counter_account(self, result):
        """Test the counter posting chosen by the sign of the only amount."""
        first, second = result.entries[0].transaction, result.entries[1].transaction

        assert first.postings == (
            Posting(
                "assets:test",
                create_amount("1.2", "BTC"),
                price=create_amount("11000", ""),
            ),
            Posting("income:unknown"),
        )
        assert second.postings[1] == Posting("expenses:unknown")

    def test_subrule_decimal_symbol(self, result):
        """Test that a subrule can read amounts with a decimal comma."""
        posting = result.entries[4].transaction.postings[0]

        assert posting.amount.value == Decimal("9.1")
        assert posting.price.value == Decimal("12000")

    def test_journal_text(self, result):
        """Test the written transaction and that it parses back."""
        assert result.entries[0].to_journal() == (
            "; test comment\n"
            "2020/10/09 ~ Test CSV Entry One\n"
            "    assets:test 1.2BTC @ 11000\n"
            "    income:unknown"
        )

        header = "account assets:test\naccount income:unknown\naccount expenses:unknown\n\n"
        parsed = parse(header + result.to_journal())
        assert parsed.errors == []
        assert parsed.transactions == [e.transaction for e in result.entries]

    def test_several_postings(self):
        """Test postings paired by suffix, in declaration order."""
        rules = dedent(
            """\
            fields date, description, amount
            account1 assets:checking
            amount1 %amount%
            account2 expenses:rent
            """
        )
        result = import_csv("date,description,amount\n2019/08/01,Rent,-900\n", rules)

        postings = result.entries[0].transaction.postings
        assert [p.account for p in postings] == ["assets:checking", "expenses:rent"]
        assert postings[0].amount.value == Decimal("-900")
        assert postings[1].amount is None

    def test_zero_amount_counter_account(self):
        """Test that a zero amount is balanced against `unknown`."""
        rules = "fields date, description, amount\naccount a:b\namount %amount%\n"
        result = import_csv("h\n2019/08/01,Nothing,0\n", rules)

        assert result.entries[0].transaction.postings[1] == Posting("unknown")

    def test_percent_escape_and_payee(self):
        """Test that %% writes a literal percent sign."""
        rules = dedent(
            """\
            fields date, what, amount
            description %what% at 5%%
            payee %what%
            account a:b
            amount %amount%
            """
        )
        result = import_csv("h\n2019/08/01,Loan,10\n", rules)

        tx = result.entries[0].transaction
        assert tx.description == "Loan at 5%"
        assert tx.payee == "Loan"

    def test_bad_records_are_collected(self):
        """Test that a failing record is reported with its CSV line."""
        rules = "fields date, description, amount\naccount a:b\namount %amount%\n"
        text = "h\n2019/08/01,Fine,1\n08/02/2019,Bad date,1\n2019/08/03,Fine again,1\n"

        result = import_csv(text, rules)

        assert [e.transaction.description for e in result.entries] == ["Fine", "Fine again"]
        assert len(result.errors) == 1
        assert result.errors[0].line == 3
        assert "doesn't match format" in result.errors[0].message

    @pytest.mark.parametrize(
        "rules, message",
        [
            ("fields date, description\ndescription %nope%\naccount a:b\n", "unknown field"),
            ("fields date, description\naccount a:b\n", "needs an amount"),
            ("fields date, description\n", "no postings"),
            ("fields date, description, amount\naccount a:b\namount %amount%\n", "bad posting"),
        ],
    )
    def test_record_errors(self, rules, message):
        """Test the reasons a record can't become a transaction."""
        result = import_csv("h\n2019/08/01,Thing,1$2\n", rules)

        assert result.entries == []
        assert message in result.errors[0].message

    def test_unwritable_description_is_reported(self):
        """Test that a description the journal can't hold is a record error."""
        rules = "fields date, description, amount\naccount a:b\namount %amount%\n"
        result = import_csv('h\n2019/08/01,"Say ""hi""; bye",1\n', rules)

        assert result.entries == []
        assert "quotes" in result.errors[0].message
