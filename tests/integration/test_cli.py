"""
Tests for the envledger command-line interface.
"""

import json

import pytest
from envledger.cli import EXAMPLE_JOURNAL, main

BROKEN_JOURNAL = """\
account assets:checking

2019/08/01 * Pay
    assets:checking 10
    income:salary
"""


def _run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


@pytest.fixture
def example_file(tmp_path):
    path = tmp_path / "example.journal"
    path.write_text(EXAMPLE_JOURNAL, encoding="utf-8")
    return path


class TestCLI:
    """Test CLI commands end to end."""

    def test_example(self, capsys):
        """Test that `example` prints the bundled journal."""
        assert _run(["example"]) == 0
        assert capsys.readouterr().out == EXAMPLE_JOURNAL

    def test_check_example(self, example_file, capsys):
        """Test that the bundled journal checks clean."""
        assert _run(["check", str(example_file)]) == 0
        assert "Journal is valid" in capsys.readouterr().out

    def test_check_broken(self, tmp_path, capsys):
        """Test that errors give exit code 1 and are listed."""
        path = tmp_path / "broken.journal"
        path.write_text(BROKEN_JOURNAL, encoding="utf-8")

        assert _run(["check", str(path)]) == 1
        out = capsys.readouterr().out
        assert "never declared" in out

    def test_check_json(self, example_file, capsys):
        """Test the JSON report."""
        assert _run(["check", str(example_file), "--format", "json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["is_valid"] is True
        assert report["errors"] == []

    def test_missing_file(self, tmp_path, capsys):
        """Test that an unreadable journal is reported, not raised."""
        assert _run(["check", str(tmp_path / "nope.journal")]) == 1
        assert "Error loading journal" in capsys.readouterr().err

    def test_balance(self, example_file, capsys):
        """Test the balance table."""
        assert _run(["balance", str(example_file)]) == 0
        out = capsys.readouterr().out
        assert "assets:checking" in out
        assert "1757.50" in out

    def test_envelopes(self, example_file, capsys):
        """Test the envelope table."""
        assert _run(["envelopes", str(example_file), "--as-of", "2019/08/10"]) == 0
        out = capsys.readouterr().out
        assert "groceries" in out
        assert "vacation" in out

    def test_register(self, example_file, capsys):
        """Test the register filtered by account."""
        assert _run(["register", str(example_file), "--account", "expenses"]) == 0
        out = capsys.readouterr().out
        assert "expenses:rent" in out
        assert "assets:checking" not in out

    def test_config_file(self, tmp_path, capsys):
        """Test that a JSON config file changes how the journal is read."""
        journal = tmp_path / "comma.journal"
        journal.write_text(
            "account assets:checking\n"
            "account income:salary\n"
            "2019/08/01 * Pay\n"
            "    assets:checking 1.000,50\n"
            "    income:salary\n",
            encoding="utf-8",
        )
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"decimal_symbol": ","}), encoding="utf-8")

        assert _run(["balance", str(journal), "--config", str(config)]) == 0
        assert "1000.50" in capsys.readouterr().out

    def test_bad_config_file(self, example_file, tmp_path, capsys):
        """Test that an invalid config is reported with exit code 1."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"tab_width": 0}), encoding="utf-8")

        assert _run(["check", str(example_file), "--config", str(config)]) == 1
        assert "tab_width" in capsys.readouterr().err

    def test_import_with_sibling_rules(self, tmp_path, capsys):
        """Test that `import` finds <csv>.rules and prints journal text."""
        export = tmp_path / "bank.csv"
        export.write_text(
            "date,description,amount\n2019/08/01,Paycheck,2500\n2019/08/02,Rent,-1000\n",
            encoding="utf-8",
        )
        (tmp_path / "bank.csv.rules").write_text(
            "fields date, description, amount\n"
            "account assets:checking\n"
            "amount $%amount%\n"
            "if rent\n"
            "    account2 expenses:rent\n",
            encoding="utf-8",
        )

        assert _run(["import", str(export)]) == 0
        out = capsys.readouterr().out
        assert "2019/08/01 ~ Paycheck\n    assets:checking $2500\n    income:unknown\n" in out
        assert "    assets:checking $-1000\n    expenses:rent\n" in out

    def test_import_reports_bad_records(self, tmp_path, capsys):
        """Test that records that fail are listed and give exit code 1."""
        export = tmp_path / "bank.csv"
        export.write_text("date,description,amount\nyesterday,Coffee,-3\n", encoding="utf-8")
        rules = tmp_path / "my.rules"
        rules.write_text("fields date, description, amount\naccount a:b\namount %amount%\n")

        assert _run(["import", str(export), "--rules", str(rules)]) == 1
        assert "import: [line 2]" in capsys.readouterr().err

    def test_import_without_rules(self, tmp_path, capsys):
        """Test that a missing rules file is reported."""
        export = tmp_path / "bank.csv"
        export.write_text("date,description,amount\n", encoding="utf-8")

        assert _run(["import", str(export)]) == 1
        assert "Error loading rules" in capsys.readouterr().err
