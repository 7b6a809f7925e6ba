"""
Command-line interface for envledger.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date

import pandas as pd

from envledger import __version__, load
from envledger.core.context import LedgerConfig
from envledger.core.errors import ConfigError, CsvImportError
from envledger.importer import CsvImporter, parse_rules

EXAMPLE_JOURNAL = """\
; Example journal: a paycheck funding rent and groceries envelopes
currency $

account assets:checking
    expense rent due every 1st
        amount $1200
        funding conservative
    expense groceries due every friday
        amount $150
        for expenses:groceries
        funding aggressive
    goal vacation by 2020/06/01
        amount $2000
        funding slow
account income:salary
account expenses:rent
account expenses:groceries

2019/08/01 * Paycheck [ACME Corp]
    assets:checking $3000
    income:salary

2019/08/01 * Rent
    assets:checking -$1200
    expenses:rent

2019/08/03 ~ Groceries [Farmers Market]
    assets:checking -$42.50 ! $1757.50
    expenses:groceries
"""


def _load_text(path: str) -> str:
    """Load journal text from a file path ('-' for stdin)."""
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _load_config(path: str | None) -> LedgerConfig | None:
    """Load a LedgerConfig from a JSON file."""
    if path is None:
        return None
    with open(path, encoding="utf-8") as f:
        return LedgerConfig.from_dict(json.load(f))


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.replace("/", "-"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, use YYYY/MM/DD") from None


def _run(args):
    return load(_load_text(args.input), as_of=args.as_of, config=_load_config(args.config))


def _print_frame(df: pd.DataFrame, empty: str) -> None:
    if df.empty:
        print(empty)
    else:
        print(df.to_string(index=False))


def _print_errors(results) -> None:
    for error in results.errors:
        print(f"{error.kind}: {error}", file=sys.stderr)


def cmd_example(_) -> int:
    """Print a small working journal."""
    sys.stdout.write(EXAMPLE_JOURNAL)
    return 0


def cmd_check(args) -> int:
    """Load a journal and report every error found."""
    try:
        results = _run(args)
    except (OSError, ConfigError) as e:
        print(f"Error loading journal: {e}", file=sys.stderr)
        return 1

    report = results.report
    if args.format == "json":
        json.dump(report.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(str(report))
    return report.get_exit_code()


def cmd_balance(args) -> int:
    """Print the balance of every account."""
    try:
        results = _run(args)
    except (OSError, ConfigError) as e:
        print(f"Error loading journal: {e}", file=sys.stderr)
        return 1
    _print_errors(results)
    _print_frame(results.balances_frame(), "No accounts declared")
    return 0 if results.ok() else 1


def cmd_envelopes(args) -> int:
    """Print every envelope's ready and next balances."""
    try:
        results = _run(args)
    except (OSError, ConfigError) as e:
        print(f"Error loading journal: {e}", file=sys.stderr)
        return 1
    _print_errors(results)
    df = results.envelopes_frame()
    if not df.empty:
        df = df[["account", "envelope", "target", "ready", "next", "due", "funding"]]
    _print_frame(df, "No envelopes defined")
    return 0 if results.ok() else 1


def cmd_register(args) -> int:
    """Print postings with a running total."""
    try:
        results = _run(args)
    except (OSError, ConfigError) as e:
        print(f"Error loading journal: {e}", file=sys.stderr)
        return 1
    _print_errors(results)
    df = results.register_frame(account=args.account, begin=args.begin, end=args.end)
    if not df.empty:
        df["date"] = df["date"].dt.strftime("%Y/%m/%d")
    _print_frame(df, "No matching postings")
    return 0 if results.ok() else 1


def cmd_import(args) -> int:
    """Convert a CSV export into journal transactions."""
    rules_path = args.rules
    if rules_path is None:
        if args.input == "-":
            print("Reading CSV from stdin needs --rules", file=sys.stderr)
            return 1
        rules_path = f"{args.input}.rules"
    try:
        rules = parse_rules(_load_text(rules_path))
        config = _load_config(args.config)
        text = _load_text(args.input)
    except (OSError, ConfigError, CsvImportError) as e:
        print(f"Error loading rules: {e}", file=sys.stderr)
        return 1

    result = CsvImporter(rules, config).run(text)
    _print_errors(result)
    sys.stdout.write(result.to_journal(config))
    return 0 if result.ok() else 1


def _add_journal_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", help="Journal file ('-' for stdin)")
    parser.add_argument(
        "--as-of",
        type=_parse_date,
        help="Reporting date (default: date of the last transaction)",
    )
    parser.add_argument("--config", help="JSON file with ledger settings")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envledger", description="envledger - Plain-text ledger with envelope budgeting"
    )

    # Version argument
    parser.add_argument("--version", action="version", version=f"envledger {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log replay details")

    subparsers = parser.add_subparsers(dest="cmd", required=True, help="Available commands")

    # Example command
    example_parser = subparsers.add_parser("example", help="Print a small working journal")
    example_parser.set_defaults(func=cmd_example)

    # Check command
    check_parser = subparsers.add_parser("check", help="Report every error in a journal")
    _add_journal_arguments(check_parser)
    check_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    check_parser.set_defaults(func=cmd_check)

    # Balance command
    balance_parser = subparsers.add_parser("balance", help="Show account balances")
    _add_journal_arguments(balance_parser)
    balance_parser.set_defaults(func=cmd_balance)

    # Envelopes command
    envelopes_parser = subparsers.add_parser("envelopes", help="Show envelope balances")
    _add_journal_arguments(envelopes_parser)
    envelopes_parser.set_defaults(func=cmd_envelopes)

    # Register command
    register_parser = subparsers.add_parser(
        "register", help="Show postings with a running total"
    )
    _add_journal_arguments(register_parser)
    register_parser.add_argument("--account", help="Only accounts containing this text")
    register_parser.add_argument("--begin", type=_parse_date, help="First date to show")
    register_parser.add_argument("--end", type=_parse_date, help="Last date to show")
    register_parser.set_defaults(func=cmd_register)

    # Import command
    import_parser = subparsers.add_parser(
        "import", help="Convert a CSV export into journal transactions"
    )
    import_parser.add_argument("input", help="CSV file ('-' for stdin)")
    import_parser.add_argument("--rules", help="Rules file (default: <input>.rules)")
    import_parser.add_argument("--config", help="JSON file with ledger settings")
    import_parser.set_defaults(func=cmd_import)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
