"""
envledger - Plain-Text Double-Entry Ledger with Envelope Budgeting

envledger reads a plain-text journal of accounts and transactions, balances
every transaction exactly, and replays them in date order while moving money
into "envelopes": named sub-allocations of an asset account that pre-fund
recurring expenses and savings goals before they are due.

Key Features:
- **Exact arithmetic**: Decimal amounts, per-currency zero-sum balancing
- **Inference**: one posting per transaction may leave its amount out
- **Multi-currency**: cost (`=`) and price (`@`) annotations bridge currencies
- **Assertions**: `!` and `!!` check running balances as the journal replays
- **Envelopes**: aggressive or conservative funding on monthly, weekly,
  every-other and yearly schedules
- **Full diagnostics**: errors are collected, not raised, so a whole journal
  is checked in one pass
- **CSV import**: a rules file maps bank exports to transactions

Quick Start:
    ```python
    from datetime import date
    from textwrap import dedent

    import envledger

    text = dedent('''
        account assets:checking
            expense rent due every 1st
                amount 1000
                funding conservative
        account income:salary
        account expenses:rent

        2019/08/01 * Paycheck
            assets:checking 2500
            income:salary
    ''')
    results = envledger.load(text, as_of=date(2019, 8, 15))
    print(results.balances_frame())
    print(results.envelopes_frame())
    ```

Extending the System:
    Funding strategies implement ``IFundingStrategy`` and are registered in
    ``FundingRegistry`` under a ``FundingPolicy``.
"""

# Version information
__version__ = "0.1.0"
__author__ = "envledger Team"
__description__ = "Plain-text double-entry ledger with envelope budgeting"

# Register default funding strategies
import envledger.strategies

from .core import (
    Amount,
    EnvelopeDefinition,
    EnvelopeState,
    ErrorReport,
    FundingPolicy,
    FundingRegistry,
    IFundingStrategy,
    Ledger,
    LedgerConfig,
    LedgerError,
    LedgerResults,
    ParseContext,
    Status,
    Transaction,
    balance_transaction,
    load,
    parse,
    tokenize,
)
from .importer import import_csv

__all__ = [
    "__version__",
    "load",
    "parse",
    "tokenize",
    "import_csv",
    "balance_transaction",
    "Ledger",
    "LedgerConfig",
    "LedgerError",
    "LedgerResults",
    "ErrorReport",
    "ParseContext",
    "Amount",
    "Status",
    "Transaction",
    "EnvelopeDefinition",
    "EnvelopeState",
    "FundingPolicy",
    "FundingRegistry",
    "IFundingStrategy",
]
