"""
Core module for envledger.

This module contains the journal interpretation engine: lexer, parser,
transaction balancer, envelope registry, funding scheduler, movement
resolver and the ledger replay that ties them together.
"""

from .accounts import Account, AccountRegistry
from .balancer import balance_transaction, check_assertions
from .context import LedgerConfig, ParseContext
from .currency import Amount, Currency, get_currency
from .envelopes import (
    AnnualRule,
    BimonthlyRule,
    BiweeklyRule,
    EnvelopeDefinition,
    EnvelopeState,
    MonthlyRule,
    OnceRule,
    WeeklyRule,
)
from .errors import (
    BalanceAssertionFailedError,
    BalanceError,
    CsvImportError,
    ConfigError,
    CurrencyMismatchError,
    EnvelopeAmbiguityError,
    EnvelopeNotFoundError,
    LedgerError,
    LexError,
    ParseError,
    RecurrenceConfigError,
)
from .interfaces import IFundingStrategy
from .journal import (
    BalanceAssertion,
    EnvelopeDirective,
    Journal,
    Posting,
    Transaction,
)
from .kinds import EnvelopeKind, FundingPolicy, Status
from .ledger import Ledger, load
from .lexer import Lexer, Token, TokenType, tokenize
from .parser import ParsedJournal, Parser, parse
from .registry import EnvelopeRegistry
from .resolver import EnvelopeMovement, EnvelopeMovementResolver
from .results import LedgerResults
from .scheduler import FundingRegistry, FundingScheduler, FundingTransfer
from .validation import ErrorReport

__all__ = [
    # Errors
    "LedgerError",
    "ConfigError",
    "LexError",
    "ParseError",
    "RecurrenceConfigError",
    "BalanceError",
    "CurrencyMismatchError",
    "BalanceAssertionFailedError",
    "EnvelopeAmbiguityError",
    "EnvelopeNotFoundError",
    "CsvImportError",
    # Configuration
    "LedgerConfig",
    "ParseContext",
    # Money
    "Amount",
    "Currency",
    "get_currency",
    # Accounts
    "Account",
    "AccountRegistry",
    # Journal model
    "Status",
    "Posting",
    "BalanceAssertion",
    "EnvelopeDirective",
    "Transaction",
    "Journal",
    # Envelopes
    "EnvelopeKind",
    "FundingPolicy",
    "EnvelopeDefinition",
    "EnvelopeState",
    "OnceRule",
    "MonthlyRule",
    "BimonthlyRule",
    "WeeklyRule",
    "BiweeklyRule",
    "AnnualRule",
    "EnvelopeRegistry",
    # Pipeline
    "Lexer",
    "Token",
    "TokenType",
    "tokenize",
    "Parser",
    "ParsedJournal",
    "parse",
    "balance_transaction",
    "check_assertions",
    "IFundingStrategy",
    "FundingRegistry",
    "FundingScheduler",
    "FundingTransfer",
    "EnvelopeMovement",
    "EnvelopeMovementResolver",
    "Ledger",
    "LedgerResults",
    "ErrorReport",
    "load",
]
