"""
Configuration and context classes threaded through the journal pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from .currency import Amount, Currency, get_currency
from .errors import ConfigError
from .kinds import Status

PENDING_GLYPHS = ("?",)
CLEARED_GLYPHS = ("~",)
RECONCILED_GLYPHS = ("*",)


@dataclass(frozen=True)
class LedgerConfig:
    """
    User-tunable settings for reading a journal.

    Attributes:
        pending_glyphs: Characters accepted as the Pending status
        cleared_glyphs: Characters accepted as the Cleared status. The first
            one is used when writing transactions back out.
        reconciled_glyphs: Characters accepted as the Reconciled status
        decimal_symbol: '.' or ','; the other one is a thousands separator
        tab_width: Columns a tab counts for when measuring indentation
        funding_precision: Decimal places used for scheduled envelope transfers
    """

    pending_glyphs: tuple[str, ...] = PENDING_GLYPHS
    cleared_glyphs: tuple[str, ...] = CLEARED_GLYPHS
    reconciled_glyphs: tuple[str, ...] = RECONCILED_GLYPHS
    decimal_symbol: str = "."
    tab_width: int = 4
    funding_precision: int = 2

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ConfigError if the settings are inconsistent."""
        glyphs = [*self.pending_glyphs, *self.cleared_glyphs, *self.reconciled_glyphs]
        for glyph in glyphs:
            if len(glyph) != 1 or glyph.isalnum() or glyph.isspace():
                raise ConfigError(f"status glyph must be one symbol character, got {glyph!r}")
        if len(set(glyphs)) != len(glyphs):
            raise ConfigError(f"status glyphs must be distinct, got {glyphs}")
        if not (self.pending_glyphs and self.cleared_glyphs and self.reconciled_glyphs):
            raise ConfigError("every status needs at least one glyph")
        if self.decimal_symbol not in (".", ","):
            raise ConfigError(
                f"decimal_symbol must be '.' or ',', got {self.decimal_symbol!r}"
            )
        if self.tab_width < 1:
            raise ConfigError(f"tab_width must be positive, got {self.tab_width}")
        if self.funding_precision < 0:
            raise ConfigError(
                f"funding_precision can't be negative, got {self.funding_precision}"
            )

    @property
    def thousands_separator(self) -> str:
        return "," if self.decimal_symbol == "." else "."

    def status_glyphs(self) -> dict[str, Status]:
        """Map every recognized glyph to its status."""
        mapping = {g: Status.PENDING for g in self.pending_glyphs}
        mapping.update({g: Status.CLEARED for g in self.cleared_glyphs})
        mapping.update({g: Status.RECONCILED for g in self.reconciled_glyphs})
        return mapping

    def glyph_for(self, status: Status) -> str:
        """Canonical glyph used when serializing a status."""
        if status is Status.PENDING:
            return self.pending_glyphs[0]
        if status is Status.CLEARED:
            return self.cleared_glyphs[0]
        return self.reconciled_glyphs[0]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LedgerConfig:
        """Build a config from plain data (e.g. a decoded JSON/TOML table)."""
        known = {f for f in cls.__dataclass_fields__}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")
        kwargs = dict(data)
        for key in ("pending_glyphs", "cleared_glyphs", "reconciled_glyphs"):
            if key in kwargs:
                value = kwargs[key]
                kwargs[key] = (value,) if isinstance(value, str) else tuple(value)
        return cls(**kwargs)


@dataclass(frozen=True)
class ParseContext:
    """
    Per-load context passed explicitly through lexing, parsing and balancing.

    The default currency is set at most once per load, by a `currency`
    directive, and is read-only afterwards.

    Attributes:
        config: Ledger configuration
        default_symbol: Symbol of the default currency ('' when none declared)
    """

    config: LedgerConfig = field(default_factory=LedgerConfig)
    default_symbol: str = ""

    @property
    def default_currency(self) -> Currency:
        return get_currency(self.default_symbol)

    def resolve(self, amount: Amount) -> Amount:
        """Give a symbol-less amount the default currency."""
        if amount.symbol or not self.default_symbol:
            return amount
        return Amount(amount.value, self.default_currency)

    def with_default(self, symbol: str) -> ParseContext:
        return replace(self, default_symbol=symbol)
