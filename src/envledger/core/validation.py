"""
Error reporting utilities for envledger.

Provides a structured report of everything that went wrong while loading a
journal, for the CLI and for CI checks of journal files.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from .errors import LedgerError


@dataclass
class ErrorReport:
    """
    Structured report of the errors collected while loading a journal.

    Errors make the journal invalid. Warnings (overdrawn envelopes and the
    like) are worth a look but don't.
    """

    errors: list[LedgerError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.errors = sorted(self.errors, key=lambda e: e.sort_key())

    def has_errors(self) -> bool:
        return bool(self.errors)

    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def is_valid(self) -> bool:
        """Check if loading succeeded (no errors, warnings are OK)."""
        return not self.has_errors()

    def counts(self) -> dict[str, int]:
        """Number of errors per error kind."""
        return dict(Counter(e.kind for e in self.errors))

    def get_exit_code(self) -> int:
        """
        Get appropriate CLI exit code.

        Returns:
            0: Valid (no errors)
            1: Errors present
            2: Warnings only
        """
        if self.has_errors():
            return 1
        elif self.has_warnings():
            return 2
        else:
            return 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "counts": self.counts(),
            "has_errors": self.has_errors(),
            "has_warnings": self.has_warnings(),
            "is_valid": self.is_valid(),
            "exit_code": self.get_exit_code(),
        }

    def __str__(self) -> str:
        """Human-readable string representation."""
        lines = []

        if self.is_valid():
            lines.append("✅ Journal is valid")
        else:
            lines.append(f"❌ {len(self.errors)} error(s) found")

        for error in self.errors:
            lines.append(f"  {error.kind}: {error}")

        for warning in self.warnings:
            lines.append(f"  warning: {warning}")

        return "\n".join(lines)
