"""
Declared accounts and their registry for envledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ParseError


@dataclass(frozen=True)
class Account:
    """
    Declared account.

    Attributes:
        path: Colon-delimited hierarchical path, e.g. 'assets:checking'
        line: Line of the `account` declaration
        column: Column of the account path in the declaration
    """

    path: str
    line: int | None = field(default=None, compare=False)
    column: int | None = field(default=None, compare=False)

    def __str__(self) -> str:
        return self.path


class AccountRegistry:
    """
    Registry of declared accounts, keyed by full path.
    """

    def __init__(self):
        self._accounts: dict[str, Account] = {}

    def register_account(self, account: Account) -> None:
        """
        Register an account.

        Raises:
            ParseError: If the path was already declared
        """
        if account.path in self._accounts:
            first = self._accounts[account.path]
            raise ParseError(
                f"account {account.path!r} is already declared on line {first.line}",
                account.line,
                account.column,
            )
        self._accounts[account.path] = account

    def has_account(self, path: str) -> bool:
        """Check if account exists."""
        return path in self._accounts

    def paths(self) -> list[str]:
        return list(self._accounts)

    def __iter__(self):
        return iter(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)
