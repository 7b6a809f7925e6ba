"""
Registry for indexing and validating envelope definitions.

Provides lookup by owning account, by name and by linked category account
for the ledger engine, the funding scheduler and the movement resolver.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from .accounts import AccountRegistry
from .envelopes import EnvelopeDefinition
from .errors import LedgerError, ParseError, RecurrenceConfigError


class EnvelopeRegistry:
    """
    Validated envelope definitions with precomputed lookups.

    Definitions that fail validation are left out and their errors kept in
    ``errors``, so one bad envelope doesn't hide the others.

    **Validation:**
    - Envelope names are unique per account
    - The owning account and every `for` account are declared
    - The recurrence rule resolves to concrete due dates

    **Example Usage:**
        ```python
        registry = EnvelopeRegistry(parsed.envelopes, parsed.accounts)
        registry.get("assets:checking", "food")
        registry.triggers("expenses:groceries")
        ```
    """

    def __init__(self, definitions: Iterable[EnvelopeDefinition], accounts: AccountRegistry):
        """
        Initialize registry with parsed definitions.

        Args:
            definitions: Envelope definitions in declaration order
            accounts: Declared accounts
        """
        self._accounts = accounts
        self._definitions: dict[tuple[str, str], EnvelopeDefinition] = {}
        self._by_account: dict[str, list[EnvelopeDefinition]] = {}
        self._triggers: dict[str, list[EnvelopeDefinition]] = {}
        self.errors: list[LedgerError] = []

        for definition in definitions:
            try:
                self._validate(definition)
            except LedgerError as e:
                self.errors.append(e)
                continue
            self._add(definition)

    def _validate(self, definition: EnvelopeDefinition) -> None:
        if definition.key in self._definitions:
            raise ParseError(
                f"duplicate envelope {definition.name!r} under account {definition.account!r}",
                definition.line,
                definition.column,
            )
        for path in (definition.account, *definition.for_accounts):
            if not self._accounts.has_account(path):
                raise ParseError(
                    f"envelope {definition.name!r} refers to undeclared account {path!r}",
                    definition.line,
                    definition.column,
                )
        try:
            definition.rule.validate()
        except RecurrenceConfigError as e:
            if e.line is not None:
                raise
            raise RecurrenceConfigError(e.message, definition.line, definition.column) from None

    def _add(self, definition: EnvelopeDefinition) -> None:
        self._definitions[definition.key] = definition
        self._by_account.setdefault(definition.account, []).append(definition)
        for category in definition.for_accounts:
            bucket = self._triggers.setdefault(category, [])
            if definition not in bucket:
                bucket.append(definition)

    def get(self, account: str, name: str) -> Optional[EnvelopeDefinition]:
        """Get an envelope by owning account and name."""
        return self._definitions.get((account, name))

    def by_account(self, account: str) -> list[EnvelopeDefinition]:
        """Envelopes owned by an account, in declaration order."""
        return list(self._by_account.get(account, ()))

    def by_name(self, name: str) -> list[EnvelopeDefinition]:
        """Envelopes with a given name across all accounts."""
        return [d for d in self._definitions.values() if d.name == name]

    def triggers(self, category: str) -> list[EnvelopeDefinition]:
        """Envelopes that list `category` in their `for` accounts."""
        return list(self._triggers.get(category, ()))

    def is_trigger(self, category: str) -> bool:
        return category in self._triggers

    def __iter__(self) -> Iterator[EnvelopeDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, key: object) -> bool:
        return key in self._definitions
