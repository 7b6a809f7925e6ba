"""
Transaction balancing and balance assertions.

The balancer works on one transaction at a time: it gives every symbol-less
amount the default currency, infers the single missing posting amount if
there is one and checks that every currency group sums to exactly zero.
Cost (`=`) and price (`@`) annotations make a foreign amount count in the
cost/price currency instead.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional

from .context import ParseContext
from .currency import Amount
from .errors import BalanceAssertionFailedError, BalanceError, CurrencyMismatchError
from .journal import BalanceAssertion, Journal, Posting, Transaction


def _label(symbol: str) -> str:
    return repr(symbol) if symbol else "the unnamed currency"


def _resolve_amount(amount: Optional[Amount], ctx: ParseContext) -> Optional[Amount]:
    return None if amount is None else ctx.resolve(amount)


def resolve_currencies(tx: Transaction, ctx: ParseContext) -> Transaction:
    """Return the transaction with the default currency filled in everywhere."""
    postings = []
    for posting in tx.postings:
        assertion = posting.assertion
        if assertion is not None:
            assertion = BalanceAssertion(ctx.resolve(assertion.amount), assertion.total)
        postings.append(
            replace(
                posting,
                amount=_resolve_amount(posting.amount, ctx),
                cost=_resolve_amount(posting.cost, ctx),
                price=_resolve_amount(posting.price, ctx),
                assertion=assertion,
            )
        )
    envelope = tx.envelope
    if envelope is not None and envelope.amount is not None:
        envelope = replace(envelope, amount=ctx.resolve(envelope.amount))
    return replace(tx, postings=tuple(postings), envelope=envelope)


def balance_transaction(tx: Transaction, ctx: ParseContext | None = None) -> Transaction:
    """
    Resolve every posting amount of a transaction.

    Args:
        tx: Parsed transaction
        ctx: Parse context carrying the default currency

    Returns:
        A new Transaction whose postings all carry an amount and whose
        weights sum to zero per currency

    Raises:
        BalanceError: If more than one amount is missing, the missing amount
            can't be attributed to one currency, or a currency doesn't sum
            to zero
        CurrencyMismatchError: If several currencies are left unbalanced and
            no cost or price bridges them
    """
    ctx = ctx or ParseContext()
    tx = resolve_currencies(tx, ctx)
    missing = tx.missing_postings()
    if len(missing) > 1:
        raise BalanceError(
            f"{len(missing)} postings have no amount; at most one can be inferred",
            tx.line,
            None,
        )

    residuals = {s: v for s, v in tx.get_currency_totals().items() if v != 0}

    if missing:
        target = missing[0]
        if len(residuals) > 1:
            listed = ", ".join(f"{v} in {_label(s)}" for s, v in sorted(residuals.items()))
            raise BalanceError(
                f"can't infer the amount for {target.account}: "
                f"several currencies are unbalanced ({listed})",
                target.line,
                target.column,
            )
        if residuals:
            symbol, value = next(iter(residuals.items()))
            inferred = Amount(-value, symbol)
        else:
            inferred = Amount.zero(ctx.default_currency)
        postings = [replace(p, amount=inferred) if p is target else p for p in tx.postings]
        return tx.with_postings(postings)

    if len(residuals) == 1:
        symbol, value = next(iter(residuals.items()))
        raise BalanceError(
            f"transaction doesn't balance: {_label(symbol)} is off by {value}",
            tx.line,
            None,
        )
    if residuals:
        listed = ", ".join(f"{v} in {_label(s)}" for s, v in sorted(residuals.items()))
        bridged = any(p.cost is not None or p.price is not None for p in tx.postings)
        if bridged:
            raise BalanceError(f"transaction doesn't balance: {listed}", tx.line, None)
        raise CurrencyMismatchError(
            f"postings in several currencies with no cost or price to convert them: {listed}",
            tx.line,
            None,
        )
    return tx


def check_assertion(posting: Posting, journal: Journal) -> Optional[BalanceAssertionFailedError]:
    """Compare a posting's balance assertion with the journal's running balance."""
    assertion = posting.assertion
    if assertion is None:
        return None
    expected = assertion.amount.value
    if assertion.total:
        actual = journal.total(posting.account)
        symbol = None
    else:
        symbol = assertion.amount.symbol
        actual = journal.balance(posting.account, symbol)
    if actual == expected:
        return None
    return BalanceAssertionFailedError(
        posting.account, expected, actual, symbol, posting.line, posting.column
    )


def check_assertions(tx: Transaction, journal: Journal) -> list[BalanceAssertionFailedError]:
    """Check every balance assertion of a transaction that was just posted."""
    failures = []
    for posting in tx.postings:
        failure = check_assertion(posting, journal)
        if failure is not None:
            failures.append(failure)
    return failures


def zero_sum(tx: Transaction) -> bool:
    """True when every currency group of a resolved transaction sums to zero."""
    return tx.is_resolved() and all(v == Decimal("0") for v in tx.get_currency_totals().values())
