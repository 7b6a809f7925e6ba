"""
Currency and exact decimal amounts for envledger.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal


class Currency:
    """
    Currency identified by the symbol written in the journal.

    Values are kept exact; only scheduled funding is rounded, with banker's
    rounding, through quantize().

    Attributes:
        symbol: Symbol as written next to a number (e.g. '$', 'USD', 'BTC').
            The empty string stands for "no symbol".
    """

    def __init__(self, symbol: str):
        self.symbol = symbol

    def quantize(self, amount: Decimal, places: int) -> Decimal:
        """Round amount half-to-even to a number of decimal places."""
        quantum = Decimal("1").scaleb(-places)  # e.g., 0.01 for 2 dp, 1 for 0 dp
        return amount.quantize(quantum, rounding=ROUND_HALF_EVEN)

    def is_alphabetic(self) -> bool:
        """Alphabetic symbols ('USD') are written after the number."""
        return bool(self.symbol) and self.symbol.isalpha()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Currency):
            return False
        return self.symbol == other.symbol

    def __hash__(self) -> int:
        return hash(self.symbol)

    def __str__(self) -> str:
        return self.symbol

    def __repr__(self) -> str:
        return f"Currency('{self.symbol}')"


class Amount:
    """
    Exact monetary amount paired with a currency.

    Amounts are only summable within one currency; mixing symbols raises
    ValueError so callers decide how to bridge them (cost or price).

    Attributes:
        value: Decimal amount value
        currency: Currency object
    """

    __slots__ = ("value", "currency")

    def __init__(self, value: Decimal | str | int, currency: Currency | str):
        if isinstance(currency, str):
            currency = get_currency(currency)

        if isinstance(value, (int, str)):
            value = Decimal(value)

        self.value = value
        self.currency = currency

    @classmethod
    def zero(cls, currency: Currency | str) -> Amount:
        return cls(Decimal("0"), currency)

    @property
    def symbol(self) -> str:
        return self.currency.symbol

    def is_zero(self) -> bool:
        return self.value == 0

    def _check_currency(self, other: Amount, op: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {op} amounts in different currencies: "
                f"{self.currency.symbol!r} and {other.currency.symbol!r}"
            )

    def __add__(self, other: Amount) -> Amount:
        self._check_currency(other, "add")
        return Amount(self.value + other.value, self.currency)

    def __sub__(self, other: Amount) -> Amount:
        self._check_currency(other, "subtract")
        return Amount(self.value - other.value, self.currency)

    def __mul__(self, factor: Decimal | int) -> Amount:
        return Amount(self.value * Decimal(factor), self.currency)

    __rmul__ = __mul__

    def __neg__(self) -> Amount:
        return Amount(-self.value, self.currency)

    def __pos__(self) -> Amount:
        return Amount(+self.value, self.currency)

    def __abs__(self) -> Amount:
        return Amount(abs(self.value), self.currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Amount):
            return False
        return self.value == other.value and self.currency == other.currency

    def __hash__(self) -> int:
        return hash((self.value, self.currency.symbol))

    def __lt__(self, other: Amount) -> bool:
        self._check_currency(other, "compare")
        return self.value < other.value

    def __le__(self, other: Amount) -> bool:
        return self == other or self < other

    def __gt__(self, other: Amount) -> bool:
        return not self <= other

    def __ge__(self, other: Amount) -> bool:
        return not self < other

    def __str__(self) -> str:
        number = format(self.value, "f")
        if not self.currency.symbol:
            return number
        if self.currency.is_alphabetic():
            return f"{number}{self.currency.symbol}"
        return f"{self.currency.symbol}{number}"

    def __repr__(self) -> str:
        return f"Amount({format(self.value, 'f')}, {self.currency.symbol!r})"


# Currency registry, populated lazily as symbols are seen
CURRENCIES: dict[str, Currency] = {}


def get_currency(symbol: str) -> Currency:
    """Get the (shared) currency for a symbol."""
    if symbol not in CURRENCIES:
        CURRENCIES[symbol] = Currency(symbol)
    return CURRENCIES[symbol]


def create_amount(value: Decimal | str | int, symbol: str) -> Amount:
    """Create an Amount with the specified currency symbol."""
    return Amount(value, get_currency(symbol))
