"""
Currency normalization.

Every amount is converted through USD:
    converted = amount / rate[from] * rate[to]

Rates come from an injected CurrencyTable. Conversion runs on Decimal at
full context precision; rounding only happens in format_money().
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from expense_tracker.models.reference import (
    DEFAULT_CURRENCY_TABLE,
    CurrencyTable,
    UnknownCurrencyError,
)


CENTS = Decimal("0.01")


def quantize_money(amount: Decimal) -> Decimal:
    """Round to two decimal places, half up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class CurrencyConverter:
    """
    Converts amounts between currencies of one table.

    Unknown codes raise UnknownCurrencyError. That is a boundary
    violation, not a recoverable condition: the validator only lets
    table codes into storage.
    """

    def __init__(self, table: CurrencyTable = DEFAULT_CURRENCY_TABLE):
        self._table = table

    @property
    def table(self) -> CurrencyTable:
        return self._table

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Decimal:
        """Convert `amount` from one currency to another."""
        from_rate = self._table.rate(from_code)
        to_rate = self._table.rate(to_code)
        if from_code.upper() == to_code.upper():
            return Decimal(amount)
        return Decimal(amount) / from_rate * to_rate

    def format_money(
        self,
        amount: Decimal,
        code: str,
        symbol: Optional[str] = None,
    ) -> str:
        """Render e.g. '€36.80'. Always exactly two decimals."""
        if symbol is None:
            symbol = self._table.symbol(code)
        rounded = quantize_money(Decimal(amount))
        sign = "-" if rounded < 0 else ""
        return f"{sign}{symbol}{abs(rounded):,.2f}"

    def supports(self, code: str) -> bool:
        return code in self._table


__all__ = [
    "CENTS",
    "CurrencyConverter",
    "UnknownCurrencyError",
    "quantize_money",
]
