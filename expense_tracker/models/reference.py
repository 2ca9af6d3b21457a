"""
Reference Data: currencies and category vocabularies.

These tables are static. They are NOT module-level lookups used directly
by the engines; the converter, validator and dashboard receive a table
instance, so tests can swap in alternates (e.g. an extra currency).
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from expense_tracker.models.ledger import TransactionType


class UnknownCurrencyError(LookupError):
    """A currency code outside the configured table was used."""

    def __init__(self, code: str):
        super().__init__(f"Unknown currency code: {code}")
        self.code = code


class Currency(BaseModel):
    """One currency with its rate relative to USD."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=3, max_length=3)
    symbol: str = Field(..., min_length=1)
    rate: Decimal = Field(
        ...,
        gt=0,
        description="Units of this currency per 1 USD"
    )

    @field_validator('code')
    @classmethod
    def upper_case_code(cls, v: str) -> str:
        return v.upper()


class CurrencyTable(BaseModel):
    """Immutable set of supported currencies."""
    model_config = ConfigDict(frozen=True)

    currencies: tuple[Currency, ...]

    @field_validator('currencies')
    @classmethod
    def unique_codes(cls, v: tuple[Currency, ...]) -> tuple[Currency, ...]:
        codes = [c.code for c in v]
        if len(codes) != len(set(codes)):
            raise ValueError("Currency codes must be unique")
        return v

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.upper() in self.codes

    @property
    def codes(self) -> list[str]:
        return [c.code for c in self.currencies]

    def get(self, code: str) -> Currency:
        """Look up a currency, raising UnknownCurrencyError if absent."""
        upper = code.upper()
        for currency in self.currencies:
            if currency.code == upper:
                return currency
        raise UnknownCurrencyError(code)

    def rate(self, code: str) -> Decimal:
        return self.get(code).rate

    def symbol(self, code: str) -> str:
        return self.get(code).symbol


class CategoryVocabulary(BaseModel):
    """Allowed categories per transaction type."""
    model_config = ConfigDict(frozen=True)

    expense: tuple[str, ...]
    income: tuple[str, ...]

    def for_type(self, type: TransactionType) -> tuple[str, ...]:
        if type == TransactionType.INCOME:
            return self.income
        return self.expense

    def allows(self, type: TransactionType, category: str) -> bool:
        return category in self.for_type(type)

    @property
    def all_categories(self) -> list[str]:
        """Every category, expense first, without duplicates."""
        seen: list[str] = []
        for category in self.expense + self.income:
            if category not in seen:
                seen.append(category)
        return seen


# Exchange rates relative to USD, fixed at build time
DEFAULT_CURRENCY_TABLE = CurrencyTable(
    currencies=(
        Currency(code="USD", symbol="$", rate=Decimal("1")),
        Currency(code="EUR", symbol="€", rate=Decimal("0.92")),
        Currency(code="GBP", symbol="£", rate=Decimal("0.79")),
        Currency(code="JPY", symbol="¥", rate=Decimal("150.45")),
        Currency(code="INR", symbol="₹", rate=Decimal("82.83")),
        Currency(code="CNY", symbol="¥", rate=Decimal("7.19")),
    )
)

DEFAULT_CATEGORIES = CategoryVocabulary(
    expense=(
        "Food",
        "Housing",
        "Transportation",
        "Entertainment",
        "Utilities",
        "Healthcare",
        "Education",
        "Shopping",
        "Travel",
        "Other Expenses",
    ),
    income=(
        "Salary",
        "Freelance",
        "Investments",
        "Gifts",
        "Other Income",
    ),
)
