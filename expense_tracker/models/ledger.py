"""
Core Data Models for Expense Tracker

These models define the schemas for all ledger data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Persisted records (Transaction, Budget) only enforce
structural rules. Vocabulary checks (is this category allowed for this
type? is this currency known?) belong to the validator and run at write
time, so a later vocabulary change never makes stored records unreadable.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class Frequency(str, Enum):
    """How often a recurring transaction repeats."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetPeriod(str, Enum):
    """Window a budget limit applies to."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DateFilter(str, Enum):
    """
    Date selector for the transaction list.

    All values are evaluated relative to "now" at filter time.
    WEEK is a rolling 7-day window, not an aligned calendar week.
    """
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"


# =============================================================================
# TRANSACTIONS
# =============================================================================

TITLE_MAX_LENGTH = 200
CATEGORY_MAX_LENGTH = 50
NOTES_MAX_LENGTH = 1000


class Transaction(BaseModel):
    """
    A single income or expense record.

    The amount is always a positive magnitude in `currency`;
    the sign comes from `type`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )

    title: str = Field(
        ...,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="Short description shown in lists"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive amount in the transaction's own currency"
    )
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=CATEGORY_MAX_LENGTH,
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the transaction happened"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO currency code of `amount`"
    )

    # Recurrence
    is_recurring: bool = False
    frequency: Optional[Frequency] = None

    notes: Optional[str] = Field(
        default=None,
        max_length=NOTES_MAX_LENGTH,
        description="Free-text notes"
    )

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('currency')
    @classmethod
    def upper_case_currency(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Transaction':
        """Recurring transactions need a frequency, one-off ones must not have one."""
        if self.is_recurring and self.frequency is None:
            raise ValueError("Recurring transactions need a frequency")
        if not self.is_recurring and self.frequency is not None:
            raise ValueError("Frequency is only allowed on recurring transactions")
        return self

    @property
    def category_key(self) -> str:
        """Key used for per-category totals, e.g. 'expense-Food'."""
        return f"{self.type.value}-{self.category}"


class TransactionInput(BaseModel):
    """
    Transaction data as submitted by a form.

    This is UNTRUSTED input: every field is optional so the validator
    can report all problems at once instead of failing on the first one.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    currency: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    notes: Optional[str] = None


class TransactionUpdate(BaseModel):
    """
    Partial update for an existing transaction.

    Only fields that were explicitly set replace the stored values.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    currency: Optional[str] = None
    is_recurring: Optional[bool] = None
    frequency: Optional[Frequency] = None
    notes: Optional[str] = None

    def changes(self) -> dict:
        """Fields the caller actually set."""
        return self.model_dump(exclude_unset=True)

    def merged_input(self, current: Transaction) -> TransactionInput:
        """Overlay this update on `current` to get the full payload to validate."""
        data = current.model_dump(
            include=set(TransactionInput.model_fields),
        )
        changes = self.changes()
        data.update(changes)
        # Turning recurrence off drops the stored frequency
        if changes.get("is_recurring") is False and "frequency" not in changes:
            data["frequency"] = None
        return TransactionInput(**data)


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    Spending limit for one expense category.

    At most one budget exists per category; that rule needs the store,
    so it lives in the validator rather than here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    category: str = Field(
        ...,
        min_length=1,
        max_length=CATEGORY_MAX_LENGTH,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Spending limit for the period"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: date = Field(default_factory=date.today)
    end_date: Optional[date] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Budget':
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        return self


class BudgetInput(BaseModel):
    """Budget data as submitted by a form (untrusted)."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category: Optional[str] = None
    amount: Optional[Decimal] = None
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class CategorySpending(BaseModel):
    """
    Spend in one category joined to its budget limit.

    `percentage` is the true ratio and may exceed 100.
    Use `bar_percentage` for progress bars.
    """

    category: str
    amount: Decimal = Decimal("0")
    budget_amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")

    @property
    def has_budget(self) -> bool:
        return self.budget_amount > 0

    @property
    def is_over_budget(self) -> bool:
        return self.has_budget and self.amount > self.budget_amount

    @property
    def remaining(self) -> Decimal:
        return self.budget_amount - self.amount

    @property
    def bar_percentage(self) -> Decimal:
        """Percentage clamped to [0, 100] for display."""
        return max(Decimal("0"), min(self.percentage, Decimal("100")))


class LedgerSummary(BaseModel):
    """
    Totals for a set of transactions, normalized to one display currency.

    Values are kept at full precision; round only when rendering.
    """

    display_currency: str
    balance: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = Field(default=0, ge=0)

    def total_for(self, type: TransactionType, category: str) -> Decimal:
        """Total for one category key, zero when absent."""
        return self.category_totals.get(f"{type.value}-{category}", Decimal("0"))

    def total_by_type(self, type: TransactionType) -> Decimal:
        return self.income if type == TransactionType.INCOME else self.expenses


class FilterCriteria(BaseModel):
    """Filters applied to the transaction list before aggregation."""
    model_config = ConfigDict(frozen=True)

    search_term: str = ""
    category_filter: str = "all"
    date_filter: DateFilter = DateFilter.ALL

    @property
    def is_empty(self) -> bool:
        return (
            not self.search_term.strip()
            and self.category_filter == "all"
            and self.date_filter == DateFilter.ALL
        )


class CategoryShare(BaseModel):
    """One row of a category breakdown: amount and share of the type total."""

    type: TransactionType
    category: str
    amount: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")


class TrendPoint(BaseModel):
    """Income and expense totals for one calendar month ('YYYY-MM')."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses
