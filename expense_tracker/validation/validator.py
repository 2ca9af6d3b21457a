"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Positive amounts
- Category belongs to the vocabulary for the transaction type
- Currency belongs to the currency table

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Unusually large amounts
- Date range consistency for budgets

Stage 2 only runs if stage 1 passes. Warnings never block a write;
errors always do, and nothing is written until validation passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show them inline.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import ValidationError as ModelValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.ledger import (
    NOTES_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Budget,
    BudgetInput,
    Transaction,
    TransactionInput,
    TransactionType,
)
from expense_tracker.models.reference import (
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY_TABLE,
    CategoryVocabulary,
    CurrencyTable,
)
from expense_tracker.models.validation import ValidationIssue, ValidationResult
from expense_tracker.services.storage import BudgetStorageInterface


class ValidationError(ValueError):
    """Submitted data failed validation; nothing was written."""

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        errors = result.errors
        if message is None:
            message = errors[0].message if errors else "Validation failed"
        super().__init__(message)
        self.result = result

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class DuplicateBudgetError(ValidationError):
    """A budget already exists for this category."""

    def __init__(self, category: str, existing: Optional[Budget] = None):
        result = ValidationResult(
            entity_type="budget",
            schema_valid=True,
            semantic_valid=False,
            is_valid=False,
            issues=[ValidationIssue(
                field="category",
                issue_type="duplicate",
                message=f"Budget for category {category} already exists",
                severity="error",
                suggested_fix="Edit the existing budget instead",
            )],
        )
        super().__init__(result)
        self.category = category
        self.existing = existing


def _is_valid(issues: list[ValidationIssue]) -> bool:
    return not any(issue.severity == "error" for issue in issues)


def _too_long(field: str, label: str, value: Optional[str], limit: int) -> list[ValidationIssue]:
    if value is None or len(value) <= limit:
        return []
    return [ValidationIssue(
        field=field,
        issue_type="invalid_value",
        message=f"{label} must be at most {limit} characters",
        severity="error",
        suggested_fix=f"Shorten it by {len(value) - limit} characters",
    )]


def _model_error(entity_type: str, exc: ModelValidationError) -> ValidationError:
    """Report a model construction failure as a form-level ValidationError."""
    issues = [
        ValidationIssue(
            field=".".join(str(part) for part in error["loc"]) or entity_type,
            issue_type="invalid_value",
            message=error["msg"],
            severity="error",
        )
        for error in exc.errors()
    ]
    return ValidationError(_build_result(entity_type, False, False, issues))


def _build_result(
    entity_type: str,
    schema_valid: bool,
    semantic_valid: bool,
    issues: list[ValidationIssue],
) -> ValidationResult:
    return ValidationResult(
        entity_type=entity_type,
        schema_valid=schema_valid,
        semantic_valid=semantic_valid,
        is_valid=schema_valid and semantic_valid,
        issues=issues,
        warnings=[i.message for i in issues if i.severity == "warning"],
    )


class TransactionValidator:
    """
    Validates transaction form data and builds Transaction records.

    The category vocabulary and currency table are injected so tests
    can validate against alternate tables.
    """

    def __init__(
        self,
        vocabulary: CategoryVocabulary = DEFAULT_CATEGORIES,
        currency_table: CurrencyTable = DEFAULT_CURRENCY_TABLE,
        settings: Optional[AppSettings] = None,
    ):
        self._vocabulary = vocabulary
        self._currencies = currency_table
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        data: TransactionInput,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not data.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
            ))
        issues.extend(_too_long("title", "Title", data.title, TITLE_MAX_LENGTH))

        if data.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif data.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a positive number",
                severity="error",
            ))

        if data.type is None:
            issues.append(ValidationIssue(
                field="type",
                issue_type="missing",
                message="Please select a transaction type",
                severity="error",
            ))

        if not data.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please select a category",
                severity="error",
            ))
        elif data.type is not None and not self._vocabulary.allows(data.type, data.category):
            allowed = ", ".join(self._vocabulary.for_type(data.type))
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"'{data.category}' is not a valid {data.type.value} category",
                severity="error",
                suggested_fix=f"Choose one of: {allowed}",
            ))

        if data.currency and data.currency not in self._currencies:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="invalid_value",
                message=f"Unsupported currency: {data.currency}",
                severity="error",
                suggested_fix=f"Choose one of: {', '.join(self._currencies.codes)}",
            ))

        if data.is_recurring and data.frequency is None:
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="missing",
                message="Recurring transactions need a frequency",
                severity="error",
            ))
        elif not data.is_recurring and data.frequency is not None:
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="inconsistent",
                message="Frequency is only allowed on recurring transactions",
                severity="error",
            ))

        issues.extend(_too_long("notes", "Notes", data.notes, NOTES_MAX_LENGTH))

        return _is_valid(issues), issues

    def _validate_semantic(
        self,
        data: TransactionInput,
        now: datetime,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        tolerance = timedelta(days=self._settings.future_date_tolerance_days)
        if data.date and data.date.replace(tzinfo=None) > now + tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({data.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if data.amount and data.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({data.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return _is_valid(issues), issues

    def validate(
        self,
        data: TransactionInput,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """Run full two-stage validation pipeline."""
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(data)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                data, now or datetime.now()
            )
            all_issues.extend(semantic_issues)

        return _build_result("transaction", schema_valid, semantic_valid, all_issues)

    def build(
        self,
        data: TransactionInput,
        transaction_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """
        Validate and build a Transaction.

        Raises:
            ValidationError: If any error-level issue was found
        """
        result = self.validate(data)
        if not result.is_valid:
            raise ValidationError(result)

        fields = dict(
            title=data.title,
            amount=data.amount,
            type=data.type,
            category=data.category,
            date=data.date or datetime.now(),
            currency=(data.currency or self._settings.default_display_currency).upper(),
            is_recurring=data.is_recurring,
            frequency=data.frequency,
            notes=data.notes or None,
        )
        if transaction_id is not None:
            fields["id"] = transaction_id
        if created_at is not None:
            fields["created_at"] = created_at
        try:
            return Transaction(**fields)
        except ModelValidationError as e:
            raise _model_error("transaction", e) from e

    def categories_for(self, type: TransactionType) -> tuple[str, ...]:
        return self._vocabulary.for_type(type)


class BudgetValidator:
    """
    Validates budget form data.

    Budgets can only be set on expense categories, and only one budget
    may exist per category. The uniqueness check needs storage.
    """

    def __init__(
        self,
        budget_storage: Optional[BudgetStorageInterface] = None,
        vocabulary: CategoryVocabulary = DEFAULT_CATEGORIES,
    ):
        self._storage = budget_storage
        self._vocabulary = vocabulary

    def _validate_schema(self, data: BudgetInput) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if not data.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please select a category",
                severity="error",
            ))
        elif not self._vocabulary.allows(TransactionType.EXPENSE, data.category):
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"'{data.category}' is not an expense category",
                severity="error",
            ))

        if data.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif data.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a positive number",
                severity="error",
            ))

        if data.period is None:
            issues.append(ValidationIssue(
                field="period",
                issue_type="missing",
                message="Please select a budget period",
                severity="error",
            ))

        if data.start_date is None:
            issues.append(ValidationIssue(
                field="start_date",
                issue_type="missing",
                message="Please select a start date",
                severity="error",
            ))

        return _is_valid(issues), issues

    def _validate_semantic(self, data: BudgetInput) -> tuple[bool, list[ValidationIssue]]:
        issues = []

        if data.end_date and data.start_date and data.end_date < data.start_date:
            issues.append(ValidationIssue(
                field="end_date",
                issue_type="inconsistent",
                message="End date cannot be before start date",
                severity="error",
            ))

        return _is_valid(issues), issues

    def validate(self, data: BudgetInput) -> ValidationResult:
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(data)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(data)
            all_issues.extend(semantic_issues)

        return _build_result("budget", schema_valid, semantic_valid, all_issues)

    async def ensure_unique(
        self,
        category: str,
        budget_id: Optional[UUID] = None,
    ) -> None:
        """
        Reject a second budget for the same category.

        `budget_id` is the budget being edited, which may keep its own
        category. Storage errors propagate: an unchecked duplicate would
        break the one-budget-per-category rule.

        Raises:
            DuplicateBudgetError: If another budget holds the category
        """
        if self._storage is None:
            return

        existing = await self._storage.get_budget_by_category(category)
        if existing is not None and existing.id != budget_id:
            raise DuplicateBudgetError(category, existing)

    def build(
        self,
        data: BudgetInput,
        budget_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> Budget:
        """
        Validate and build a Budget (uniqueness is checked separately).

        Raises:
            ValidationError: If any error-level issue was found
        """
        result = self.validate(data)
        if not result.is_valid:
            raise ValidationError(result)

        fields = dict(
            category=data.category,
            amount=data.amount,
            period=data.period,
            start_date=data.start_date,
            end_date=data.end_date,
        )
        if budget_id is not None:
            fields["id"] = budget_id
        if created_at is not None:
            fields["created_at"] = created_at
        try:
            return Budget(**fields)
        except ModelValidationError as e:
            raise _model_error("budget", e) from e


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Summarize validation results for display next to a form.
    """
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []

    if result.has_errors:
        lines.append("Please fix the following:")
        for issue in result.errors:
            lines.append(f"   • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"     {issue.suggested_fix}")

    if result.warnings:
        if lines:
            lines.append("")
        lines.append("Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    return "\n".join(lines)
