"""
Result Models

Records produced by the engine rather than entered by the user:
bill scan results, policy validation results and the read model
consumed by the UI (totals, breakdowns, progress).
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


AMOUNT_PATTERN = r"^[0-9]+[.,][0-9]{2}$"


# =============================================================================
# BILL SCANNING
# =============================================================================

class ExtractionResult(BaseModel):
    """
    Outcome of scanning a bill.

    amount is None when no candidate validated. That is a normal
    outcome ("could not detect amount"), not a failure.
    """

    amount: Optional[str] = Field(
        default=None,
        pattern=AMOUNT_PATTERN,
        description="Two-decimal amount string, separator as printed"
    )
    raw_text: str = Field(
        default="",
        description="Text returned by the recognition engine"
    )
    template_name: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.amount is not None

    @property
    def value(self) -> Optional[Decimal]:
        """The amount as a number. Either separator is read as the decimal point."""
        if self.amount is None:
            return None
        return Decimal(self.amount.replace(",", "."))


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'insufficient_balance', 'credit_limit_exceeded')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of checking a requested mutation against ledger policy.

    Errors block the mutation; warnings are shown but do not block.
    """

    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    operation: str = Field(
        ...,
        description="Operation that was validated"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# READ MODEL
# =============================================================================

class CategoryTotals(BaseModel):
    """Income and expense totals for one category in one currency."""

    category_id: str
    name: str
    color: str
    expenses: Decimal = Decimal("0.00")
    income: Decimal = Decimal("0.00")


class DailyTotals(BaseModel):
    """One cell of the calendar view."""

    day: dt.date
    income: Decimal = Decimal("0.00")
    expenses: Decimal = Decimal("0.00")
    transaction_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class AccountSummary(BaseModel):
    """Totals across all accounts."""

    total_balance: Decimal
    total_credit_limit: Decimal
    available_credit: Decimal


class CategorySpending(BaseModel):
    """Spend against one budget allocation."""

    category_id: str
    name: str
    allocated: Decimal
    spent: Decimal

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.allocated


class BudgetProgress(BaseModel):
    """
    How a budget stands against actual spending.

    percentage is not clamped; a budget overspent by half reports 150.
    """

    budget_id: str
    currency_code: str
    categories: list[CategorySpending] = Field(default_factory=list)
    total_spent: Decimal
    total_budget: Decimal
    percentage: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.total_budget - self.total_spent

    @property
    def is_over_budget(self) -> bool:
        return self.total_spent > self.total_budget

    @property
    def over_budget_categories(self) -> list[CategorySpending]:
        return [c for c in self.categories if c.is_over_budget]

    @property
    def display_percentage(self) -> Decimal:
        """Percentage clamped for drawing a progress bar."""
        return min(self.percentage, Decimal("100"))


class TargetProgress(BaseModel):
    """How far a savings target has come."""

    target_id: str
    current_amount: Decimal
    target_amount: Decimal
    percentage: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.target_amount - self.current_amount

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount
