"""Tests for ledger policy validation."""

import pytest
from datetime import date
from decimal import Decimal

from src.ledger import Ledger
from src.models.finance import (
    AccountType,
    Budget,
    CategoryAllocation,
    Target,
    TimeFrame,
    TransactionType,
)
from src.validation import TransactionValidator


@pytest.fixture
def validator():
    return TransactionValidator()


@pytest.fixture
def ledger():
    ledger = Ledger()
    ledger.add_transaction(
        amount=Decimal("100.00"),
        account_id="cash",
        date=date(2024, 3, 1),
        type=TransactionType.INCOME,
        currency_code="USD",
    )
    return ledger


def _issue_types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestExpensePolicy:
    """Balance and credit limit checks."""

    def test_expense_within_balance(self, validator, ledger):
        """Test spending up to the balance is allowed."""
        result = validator.validate_expense(ledger.state, "cash", Decimal("100.00"))
        assert result.is_valid

    def test_insufficient_balance(self, validator, ledger):
        """Test a non-credit account cannot go negative."""
        result = validator.validate_expense(ledger.state, "cash", Decimal("100.01"))
        assert result.has_errors
        assert _issue_types(result) == ["insufficient_balance"]

    def test_credit_limit(self, validator, ledger):
        """Test credit accounts may go negative down to the limit."""
        card = ledger.add_account("Visa", AccountType.CREDIT, "USD", limit=Decimal("500.00"))
        assert validator.validate_expense(ledger.state, card.id, Decimal("500.00")).is_valid

        result = validator.validate_expense(ledger.state, card.id, Decimal("500.01"))
        assert _issue_types(result) == ["credit_limit_exceeded"]

    def test_credit_limit_counts_existing_debt(self, validator, ledger):
        """Test the limit applies to the balance after the expense."""
        card = ledger.add_account("Visa", AccountType.CREDIT, "USD", limit=Decimal("500.00"))
        ledger.add_transaction(
            amount=Decimal("450.00"),
            account_id=card.id,
            date=date(2024, 3, 2),
            type=TransactionType.EXPENSE,
            currency_code="USD",
        )
        result = validator.validate_expense(ledger.state, card.id, Decimal("60.00"))
        assert result.has_errors

    def test_credit_without_limit(self, validator, ledger):
        """Test a credit account without a limit is unrestricted."""
        card = ledger.add_account("Store card", AccountType.CREDIT, "USD")
        assert validator.validate_expense(ledger.state, card.id, Decimal("9999.00")).is_valid

    def test_non_positive_amount(self, validator, ledger):
        """Test zero is rejected."""
        result = validator.validate_expense(ledger.state, "cash", Decimal("0.00"))
        assert "invalid_value" in _issue_types(result)

    def test_missing_account(self, validator, ledger):
        """Test an unknown account is an error."""
        result = validator.validate_expense(ledger.state, "gone", Decimal("1.00"))
        assert _issue_types(result) == ["missing"]


class TestIncomePolicy:
    """Income and target contribution checks."""

    @pytest.fixture
    def target(self, ledger):
        return ledger.add_target(Target(
            name="Holiday",
            target_amount=Decimal("300.00"),
            current_amount=Decimal("250.00"),
            deadline=date(2024, 8, 1),
            currency_code="USD",
        ))

    def test_plain_income(self, validator, ledger):
        """Test a normal income entry."""
        assert validator.validate_income(ledger.state, "cash", Decimal("50.00")).is_valid

    def test_income_to_credit_account_warns(self, validator, ledger):
        """Test income to a credit account is allowed with a warning."""
        card = ledger.add_account("Visa", AccountType.CREDIT, "USD")
        result = validator.validate_income(ledger.state, card.id, Decimal("50.00"))
        assert result.is_valid
        assert result.warnings

    def test_contribution_exceeds_income(self, validator, ledger, target):
        """Test the contribution can't be more than the income."""
        result = validator.validate_income(
            ledger.state, "cash", Decimal("20.00"),
            target_id=target.id, contribution=Decimal("30.00"),
        )
        assert "contribution_exceeds_income" in _issue_types(result)

    def test_contribution_exceeds_target(self, validator, ledger, target):
        """Test the contribution can't overshoot the goal."""
        result = validator.validate_income(
            ledger.state, "cash", Decimal("100.00"),
            target_id=target.id, contribution=Decimal("60.00"),
        )
        assert _issue_types(result) == ["target_exceeded"]

    def test_contribution_to_unknown_target(self, validator, ledger):
        """Test an unknown target is an error."""
        result = validator.validate_contribution(ledger.state, "gone", Decimal("5.00"))
        assert _issue_types(result) == ["missing"]


class TestAccountDeletionPolicy:
    """The last account can't be deleted."""

    def test_last_account(self, validator, ledger):
        """Test deleting the only account is blocked."""
        result = validator.validate_account_deletion(ledger.state, "cash")
        assert _issue_types(result) == ["last_account"]

    def test_with_another_account(self, validator, ledger):
        """Test deletion is fine when another account remains."""
        ledger.add_account("Bank", AccountType.DEBIT, "USD")
        assert validator.validate_account_deletion(ledger.state, "cash").is_valid

    def test_unknown_account(self, validator, ledger):
        """Test deleting a missing account is not a violation."""
        assert validator.validate_account_deletion(ledger.state, "gone").is_valid


class TestBudgetPolicy:
    """Budget allocation warnings."""

    def test_over_allocated(self, validator):
        """Test allocations above the total only warn."""
        budget = Budget(
            time_frame=TimeFrame.MONTHLY,
            total_amount=Decimal("100.00"),
            start_date=date(2024, 3, 1),
            currency_code="USD",
            category_allocations=[
                CategoryAllocation(category_id="groceries", amount=Decimal("80.00")),
                CategoryAllocation(category_id="dining", amount=Decimal("40.00")),
            ],
        )
        result = validator.validate_budget(budget)
        assert result.is_valid
        assert _issue_types(result) == ["over_allocated"]

    def test_empty_allocations(self, validator):
        """Test a budget without allocations warns."""
        budget = Budget(
            time_frame=TimeFrame.WEEKLY,
            total_amount=Decimal("100.00"),
            start_date=date(2024, 3, 1),
            currency_code="USD",
        )
        assert _issue_types(validator.validate_budget(budget)) == ["empty"]


class TestUserFriendlySummary:
    """Tests for the summary text."""

    def test_all_passed(self, validator, ledger):
        """Test the success message."""
        result = validator.validate_expense(ledger.state, "cash", Decimal("1.00"))
        assert "All checks passed" in validator.get_user_friendly_summary(result)

    def test_errors_listed_with_fix(self, validator, ledger):
        """Test errors and suggested fixes are listed."""
        result = validator.validate_expense(ledger.state, "cash", Decimal("500.00"))
        summary = validator.get_user_friendly_summary(result)
        assert "Insufficient balance in Cash" in summary
        assert "Choose another account" in summary
