"""
Tests for Expense Tracker

Test strategy:
1. Unit tests for individual components (models, ledger, validators)
2. Integration tests for flows (with mocked external services)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from src.models.finance import (
    Account,
    AccountType,
    Budget,
    Category,
    CategoryAllocation,
    LedgerState,
    SCHEMA_VERSION,
    Target,
    TimeFrame,
    Transaction,
    TransactionType,
    UnknownCurrencyError,
    default_categories,
    get_currency,
)
from src.models.results import (
    ExtractionResult,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        transaction = Transaction(
            amount=Decimal("45.90"),
            account_id="cash",
            category_id="groceries",
            date=date(2024, 3, 1),
            type=TransactionType.EXPENSE,
            currency_code="EUR",
        )
        assert transaction.amount == Decimal("45.90")
        assert transaction.id

    def test_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected; direction comes from type."""
        with pytest.raises(ValidationError):
            Transaction(
                amount=Decimal("-5.00"),
                account_id="cash",
                date=date(2024, 3, 1),
                type=TransactionType.EXPENSE,
                currency_code="USD",
            )

    def test_transaction_is_immutable(self):
        """Test that a recorded transaction cannot be edited in place."""
        transaction = Transaction(
            amount=Decimal("10.00"),
            account_id="cash",
            date=date(2024, 3, 1),
            type=TransactionType.INCOME,
            currency_code="USD",
        )
        with pytest.raises(ValidationError):
            transaction.amount = Decimal("20.00")

    def test_signed_amount(self):
        """Test expenses are negative and income positive."""
        common = dict(amount=Decimal("12.50"), account_id="cash", date=date(2024, 3, 1), currency_code="USD")
        assert Transaction(type=TransactionType.EXPENSE, **common).signed_amount == Decimal("-12.50")
        assert Transaction(type=TransactionType.INCOME, **common).signed_amount == Decimal("12.50")

    def test_credit_account_available(self):
        """Test available credit is limit plus (negative) balance."""
        account = Account(
            name="Visa",
            type=AccountType.CREDIT,
            balance=Decimal("-200.00"),
            limit=Decimal("1000.00"),
            currency_code="USD",
        )
        assert account.is_credit
        assert account.available == Decimal("800.00")

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from account names."""
        account = Account(name="  Wallet  ", type=AccountType.CASH, currency_code="USD")
        assert account.name == "Wallet"

    def test_account_type_icons(self):
        """Test every account type has an icon."""
        assert AccountType.CREDIT.icon == "credit-card"
        assert AccountType.OTHER.icon == "wallet"

    def test_target_current_cannot_exceed_target(self):
        """Test target validation."""
        with pytest.raises(ValueError, match="Current amount cannot exceed target amount"):
            Target(
                name="Bike",
                target_amount=Decimal("500.00"),
                current_amount=Decimal("600.00"),
                deadline=date(2024, 12, 31),
                currency_code="EUR",
            )

    def test_category_color_must_be_hex(self):
        """Test category colours are validated."""
        with pytest.raises(ValidationError):
            Category(name="Bad", color="red")


class TestBudgetModel:
    """Tests for budget periods and allocations."""

    def _budget(self, time_frame: TimeFrame, start: date) -> Budget:
        return Budget(
            time_frame=time_frame,
            total_amount=Decimal("500.00"),
            start_date=start,
            currency_code="USD",
        )

    def test_weekly_period(self):
        """Test weekly budgets cover seven days."""
        assert self._budget(TimeFrame.WEEKLY, date(2024, 3, 4)).period_end == date(2024, 3, 10)

    def test_monthly_period_leap_year(self):
        """Test monthly budgets end on the last day of the start month."""
        assert self._budget(TimeFrame.MONTHLY, date(2024, 2, 10)).period_end == date(2024, 2, 29)

    def test_yearly_period(self):
        """Test yearly budgets end the day before the anniversary."""
        assert self._budget(TimeFrame.YEARLY, date(2024, 1, 1)).period_end == date(2024, 12, 31)

    def test_yearly_period_from_leap_day(self):
        """Test a budget starting 29 February."""
        assert self._budget(TimeFrame.YEARLY, date(2024, 2, 29)).period_end == date(2025, 2, 27)

    def test_duplicate_allocation_rejected(self):
        """Test each category can be allocated only once."""
        with pytest.raises(ValueError, match="allocated more than once"):
            Budget(
                time_frame=TimeFrame.MONTHLY,
                total_amount=Decimal("500.00"),
                start_date=date(2024, 3, 1),
                currency_code="USD",
                category_allocations=[
                    CategoryAllocation(category_id="groceries", amount=Decimal("100.00")),
                    CategoryAllocation(category_id="groceries", amount=Decimal("50.00")),
                ],
            )


class TestReferenceData:
    """Tests for currencies, default categories and the fresh state."""

    def test_get_currency_is_case_insensitive(self):
        """Test currency lookup."""
        assert get_currency("eur").symbol == "€"

    def test_unknown_currency(self):
        """Test unsupported codes raise."""
        with pytest.raises(UnknownCurrencyError):
            get_currency("XYZ")

    def test_default_categories(self):
        """Test the fresh store's categories have unique ids."""
        categories = default_categories()
        assert len(categories) == 12
        assert len({c.id for c in categories}) == 12

    def test_fresh_state(self):
        """Test a new state has one empty cash account in USD."""
        state = LedgerState()
        assert state.schema_version == SCHEMA_VERSION
        assert [a.id for a in state.accounts] == ["cash"]
        assert state.accounts[0].balance == Decimal("0.00")
        assert state.default_currency.code == "USD"
        assert state.dark_mode is False


class TestResultModels:
    """Tests for extraction and validation results."""

    def test_extraction_result_found(self):
        """Test found reflects whether an amount was detected."""
        assert ExtractionResult(amount="45,90", template_name="German").found
        assert not ExtractionResult(amount=None).found

    def test_extraction_result_amount_format(self):
        """Test amounts must have exactly two decimals."""
        with pytest.raises(ValidationError):
            ExtractionResult(amount="45.9")

    def test_extraction_result_value(self):
        """Test the printed separator is read as the decimal point."""
        assert ExtractionResult(amount="45,90").value == Decimal("45.90")
        assert ExtractionResult(amount="45.90").value == Decimal("45.90")
        assert ExtractionResult(amount=None).value is None

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            operation="add_expense",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="insufficient_balance",
                    message="Insufficient balance",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            operation="add_income",
            issues=[
                ValidationIssue(
                    field="account_id",
                    issue_type="unusual_account",
                    message="Income to a credit account",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Income to a credit account"]


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SCAN_STARTED,
            description="Scan started",
        )
        assert event.event_type == AuditEventType.SCAN_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Expense recorded",
            details={"amount": Decimal("45.90")},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["details"]["amount"] == Decimal("45.90")

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_ADDED,
            description="Account added",
            details={"amount": Decimal("1.00")},
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11
        assert row[2] == "account_added"
        assert row[8] == '{"amount": "1.00"}'
        assert row[10] == "True"

    def test_scan_completed_without_amount(self):
        """Test a scan with no amount becomes SCAN_NO_AMOUNT."""
        event = AuditEventBuilder.scan_completed(
            amount=None,
            template_name=None,
            text_length=120,
        )
        assert event.event_type == AuditEventType.SCAN_NO_AMOUNT

    def test_transaction_added_builder(self):
        """Test AuditEventBuilder.transaction_added."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_added(
            transaction_id="t-1",
            transaction_type="expense",
            amount="45.90",
            account_id="cash",
            correlation_id=correlation_id,
        )
        assert event.entity_id == "t-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
