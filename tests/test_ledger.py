"""
Tests for the Ledger state container.

The ledger is pure bookkeeping: these tests check balances stay in
step with the transaction log, not spending policy.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.ledger import Ledger, TargetContributionError, TargetNotFoundError
from src.models.finance import (
    AccountType,
    Budget,
    CategoryAllocation,
    Target,
    TimeFrame,
    TransactionType,
)


DAY = date(2024, 3, 1)


@pytest.fixture
def ledger():
    return Ledger()


def _expense(ledger: Ledger, amount, account_id="cash", **kwargs):
    return ledger.add_transaction(
        amount=amount,
        account_id=account_id,
        date=kwargs.pop("date", DAY),
        type=TransactionType.EXPENSE,
        currency_code=kwargs.pop("currency_code", "USD"),
        **kwargs,
    )


def _income(ledger: Ledger, amount, account_id="cash", **kwargs):
    return ledger.add_transaction(
        amount=amount,
        account_id=account_id,
        date=kwargs.pop("date", DAY),
        type=TransactionType.INCOME,
        currency_code=kwargs.pop("currency_code", "USD"),
        **kwargs,
    )


def _balance(ledger: Ledger, account_id="cash") -> Decimal:
    return ledger.state.find_account(account_id).balance


class TestTransactions:
    """Adding and deleting transactions."""

    def test_expense_reduces_balance(self, ledger):
        """Test expenses subtract; the ledger itself allows overdraft."""
        _expense(ledger, Decimal("45.90"))
        assert _balance(ledger) == Decimal("-45.90")

    def test_income_increases_balance(self, ledger):
        """Test income adds to the balance."""
        _income(ledger, "100")
        assert _balance(ledger) == Decimal("100.00")

    def test_add_then_delete_restores_balance(self, ledger):
        """Test deletion reverses the balance effect exactly."""
        _income(ledger, Decimal("80.00"))
        before = _balance(ledger)
        transaction = _expense(ledger, Decimal("12.34"))
        ledger.delete_transaction(transaction.id)
        assert _balance(ledger) == before
        assert ledger.state.find_transaction(transaction.id) is None

    def test_balance_matches_transaction_log(self, ledger):
        """Test balance equals the signed sum of the account's transactions."""
        _income(ledger, Decimal("100.00"))
        _expense(ledger, Decimal("30.25"))
        _expense(ledger, Decimal("0.10"))
        _income(ledger, Decimal("0.20"))
        assert _balance(ledger) == Decimal("69.85")
        assert _balance(ledger) == ledger.balance_from_transactions("cash")

    def test_float_amounts_do_not_drift(self, ledger):
        """Test repeated small float amounts sum exactly."""
        for _ in range(3):
            _income(ledger, 0.1)
        assert _balance(ledger) == Decimal("0.30")

    def test_delete_twice_is_noop(self, ledger):
        """Test deleting an unknown id changes nothing."""
        transaction = _expense(ledger, Decimal("5.00"))
        assert ledger.delete_transaction(transaction.id) is not None
        state = ledger.state
        assert ledger.delete_transaction(transaction.id) is None
        assert ledger.state is state

    def test_unknown_account_records_without_balance_change(self, ledger):
        """Test a transaction on a missing account is kept, balances untouched."""
        _expense(ledger, Decimal("9.99"), account_id="gone")
        assert len(ledger.state.transactions) == 1
        assert _balance(ledger) == Decimal("0.00")

    def test_only_target_account_changes(self, ledger):
        """Test other accounts are not affected."""
        card = ledger.add_account("Visa", AccountType.CREDIT, "USD", limit=Decimal("500"))
        _expense(ledger, Decimal("20.00"), account_id=card.id)
        assert _balance(ledger, card.id) == Decimal("-20.00")
        assert _balance(ledger) == Decimal("0.00")

    def test_previous_state_is_untouched(self, ledger):
        """Test mutations swap in a new state rather than editing the old one."""
        before = ledger.state
        _expense(ledger, Decimal("1.00"))
        assert before.transactions == []
        assert before.find_account("cash").balance == Decimal("0.00")


class TestAccounts:
    """Account CRUD."""

    def test_add_account_with_opening_balance(self, ledger):
        """Test opening balance and default icon."""
        account = ledger.add_account("Savings", AccountType.DEBIT, "EUR", balance="250.5")
        assert account.balance == Decimal("250.50")
        assert account.icon == "landmark"
        assert len(ledger.state.accounts) == 2

    def test_update_account_fields(self, ledger):
        """Test a shallow merge of editable fields."""
        updated = ledger.update_account("cash", name="Wallet")
        assert updated.name == "Wallet"
        assert ledger.state.find_account("cash").name == "Wallet"

    def test_update_account_rejects_balance(self, ledger):
        """Test the balance cannot be written directly."""
        with pytest.raises(ValueError, match="balance"):
            ledger.update_account("cash", balance=Decimal("1000.00"))
        assert _balance(ledger) == Decimal("0.00")

    def test_update_unknown_account(self, ledger):
        """Test updating a missing account is a no-op."""
        assert ledger.update_account("gone", name="X") is None

    def test_delete_account(self, ledger):
        """Test deletion and idempotence."""
        account = ledger.add_account("Old", AccountType.OTHER, "USD")
        assert ledger.delete_account(account.id) is not None
        assert ledger.delete_account(account.id) is None


class TestCategoriesAndBudgets:
    """Category and budget CRUD."""

    def test_category_lifecycle(self, ledger):
        """Test add, edit and delete."""
        category = ledger.add_category("Pets", "#123456")
        edited = ledger.edit_category(category.id, name="Animals", color="#654321")
        assert edited.name == "Animals"
        assert ledger.delete_category(category.id) is not None
        assert ledger.state.find_category(category.id) is None

    def test_edit_unknown_category(self, ledger):
        """Test editing a missing category is a no-op."""
        assert ledger.edit_category("gone", name="X", color="#000000") is None

    def test_budget_lifecycle(self, ledger):
        """Test add, update and delete."""
        budget = ledger.add_budget(Budget(
            time_frame=TimeFrame.MONTHLY,
            total_amount=Decimal("500.00"),
            start_date=DAY,
            currency_code="USD",
            category_allocations=[
                CategoryAllocation(category_id="groceries", amount=Decimal("300.00")),
            ],
        ))
        updated = ledger.update_budget(budget.id, total_amount=Decimal("600.00"))
        assert updated.total_amount == Decimal("600.00")
        assert ledger.delete_budget(budget.id) is not None
        assert ledger.state.budgets == []


class TestTargets:
    """Savings target contributions."""

    @pytest.fixture
    def target(self, ledger):
        return ledger.add_target(Target(
            name="Bike",
            target_amount=Decimal("500.00"),
            current_amount=Decimal("450.00"),
            deadline=date(2024, 12, 31),
            currency_code="USD",
        ))

    def test_contribute(self, ledger, target):
        """Test a contribution within the goal."""
        updated = ledger.contribute(target.id, Decimal("50.00"))
        assert updated.current_amount == Decimal("500.00")

    def test_contribution_over_target_rejected(self, ledger, target):
        """Test exceeding the goal raises and leaves the target unchanged."""
        with pytest.raises(TargetContributionError, match="exceed target amount"):
            ledger.contribute(target.id, Decimal("50.01"))
        assert ledger.state.find_target(target.id).current_amount == Decimal("450.00")

    def test_non_positive_contribution_rejected(self, ledger, target):
        """Test zero or negative contributions raise."""
        with pytest.raises(TargetContributionError):
            ledger.contribute(target.id, Decimal("0"))
        with pytest.raises(TargetContributionError):
            ledger.contribute(target.id, Decimal("-5"))

    def test_unknown_target(self, ledger):
        """Test contributing to a missing target raises."""
        with pytest.raises(TargetNotFoundError):
            ledger.contribute("gone", Decimal("1.00"))

    def test_contribution_does_not_touch_balances(self, ledger, target):
        """Test target progress is separate from account balances."""
        ledger.contribute(target.id, Decimal("10.00"))
        assert _balance(ledger) == Decimal("0.00")


class TestPreferences:
    """Currency, theme and reset."""

    def test_set_default_currency(self, ledger):
        """Test changing the default currency."""
        ledger.set_default_currency("eur")
        assert ledger.state.default_currency.code == "EUR"

    def test_toggle_dark_mode(self, ledger):
        """Test the theme flag flips."""
        assert ledger.toggle_dark_mode() is True
        assert ledger.toggle_dark_mode() is False

    def test_reset_keeps_preferences(self, ledger):
        """Test reset clears data but keeps currency and theme."""
        ledger.set_default_currency("EUR")
        ledger.toggle_dark_mode()
        ledger.add_account("Visa", AccountType.CREDIT, "EUR")
        ledger.add_category("Pets", "#123456")
        _expense(ledger, Decimal("5.00"))

        ledger.reset()

        state = ledger.state
        assert state.transactions == []
        assert len(state.categories) == 12
        assert [(a.id, a.currency_code, a.balance) for a in state.accounts] == [
            ("cash", "EUR", Decimal("0.00"))
        ]
        assert state.default_currency.code == "EUR"
        assert state.dark_mode is True
