"""
Financial Ledger

The ledger owns the application state: the transaction log, the
account balances derived from it, and the budgets, targets and
categories that sit next to it.

GUARANTEES:
- Methods on Ledger are the only write surface for the state.
- Every mutation builds a new LedgerState and swaps it in with a
  single assignment. A reader never sees a transaction without its
  balance effect, or the other way round.
- Account balances change only through add_transaction and
  delete_transaction.

IMPORTANT: The ledger does not enforce spending policy (sufficient
balance, credit limit). It accepts any well-formed input. Policy lives
in src.validation and is applied by the caller before it gets here.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

import structlog

from src.ledger.amounts import to_money
from src.models.finance import (
    Account,
    AccountType,
    Budget,
    Category,
    LedgerState,
    Target,
    Transaction,
    TransactionType,
    default_account,
    default_categories,
    get_currency,
)


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class TargetNotFoundError(LedgerError):
    """Contribution to a target that does not exist."""

    def __init__(self, target_id: str):
        self.target_id = target_id
        super().__init__(f"Target not found: {target_id}")


class TargetContributionError(LedgerError):
    """Contribution rejected; target is left unchanged."""

    def __init__(self, target_id: str, message: str):
        self.target_id = target_id
        super().__init__(message)


ACCOUNT_READONLY_FIELDS = frozenset({"id", "balance"})


class Ledger:
    """
    Explicit state container for the expense tracker.

    Created by the application root and passed to whoever needs it.
    """

    def __init__(self, state: Optional[LedgerState] = None):
        self._state = state if state is not None else LedgerState()

    @property
    def state(self) -> LedgerState:
        """Current snapshot. Treat as read-only."""
        return self._state

    def _commit(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    def restore(self, state: LedgerState) -> None:
        """Put back an earlier snapshot, e.g. after it could not be saved."""
        self._state = state
        logger.info("ledger_restored", transactions=len(state.transactions))

    def _adjust_balance(self, account_id: str, delta: Decimal) -> list[Account]:
        return [
            account.model_copy(update={"balance": account.balance + delta})
            if account.id == account_id
            else account
            for account in self._state.accounts
        ]

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def add_transaction(
        self,
        amount,
        account_id: str,
        date: dt.date,
        type: TransactionType,
        currency_code: str,
        category_id: Optional[str] = None,
        notes: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> Transaction:
        """
        Record a transaction and apply it to its account.

        Expenses subtract from the balance, income adds to it. If the
        account id is unknown the transaction is still recorded and no
        balance changes.
        """
        transaction = Transaction(
            amount=to_money(amount),
            account_id=account_id,
            category_id=category_id,
            date=date,
            type=type,
            currency_code=currency_code,
            notes=notes,
            target_id=target_id,
        )

        self._commit(
            transactions=[*self._state.transactions, transaction],
            accounts=self._adjust_balance(account_id, transaction.signed_amount),
        )

        logger.info(
            "transaction_added",
            transaction_id=transaction.id,
            type=transaction.type.value,
            amount=str(transaction.amount),
            account_id=account_id,
        )
        return transaction

    def delete_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """
        Remove a transaction and reverse its balance effect.

        Unknown ids are ignored, so deleting twice is safe.
        """
        transaction = self._state.find_transaction(transaction_id)
        if transaction is None:
            return None

        self._commit(
            transactions=[t for t in self._state.transactions if t.id != transaction_id],
            accounts=self._adjust_balance(transaction.account_id, -transaction.signed_amount),
        )

        logger.info(
            "transaction_deleted",
            transaction_id=transaction_id,
            account_id=transaction.account_id,
        )
        return transaction

    def balance_from_transactions(self, account_id: str) -> Decimal:
        """Signed sum of the account's transactions (excludes any opening balance)."""
        return sum(
            (t.signed_amount for t in self._state.transactions if t.account_id == account_id),
            Decimal("0.00"),
        )

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(
        self,
        name: str,
        type: AccountType,
        currency_code: str,
        balance=Decimal("0.00"),
        limit=None,
        icon: Optional[str] = None,
    ) -> Account:
        """Create an account. balance is the opening balance."""
        account = Account(
            name=name,
            type=type,
            balance=to_money(balance),
            limit=to_money(limit) if limit is not None else None,
            currency_code=currency_code,
            icon=icon or AccountType(type).icon,
        )
        self._commit(accounts=[*self._state.accounts, account])
        logger.info("account_added", account_id=account.id, type=account.type.value)
        return account

    def update_account(self, account_id: str, **changes) -> Optional[Account]:
        """
        Shallow-merge changes into an account.

        The balance is owned by the transaction log and cannot be
        written here.
        """
        forbidden = ACCOUNT_READONLY_FIELDS.intersection(changes)
        if forbidden:
            raise ValueError(f"Cannot update account fields: {sorted(forbidden)}")

        account = self._state.find_account(account_id)
        if account is None:
            return None

        updated = Account.model_validate({**account.model_dump(), **changes})
        self._commit(
            accounts=[updated if a.id == account_id else a for a in self._state.accounts]
        )
        logger.info("account_updated", account_id=account_id, fields=sorted(changes))
        return updated

    def delete_account(self, account_id: str) -> Optional[Account]:
        """Remove an account. Unknown ids are ignored."""
        account = self._state.find_account(account_id)
        if account is None:
            return None
        self._commit(accounts=[a for a in self._state.accounts if a.id != account_id])
        logger.info("account_deleted", account_id=account_id)
        return account

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def add_category(self, name: str, color: str, icon: Optional[str] = None) -> Category:
        category = Category(name=name, color=color, icon=icon)
        self._commit(categories=[*self._state.categories, category])
        logger.info("category_added", category_id=category.id)
        return category

    def edit_category(self, category_id: str, name: str, color: str) -> Optional[Category]:
        category = self._state.find_category(category_id)
        if category is None:
            return None
        updated = Category.model_validate({**category.model_dump(), "name": name, "color": color})
        self._commit(
            categories=[updated if c.id == category_id else c for c in self._state.categories]
        )
        logger.info("category_edited", category_id=category_id)
        return updated

    def delete_category(self, category_id: str) -> Optional[Category]:
        category = self._state.find_category(category_id)
        if category is None:
            return None
        self._commit(categories=[c for c in self._state.categories if c.id != category_id])
        logger.info("category_deleted", category_id=category_id)
        return category

    # =========================================================================
    # BUDGETS
    # =========================================================================

    def add_budget(self, budget: Budget) -> Budget:
        self._commit(budgets=[*self._state.budgets, budget])
        logger.info("budget_added", budget_id=budget.id, time_frame=budget.time_frame.value)
        return budget

    def update_budget(self, budget_id: str, **changes) -> Optional[Budget]:
        if "id" in changes:
            raise ValueError("Cannot change a budget id")
        budget = self._state.find_budget(budget_id)
        if budget is None:
            return None
        updated = Budget.model_validate({**budget.model_dump(), **changes})
        self._commit(budgets=[updated if b.id == budget_id else b for b in self._state.budgets])
        logger.info("budget_updated", budget_id=budget_id)
        return updated

    def delete_budget(self, budget_id: str) -> Optional[Budget]:
        budget = self._state.find_budget(budget_id)
        if budget is None:
            return None
        self._commit(budgets=[b for b in self._state.budgets if b.id != budget_id])
        logger.info("budget_deleted", budget_id=budget_id)
        return budget

    # =========================================================================
    # TARGETS
    # =========================================================================

    def add_target(self, target: Target) -> Target:
        self._commit(targets=[*self._state.targets, target])
        logger.info("target_added", target_id=target.id)
        return target

    def delete_target(self, target_id: str) -> Optional[Target]:
        target = self._state.find_target(target_id)
        if target is None:
            return None
        self._commit(targets=[t for t in self._state.targets if t.id != target_id])
        logger.info("target_deleted", target_id=target_id)
        return target

    def contribute(self, target_id: str, amount) -> Target:
        """
        Add money to a savings target.

        Raises:
            TargetNotFoundError: If the target does not exist
            TargetContributionError: If the amount is not positive or the
                new total would exceed the target. Nothing changes.
        """
        target = self._state.find_target(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)

        amount = to_money(amount)
        if amount <= 0:
            raise TargetContributionError(target_id, "Contribution must be greater than zero")

        new_amount = target.current_amount + amount
        if new_amount > target.target_amount:
            raise TargetContributionError(
                target_id,
                "Target contribution would exceed target amount",
            )

        updated = target.model_copy(update={"current_amount": new_amount})
        self._commit(targets=[updated if t.id == target_id else t for t in self._state.targets])
        logger.info(
            "target_contribution",
            target_id=target_id,
            amount=str(amount),
            current_amount=str(new_amount),
        )
        return updated

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    def set_default_currency(self, currency_code: str) -> None:
        self._commit(default_currency=get_currency(currency_code))
        logger.info("default_currency_set", currency=currency_code)

    def toggle_dark_mode(self) -> bool:
        self._commit(dark_mode=not self._state.dark_mode)
        return self._state.dark_mode

    def reset(self) -> None:
        """
        Start over: clear transactions, budgets and targets and go back to
        the default categories and a single empty cash account.

        The default currency and theme are kept.
        """
        self._commit(
            transactions=[],
            budgets=[],
            targets=[],
            categories=default_categories(),
            accounts=[default_account(self._state.default_currency.code)],
        )
        logger.info("ledger_reset")
