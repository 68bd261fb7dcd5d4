"""
Budget and Target Progress

Pure derivations over the ledger state. Nothing here writes.

DESIGN DECISION: Budget spend is derived from the transaction log;
target progress is NOT. A target's current_amount only moves through
explicit contributions, so it is read as stored.
"""

from decimal import Decimal
from typing import Iterable

from src.models.finance import Budget, Category, Target, Transaction, TransactionType
from src.models.results import BudgetProgress, CategorySpending, TargetProgress


HUNDRED = Decimal("100")


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return Decimal("0")
    return part / whole * HUNDRED


def category_spent(
    category_id: str,
    currency_code: str,
    transactions: Iterable[Transaction],
) -> Decimal:
    """Sum of expenses in a category and currency."""
    return sum(
        (
            t.amount
            for t in transactions
            if t.type == TransactionType.EXPENSE
            and t.category_id == category_id
            and t.currency_code == currency_code
        ),
        Decimal("0.00"),
    )


def budget_progress(
    budget: Budget,
    transactions: Iterable[Transaction],
    categories: Iterable[Category] = (),
) -> BudgetProgress:
    """
    Compare a budget with actual spending.

    Only allocated categories count towards the total: expenses in a
    category the budget does not allocate (or allocates nothing to) are
    ignored even when they match the currency.
    """
    transactions = list(transactions)
    names = {c.id: c.name for c in categories}

    spending = [
        CategorySpending(
            category_id=allocation.category_id,
            name=names.get(allocation.category_id, allocation.category_id),
            allocated=allocation.amount,
            spent=category_spent(allocation.category_id, budget.currency_code, transactions),
        )
        for allocation in budget.category_allocations
        if allocation.amount > 0
    ]

    total_spent = sum((c.spent for c in spending), Decimal("0.00"))

    return BudgetProgress(
        budget_id=budget.id,
        currency_code=budget.currency_code,
        categories=spending,
        total_spent=total_spent,
        total_budget=budget.total_amount,
        percentage=_percentage(total_spent, budget.total_amount),
    )


def target_progress(target: Target) -> TargetProgress:
    return TargetProgress(
        target_id=target.id,
        current_amount=target.current_amount,
        target_amount=target.target_amount,
        percentage=_percentage(target.current_amount, target.target_amount),
    )
