"""Read model: progress calculators and selectors."""

from src.queries.progress import budget_progress, category_spent, target_progress
from src.queries.selectors import (
    account_summary,
    current_budget,
    daily_totals,
    recent_transactions,
    target_progress_by_id,
    total_expenses,
    total_income,
    transactions_by_category,
    transactions_on,
    unique_currencies,
)

__all__ = [
    "account_summary",
    "budget_progress",
    "category_spent",
    "current_budget",
    "daily_totals",
    "recent_transactions",
    "target_progress",
    "target_progress_by_id",
    "total_expenses",
    "total_income",
    "transactions_by_category",
    "transactions_on",
    "unique_currencies",
]
