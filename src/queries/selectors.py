"""
Read Model Selectors

Pure functions over a LedgerState that the UI consumes: breakdowns,
recent transactions, totals, the current budget and calendar cells.

GUARANTEES:
- Only returns what is in the state
- Never mutates the state
- Money stays Decimal
"""

import calendar
import datetime as dt
from decimal import Decimal
from typing import Optional

from src.models.finance import (
    CURRENCIES,
    AccountType,
    Budget,
    Currency,
    LedgerState,
    TimeFrame,
    Transaction,
    TransactionType,
)
from src.models.results import AccountSummary, CategoryTotals, DailyTotals
from src.queries.progress import target_progress


ZERO = Decimal("0.00")


def _total(transactions, transaction_type: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == transaction_type), ZERO)


def transactions_by_category(state: LedgerState, currency_code: str) -> list[CategoryTotals]:
    """Income and expense totals per category, in category order."""
    results = []
    for category in state.categories:
        matching = [
            t for t in state.transactions
            if t.category_id == category.id and t.currency_code == currency_code
        ]
        results.append(CategoryTotals(
            category_id=category.id,
            name=category.name,
            color=category.color,
            expenses=_total(matching, TransactionType.EXPENSE),
            income=_total(matching, TransactionType.INCOME),
        ))
    return results


def recent_transactions(
    state: LedgerState,
    limit: int,
    currency_code: str,
) -> list[Transaction]:
    """Newest transactions first (ties keep insertion order)."""
    matching = [t for t in state.transactions if t.currency_code == currency_code]
    matching.sort(key=lambda t: t.date, reverse=True)
    return matching[:limit]


def total_expenses(state: LedgerState, currency_code: str) -> Decimal:
    return _total(
        (t for t in state.transactions if t.currency_code == currency_code),
        TransactionType.EXPENSE,
    )


def total_income(state: LedgerState, currency_code: str) -> Decimal:
    return _total(
        (t for t in state.transactions if t.currency_code == currency_code),
        TransactionType.INCOME,
    )


def current_budget(
    state: LedgerState,
    time_frame: TimeFrame,
    currency_code: str,
    today: Optional[dt.date] = None,
) -> Optional[Budget]:
    """The first budget of this time frame and currency whose period covers today."""
    today = today or dt.date.today()
    for budget in state.budgets:
        if (
            budget.time_frame == time_frame
            and budget.currency_code == currency_code
            and budget.start_date <= today <= budget.period_end
        ):
            return budget
    return None


def target_progress_by_id(state: LedgerState, target_id: str) -> Decimal:
    """Progress percentage of a target; 0 for unknown targets."""
    target = state.find_target(target_id)
    if target is None:
        return Decimal("0")
    return target_progress(target).percentage


def unique_currencies(state: LedgerState) -> list[Currency]:
    """Currencies that appear in the transaction log, in first-seen order."""
    known = {c.code: c for c in CURRENCIES}
    seen = []
    for t in state.transactions:
        if t.currency_code in known and known[t.currency_code] not in seen:
            seen.append(known[t.currency_code])
    return seen


def daily_totals(state: LedgerState, year: int, month: int) -> list[DailyTotals]:
    """One entry per day of the month, for the calendar view."""
    days_in_month = calendar.monthrange(year, month)[1]
    by_day = {
        day: DailyTotals(day=dt.date(year, month, day))
        for day in range(1, days_in_month + 1)
    }

    for t in state.transactions:
        if t.date.year != year or t.date.month != month:
            continue
        cell = by_day[t.date.day]
        if t.type == TransactionType.INCOME:
            cell.income += t.amount
        else:
            cell.expenses += t.amount
        cell.transaction_count += 1

    return list(by_day.values())


def transactions_on(state: LedgerState, day: dt.date) -> list[Transaction]:
    """A day's transactions: income first, then larger amounts first."""
    matching = [t for t in state.transactions if t.date == day]
    matching.sort(key=lambda t: (t.type != TransactionType.INCOME, -t.amount))
    return matching


def account_summary(state: LedgerState) -> AccountSummary:
    credit = [a for a in state.accounts if a.type == AccountType.CREDIT and a.limit]
    return AccountSummary(
        total_balance=sum((a.balance for a in state.accounts), ZERO),
        total_credit_limit=sum((a.limit for a in credit), ZERO),
        available_credit=sum((a.limit + a.balance for a in credit), ZERO),
    )
