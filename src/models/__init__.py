"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from src.models.finance import (
    ACCOUNT_ICONS,
    CURRENCIES,
    SCHEMA_VERSION,
    Account,
    AccountType,
    Budget,
    Category,
    CategoryAllocation,
    Currency,
    LedgerState,
    Target,
    TimeFrame,
    Transaction,
    TransactionType,
    UnknownCurrencyError,
    default_account,
    default_categories,
    get_currency,
    new_id,
)
from src.models.results import (
    AccountSummary,
    BudgetProgress,
    CategorySpending,
    CategoryTotals,
    DailyTotals,
    ExtractionResult,
    TargetProgress,
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ACCOUNT_ICONS",
    "CURRENCIES",
    "SCHEMA_VERSION",
    "Account",
    "AccountType",
    "Budget",
    "Category",
    "CategoryAllocation",
    "Currency",
    "LedgerState",
    "Target",
    "TimeFrame",
    "Transaction",
    "TransactionType",
    "UnknownCurrencyError",
    "default_account",
    "default_categories",
    "get_currency",
    "new_id",
    # Result models
    "AccountSummary",
    "BudgetProgress",
    "CategorySpending",
    "CategoryTotals",
    "DailyTotals",
    "ExtractionResult",
    "TargetProgress",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
