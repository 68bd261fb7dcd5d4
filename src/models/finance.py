"""
Core Data Models for Expense Tracker

These models define the strict schemas for the ledger state:
transactions, accounts, categories, budgets and savings targets.

DESIGN DECISION: Money is always Decimal with two fractional digits.
Floating point never touches a balance.
"""

import calendar
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


SCHEMA_VERSION = 1


def new_id() -> str:
    """Generate a fresh entity identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to its account."""
    EXPENSE = "expense"
    INCOME = "income"


class AccountType(str, Enum):
    """
    Supported account kinds.

    Only CREDIT accounts carry a meaningful limit.
    """
    CASH = "cash"
    PAYPAL = "paypal"
    CREDIT = "credit"
    DEBIT = "debit"
    ONLINE = "online"
    OTHER = "other"

    @property
    def icon(self) -> str:
        return ACCOUNT_ICONS.get(self, DEFAULT_ACCOUNT_ICON)


DEFAULT_ACCOUNT_ICON = "wallet"

ACCOUNT_ICONS: dict[AccountType, str] = {
    AccountType.CASH: "wallet",
    AccountType.PAYPAL: "paypal",
    AccountType.CREDIT: "credit-card",
    AccountType.DEBIT: "landmark",
    AccountType.ONLINE: "globe",
    AccountType.OTHER: DEFAULT_ACCOUNT_ICON,
}


class TimeFrame(str, Enum):
    """Budget period length."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Currency(BaseModel):
    """A supported currency."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=3, max_length=3)
    name: str
    symbol: str


CURRENCIES: tuple[Currency, ...] = (
    Currency(code="USD", name="US Dollar", symbol="$"),
    Currency(code="EUR", name="Euro", symbol="€"),
    Currency(code="GBP", name="British Pound", symbol="£"),
    Currency(code="JPY", name="Japanese Yen", symbol="¥"),
    Currency(code="INR", name="Indian Rupee", symbol="₹"),
)


class UnknownCurrencyError(KeyError):
    """Currency code is not in the supported list."""
    pass


def get_currency(code: str) -> Currency:
    """Look up a supported currency by its code."""
    for currency in CURRENCIES:
        if currency.code == code.upper():
            return currency
    raise UnknownCurrencyError(code)


class Category(BaseModel):
    """A spending/income category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(
        ...,
        pattern="^#[0-9A-Fa-f]{6}$",
        description="Hex colour used by charts"
    )
    icon: Optional[str] = None


def default_categories() -> list[Category]:
    """The categories a fresh store starts with."""
    return [
        Category(id="clothing", name="Clothing", color="#FF6B6B", icon="clothing"),
        Category(id="dining", name="Dining", color="#4ECDC4", icon="dining"),
        Category(id="education", name="Education", color="#45B7D1", icon="education"),
        Category(id="entertainment", name="Entertainment", color="#96CEB4", icon="entertainment"),
        Category(id="groceries", name="Groceries", color="#4CAF50", icon="groceries"),
        Category(id="health", name="Health", color="#FF6B6B", icon="health"),
        Category(id="personal-care", name="Personal Care", color="#FFD93D", icon="personal-care"),
        Category(id="rent", name="Rent", color="#6C5B7B", icon="rent"),
        Category(id="subscriptions", name="Subscriptions", color="#C06C84", icon="subscriptions"),
        Category(id="transport", name="Transport", color="#355C7D", icon="transport"),
        Category(id="travel", name="Travel", color="#F8B195", icon="travel"),
        Category(id="utilities", name="Utilities", color="#F67280", icon="utilities"),
    ]


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    CRITICAL: Transactions are immutable once created.
    Corrections are delete-then-recreate, which keeps the
    account balance reversible.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Unsigned amount; direction comes from type"
    )
    account_id: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    date: dt.date
    type: TransactionType
    currency_code: str = Field(..., min_length=3, max_length=3)
    notes: Optional[str] = Field(default=None, max_length=1000)
    target_id: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account balance."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        return self.amount


class Account(BaseModel):
    """
    A place money lives.

    For credit accounts the balance is usually negative (amount owed)
    and the usable headroom is limit + balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    balance: Decimal = Field(default=Decimal("0.00"), decimal_places=2)
    limit: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    currency_code: str = Field(..., min_length=3, max_length=3)
    icon: Optional[str] = None

    @property
    def is_credit(self) -> bool:
        return self.type == AccountType.CREDIT

    @property
    def available(self) -> Decimal:
        """Money that can still be spent from this account."""
        if self.is_credit and self.limit is not None:
            return self.limit + self.balance
        return self.balance


class CategoryAllocation(BaseModel):
    """Share of a budget reserved for one category."""

    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0, decimal_places=2)


class Budget(BaseModel):
    """A periodic spending plan with per-category allocations."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    time_frame: TimeFrame
    total_amount: Decimal = Field(..., gt=0, decimal_places=2)
    start_date: dt.date
    currency_code: str = Field(..., min_length=3, max_length=3)
    category_allocations: list[CategoryAllocation] = Field(default_factory=list)

    @field_validator('category_allocations')
    @classmethod
    def unique_categories(cls, v: list[CategoryAllocation]) -> list[CategoryAllocation]:
        seen = set()
        for allocation in v:
            if allocation.category_id in seen:
                raise ValueError(
                    f"Category {allocation.category_id} is allocated more than once"
                )
            seen.add(allocation.category_id)
        return v

    @property
    def period_end(self) -> dt.date:
        """Last day (inclusive) covered by this budget."""
        start = self.start_date
        if self.time_frame == TimeFrame.WEEKLY:
            return start + dt.timedelta(days=6)
        if self.time_frame == TimeFrame.MONTHLY:
            last_day = calendar.monthrange(start.year, start.month)[1]
            return start.replace(day=last_day)
        try:
            anniversary = start.replace(year=start.year + 1)
        except ValueError:
            # 29 February
            anniversary = start.replace(year=start.year + 1, day=28)
        return anniversary - dt.timedelta(days=1)

    def allocation_for(self, category_id: str) -> Optional[CategoryAllocation]:
        for allocation in self.category_allocations:
            if allocation.category_id == category_id:
                return allocation
        return None


class Target(BaseModel):
    """
    A savings goal.

    current_amount is a running total changed only by explicit
    contributions. It is never derived from the transaction log.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0.00"), ge=0, decimal_places=2)
    deadline: dt.date
    category_id: Optional[str] = None
    currency_code: str = Field(..., min_length=3, max_length=3)

    @model_validator(mode='after')
    def validate_amounts(self) -> 'Target':
        if self.current_amount > self.target_amount:
            raise ValueError("Current amount cannot exceed target amount")
        return self


# =============================================================================
# STATE SNAPSHOT
# =============================================================================

def default_account(currency_code: str = "USD") -> Account:
    return Account(
        id="cash",
        name="Cash",
        type=AccountType.CASH,
        balance=Decimal("0.00"),
        currency_code=currency_code,
        icon=AccountType.CASH.icon,
    )


class LedgerState(BaseModel):
    """
    Everything the application persists, as one snapshot.

    schema_version lets older snapshots be migrated on load.
    """

    schema_version: int = Field(default=SCHEMA_VERSION, ge=0)
    transactions: list[Transaction] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=default_categories)
    accounts: list[Account] = Field(default_factory=lambda: [default_account()])
    budgets: list[Budget] = Field(default_factory=list)
    targets: list[Target] = Field(default_factory=list)
    default_currency: Currency = Field(default_factory=lambda: CURRENCIES[0])
    dark_mode: bool = False

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)

    def find_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_budget(self, budget_id: str) -> Optional[Budget]:
        return next((b for b in self.budgets if b.id == budget_id), None)

    def find_target(self, target_id: str) -> Optional[Target]:
        return next((t for t in self.targets if t.id == target_id), None)
