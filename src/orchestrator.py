"""
Main Orchestrator for the Expense Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Bill Scan (image → recognised text → detected total)
2. Ledger changes (policy check → mutate → persist → audit)

DESIGN DECISION: The orchestrator enforces the boundaries:
- A scanned amount is only a suggestion; nothing is recorded until
  the caller submits it through add_expense
- No mutation reaches the Ledger without passing policy validation
- The snapshot is written after every mutation
- Every step is audited
"""

import datetime as dt
from decimal import Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.config import Settings, get_settings
from src.extraction import BILL_TEMPLATES, BillTemplate, extract
from src.ledger import InvalidAmountError, Ledger, parse_amount, to_money
from src.models.audit import AuditEventType
from src.models.finance import (
    Account,
    AccountType,
    Budget,
    Category,
    LedgerState,
    Target,
    Transaction,
    TransactionType,
    get_currency,
)
from src.models.results import ExtractionResult, ValidationResult
from src.services.ocr import RecognitionEngine, RecognitionError
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsSnapshotStorage,
    JsonFileSnapshotStorage,
    SnapshotStorageInterface,
    dump_state,
    load_state,
)
from src.validation import TransactionValidator


logger = structlog.get_logger(__name__)

NO_AMOUNT_MESSAGE = "Could not detect amount"

Amount = Union[Decimal, str, int, float, ExtractionResult]


class BillScanFlow:
    """
    Orchestrates the bill scan flow.

    Flow:
    1. Recognise → image bytes to raw text
    2. Extract → first template pattern that validates wins
    3. Return → the caller pre-fills the expense form with the amount

    A bill without a detectable total is a normal outcome, not an error.
    Recognition failures propagate so the caller can fall back to
    manual entry.
    """

    def __init__(
        self,
        engine: Optional[RecognitionEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        templates: tuple[BillTemplate, ...] = BILL_TEMPLATES,
    ):
        self._engine = engine or RecognitionEngine.from_settings()
        self._audit_logger = audit_logger
        self._templates = templates

    async def scan(
        self,
        image: bytes,
        filename: str = "bill.jpg",
        correlation_id: Optional[UUID] = None,
    ) -> ExtractionResult:
        """
        Recognise a bill image and detect its total.

        Raises:
            RecognitionError: If the image can't be read or recognition fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            text = await self._engine.recognize(image, filename)
        except RecognitionError as e:
            if self._audit_logger:
                await self._audit_logger.log_recognition_failed(
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        result = extract(text, self._templates)

        if self._audit_logger:
            await self._audit_logger.log_scan_completed(
                amount=result.amount,
                template_name=result.template_name,
                text_length=len(text),
                correlation_id=correlation_id,
            )

        return result

    @staticmethod
    def user_message(result: ExtractionResult) -> str:
        if not result.found:
            return NO_AMOUNT_MESSAGE
        return f"Detected amount: {result.amount}"

    async def close(self) -> None:
        """Release the recognition engine."""
        await self._engine.terminate()


class PolicyViolationError(Exception):
    """A requested change was rejected by TransactionValidator."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(i.message for i in result.issues if i.severity == "error")
        super().__init__(f"{result.operation} rejected: {messages}")


class FinanceTracker:
    """
    Application service around the Ledger.

    Every public mutation follows the same steps:
    1. Validate against policy (errors raise PolicyViolationError)
    2. Apply to the Ledger
    3. Persist the snapshot
    4. Audit

    The Ledger stays usable on its own; this class is where policy and
    persistence are attached to it.
    """

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        ledger: Optional[Ledger] = None,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        store_name: str = "expense-store",
    ):
        self._storage = storage
        self._ledger = ledger or Ledger()
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._store_name = store_name

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def state(self) -> LedgerState:
        return self._ledger.state

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def load(self) -> LedgerState:
        """
        Load the stored snapshot, or keep a fresh state if none exists.

        Raises:
            SnapshotVersionError: If the snapshot is from a newer version
            StorageError: If the snapshot can't be read or is corrupt
        """
        data = await self._storage.load_snapshot(self._store_name)
        if data is None:
            logger.info("snapshot_missing", store_name=self._store_name)
            return self.state

        self._ledger = Ledger(load_state(data))
        logger.info(
            "snapshot_loaded",
            store_name=self._store_name,
            transactions=len(self.state.transactions),
            accounts=len(self.state.accounts),
        )
        return self.state

    async def _persist(
        self,
        previous: LedgerState,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Save the current state, or roll the ledger back to previous if saving fails."""
        try:
            await self._storage.save_snapshot(self._store_name, dump_state(self.state))
        except Exception as e:
            self._ledger.restore(previous)
            logger.error("snapshot_save_failed", store_name=self._store_name, error=str(e))
            raise
        await self._audit_logger.log_snapshot_saved(
            store_name=self._store_name,
            transaction_count=len(self.state.transactions),
            correlation_id=correlation_id,
        )

    async def _enforce(
        self,
        result: ValidationResult,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        if result.has_errors:
            await self._audit_logger.log_policy_violation(
                operation=result.operation,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
                correlation_id=correlation_id,
            )
            raise PolicyViolationError(result)
        return result

    async def _changed(
        self,
        previous: LedgerState,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._persist(previous, correlation_id)
        await self._audit_logger.log_entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            correlation_id=correlation_id,
        )

    def _to_amount(self, amount: Amount, currency_code: str) -> Decimal:
        # Scanned totals keep the separator as printed on the bill
        if isinstance(amount, ExtractionResult):
            if amount.value is None:
                raise InvalidAmountError(amount.raw_text)
            return to_money(amount.value)
        # Text comes from a form field and follows the currency's separators
        if isinstance(amount, str):
            return parse_amount(amount, get_currency(currency_code))
        return to_money(amount)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_expense(
        self,
        amount: Amount,
        account_id: str,
        category_id: Optional[str] = None,
        date: Optional[dt.date] = None,
        currency_code: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record an expense after checking the account can cover it.

        amount may be a scan result; its printed separator is used as is.

        Raises:
            InvalidAmountError: If amount is text that isn't a number, or a
                scan result without an amount
            PolicyViolationError: If the account has insufficient balance
                or credit, or the amount is not positive
        """
        currency_code = currency_code or self.state.default_currency.code
        value = self._to_amount(amount, currency_code)

        await self._enforce(
            self._validator.validate_expense(self.state, account_id, value),
            correlation_id,
        )

        previous = self.state
        transaction = self._ledger.add_transaction(
            amount=value,
            account_id=account_id,
            category_id=category_id,
            date=date or dt.date.today(),
            type=TransactionType.EXPENSE,
            currency_code=currency_code,
            notes=notes,
        )
        await self._persist(previous, correlation_id)
        await self._audit_logger.log_transaction_added(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            account_id=account_id,
            correlation_id=correlation_id,
        )
        return transaction

    async def add_income(
        self,
        amount: Amount,
        account_id: str,
        category_id: Optional[str] = None,
        date: Optional[dt.date] = None,
        currency_code: Optional[str] = None,
        notes: Optional[str] = None,
        target_id: Optional[str] = None,
        contribution: Optional[Amount] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Record income, optionally putting part of it towards a target.

        The contribution is validated together with the income, so
        either both are applied or neither is.

        Raises:
            InvalidAmountError: If amount or contribution is not a number
            PolicyViolationError: If the contribution exceeds the income
                or would push the target past its goal
        """
        currency_code = currency_code or self.state.default_currency.code
        value = self._to_amount(amount, currency_code)
        share = (
            self._to_amount(contribution, currency_code)
            if target_id and contribution is not None
            else None
        )

        await self._enforce(
            self._validator.validate_income(
                self.state,
                account_id,
                value,
                target_id=target_id,
                contribution=share,
            ),
            correlation_id,
        )

        previous = self.state
        transaction = self._ledger.add_transaction(
            amount=value,
            account_id=account_id,
            category_id=category_id,
            date=date or dt.date.today(),
            type=TransactionType.INCOME,
            currency_code=currency_code,
            notes=notes,
            target_id=target_id,
        )
        updated_target = None
        if target_id and share:
            updated_target = self._ledger.contribute(target_id, share)

        await self._persist(previous, correlation_id)
        await self._audit_logger.log_transaction_added(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            account_id=account_id,
            correlation_id=correlation_id,
        )
        if updated_target is not None:
            await self._audit_logger.log_target_contribution(
                target_id=target_id,
                amount=str(share),
                new_total=str(updated_target.current_amount),
                correlation_id=correlation_id,
            )
        return transaction

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """Delete a transaction and reverse its balance effect. Unknown ids are a no-op."""
        previous = self.state
        transaction = self._ledger.delete_transaction(transaction_id)
        if transaction is None:
            return None
        await self._persist(previous, correlation_id)
        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        return transaction

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def add_account(
        self,
        name: str,
        type: AccountType,
        currency_code: Optional[str] = None,
        balance: Amount = Decimal("0.00"),
        limit: Optional[Amount] = None,
        icon: Optional[str] = None,
    ) -> Account:
        previous = self.state
        account = self._ledger.add_account(
            name=name,
            type=type,
            currency_code=currency_code or self.state.default_currency.code,
            balance=balance,
            limit=limit,
            icon=icon,
        )
        await self._changed(previous, AuditEventType.ACCOUNT_ADDED, "account", account.id, "added")
        return account

    async def update_account(self, account_id: str, **changes) -> Optional[Account]:
        """
        Rename an account or change its type, limit, currency or icon.

        Raises:
            ValueError: If changes include id or balance
        """
        previous = self.state
        account = self._ledger.update_account(account_id, **changes)
        if account is not None:
            await self._changed(
                previous,
                AuditEventType.ACCOUNT_UPDATED,
                "account",
                account_id,
                "updated",
            )
        return account

    async def delete_account(self, account_id: str) -> Optional[Account]:
        """
        Raises:
            PolicyViolationError: If this is the last remaining account
        """
        await self._enforce(self._validator.validate_account_deletion(self.state, account_id))
        previous = self.state
        account = self._ledger.delete_account(account_id)
        if account is not None:
            await self._changed(
                previous,
                AuditEventType.ACCOUNT_DELETED,
                "account",
                account_id,
                "deleted",
            )
        return account

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, name: str, color: str, icon: Optional[str] = None) -> Category:
        previous = self.state
        category = self._ledger.add_category(name=name, color=color, icon=icon)
        await self._changed(
            previous,
            AuditEventType.CATEGORY_CHANGED,
            "category",
            category.id,
            "added",
        )
        return category

    async def edit_category(self, category_id: str, name: str, color: str) -> Optional[Category]:
        previous = self.state
        category = self._ledger.edit_category(category_id, name=name, color=color)
        if category is not None:
            await self._changed(
                previous,
                AuditEventType.CATEGORY_CHANGED,
                "category",
                category_id,
                "edited",
            )
        return category

    async def delete_category(self, category_id: str) -> Optional[Category]:
        previous = self.state
        category = self._ledger.delete_category(category_id)
        if category is not None:
            await self._changed(
                previous,
                AuditEventType.CATEGORY_CHANGED,
                "category",
                category_id,
                "deleted",
            )
        return category

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def add_budget(self, budget: Budget) -> tuple[Budget, ValidationResult]:
        """Save a budget. Returns it with any allocation warnings."""
        result = await self._enforce(self._validator.validate_budget(budget))
        previous = self.state
        self._ledger.add_budget(budget)
        await self._changed(previous, AuditEventType.BUDGET_CHANGED, "budget", budget.id, "added")
        return budget, result

    async def update_budget(
        self,
        budget_id: str,
        **changes,
    ) -> Optional[tuple[Budget, ValidationResult]]:
        """Edit a budget. Returns it with any allocation warnings, None for unknown ids."""
        previous = self.state
        budget = self._ledger.update_budget(budget_id, **changes)
        if budget is None:
            return None
        try:
            result = await self._enforce(self._validator.validate_budget(budget))
        except PolicyViolationError:
            self._ledger.restore(previous)
            raise
        await self._changed(
            previous,
            AuditEventType.BUDGET_CHANGED,
            "budget",
            budget_id,
            "updated",
        )
        return budget, result

    async def delete_budget(self, budget_id: str) -> Optional[Budget]:
        previous = self.state
        budget = self._ledger.delete_budget(budget_id)
        if budget is not None:
            await self._changed(
                previous,
                AuditEventType.BUDGET_CHANGED,
                "budget",
                budget_id,
                "deleted",
            )
        return budget

    # =========================================================================
    # TARGETS
    # =========================================================================

    async def add_target(self, target: Target) -> Target:
        previous = self.state
        self._ledger.add_target(target)
        await self._changed(previous, AuditEventType.TARGET_CHANGED, "target", target.id, "added")
        return target

    async def delete_target(self, target_id: str) -> Optional[Target]:
        previous = self.state
        target = self._ledger.delete_target(target_id)
        if target is not None:
            await self._changed(
                previous,
                AuditEventType.TARGET_CHANGED,
                "target",
                target_id,
                "deleted",
            )
        return target

    async def contribute(
        self,
        target_id: str,
        amount: Amount,
        correlation_id: Optional[UUID] = None,
    ) -> Target:
        """
        Add money to a target without recording income.

        Raises:
            PolicyViolationError: If the target is unknown, the amount is
                not positive, or the goal would be exceeded
        """
        value = self._to_amount(amount, self.state.default_currency.code)
        await self._enforce(
            self._validator.validate_contribution(self.state, target_id, value),
            correlation_id,
        )
        previous = self.state
        target = self._ledger.contribute(target_id, value)
        await self._persist(previous, correlation_id)
        await self._audit_logger.log_target_contribution(
            target_id=target_id,
            amount=str(value),
            new_total=str(target.current_amount),
            correlation_id=correlation_id,
        )
        return target

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    async def set_default_currency(self, currency_code: str) -> None:
        """
        Raises:
            UnknownCurrencyError: If the code is not a supported currency
        """
        previous = self.state
        self._ledger.set_default_currency(currency_code)
        await self._changed(
            previous,
            AuditEventType.SETTINGS_CHANGED,
            "settings",
            None,
            "currency changed",
        )

    async def toggle_dark_mode(self) -> bool:
        previous = self.state
        dark_mode = self._ledger.toggle_dark_mode()
        await self._changed(
            previous,
            AuditEventType.SETTINGS_CHANGED,
            "settings",
            None,
            "theme changed",
        )
        return dark_mode

    async def reset(self) -> None:
        """Clear all data, keeping the currency and theme preferences."""
        previous = self.state
        self._ledger.reset()
        await self._changed(
            previous,
            AuditEventType.STORE_RESET,
            "store",
            self._store_name,
            "reset",
        )


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[FinanceTracker, BillScanFlow]:
    """
    Factory function to create all application components.

    The snapshot backend follows APP_STORAGE_BACKEND. With Google Sheets
    the audit trail is written to the same spreadsheet; with the local
    file backend audit events only go to the structured log.

    Returns:
        (finance_tracker, bill_scan_flow)

    Call `await finance_tracker.load()` before use.
    """
    settings = settings or get_settings()
    app = settings.app

    if app.storage_backend == "google_sheets":
        sheets_client = GoogleSheetsClient(settings.google_sheets)
        storage = GoogleSheetsSnapshotStorage(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    else:
        storage = JsonFileSnapshotStorage(Path(app.data_dir))
        audit_logger = AuditLogger()

    tracker = FinanceTracker(
        storage=storage,
        audit_logger=audit_logger,
        store_name=app.store_name,
    )

    scan_flow = BillScanFlow(
        engine=RecognitionEngine.from_settings(settings),
        audit_logger=audit_logger,
    )

    return tracker, scan_flow
