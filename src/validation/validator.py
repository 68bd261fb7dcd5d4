"""
Ledger Policy Validation

DESIGN DECISION: The Ledger is pure bookkeeping and accepts any
well-formed input. Business rules live here and are applied by the
calling layer before a mutation reaches the Ledger:

- an expense may not overdraw a non-credit account
- an expense may not push a credit account past its limit
- a target contribution may not exceed the income it comes from,
  nor push the target past its goal
- the last remaining account cannot be deleted

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to resolve.
"""

from decimal import Decimal
from typing import Optional

from src.models.finance import AccountType, Budget, LedgerState
from src.models.results import ValidationIssue, ValidationResult


INCOME_ACCOUNT_EXCLUSIONS = frozenset({AccountType.CREDIT, AccountType.ONLINE})


class TransactionValidator:
    """
    Checks requested ledger mutations against spending policy.

    Every method returns a ValidationResult; errors block, warnings don't.
    """

    def _check_amount(self, amount: Decimal, issues: list[ValidationIssue]) -> None:
        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount shown on the bill",
            ))

    def validate_expense(
        self,
        state: LedgerState,
        account_id: str,
        amount: Decimal,
    ) -> ValidationResult:
        """Check that an expense fits the account's balance or credit limit."""
        issues = []
        self._check_amount(amount, issues)

        account = state.find_account(account_id)
        if account is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Please select a valid account",
                severity="error",
            ))
            return ValidationResult(operation="add_expense", issues=issues)

        if account.is_credit:
            if account.limit is not None:
                new_balance = account.balance - amount
                if abs(new_balance) > account.limit:
                    issues.append(ValidationIssue(
                        field="amount",
                        issue_type="credit_limit_exceeded",
                        message=(
                            f"This expense would exceed your credit limit of "
                            f"{account.limit:.2f}"
                        ),
                        severity="error",
                        suggested_fix=f"Available credit: {account.available:.2f}",
                    ))
        elif account.balance < amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="insufficient_balance",
                message=(
                    f"Insufficient balance in {account.name}. "
                    f"Available: {account.balance:.2f}"
                ),
                severity="error",
                suggested_fix="Choose another account or add income first",
            ))

        return ValidationResult(operation="add_expense", issues=issues)

    def validate_income(
        self,
        state: LedgerState,
        account_id: str,
        amount: Decimal,
        target_id: Optional[str] = None,
        contribution: Optional[Decimal] = None,
    ) -> ValidationResult:
        """Check an income entry and its optional target contribution."""
        issues = []
        self._check_amount(amount, issues)

        account = state.find_account(account_id)
        if account is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Please select a valid account",
                severity="error",
            ))
        elif account.type in INCOME_ACCOUNT_EXCLUSIONS:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="unusual_account",
                message=f"{account.name} is a {account.type.value} account; income usually goes elsewhere",
                severity="warning",
            ))

        if target_id and contribution:
            if contribution > amount:
                issues.append(ValidationIssue(
                    field="contribution",
                    issue_type="contribution_exceeds_income",
                    message="Target contribution cannot exceed income amount",
                    severity="error",
                ))
            issues.extend(self.validate_contribution(state, target_id, contribution).issues)

        return ValidationResult(operation="add_income", issues=issues)

    def validate_contribution(
        self,
        state: LedgerState,
        target_id: str,
        amount: Decimal,
    ) -> ValidationResult:
        issues = []
        self._check_amount(amount, issues)

        target = state.find_target(target_id)
        if target is None:
            issues.append(ValidationIssue(
                field="target_id",
                issue_type="missing",
                message="Please select a valid target",
                severity="error",
            ))
        elif target.current_amount + amount > target.target_amount:
            issues.append(ValidationIssue(
                field="contribution",
                issue_type="target_exceeded",
                message="Target contribution would exceed target amount",
                severity="error",
                suggested_fix=f"At most {target.target_amount - target.current_amount:.2f} can be added",
            ))

        return ValidationResult(operation="contribute", issues=issues)

    def validate_account_deletion(
        self,
        state: LedgerState,
        account_id: str,
    ) -> ValidationResult:
        issues = []
        if state.find_account(account_id) is not None and len(state.accounts) <= 1:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="last_account",
                message="You need at least one account",
                severity="error",
                suggested_fix="Add another account before deleting this one",
            ))
        return ValidationResult(operation="delete_account", issues=issues)

    def validate_budget(self, budget: Budget) -> ValidationResult:
        issues = []
        allocated = sum((a.amount for a in budget.category_allocations), Decimal("0"))
        if allocated > budget.total_amount:
            issues.append(ValidationIssue(
                field="category_allocations",
                issue_type="over_allocated",
                message=(
                    f"Category allocations ({allocated:.2f}) exceed the total "
                    f"budget ({budget.total_amount:.2f})"
                ),
                severity="warning",
            ))
        if not budget.category_allocations:
            issues.append(ValidationIssue(
                field="category_allocations",
                issue_type="empty",
                message="Budget has no category allocations; nothing will count against it",
                severity="warning",
            ))
        return ValidationResult(operation="save_budget", issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
