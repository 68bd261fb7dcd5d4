"""
Audit Models for Expense Tracker

Every ledger mutation and every bill scan is logged for audit purposes.
This provides:
1. Traceability of balance changes
2. Debugging information when a scan picks the wrong amount
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Bill scanning
    SCAN_STARTED = "scan_started"
    SCAN_COMPLETED = "scan_completed"
    SCAN_NO_AMOUNT = "scan_no_amount"
    RECOGNITION_FAILED = "recognition_failed"

    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    ACCOUNT_ADDED = "account_added"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    CATEGORY_CHANGED = "category_changed"
    BUDGET_CHANGED = "budget_changed"
    TARGET_CHANGED = "target_changed"
    TARGET_CONTRIBUTION = "target_contribution"
    SETTINGS_CHANGED = "settings_changed"
    STORE_RESET = "store_reset"

    # Policy
    POLICY_VIOLATION = "policy_violation"

    # Persistence
    SNAPSHOT_SAVED = "snapshot_saved"
    SNAPSHOT_LOADED = "snapshot_loaded"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'scan')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., scan then expense)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction, correlation_id)
        event = AuditEventBuilder.scan_completed(amount, template, correlation_id)
    """

    @staticmethod
    def scan_completed(
        amount: Optional[str],
        template_name: Optional[str],
        text_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if amount is None:
            return AuditEvent(
                event_type=AuditEventType.SCAN_NO_AMOUNT,
                entity_type="scan",
                correlation_id=correlation_id,
                description="Bill scanned but no amount could be detected",
                details={"text_length": text_length},
                is_user_action=True,
            )
        return AuditEvent(
            event_type=AuditEventType.SCAN_COMPLETED,
            entity_type="scan",
            correlation_id=correlation_id,
            description=f"Bill scanned, detected amount {amount}",
            details={
                "amount": amount,
                "template": template_name,
                "text_length": text_length,
            },
            is_user_action=True,
        )

    @staticmethod
    def recognition_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOGNITION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="scan",
            correlation_id=correlation_id,
            description="Text recognition failed; manual entry required",
            error_message=error_message,
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount} recorded",
            details={
                "type": transaction_type,
                "amount": amount,
                "account_id": account_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted and balance reversed",
            is_user_action=True,
        )

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {action}",
            details={"action": action},
            is_user_action=True,
        )

    @staticmethod
    def target_contribution(
        target_id: str,
        amount: str,
        new_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TARGET_CONTRIBUTION,
            entity_type="target",
            entity_id=target_id,
            correlation_id=correlation_id,
            description=f"Contributed {amount} to target",
            details={"amount": amount, "current_amount": new_total},
            is_user_action=True,
        )

    @staticmethod
    def policy_violation(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POLICY_VIOLATION,
            severity=AuditSeverity.WARNING,
            entity_type="policy",
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issues",
            details={"operation": operation, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_saved(
        store_name: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            entity_id=store_name,
            correlation_id=correlation_id,
            description=f"Snapshot {store_name} saved",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
