"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every bill scan is logged.
This provides:
1. Traceability of balance changes
2. Debugging capability when a scan picks the wrong total
3. User can see history of their interactions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType, AuditSeverity
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_scan_completed(
        self,
        amount: Optional[str],
        template_name: Optional[str],
        text_length: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a finished scan, with or without a detected amount."""
        await self.log(AuditEventBuilder.scan_completed(
            amount=amount,
            template_name=template_name,
            text_length=text_length,
            correlation_id=correlation_id,
        ))

    async def log_recognition_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recognition_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_added(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        account_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_entity_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        action: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a create/update/delete of an account, category, budget or target."""
        await self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            correlation_id=correlation_id,
        ))

    async def log_target_contribution(
        self,
        target_id: str,
        amount: str,
        new_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.target_contribution(
            target_id=target_id,
            amount=amount,
            new_total=new_total,
            correlation_id=correlation_id,
        ))

    async def log_policy_violation(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.policy_violation(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_snapshot_saved(
        self,
        store_name: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_saved(
            store_name=store_name,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a bill scan).
    Pass it through all subsequent operations, such as the expense
    recorded from the scanned amount.
    """
    return uuid4()
