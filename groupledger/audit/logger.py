"""
Audit Logger

DESIGN DECISION: Every change to an event or the personal tracker is
logged. This provides:
1. Traceability of who changed a shared event
2. Debugging capability when a balance looks wrong
3. History the user can look through

The audit logger:
- Is async, like the flows that call it
- Gracefully handles failures (a broken audit sink never breaks a flow)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from groupledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from groupledger.services.storage import AuditStorageInterface


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
    2. An audit storage sink, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("groupledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_event_created(
        self,
        event_id: str,
        name: str,
        member_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.event_created(
            event_id=event_id,
            name=name,
            member_count=member_count,
            correlation_id=correlation_id,
        ))

    async def log_event_deleted(
        self,
        event_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.event_deleted(
            event_id=event_id,
            correlation_id=correlation_id,
        ))

    async def log_member_changed(
        self,
        event_id: str,
        member_id: str,
        added: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_changed(
            event_id=event_id,
            member_id=member_id,
            added=added,
            correlation_id=correlation_id,
        ))

    async def log_expense_added(
        self,
        event_id: str,
        expense_id: str,
        amount: str,
        multi_payer: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_added(
            event_id=event_id,
            expense_id=expense_id,
            amount=amount,
            multi_payer=multi_payer,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        event_id: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            event_id=event_id,
            expense_id=expense_id,
            correlation_id=correlation_id,
        ))

    async def log_settlements_resolved(
        self,
        event_id: str,
        settlement_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlements_resolved(
            event_id=event_id,
            settlement_count=settlement_count,
            correlation_id=correlation_id,
        ))

    async def log_settlements_cleared(
        self,
        event_id: str,
        cleared: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlements_cleared(
            event_id=event_id,
            cleared=cleared,
            correlation_id=correlation_id,
        ))

    async def log_validation_warning(
        self,
        event_id: str,
        warnings: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_warning(
            event_id=event_id,
            warnings=warnings,
            correlation_id=correlation_id,
        ))

    async def log_transaction_changed(
        self,
        event_type: AuditEventType,
        transaction_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=transaction_id,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_unreadable_entries(
        self,
        document_key: str,
        entry_ids: list[Optional[str]],
        reasons: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Stored entries that failed validation; they are kept, not dropped."""
        await self.log(AuditEventBuilder.unreadable_entries(
            document_key=document_key,
            entry_ids=entry_ids,
            reasons=reasons,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., settling up an event).
    Pass it through all subsequent operations.
    """
    return uuid4()
