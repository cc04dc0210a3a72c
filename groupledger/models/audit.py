"""
Audit Models for Group Ledger

Every change to an event or to the personal tracker is logged for audit
purposes. This provides:
1. Traceability of who changed what in a shared event
2. Debugging information when balances look wrong
3. Ability to reconstruct the history of an event

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every mutating operation of the flows has its own event type.
    """
    # Events
    EVENT_CREATED = "event_created"
    EVENT_DELETED = "event_deleted"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"

    # Group expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_DELETED = "expense_deleted"

    # Settlement
    SETTLEMENTS_RESOLVED = "settlements_resolved"
    SETTLEMENTS_CLEARED = "settlements_cleared"
    VALIDATION_WARNING = "validation_warning"

    # Personal tracker
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_EDITED = "transaction_edited"
    TRANSACTION_DELETED = "transaction_deleted"

    # System events
    STORAGE_ERROR = "storage_error"
    UNREADABLE_ENTRIES = "unreadable_entries"


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

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'event', 'expense', 'transaction')"
    )
    entity_id: Optional[str] = None

    # For tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one settle-up request)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

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

    def to_json(self) -> str:
        """Serialize for the document store."""
        return json.dumps(self.to_log_dict(), default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.event_created(event_id, name, member_count)
        event = AuditEventBuilder.settlements_resolved(event_id, 3, correlation_id)
    """

    @staticmethod
    def event_created(
        event_id: str,
        name: str,
        member_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_CREATED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Event created: {name}",
            details={"member_count": member_count},
            is_user_action=True,
        )

    @staticmethod
    def event_deleted(
        event_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_DELETED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description="Event deleted",
            is_user_action=True,
        )

    @staticmethod
    def member_changed(
        event_id: str,
        member_id: str,
        added: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.MEMBER_ADDED if added else AuditEventType.MEMBER_REMOVED
            ),
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Member {'added' if added else 'removed'}: {member_id}",
            details={"member_id": member_id},
            is_user_action=True,
        )

    @staticmethod
    def expense_added(
        event_id: str,
        expense_id: str,
        amount: str,
        multi_payer: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense added: ₹{amount}",
            details={
                "event_id": event_id,
                "amount": amount,
                "multi_payer": multi_payer,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        event_id: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            details={"event_id": event_id},
            is_user_action=True,
        )

    @staticmethod
    def settlements_resolved(
        event_id: str,
        settlement_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENTS_RESOLVED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Settlements resolved: {settlement_count} transfers",
            details={"settlement_count": settlement_count},
        )

    @staticmethod
    def settlements_cleared(
        event_id: str,
        cleared: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENTS_CLEARED,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=(
                "Settlements marked as cleared" if cleared
                else "Settlements marked as outstanding"
            ),
            details={"cleared": cleared},
            is_user_action=True,
        )

    @staticmethod
    def validation_warning(
        event_id: str,
        warnings: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="event",
            entity_id=event_id,
            correlation_id=correlation_id,
            description=f"Ledger data has {len(warnings)} warnings",
            details={"warnings": warnings},
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction {verb}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def unreadable_entries(
        document_key: str,
        entry_ids: list[Optional[str]],
        reasons: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UNREADABLE_ENTRIES,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=document_key,
            correlation_id=correlation_id,
            description=f"{len(entry_ids)} stored entries in '{document_key}' could not be read",
            details={"entry_ids": entry_ids, "reasons": reasons},
        )
