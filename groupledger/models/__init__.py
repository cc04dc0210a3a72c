"""
Data Models Package

This package contains all Pydantic models used in Group Ledger.
All data flowing into the engine and out of it conforms to these schemas.
"""

from groupledger.models.event import (
    MULTIPLE_PAYERS,
    BalanceEntry,
    GroupEvent,
    GroupExpense,
    Member,
    MultiPayer,
    Payment,
    PayerInfo,
    Settlement,
    SinglePayer,
    new_id,
)
from groupledger.models.personal import (
    SplitInfo,
    Transaction,
    TransactionType,
)
from groupledger.models.report import (
    EventSettlementReport,
    MemberSummary,
    MonthlyTotals,
    PersonalSummary,
)
from groupledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from groupledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Event models
    "MULTIPLE_PAYERS",
    "BalanceEntry",
    "GroupEvent",
    "GroupExpense",
    "Member",
    "MultiPayer",
    "Payment",
    "PayerInfo",
    "Settlement",
    "SinglePayer",
    "new_id",
    # Personal tracker models
    "SplitInfo",
    "Transaction",
    "TransactionType",
    # Reports
    "EventSettlementReport",
    "MemberSummary",
    "MonthlyTotals",
    "PersonalSummary",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
