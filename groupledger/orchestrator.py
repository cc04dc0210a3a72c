"""
Main Orchestrator for Group Ledger

This module ties together the engine, storage, validation and audit
logging, and defines the use cases the presentation layer calls:
1. Group events (create → add expenses → settle up → share → mark cleared)
2. Personal tracker (add / edit / delete transactions → summary)

DESIGN DECISION: The engine stays pure. Everything with a side effect
(loading, saving, logging) happens here, around the engine calls.

DESIGN DECISION: Any change to an event's expenses resets its
"settlements cleared" flag, since the settlements it referred to have
changed.
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Optional, Sequence, Union
from uuid import UUID

from groupledger.audit import AuditLogger, create_correlation_id
from groupledger.config import get_settings
from groupledger.models.audit import AuditEventType
from groupledger.models.event import GroupEvent, GroupExpense, Member
from groupledger.models.personal import Transaction, TransactionType
from groupledger.models.report import EventSettlementReport, PersonalSummary
from groupledger.models.validation import ValidationResult
from groupledger.reports import (
    build_event_report,
    format_report_text,
    format_share_message,
    summarize_transactions,
)
from groupledger.services.storage import (
    DocumentAuditStorage,
    DocumentStoreInterface,
    EventRepository,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    NotFoundError,
    StorageError,
    TransactionRepository,
)
from groupledger.validation import LedgerValidator


class LedgerError(Exception):
    """Base exception for ledger flows."""
    pass


class EventNotFoundError(LedgerError):
    """No event with the given id."""
    pass


class TransactionNotFoundError(LedgerError):
    """No personal transaction with the given id."""
    pass


class UnknownMemberError(LedgerError):
    """A member id that is not part of the event."""
    pass


class DuplicateMemberError(LedgerError):
    """A member with the same id is already in the event."""
    pass


class MemberInUseError(LedgerError):
    """The member is referenced by an expense and cannot be removed."""
    pass


class EventFlow:
    """
    Orchestrates group events.

    Flow:
    1. Create → event with its members
    2. Add expenses → single or multi payer, split between members
    3. Settle → balances + settlements (engine)
    4. Share → plain-text summary for the group
    5. Clear → record that the group has settled up
    """

    def __init__(
        self,
        events: EventRepository,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        tolerance: Optional[Decimal] = None,
        currency_symbol: Optional[str] = None,
    ):
        engine_settings = get_settings().engine
        self._events = events
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        self._tolerance = (
            tolerance if tolerance is not None else engine_settings.settlement_tolerance
        )
        self._symbol = currency_symbol or engine_settings.currency_symbol
        self._decimals = engine_settings.display_decimals

    async def _log_storage_error(
        self,
        operation: str,
        error: StorageError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _save(
        self,
        event: GroupEvent,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> None:
        try:
            await self._events.save_event(event)
        except StorageError as e:
            await self._log_storage_error(operation, e, correlation_id)
            raise

    @asynccontextmanager
    async def _editing(
        self,
        event_id: str,
        operation: str,
        correlation_id: Optional[UUID],
    ) -> AsyncIterator[GroupEvent]:
        """
        Locked load / modify / save of one event.

        Raising inside the block leaves the stored event untouched.

        Raises:
            EventNotFoundError: If no event has this id
        """
        try:
            async with self._events.editing(event_id) as event:
                yield event
        except NotFoundError:
            raise EventNotFoundError(f"Event not found: {event_id}") from None
        except StorageError as e:
            await self._log_storage_error(operation, e, correlation_id)
            raise

    async def create_event(
        self,
        name: str,
        members: Sequence[Union[Member, dict]],
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> GroupEvent:
        """
        Create and store a new event.

        Raises:
            ValueError: If there are no members, or the data is invalid
        """
        correlation_id = correlation_id or create_correlation_id()

        if not members:
            raise ValueError("An event needs at least one member")

        event = GroupEvent(
            name=name,
            description=description or None,
            members=[
                m if isinstance(m, Member) else Member.model_validate(m)
                for m in members
            ],
        )
        await self._save(event, "create_event", correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_event_created(
                event_id=event.id,
                name=event.name,
                member_count=len(event.members),
                correlation_id=correlation_id,
            )

        return event

    async def list_events(self) -> list[GroupEvent]:
        """All events, newest first."""
        return await self._events.list_events()

    async def get_event(self, event_id: str) -> GroupEvent:
        """
        Raises:
            EventNotFoundError: If no event has this id
        """
        event = await self._events.get_event(event_id)
        if event is None:
            raise EventNotFoundError(f"Event not found: {event_id}")
        return event

    async def delete_event(
        self,
        event_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._events.delete_event(event_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_event_deleted(
                event_id=event_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def add_member(
        self,
        event_id: str,
        member: Union[Member, dict],
        correlation_id: Optional[UUID] = None,
    ) -> GroupEvent:
        """
        Append a member to an event. New members go last in member order.

        Raises:
            DuplicateMemberError: If the member id is already used
        """
        member = member if isinstance(member, Member) else Member.model_validate(member)

        async with self._editing(event_id, "add_member", correlation_id) as event:
            if event.get_member(member.id):
                raise DuplicateMemberError(f"Member already in event: {member.id}")
            event.members.append(member)

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                event_id=event.id,
                member_id=member.id,
                added=True,
                correlation_id=correlation_id,
            )
        return event

    async def remove_member(
        self,
        event_id: str,
        member_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> GroupEvent:
        """
        Remove a member who is not referenced by any expense.

        Raises:
            UnknownMemberError: If the member is not in the event
            MemberInUseError: If an expense references the member
        """
        async with self._editing(event_id, "remove_member", correlation_id) as event:
            if event.get_member(member_id) is None:
                raise UnknownMemberError(f"Not a member of this event: {member_id}")
            if event.is_member_referenced(member_id):
                raise MemberInUseError(
                    f"Member {member_id} is referenced by an expense and cannot be removed"
                )
            event.members = [m for m in event.members if m.id != member_id]

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                event_id=event.id,
                member_id=member_id,
                added=False,
                correlation_id=correlation_id,
            )
        return event

    async def add_expense(
        self,
        event_id: str,
        expense: Union[GroupExpense, dict],
        strict: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> GroupExpense:
        """
        Add an expense to an event (newest first).

        Args:
            strict: Refuse expenses that reference non-members instead of
                    storing them and reporting a warning.

        Raises:
            UnknownMemberError: In strict mode, if a payer or split id is unknown
        """
        correlation_id = correlation_id or create_correlation_id()
        expense = (
            expense if isinstance(expense, GroupExpense)
            else GroupExpense.model_validate(expense)
        )

        async with self._editing(event_id, "add_expense", correlation_id) as event:
            if strict:
                unknown = expense.referenced_member_ids - set(event.member_ids)
                if unknown:
                    raise UnknownMemberError(
                        f"Not members of this event: {', '.join(sorted(unknown))}"
                    )
            event.expenses.insert(0, expense)
            event.settlements_cleared = False

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                event_id=event.id,
                expense_id=expense.id,
                amount=str(expense.amount),
                multi_payer=expense.is_multi_payer,
                correlation_id=correlation_id,
            )
            result = self._validator.validate(event.members, [expense], event_id=event.id)
            if result.warnings:
                await self._audit_logger.log_validation_warning(
                    event_id=event.id,
                    warnings=result.warnings,
                    correlation_id=correlation_id,
                )

        return expense

    async def add_expense_from_transaction(
        self,
        event_id: str,
        transaction: Transaction,
        paid_by: str,
        split_between: Sequence[str],
        strict: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> GroupExpense:
        """
        Copy a personal expense into an event as a shared expense.

        Raises:
            ValueError: If the transaction is income
        """
        if transaction.type != TransactionType.EXPENSE:
            raise ValueError("Only personal expenses can be shared with a group")

        expense = GroupExpense(
            description=transaction.description or transaction.category,
            amount=transaction.amount,
            category=transaction.category,
            expense_date=transaction.transaction_date,
            payment_mode=transaction.payment_mode,
            split_between=list(split_between),
            paid_by=paid_by,
        )
        return await self.add_expense(
            event_id,
            expense,
            strict=strict,
            correlation_id=correlation_id,
        )

    async def delete_expense(
        self,
        event_id: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        async with self._editing(event_id, "delete_expense", correlation_id) as event:
            remaining = [e for e in event.expenses if e.id != expense_id]
            found = len(remaining) != len(event.expenses)
            if found:
                event.expenses = remaining
                event.settlements_cleared = False

        if not found:
            return False

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                event_id=event.id,
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
        return True

    async def validate_event(self, event_id: str) -> ValidationResult:
        return self._validator.validate_event(await self.get_event(event_id))

    async def settle_event(
        self,
        event_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> EventSettlementReport:
        """Compute balances and settlements for an event. Nothing is stored."""
        correlation_id = correlation_id or create_correlation_id()
        event = await self.get_event(event_id)
        report = build_event_report(event, self._tolerance)

        if self._audit_logger:
            await self._audit_logger.log_settlements_resolved(
                event_id=event.id,
                settlement_count=report.settlement_count,
                correlation_id=correlation_id,
            )
            result = self._validator.validate_event(event)
            if result.warnings:
                await self._audit_logger.log_validation_warning(
                    event_id=event.id,
                    warnings=result.warnings,
                    correlation_id=correlation_id,
                )

        return report

    async def mark_settlements_cleared(
        self,
        event_id: str,
        cleared: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> GroupEvent:
        async with self._editing(event_id, "mark_settlements_cleared", correlation_id) as event:
            event.settlements_cleared = cleared

        if self._audit_logger:
            await self._audit_logger.log_settlements_cleared(
                event_id=event.id,
                cleared=cleared,
                correlation_id=correlation_id,
            )
        return event

    async def share_message(self, event_id: str) -> str:
        event = await self.get_event(event_id)
        report = build_event_report(event, self._tolerance)
        return format_share_message(event, report.settlements, self._symbol, self._decimals)

    async def report_text(self, event_id: str) -> str:
        event = await self.get_event(event_id)
        report = build_event_report(event, self._tolerance)
        return format_report_text(event, report, self._symbol, self._decimals)


class PersonalFlow:
    """Orchestrates the personal income / expense tracker."""

    def __init__(
        self,
        transactions: TransactionRepository,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transactions
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    async def add_transaction(
        self,
        transaction: Union[Transaction, dict],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        transaction = (
            transaction if isinstance(transaction, Transaction)
            else Transaction.model_validate(transaction)
        )
        await self._transactions.add_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_changed(
                event_type=AuditEventType.TRANSACTION_ADDED,
                transaction_id=transaction.id,
                details={
                    "type": transaction.type.value,
                    "amount": str(transaction.amount),
                    "category": transaction.category,
                },
                correlation_id=correlation_id,
            )
        return transaction

    async def edit_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Replace a stored transaction with an edited copy (same id).

        Raises:
            TransactionNotFoundError: If no transaction has this id
        """
        try:
            await self._transactions.update_transaction(transaction)
        except NotFoundError:
            raise TransactionNotFoundError(
                f"Transaction not found: {transaction.id}"
            ) from None

        if self._audit_logger:
            await self._audit_logger.log_transaction_changed(
                event_type=AuditEventType.TRANSACTION_EDITED,
                transaction_id=transaction.id,
                correlation_id=correlation_id,
            )
        return transaction

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        deleted = await self._transactions.delete_transaction(transaction_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_changed(
                event_type=AuditEventType.TRANSACTION_DELETED,
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def list_transactions(self) -> list[Transaction]:
        """All transactions, newest entry first."""
        return await self._transactions.list_transactions()

    async def get_transaction(self, transaction_id: str) -> Transaction:
        transaction = await self._transactions.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")
        return transaction

    async def summary(self) -> PersonalSummary:
        return summarize_transactions(
            await self._transactions.list_transactions(),
            recent_limit=self._settings.recent_transactions_limit,
            months=self._settings.chart_months,
        )


def create_document_store(backend: Optional[str] = None) -> DocumentStoreInterface:
    """Build the configured document store backend."""
    storage_settings = get_settings().storage
    backend = backend or storage_settings.backend
    if backend == "json":
        return JsonFileDocumentStore(storage_settings.data_path)
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    store: Optional[DocumentStoreInterface] = None,
    persist_audit: bool = True,
) -> tuple[EventFlow, PersonalFlow, DocumentStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        store: Document store to use. Defaults to the configured backend.
        persist_audit: Also write audit events to the store.
                       Set to False to only log locally.

    Returns:
        (event_flow, personal_flow, store)
    """
    storage_settings = get_settings().storage
    store = store or create_document_store()

    audit_storage = (
        DocumentAuditStorage(
            store,
            storage_settings.audit_key,
            max_entries=storage_settings.audit_max_entries,
        )
        if persist_audit else None
    )
    audit_logger = AuditLogger(audit_storage)

    event_flow = EventFlow(
        events=EventRepository(
            store, storage_settings.events_key, audit_logger=audit_logger
        ),
        audit_logger=audit_logger,
    )
    personal_flow = PersonalFlow(
        transactions=TransactionRepository(
            store, storage_settings.transactions_key, audit_logger=audit_logger
        ),
        audit_logger=audit_logger,
    )

    return event_flow, personal_flow, store
