"""
Integration tests for the event and personal flows.

Most tests run against the in-memory document store. The concurrency
tests use the JSON file store under pytest's tmp_path.
"""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest

from groupledger.audit import AuditLogger
from groupledger.models.audit import AuditEventBuilder, AuditEventType
from groupledger.models.event import GroupExpense, Member
from groupledger.models.personal import Transaction, TransactionType
from groupledger.orchestrator import (
    DuplicateMemberError,
    EventNotFoundError,
    MemberInUseError,
    TransactionNotFoundError,
    UnknownMemberError,
    create_app_components,
    create_document_store,
)
from groupledger.services.storage import (
    DocumentAuditStorage,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    StorageError,
)


MEMBERS = [
    {"id": "A", "name": "Asha"},
    {"id": "B", "name": "Bilal"},
    {"id": "C", "name": "Chen"},
]


class BrokenStore(InMemoryDocumentStore):
    """Reads work, writes fail."""

    async def put(self, key: str, value: str) -> None:
        raise StorageError("disk full")


def run(coro):
    return asyncio.run(coro)


def audit_types(store) -> list[AuditEventType]:
    events = run(DocumentAuditStorage(store).get_recent_events())
    return [e.event_type for e in reversed(events)]


class TestEventFlow:
    """Tests for EventFlow."""

    def test_create_and_settle(self):
        """Test the A/B/C dinner from creation to share message."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Goa Trip", MEMBERS)
            await flow.add_expense(event.id, {
                "description": "Dinner",
                "amount": "90",
                "paid_by": "A",
                "split_between": ["A", "B", "C"],
            })
            report = await flow.settle_event(event.id)
            message = await flow.share_message(event.id)
            return report, message

        report, message = run(scenario())

        assert [(s.from_member, s.to_member, s.amount) for s in report.settlements] == [
            ("B", "A", Decimal("30")),
            ("C", "A", Decimal("30")),
        ]
        assert message == (
            "💰 Goa Trip - Settlement Summary\n\n"
            "Bilal owes Asha ₹30.00\n"
            "Chen owes Asha ₹30.00\n\n"
            "Total: ₹90"
        )

    def test_create_requires_members(self):
        """Test an event without members is refused."""
        flow, _, _ = create_app_components(InMemoryDocumentStore())
        with pytest.raises(ValueError, match="at least one member"):
            run(flow.create_event("Empty", []))

    def test_create_rejects_duplicate_member_ids(self):
        """Test duplicate ids in the member list are refused."""
        flow, _, _ = create_app_components(InMemoryDocumentStore())
        with pytest.raises(ValueError):
            run(flow.create_event("Trip", [{"id": "A", "name": "Asha"}, {"id": "A", "name": "Ana"}]))

    def test_unknown_event(self):
        """Test operations on an unknown event."""
        flow, _, _ = create_app_components(InMemoryDocumentStore())
        with pytest.raises(EventNotFoundError):
            run(flow.settle_event("nope"))

    def test_expenses_are_newest_first(self):
        """Test each new expense goes to the front."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"description": "first", "amount": 10, "paid_by": "A"})
            await flow.add_expense(event.id, {"description": "second", "amount": 20, "paid_by": "B"})
            return await flow.get_event(event.id)

        event = run(scenario())
        assert [e.description for e in event.expenses] == ["second", "first"]

    def test_member_management(self):
        """Test adding members and removing unreferenced ones."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_member(event.id, Member(id="D", name="Dev"))
            await flow.remove_member(event.id, "C")
            return await flow.get_event(event.id)

        assert run(scenario()).member_ids == ["A", "B", "D"]

    def test_duplicate_member(self):
        """Test adding a member id that is already used."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_member(event.id, {"id": "A", "name": "Another"})

        with pytest.raises(DuplicateMemberError):
            run(scenario())

    def test_referenced_member_cannot_be_removed(self):
        """Test removing a member an expense refers to."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"amount": 10, "paid_by": "A", "split_between": ["B"]})
            await flow.remove_member(event.id, "B")

        with pytest.raises(MemberInUseError):
            run(scenario())

    def test_remove_unknown_member(self):
        """Test removing someone who isn't a member."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.remove_member(event.id, "Z")

        with pytest.raises(UnknownMemberError):
            run(scenario())

    def test_unknown_members_tolerated_by_default(self):
        """Test an expense naming a non-member is stored and flagged."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"amount": 90, "paid_by": "A", "split_between": ["A", "ghost"]})
            return await flow.validate_event(event.id), await flow.settle_event(event.id)

        result, report = run(scenario())
        assert "unknown_member" in [i.issue_type for i in result.issues]
        assert report.balances["A"].owed == Decimal("45")

    def test_strict_mode_refuses_unknown_members(self):
        """Test strict mode rejects non-members."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(
                event.id,
                {"amount": 90, "paid_by": "A", "split_between": ["A", "ghost"]},
                strict=True,
            )

        with pytest.raises(UnknownMemberError, match="ghost"):
            run(scenario())

    def test_cleared_flag_resets_on_expense_change(self):
        """Test adding or deleting an expense clears the settled-up flag."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            expense = await flow.add_expense(event.id, {"amount": 30, "paid_by": "A", "split_between": ["A", "B"]})
            flags = [(await flow.mark_settlements_cleared(event.id)).settlements_cleared]

            await flow.add_expense(event.id, {"amount": 10, "paid_by": "B", "split_between": ["A", "B"]})
            flags.append((await flow.get_event(event.id)).settlements_cleared)

            await flow.mark_settlements_cleared(event.id)
            await flow.delete_expense(event.id, expense.id)
            flags.append((await flow.get_event(event.id)).settlements_cleared)
            return flags

        assert run(scenario()) == [True, False, False]

    def test_cleared_flag_can_be_undone(self):
        """Test the flag can be set back to outstanding."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.mark_settlements_cleared(event.id)
            return await flow.mark_settlements_cleared(event.id, cleared=False)

        assert run(scenario()).settlements_cleared is False

    def test_delete_unknown_expense(self):
        """Test deleting an expense that doesn't exist."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            return await flow.delete_expense(event.id, "nope")

        assert run(scenario()) is False

    def test_add_expense_from_transaction(self):
        """Test copying a personal expense into an event."""
        tx = Transaction(
            amount=Decimal("120"),
            category="Travel",
            description="Cab",
            payment_mode="UPI",
            transaction_date=date(2025, 2, 1),
        )

        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            return await flow.add_expense_from_transaction(event.id, tx, "B", ["A", "B", "C"])

        expense = run(scenario())
        assert expense.description == "Cab"
        assert expense.expense_date == date(2025, 2, 1)
        assert expense.payer.member_id == "B"
        assert expense.payment_mode == "UPI"

    def test_income_cannot_be_shared(self):
        """Test income transactions are refused."""
        tx = Transaction(
            type=TransactionType.INCOME,
            amount=Decimal("1000"),
            category="Salary",
            payment_mode="Bank Transfer",
        )

        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense_from_transaction(event.id, tx, "A", ["A"])

        with pytest.raises(ValueError, match="Only personal expenses"):
            run(scenario())

    def test_report_text(self):
        """Test the long text export is produced for an event."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS, description="Long weekend")
            await flow.add_expense(event.id, GroupExpense(
                amount=Decimal("100"),
                payments=[{"member_id": "A", "amount": "60"}, {"member_id": "B", "amount": "40"}],
                split_between=["A", "B", "C"],
            ))
            return await flow.report_text(event.id)

        text = run(scenario())
        assert "Long weekend" in text
        assert "Chen owes Asha ₹26.67" in text
        assert "Chen owes Bilal ₹6.67" in text

    def test_delete_event(self):
        """Test deleting an event."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            deleted = await flow.delete_event(event.id)
            return deleted, await flow.list_events()

        assert run(scenario()) == (True, [])

    def test_audit_trail(self):
        """Test every change lands in the persisted audit log."""
        store = InMemoryDocumentStore()

        async def scenario():
            flow, _, _ = create_app_components(store)
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"amount": 50, "paid_by": "A", "split_between": []})
            await flow.settle_event(event.id)
            await flow.mark_settlements_cleared(event.id)

        run(scenario())
        assert audit_types(store) == [
            AuditEventType.EVENT_CREATED,
            AuditEventType.EXPENSE_ADDED,
            AuditEventType.VALIDATION_WARNING,
            AuditEventType.SETTLEMENTS_RESOLVED,
            AuditEventType.VALIDATION_WARNING,
            AuditEventType.SETTLEMENTS_CLEARED,
        ]

    def test_audit_not_persisted_when_disabled(self):
        """Test persist_audit=False keeps the audit log out of the store."""
        store = InMemoryDocumentStore()

        async def scenario():
            flow, _, _ = create_app_components(store, persist_audit=False)
            await flow.create_event("Trip", MEMBERS)
            return await store.keys()

        assert run(scenario()) == ["group-events"]

    def test_storage_error_is_raised(self):
        """Test a failing store surfaces StorageError to the caller."""
        flow, _, _ = create_app_components(BrokenStore(), persist_audit=False)
        with pytest.raises(StorageError, match="disk full"):
            run(flow.create_event("Trip", MEMBERS))

    def test_concurrent_expenses_are_all_kept(self, tmp_path):
        """Test expenses added at the same time to one event are all stored."""
        async def scenario():
            flow, _, _ = create_app_components(JsonFileDocumentStore(str(tmp_path / "ledger.json")))
            event = await flow.create_event("Trip", MEMBERS)
            await asyncio.gather(
                flow.add_expense(event.id, {"amount": 30, "paid_by": "A", "split_between": ["A", "B"]}),
                flow.add_expense(event.id, {"amount": 60, "paid_by": "B", "split_between": ["B", "C"]}),
            )
            return await flow.get_event(event.id)

        event = run(scenario())
        assert len(event.expenses) == 2
        assert event.total_amount == Decimal("90")

    def test_concurrent_member_changes_are_all_kept(self):
        """Test concurrent edits to one event don't overwrite each other."""
        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore())
            event = await flow.create_event("Trip", MEMBERS)
            await asyncio.gather(
                flow.add_member(event.id, {"id": "D", "name": "Dana"}),
                flow.add_expense(event.id, {"amount": 10, "paid_by": "A", "split_between": ["A"]}),
                flow.mark_settlements_cleared(event.id),
            )
            return await flow.get_event(event.id)

        event = run(scenario())
        assert event.member_ids == ["A", "B", "C", "D"]
        assert len(event.expenses) == 1

    def test_failed_edit_changes_nothing(self):
        """Test a refused member removal leaves the stored event untouched."""
        store = InMemoryDocumentStore()

        async def scenario():
            flow, _, _ = create_app_components(store, persist_audit=False)
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"amount": 10, "paid_by": "A", "split_between": ["B"]})
            before = await store.get("group-events")
            with pytest.raises(MemberInUseError):
                await flow.remove_member(event.id, "B")
            return before, await store.get("group-events")

        before, after = run(scenario())
        assert before == after

    def test_unreadable_event_survives_new_events(self):
        """Test an event stored by an older build is kept when another is created."""
        legacy = {
            "id": "legacy",
            "name": "Old trip",
            "members": [{"id": "A", "name": "Asha"}],
            "expenses": [{"id": "x1", "amount": -1, "paidBy": "A", "splitBetween": ["A"]}],
        }
        store = InMemoryDocumentStore({"group-events": json.dumps([legacy])})

        async def scenario():
            flow, _, _ = create_app_components(store)
            event = await flow.create_event("Trip", MEMBERS)
            await flow.add_expense(event.id, {"amount": 10, "paid_by": "A", "split_between": ["A"]})
            return [e.name for e in await flow.list_events()]

        assert run(scenario()) == ["Trip"]
        stored = json.loads(run(store.get("group-events")))
        assert stored[-1] == legacy
        assert AuditEventType.UNREADABLE_ENTRIES in audit_types(store)


class TestPersonalFlow:
    """Tests for PersonalFlow."""

    def test_add_edit_delete(self):
        """Test the transaction life cycle."""
        async def scenario():
            _, flow, _ = create_app_components(InMemoryDocumentStore())
            tx = await flow.add_transaction({
                "type": "expense",
                "amount": "250",
                "category": "Shopping",
                "paymentMode": "Cash",
            })
            await flow.edit_transaction(tx.model_copy(update={"amount": Decimal("300")}))
            edited = await flow.get_transaction(tx.id)
            deleted = await flow.delete_transaction(tx.id)
            return edited, deleted, await flow.list_transactions()

        edited, deleted, remaining = run(scenario())
        assert edited.amount == Decimal("300")
        assert deleted is True
        assert remaining == []

    def test_edit_unknown(self):
        """Test editing a transaction that was never stored."""
        _, flow, _ = create_app_components(InMemoryDocumentStore())
        tx = Transaction(amount=Decimal("1"), category="Other", payment_mode="Cash")
        with pytest.raises(TransactionNotFoundError):
            run(flow.edit_transaction(tx))

    def test_concurrent_adds_are_all_kept(self, tmp_path):
        """Test transactions added at the same time are all stored."""
        async def scenario():
            _, flow, _ = create_app_components(JsonFileDocumentStore(str(tmp_path / "ledger.json")))
            await asyncio.gather(*(
                flow.add_transaction({"amount": str(n), "category": "Other", "paymentMode": "Cash"})
                for n in (10, 20, 30)
            ))
            return await flow.list_transactions()

        assert sorted(t.amount for t in run(scenario())) == [Decimal("10"), Decimal("20"), Decimal("30")]

    def test_get_unknown(self):
        """Test fetching a transaction that doesn't exist."""
        _, flow, _ = create_app_components(InMemoryDocumentStore())
        with pytest.raises(TransactionNotFoundError):
            run(flow.get_transaction("nope"))

    def test_summary(self):
        """Test the summary reflects stored transactions."""
        async def scenario():
            _, flow, _ = create_app_components(InMemoryDocumentStore())
            await flow.add_transaction(Transaction(
                type=TransactionType.INCOME, amount=Decimal("5000"),
                category="Salary", payment_mode="Bank Transfer",
            ))
            await flow.add_transaction(Transaction.split_expense(
                Decimal("900"), 3, category="Food & Dining", payment_mode="UPI",
            ))
            return await flow.summary()

        summary = run(scenario())
        assert summary.balance == Decimal("4100")
        assert summary.by_category == {"Food & Dining": Decimal("900")}
        assert summary.recent[0].split_info.amount_per_person == Decimal("300")


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_storage_failure_is_not_raised(self):
        """Test a broken audit sink never breaks the caller."""
        logger = AuditLogger(DocumentAuditStorage(BrokenStore()))

        async def scenario():
            await logger.log_event_deleted("ev1")
            return await logger.log(AuditEventBuilder.event_deleted("ev1"))

        assert run(scenario()) is False

    def test_without_storage(self):
        """Test local-only logging reports success."""
        assert run(AuditLogger().log(AuditEventBuilder.event_deleted("ev1"))) is True


class TestComponentFactory:
    """Tests for the store factory."""

    def test_memory_backend(self):
        """Test the in-memory backend is built by name."""
        assert isinstance(create_document_store("memory"), InMemoryDocumentStore)

    def test_json_backend(self):
        """Test the JSON backend is built by name."""
        assert isinstance(create_document_store("json"), JsonFileDocumentStore)

    def test_unknown_backend(self):
        """Test an unknown backend name."""
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_document_store("sheets")
