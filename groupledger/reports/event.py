"""Settlement report for one group event."""

from decimal import Decimal

from groupledger.engine import SETTLEMENT_TOLERANCE, settle
from groupledger.models.event import GroupEvent
from groupledger.models.report import EventSettlementReport, MemberSummary


def build_event_report(
    event: GroupEvent,
    tolerance: Decimal = SETTLEMENT_TOLERANCE,
) -> EventSettlementReport:
    """Run the engine over an event and shape the result for display."""
    balances, settlements = settle(event.members, event.expenses, tolerance)

    members = [
        MemberSummary(
            member_id=member.id,
            name=member.name,
            paid=balances[member.id].paid,
            owed=balances[member.id].owed,
            balance=balances[member.id].balance,
            settled=balances[member.id].is_settled(tolerance),
        )
        for member in event.members
    ]

    total = event.total_amount
    average = total / len(event.members) if event.members else Decimal("0")

    return EventSettlementReport(
        event_id=event.id,
        event_name=event.name,
        balances=balances,
        settlements=settlements,
        members=members,
        total_amount=total,
        expense_count=len(event.expenses),
        average_per_person=average,
        settlements_cleared=event.settlements_cleared,
    )
