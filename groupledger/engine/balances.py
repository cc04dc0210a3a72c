"""
Balance Calculator

Derives, for every member of an event, how much they paid, how much of
the group's spending they consumed, and the difference between the two.

Pure function: no I/O, no logging, no mutation of its inputs.
Calling it twice with the same inputs gives the same result.

DEFENSIVE DEFAULTS (nothing here raises on bad data):
- Member ids referenced by an expense but absent from `members` are skipped.
- An expense with an empty split set adds nothing to anyone's `owed`.
- Multi-payer totals that differ from the expense amount are not reconciled:
  `paid` is what was recorded, `owed` is the expense amount divided by the
  split size. Such input can break the zero-sum property on purpose;
  LedgerValidator reports it.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from groupledger.models.event import BalanceEntry, GroupExpense, Member


ZERO = Decimal("0")


def compute_balances(
    members: Sequence[Member],
    expenses: Iterable[GroupExpense],
) -> dict[str, BalanceEntry]:
    """
    Compute paid / owed / balance for every member.

    Args:
        members: Event members, in event order
        expenses: Group expenses of the event

    Returns:
        Mapping of member id to BalanceEntry, keyed in member order.
        Shares are not rounded; rounding is a display concern.
    """
    paid = {member.id: ZERO for member in members}
    owed = {member.id: ZERO for member in members}

    for expense in expenses:
        for member_id, amount in expense.contributions():
            if member_id in paid:
                paid[member_id] += amount

        if not expense.split_between:
            continue

        # Unknown ids still count towards the divisor
        share = expense.amount / len(expense.split_between)
        for member_id in expense.split_between:
            if member_id in owed:
                owed[member_id] += share

    return {
        member_id: BalanceEntry(
            member_id=member_id,
            paid=paid[member_id],
            owed=owed[member_id],
            balance=paid[member_id] - owed[member_id],
        )
        for member_id in paid
    }


def net_balances(entries: Mapping[str, BalanceEntry]) -> dict[str, Decimal]:
    """Reduce balance entries to member id -> net balance, keeping order."""
    return {member_id: entry.balance for member_id, entry in entries.items()}


def total_balance(balances: Mapping[str, Decimal]) -> Decimal:
    """Sum of all net balances. Zero for consistent input."""
    return sum(balances.values(), ZERO)
