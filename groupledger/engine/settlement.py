"""
Settlement Resolver

Turns net balances into a list of directed transfers (debtor -> creditor)
that brings every balance to zero.

ALGORITHM: pairwise greedy netting in a single sweep.
Every unordered pair (i, j) with i before j in member order is visited
exactly once, outer index ascending, inner index ascending. When one side
of the pair is a creditor and the other a debtor, the smaller of the two
magnitudes is transferred. The sweep is never repeated.

This is NOT a minimum-transfer-count solver. Group sizes are small (usually
fewer than 20 members) and the sweep keeps the output easy to predict:
the order of transfers depends only on member order and balance values.
After a pair is visited at least one side of it is settled, so one sweep
zeroes every balance whenever the balances sum to zero.

Transfers of at most the tolerance (0.01) are treated as noise and are
not emitted. The resolver has no error conditions; the worst case is an
empty list.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Sequence, Union

from groupledger.engine.balances import compute_balances, net_balances
from groupledger.models.event import (
    BalanceEntry,
    GroupExpense,
    Member,
    Settlement,
)


SETTLEMENT_TOLERANCE = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their shortest repr, not binary noise
    return Decimal(str(value))


def resolve_settlements(
    balances: Mapping[str, Amount],
    tolerance: Amount = SETTLEMENT_TOLERANCE,
) -> list[Settlement]:
    """
    Produce the settlement list for a balance map.

    Args:
        balances: member id -> net balance, in member order.
                  Positive means the member is owed money.
        tolerance: Transfers at or below this amount are not emitted.

    Returns:
        Settlements in the order the sweep produced them.
    """
    tolerance = _to_decimal(tolerance)
    # Working copy; the caller's mapping is never touched
    working = {member_id: _to_decimal(b) for member_id, b in balances.items()}
    member_ids = list(working)
    settlements: list[Settlement] = []

    for i, first in enumerate(member_ids):
        for second in member_ids[i + 1:]:
            if working[first] > 0 and working[second] < 0:
                creditor, debtor = first, second
            elif working[second] > 0 and working[first] < 0:
                creditor, debtor = second, first
            else:
                continue

            amount = min(working[creditor], -working[debtor])
            if amount > tolerance:
                settlements.append(
                    Settlement(from_member=debtor, to_member=creditor, amount=amount)
                )
                working[creditor] -= amount
                working[debtor] += amount

    return settlements


def apply_settlements(
    balances: Mapping[str, Amount],
    settlements: Iterable[Settlement],
) -> dict[str, Decimal]:
    """
    Balances after every settlement has been paid.

    Payer's balance goes up, receiver's goes down. Ids that are not in
    `balances` are ignored.
    """
    adjusted = {member_id: _to_decimal(b) for member_id, b in balances.items()}
    for settlement in settlements:
        if settlement.from_member in adjusted:
            adjusted[settlement.from_member] += settlement.amount
        if settlement.to_member in adjusted:
            adjusted[settlement.to_member] -= settlement.amount
    return adjusted


def settle(
    members: Sequence[Member],
    expenses: Iterable[GroupExpense],
    tolerance: Amount = SETTLEMENT_TOLERANCE,
) -> tuple[dict[str, BalanceEntry], list[Settlement]]:
    """Compute balances and resolve them in one call."""
    entries = compute_balances(members, expenses)
    return entries, resolve_settlements(net_balances(entries), tolerance)
