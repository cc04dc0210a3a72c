"""
Plain-text exports of a settlement.

The share message is what the user pastes into a chat; the report text is
the longer member-by-member version. Both are plain strings, the
presentation layer decides where they go.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from groupledger.models.event import GroupEvent, Settlement
from groupledger.models.report import EventSettlementReport


def format_amount(amount: Decimal, symbol: str = "₹", decimals: int = 2) -> str:
    """Fixed decimals, e.g. ₹33.33."""
    quantum = Decimal(1).scaleb(-decimals)
    return f"{symbol}{amount.quantize(quantum, rounding=ROUND_HALF_UP)}"


def format_total(amount: Decimal, symbol: str = "₹") -> str:
    """Thousands separators, no trailing zeros, e.g. ₹1,500 or ₹1,500.5."""
    value = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP).normalize()
    return f"{symbol}{value:,f}"


def format_settlement_line(
    event: GroupEvent,
    settlement: Settlement,
    symbol: str = "₹",
    decimals: int = 2,
) -> str:
    return (
        f"{event.member_name(settlement.from_member)} owes "
        f"{event.member_name(settlement.to_member)} "
        f"{format_amount(settlement.amount, symbol, decimals)}"
    )


def format_share_message(
    event: GroupEvent,
    settlements: Sequence[Settlement],
    symbol: str = "₹",
    decimals: int = 2,
) -> str:
    """
    The message shared with the group after settling up.

    Format:
        💰 <event> - Settlement Summary

        <debtor> owes <creditor> ₹<amount>
        ...

        Total: ₹<sum of all expenses>
    """
    lines = "\n".join(format_settlement_line(event, s, symbol, decimals) for s in settlements)
    return (
        f"💰 {event.name} - Settlement Summary\n\n"
        f"{lines}\n\n"
        f"Total: {format_total(event.total_amount, symbol)}"
    )


def format_report_text(
    event: GroupEvent,
    report: EventSettlementReport,
    symbol: str = "₹",
    decimals: int = 2,
) -> str:
    """Longer text export: member summary, required settlements, totals."""
    lines = [f"{event.name} - Settlement Report", ""]
    if event.description:
        lines.extend([event.description, ""])

    lines.append("Member Summary")
    for m in report.members:
        if m.settled:
            status = "All settled"
        elif m.balance > 0:
            status = f"Gets back {format_amount(m.balance, symbol, decimals)}"
        else:
            status = f"Owes {format_amount(-m.balance, symbol, decimals)}"
        lines.append(
            f"  {m.name}: Paid {format_amount(m.paid, symbol, decimals)} | "
            f"Owes {format_amount(m.owed, symbol, decimals)} -> {status}"
        )

    lines.append("")
    if report.settlements:
        lines.append("Required Settlements")
        for s in report.settlements:
            lines.append(f"  {format_settlement_line(event, s, symbol, decimals)}")
    else:
        lines.append("Everything is settled!")

    lines.extend([
        "",
        f"Total Spent: {format_total(report.total_amount, symbol)}",
        f"Expenses: {report.expense_count}",
        f"Settlements: {report.settlement_count}",
        f"Average per person: {format_amount(report.average_per_person, symbol, decimals)}",
    ])
    if report.settlements_cleared:
        lines.append("Status: settlements cleared")

    return "\n".join(lines)
