"""
Personal Tracker Summaries

Deterministic aggregation over a person's transactions: totals,
per-category expense breakdown, and a month-by-month income / expense
series for charting.
"""

from decimal import Decimal
from typing import Sequence

from groupledger.models.personal import Transaction, TransactionType
from groupledger.models.report import MonthlyTotals, PersonalSummary


ZERO = Decimal("0")


def total_by_type(transactions: Sequence[Transaction], kind: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == kind), ZERO)


def category_breakdown(transactions: Sequence[Transaction]) -> dict[str, Decimal]:
    """Expense totals per category, in order of first appearance. Income is excluded."""
    groups: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        groups[t.category] = groups.get(t.category, ZERO) + t.amount
    return groups


def monthly_breakdown(
    transactions: Sequence[Transaction],
    months: int = 6,
) -> list[MonthlyTotals]:
    """
    Income and expense per calendar month, oldest first.

    Only months that have at least one transaction appear; the series is
    cut to the latest `months` of them.
    """
    groups: dict[str, MonthlyTotals] = {}
    for t in transactions:
        key = t.transaction_date.strftime("%Y-%m")
        if key not in groups:
            groups[key] = MonthlyTotals(
                key=key,
                label=t.transaction_date.strftime("%b %y"),
            )
        bucket = groups[key]
        if t.type == TransactionType.INCOME:
            bucket.income += t.amount
        else:
            bucket.expense += t.amount

    ordered = [groups[key] for key in sorted(groups)]
    return ordered[-months:] if months > 0 else []


def summarize_transactions(
    transactions: Sequence[Transaction],
    recent_limit: int = 10,
    months: int = 6,
) -> PersonalSummary:
    """
    Build the personal tracker summary.

    Args:
        transactions: Newest entry first, as stored
        recent_limit: How many entries the recent list keeps
        months: How many months the monthly series keeps
    """
    return PersonalSummary(
        total_income=total_by_type(transactions, TransactionType.INCOME),
        total_expense=total_by_type(transactions, TransactionType.EXPENSE),
        transaction_count=len(transactions),
        by_category=category_breakdown(transactions),
        monthly=monthly_breakdown(transactions, months),
        recent=list(transactions[:recent_limit]),
    )
