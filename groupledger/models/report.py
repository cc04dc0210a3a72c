"""
Report Models

Read-only views assembled from engine output for the presentation layer.
Nothing here is persisted.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from groupledger.models.event import BalanceEntry, Settlement
from groupledger.models.personal import Transaction


class MemberSummary(BaseModel):
    """One row of an event's member summary."""

    member_id: str
    name: str
    paid: Decimal
    owed: Decimal
    balance: Decimal
    settled: bool = Field(
        ...,
        description="True when |balance| is below the settlement tolerance"
    )

    @property
    def gets_back(self) -> Decimal:
        return self.balance if self.balance > 0 and not self.settled else Decimal("0")

    @property
    def owes(self) -> Decimal:
        return -self.balance if self.balance < 0 and not self.settled else Decimal("0")


class EventSettlementReport(BaseModel):
    """Everything needed to render the settlement screen of an event."""

    event_id: str
    event_name: str
    balances: dict[str, BalanceEntry]
    settlements: list[Settlement]
    members: list[MemberSummary]
    total_amount: Decimal
    expense_count: int = Field(ge=0)
    average_per_person: Decimal
    settlements_cleared: bool = False

    @property
    def settlement_count(self) -> int:
        return len(self.settlements)

    @property
    def all_settled(self) -> bool:
        return not self.settlements


class MonthlyTotals(BaseModel):
    """Income and expense totals for one calendar month."""

    key: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="YYYY-MM")
    label: str = Field(..., description="Short label, e.g. Jan 25")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class PersonalSummary(BaseModel):
    """Totals and breakdowns for the personal tracker."""

    total_income: Decimal
    total_expense: Decimal
    transaction_count: int = Field(ge=0)
    by_category: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Expense totals per category (income excluded)"
    )
    monthly: list[MonthlyTotals] = Field(default_factory=list)
    recent: list[Transaction] = Field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense
