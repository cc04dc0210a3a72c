"""
Core Data Models for Group Ledger

These models define the schemas for everything the balance and settlement
engine consumes and produces. They are designed to:
1. Enforce type safety at runtime
2. Make the payer shape of an expense explicit
3. Be serializable for the document store and for logging

DESIGN DECISION: Money is always a Decimal. The engine keeps the 0.01
settlement tolerance, but shares are computed in decimal arithmetic so the
zero-sum property holds far below that tolerance.

DESIGN DECISION: Payer info is a tagged variant (SinglePayer | MultiPayer),
not two optional fields. Exactly one shape is active, and that is checked
when the expense is constructed.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Annotated, Any, Iterator, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Legacy marker stored in `paidBy` when an expense had several payers.
MULTIPLE_PAYERS = "multiple"


def new_id() -> str:
    """Generate a fresh opaque identifier."""
    return uuid4().hex


# =============================================================================
# MEMBERS
# =============================================================================

class Member(BaseModel):
    """
    A participant of a group event.

    Members are plain value records. Balances are keyed by `id`,
    never by object identity.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique member ID within the event"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: Optional[str] = Field(
        default=None,
        max_length=254,
        description="Optional contact email"
    )

    @field_validator('email')
    @classmethod
    def empty_email_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


# =============================================================================
# PAYER INFO - tagged variant
# =============================================================================

class Payment(BaseModel):
    """One member's contribution towards a multi-payer expense."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    member_id: str = Field(
        ...,
        validation_alias=AliasChoices("member_id", "memberId"),
        description="Member who paid this part"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount this member paid"
    )
    payment_mode: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("payment_mode", "paymentMode"),
    )


class SinglePayer(BaseModel):
    """The whole expense amount was paid by one member."""

    kind: Literal["single"] = "single"
    member_id: str = Field(..., min_length=1)

    def contributions(self, amount: Decimal) -> Iterator[tuple[str, Decimal]]:
        yield self.member_id, amount

    @property
    def member_ids(self) -> list[str]:
        return [self.member_id]


class MultiPayer(BaseModel):
    """
    Several members paid parts of the expense.

    The payments are expected to add up to the expense amount, but this is
    NOT enforced here. A mismatch is reported by LedgerValidator and
    otherwise tolerated: `paid` reflects what was actually recorded.
    """

    kind: Literal["multi"] = "multi"
    payments: list[Payment] = Field(..., min_length=1)

    def contributions(self, amount: Decimal) -> Iterator[tuple[str, Decimal]]:
        for payment in self.payments:
            yield payment.member_id, payment.amount

    @property
    def member_ids(self) -> list[str]:
        return [p.member_id for p in self.payments]

    @property
    def total(self) -> Decimal:
        return sum((p.amount for p in self.payments), Decimal("0"))


PayerInfo = Annotated[Union[SinglePayer, MultiPayer], Field(discriminator="kind")]


def _pop_first(data: dict, *keys: str) -> Any:
    """Pop every key in `keys`, returning the first non-None value."""
    found = None
    for key in keys:
        value = data.pop(key, None)
        if found is None:
            found = value
    return found


# =============================================================================
# GROUP EXPENSES AND EVENTS
# =============================================================================

class GroupExpense(BaseModel):
    """
    A shared cost inside an event.

    Plain-data callers may pass the flat legacy payer fields instead of
    `payer`:
    - `paid_by` / `paidBy` for a single payer
    - `payments` / `multiplePayments` for several payers

    Supplying two payer shapes at once is rejected.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    description: str = Field(
        default="",
        max_length=200,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Total cost of the expense"
    )
    category: str = Field(default="Other", max_length=50)
    expense_date: date = Field(
        default_factory=date.today,
        validation_alias=AliasChoices("expense_date", "date"),
    )
    payment_mode: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("payment_mode", "paymentMode"),
    )
    split_between: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("split_between", "splitBetween"),
        description="Members sharing the cost equally (may be empty)"
    )
    payer: PayerInfo

    @model_validator(mode='before')
    @classmethod
    def coerce_legacy_payer(cls, data: Any) -> Any:
        """Turn flat payer fields into the tagged `payer` variant."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        paid_by = _pop_first(data, "paid_by", "paidBy")
        payments = _pop_first(data, "payments", "multiplePayments")

        if paid_by == MULTIPLE_PAYERS:
            paid_by = None

        given = [s for s in (paid_by, payments, data.get("payer")) if s is not None]
        if len(given) > 1:
            raise ValueError("Expense must have exactly one payer shape")

        if payments is not None:
            data["payer"] = {"kind": "multi", "payments": payments}
        elif paid_by is not None:
            data["payer"] = {"kind": "single", "member_id": paid_by}

        return data

    @field_validator('split_between')
    @classmethod
    def dedupe_split(cls, v: list[str]) -> list[str]:
        """The split set is a set: keep first occurrence order."""
        return list(dict.fromkeys(v))

    def contributions(self) -> Iterator[tuple[str, Decimal]]:
        """Yield (member_id, amount) for everything paid towards this expense."""
        return self.payer.contributions(self.amount)

    @property
    def is_multi_payer(self) -> bool:
        return isinstance(self.payer, MultiPayer)

    @property
    def referenced_member_ids(self) -> set[str]:
        return set(self.payer.member_ids) | set(self.split_between)


class GroupEvent(BaseModel):
    """
    A named collection of members and shared expenses (e.g. a trip).

    Member order matters: it fixes the iteration order of the
    settlement sweep, which makes settlements reproducible.
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    members: list[Member] = Field(default_factory=list)
    expenses: list[GroupExpense] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("created_at", "createdAt"),
    )
    settlements_cleared: bool = Field(
        default=False,
        description="Set once the group has settled up; reset by any expense change"
    )

    @field_validator('members')
    @classmethod
    def unique_member_ids(cls, v: list[Member]) -> list[Member]:
        seen = set()
        for member in v:
            if member.id in seen:
                raise ValueError(f"Duplicate member id: {member.id}")
            seen.add(member.id)
        return v

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    @property
    def total_amount(self) -> Decimal:
        return sum((e.amount for e in self.expenses), Decimal("0"))

    def get_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    def member_name(self, member_id: str) -> str:
        member = self.get_member(member_id)
        return member.name if member else "Unknown"

    def is_member_referenced(self, member_id: str) -> bool:
        return any(member_id in e.referenced_member_ids for e in self.expenses)


# =============================================================================
# DERIVED ENTITIES - never persisted
# =============================================================================

class BalanceEntry(BaseModel):
    """A member's position across all expenses of an event."""

    member_id: str
    paid: Decimal = Field(
        default=Decimal("0"),
        description="Money this member contributed"
    )
    owed: Decimal = Field(
        default=Decimal("0"),
        description="This member's share of the costs consumed"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="paid - owed; positive means the group owes this member"
    )

    def is_settled(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        return abs(self.balance) < tolerance


class Settlement(BaseModel):
    """A single directed payment from a debtor to a creditor."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_member: str = Field(..., alias="from", description="Debtor member ID")
    to_member: str = Field(..., alias="to", description="Creditor member ID")
    amount: Decimal = Field(..., gt=0)
