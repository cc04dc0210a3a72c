"""
Personal Tracker Models

A person's own income and expenses, independent of any group event.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from groupledger.models.event import new_id


class TransactionType(str, Enum):
    """Direction of a personal transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class SplitInfo(BaseModel):
    """
    Note that a personal expense was shared with other people.

    Informational only: it does not feed the group settlement engine.
    """
    model_config = ConfigDict(populate_by_name=True)

    total_people: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("total_people", "totalPeople"),
    )
    amount_per_person: Decimal = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("amount_per_person", "amountPerPerson"),
    )


class Transaction(BaseModel):
    """A single personal income or expense entry."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(default_factory=new_id)
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Transaction amount"
    )
    category: str = Field(..., min_length=1, max_length=50)
    description: str = Field(default="", max_length=200)
    transaction_date: date = Field(
        default_factory=date.today,
        validation_alias=AliasChoices("transaction_date", "date"),
    )
    payment_mode: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("payment_mode", "paymentMode"),
    )
    split_info: Optional[SplitInfo] = Field(
        default=None,
        validation_alias=AliasChoices("split_info", "splitInfo"),
    )

    @model_validator(mode='after')
    def split_only_for_expenses(self) -> 'Transaction':
        if self.split_info and self.type != TransactionType.EXPENSE:
            raise ValueError("Only expenses can be split")
        return self

    @classmethod
    def split_expense(
        cls,
        amount: Decimal,
        total_people: int,
        **fields,
    ) -> 'Transaction':
        """Create an expense that was shared equally by `total_people`."""
        if total_people < 1:
            raise ValueError("An expense must be split between at least one person")
        amount = Decimal(str(amount))
        return cls(
            type=TransactionType.EXPENSE,
            amount=amount,
            split_info=SplitInfo(
                total_people=total_people,
                amount_per_person=amount / total_people,
            ),
            **fields,
        )
