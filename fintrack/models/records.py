"""
Financial Record Models for Fintrack

These models define the schemas of the documents mirrored from the
remote store. They are designed to:
1. Enforce type safety at the decoding boundary
2. Accept the store's camelCase field names as well as snake_case
3. Keep amounts exact (Decimal, never float)

DESIGN DECISION: Records are read-only mirrors. They are created, updated
and deleted only through the remote collection client; nothing in this
package mutates a decoded record.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class IncomeFrequency(str, Enum):
    """How often an income is received."""
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


class ExpenseFrequency(str, Enum):
    """Recurrence period of a recurring expense."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetPeriod(str, Enum):
    """Budget period."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# BASE
# =============================================================================

class RemoteRecord(BaseModel):
    """
    Base for every record mirrored from the remote store.

    `id` is the store-assigned document identifier. It is unique within
    the owning collection only.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned document identifier"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Owning user"
    )


def _coerce_date(value: Any) -> Any:
    """Accept full ISO timestamps where only the calendar date matters."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


# =============================================================================
# FINANCIAL RECORDS
# =============================================================================

class Income(RemoteRecord):
    """An income entry on one bank account."""

    bank_account_id: str = Field(
        ...,
        description="Bank account this income was received on"
    )
    source: str = Field(
        default="other",
        max_length=100,
        description="Income source tag (salary, freelance, ...)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount received"
    )
    frequency: IncomeFrequency = Field(
        default=IncomeFrequency.ONE_TIME,
        description="How often this income repeats"
    )
    date: dt.date = Field(
        ...,
        description="Date received"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
    )

    normalize_date = field_validator("date", mode="before")(_coerce_date)


class Expense(RemoteRecord):
    """
    An expense entry on one bank account.

    Recurring expenses carry a frequency and, usually, the next date
    they fall due. They feed the upcoming-bills list.
    """

    bank_account_id: str = Field(
        ...,
        description="Bank account this expense was paid from"
    )
    category: str = Field(
        default="other",
        max_length=100,
        description="Expense category id"
    )
    subcategory: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount paid"
    )
    date: dt.date = Field(
        ...,
        description="Date paid"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
    )
    is_recurring: bool = Field(
        default=False,
        description="Whether this expense repeats"
    )
    frequency: Optional[ExpenseFrequency] = None
    next_due_date: Optional[dt.date] = None

    normalize_dates = field_validator(
        "date", "next_due_date", mode="before"
    )(_coerce_date)


class BankAccount(RemoteRecord):
    """
    A user's bank account.

    The running totals are informational: they are maintained by the
    store side and may lag behind the true aggregate of the account's
    records. Dashboards derive their figures from the records instead.
    """

    bank_id: str = Field(
        default="",
        description="Identifier of the bank"
    )
    bank_name: str = Field(
        default="",
        max_length=200,
        description="Display name of the bank"
    )
    nickname: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    starting_balance: Decimal = Field(
        default=Decimal("0"),
        description="Balance when the account was added"
    )
    current_balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    created_at: Optional[dt.datetime] = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return self.nickname or self.bank_name or self.id


class Budget(RemoteRecord):
    """
    A spending limit for one category.

    Budgets without a bank account apply to every account of the user.
    """

    bank_account_id: Optional[str] = None
    category: str = Field(
        ...,
        max_length=100,
        description="Expense category id this budget limits"
    )
    budget_amount: Decimal = Field(
        ...,
        ge=0,
        description="Limit for one period"
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    alert_threshold: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Usage percentage at which the user is warned"
    )
