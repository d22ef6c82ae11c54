"""
Derived Summary Models

These are outputs of the aggregate calculator. They are never persisted
and have no identity of their own: each one is recomputed from the
synchronized records whenever its inputs change.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fintrack.models.records import BankAccount, Budget


class FinancialSummary(BaseModel):
    """
    Dashboard headline figures.

    Always savings == total_income - total_expenses, and
    savings_rate is 0 whenever total_income is not positive.
    """
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Field(
        ...,
        description="Sum of incomes plus the starting balance"
    )
    total_expenses: Decimal = Field(
        ...,
        description="Sum of expenses"
    )
    savings: Decimal = Field(
        ...,
        description="Income minus expenses (may be negative)"
    )
    savings_rate: Decimal = Field(
        ...,
        description="Savings as a percentage of income"
    )

    @classmethod
    def empty(cls) -> "FinancialSummary":
        zero = Decimal("0")
        return cls(
            total_income=zero,
            total_expenses=zero,
            savings=zero,
            savings_rate=zero,
        )


class CategoryTotal(BaseModel):
    """One point of the expense-by-category chart."""
    model_config = ConfigDict(frozen=True)

    category: str
    name: str
    color: str
    amount: Decimal


class MonthSummary(BaseModel):
    """Income, expense and savings of one account for one calendar month."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(
        ...,
        description="Full month name, e.g. 'July'"
    )
    year: int
    monthly_income: Decimal = Decimal("0")
    monthly_expense: Decimal = Decimal("0")
    monthly_savings: Decimal = Decimal("0")
    savings_rate: Decimal = Decimal("0")


class BudgetStatus(BaseModel):
    """Usage of one budget in the current period."""
    model_config = ConfigDict(frozen=True)

    budget: Budget
    bank_account: Optional[BankAccount] = None
    progress: Decimal = Field(
        ...,
        description="Spent as a percentage of the budget amount"
    )

    @property
    def is_over_budget(self) -> bool:
        return self.progress > 100


class BudgetNotifications(BaseModel):
    """Budgets the user should be told about."""
    model_config = ConfigDict(frozen=True)

    over_budget: list[BudgetStatus] = Field(default_factory=list)
    alert_budgets: list[BudgetStatus] = Field(default_factory=list)

    @property
    def has_notifications(self) -> bool:
        return bool(self.over_budget or self.alert_budgets)
