"""
Monthly and Budget Calculations

Period-aware figures used by the budget and report views:
- monthly totals that spread recurring records over the month
- upcoming recurring bills
- budget usage and the notifications derived from it
- per-account month and year summaries
"""

import calendar
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from fintrack.calculations.summary import HUNDRED, ZERO, savings_rate
from fintrack.models.records import (
    BankAccount,
    Budget,
    BudgetPeriod,
    Expense,
    ExpenseFrequency,
    Income,
    IncomeFrequency,
)
from fintrack.models.summary import BudgetNotifications, BudgetStatus, MonthSummary


TWELVE = Decimal("12")
DEFAULT_UPCOMING_WINDOW_DAYS = 31


def _same_month(day: date, on: date) -> bool:
    return day.year == on.year and day.month == on.month


def monthly_income(incomes: Iterable[Income], on: Optional[date] = None) -> Decimal:
    """
    Income attributable to the month containing `on`.

    Monthly incomes count in full, yearly incomes count one twelfth,
    one-time incomes count only in the month they were received.
    """
    on = on or date.today()
    total = ZERO
    for income in incomes:
        if income.frequency == IncomeFrequency.MONTHLY:
            total += income.amount
        elif income.frequency == IncomeFrequency.YEARLY:
            total += income.amount / TWELVE
        elif _same_month(income.date, on):
            total += income.amount
    return total


def _monthly_expense_amount(expense: Expense, on: date) -> Decimal:
    if expense.is_recurring:
        if expense.frequency == ExpenseFrequency.MONTHLY:
            return expense.amount
        if expense.frequency == ExpenseFrequency.YEARLY:
            return expense.amount / TWELVE
        return ZERO
    if _same_month(expense.date, on):
        return expense.amount
    return ZERO


def monthly_expenses(expenses: Iterable[Expense], on: Optional[date] = None) -> Decimal:
    """
    Expenses attributable to the month containing `on`.

    Recurring monthly expenses count in full, recurring yearly ones one
    twelfth, one-time expenses only in the month they were paid.
    """
    on = on or date.today()
    return sum((_monthly_expense_amount(e, on) for e in expenses), ZERO)


def monthly_category_expenses(
    expenses: Iterable[Expense],
    category: str,
    on: Optional[date] = None,
) -> Decimal:
    """Monthly expenses (as in monthly_expenses) for one category."""
    return monthly_expenses((e for e in expenses if e.category == category), on)


def yearly_category_expenses(
    expenses: Iterable[Expense],
    category: str,
    on: Optional[date] = None,
) -> Decimal:
    """Expenses of one category attributable to the year containing `on`."""
    on = on or date.today()
    total = ZERO
    for expense in expenses:
        if expense.category != category:
            continue
        if expense.is_recurring:
            if expense.frequency == ExpenseFrequency.MONTHLY:
                total += expense.amount * TWELVE
            elif expense.frequency == ExpenseFrequency.YEARLY:
                total += expense.amount
        elif expense.date.year == on.year:
            total += expense.amount
    return total


def upcoming_bills(
    expenses: Iterable[Expense],
    today: Optional[date] = None,
    window_days: int = DEFAULT_UPCOMING_WINDOW_DAYS,
) -> list[Expense]:
    """
    Recurring expenses falling due within the next `window_days` days.

    Returns:
        Expenses sorted by next due date, soonest first
    """
    today = today or date.today()
    horizon = today + timedelta(days=window_days)
    due = [
        e for e in expenses
        if e.is_recurring
        and e.next_due_date is not None
        and today <= e.next_due_date <= horizon
    ]
    due.sort(key=lambda e: e.next_due_date)
    return due


def budget_progress(
    expenses: Iterable[Expense],
    budget: Budget,
    on: Optional[date] = None,
    bank_account_id: Optional[str] = None,
) -> Decimal:
    """
    Budget usage as a percentage of the budget amount.

    Args:
        expenses: Candidate expenses
        budget: Budget to measure
        on: Any day of the period to measure
        bank_account_id: Only count expenses of this account

    Returns:
        Spent / budget amount x 100, or 0 for a zero budget
    """
    if bank_account_id:
        expenses = [e for e in expenses if e.bank_account_id == bank_account_id]

    if budget.period == BudgetPeriod.YEARLY:
        spent = yearly_category_expenses(expenses, budget.category, on)
    else:
        spent = monthly_category_expenses(expenses, budget.category, on)

    if budget.budget_amount > 0:
        return spent / budget.budget_amount * HUNDRED
    return ZERO


def budget_notifications(
    budgets: Iterable[Budget],
    expenses: Sequence[Expense],
    accounts: Iterable[BankAccount],
    on: Optional[date] = None,
) -> BudgetNotifications:
    """
    Budgets that are over their limit or past their alert threshold.

    Account-specific budgets only count that account's expenses; global
    budgets count every expense. A budget pointing at an unknown account
    is skipped.
    """
    accounts_by_id = {account.id: account for account in accounts}
    over_budget = []
    alert_budgets = []

    for budget in budgets:
        account = None
        if budget.bank_account_id:
            account = accounts_by_id.get(budget.bank_account_id)
            if account is None:
                continue

        progress = budget_progress(expenses, budget, on, budget.bank_account_id)
        status = BudgetStatus(budget=budget, bank_account=account, progress=progress)

        if progress > HUNDRED:
            over_budget.append(status)
        elif progress >= Decimal(str(budget.alert_threshold)):
            alert_budgets.append(status)

    return BudgetNotifications(over_budget=over_budget, alert_budgets=alert_budgets)


def month_summary(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    account: BankAccount,
    year: int,
    month: int,
) -> MonthSummary:
    """
    Income, expense and savings of one account for one calendar month.

    Records count in the month they are dated. The account's starting
    balance counts as income in the month the account was created.
    """
    anchor = date(year, month, 1)
    income = sum(
        (i.amount for i in incomes
         if i.bank_account_id == account.id and _same_month(i.date, anchor)),
        ZERO,
    )
    if account.created_at is not None and _same_month(account.created_at.date(), anchor):
        income += account.starting_balance

    expense = sum(
        (e.amount for e in expenses
         if e.bank_account_id == account.id and _same_month(e.date, anchor)),
        ZERO,
    )
    savings = income - expense

    return MonthSummary(
        month=calendar.month_name[month],
        year=year,
        monthly_income=income,
        monthly_expense=expense,
        monthly_savings=savings,
        savings_rate=savings_rate(savings, income),
    )


def year_summaries(
    incomes: Sequence[Income],
    expenses: Sequence[Expense],
    account: BankAccount,
    year: int,
) -> list[MonthSummary]:
    """Twelve month summaries, January first; empty months are all zeros."""
    return [
        month_summary(incomes, expenses, account, year, month)
        for month in range(1, 13)
    ]
