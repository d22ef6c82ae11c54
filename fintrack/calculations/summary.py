"""
Financial Summary Calculations

DESIGN DECISION: Aggregation is DETERMINISTIC and stateless.
Every figure is recomputed from the records it is given, on every call.
There is no cache that could drift away from the synchronized data, so
calling twice with the same inputs always gives the same answer, in any
input order.
"""

from collections.abc import Iterable
from decimal import Decimal

from fintrack.models.categories import DEFAULT_EXPENSE_CATEGORIES, ExpenseCategory, get_category_color
from fintrack.models.records import Expense, Income
from fintrack.models.summary import CategoryTotal, FinancialSummary


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _sum_amounts(records: Iterable) -> Decimal:
    return sum((record.amount for record in records), ZERO)


def savings_rate(savings: Decimal, total_income: Decimal) -> Decimal:
    """Savings as a percentage of income; 0 when there is no income."""
    if total_income > 0:
        return savings / total_income * HUNDRED
    return ZERO


def compute_summary(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
    starting_balance: Decimal = ZERO,
) -> FinancialSummary:
    """
    Derive the dashboard headline figures.

    Args:
        incomes: Income records to total
        expenses: Expense records to total
        starting_balance: Offset added to income (the selected account's
            starting balance, or 0 for all accounts combined)

    Returns:
        FinancialSummary with total income, total expenses, savings and
        savings rate
    """
    total_income = _sum_amounts(incomes) + Decimal(starting_balance)
    total_expenses = _sum_amounts(expenses)
    savings = total_income - total_expenses

    return FinancialSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        savings=savings,
        savings_rate=savings_rate(savings, total_income),
    )


def category_total(expenses: Iterable[Expense], category: str) -> Decimal:
    """Sum of expense amounts filed under one category."""
    return _sum_amounts(e for e in expenses if e.category == category)


def category_totals(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Expense totals keyed by category, zero totals included."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
    return totals


def category_series(
    expenses: Iterable[Expense],
    categories: Iterable[ExpenseCategory] = DEFAULT_EXPENSE_CATEGORIES,
) -> list[CategoryTotal]:
    """
    Build the expense-by-category chart series.

    Catalog categories come first, in catalog order. Categories found in
    the data but missing from the catalog follow, sorted by id. Zero
    totals are left out of the series (the underlying records are not
    touched).
    """
    totals = category_totals(expenses)
    series = []

    known = set()
    for category in categories:
        known.add(category.id)
        amount = totals.get(category.id, ZERO)
        if amount > 0:
            series.append(CategoryTotal(
                category=category.id,
                name=category.name,
                color=category.color,
                amount=amount,
            ))

    for category_id in sorted(set(totals) - known):
        amount = totals[category_id]
        if amount > 0:
            series.append(CategoryTotal(
                category=category_id,
                name=category_id,
                color=get_category_color(category_id),
                amount=amount,
            ))

    return series
