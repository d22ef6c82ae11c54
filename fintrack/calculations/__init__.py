"""Aggregate calculations over synchronized records."""

from fintrack.calculations.formatting import format_currency
from fintrack.calculations.monthly import (
    DEFAULT_UPCOMING_WINDOW_DAYS,
    budget_notifications,
    budget_progress,
    month_summary,
    monthly_category_expenses,
    monthly_expenses,
    monthly_income,
    upcoming_bills,
    year_summaries,
    yearly_category_expenses,
)
from fintrack.calculations.summary import (
    category_series,
    category_total,
    category_totals,
    compute_summary,
    savings_rate,
)

__all__ = [
    "DEFAULT_UPCOMING_WINDOW_DAYS",
    "budget_notifications",
    "budget_progress",
    "category_series",
    "category_total",
    "category_totals",
    "compute_summary",
    "format_currency",
    "month_summary",
    "monthly_category_expenses",
    "monthly_expenses",
    "monthly_income",
    "savings_rate",
    "upcoming_bills",
    "year_summaries",
    "yearly_category_expenses",
]
