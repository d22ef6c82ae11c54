"""
Data Models Package

This package contains all Pydantic models used by Fintrack: the records
mirrored from the remote store, the sync state exposed by stores, the
derived summaries, and the sync events that get logged.
"""

from fintrack.models.audit import (
    EventSeverity,
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
)
from fintrack.models.categories import (
    DEFAULT_EXPENSE_CATEGORIES,
    ExpenseCategory,
    get_category,
    get_category_color,
    get_category_name,
)
from fintrack.models.records import (
    BankAccount,
    Budget,
    BudgetPeriod,
    Expense,
    ExpenseFrequency,
    Income,
    IncomeFrequency,
    RemoteRecord,
)
from fintrack.models.summary import (
    BudgetNotifications,
    BudgetStatus,
    CategoryTotal,
    FinancialSummary,
    MonthSummary,
)
from fintrack.models.sync import (
    CollectionSnapshot,
    EntityKind,
    SyncScope,
    SyncState,
)

__all__ = [
    # Records
    "BankAccount",
    "Budget",
    "BudgetPeriod",
    "Expense",
    "ExpenseFrequency",
    "Income",
    "IncomeFrequency",
    "RemoteRecord",
    # Categories
    "DEFAULT_EXPENSE_CATEGORIES",
    "ExpenseCategory",
    "get_category",
    "get_category_color",
    "get_category_name",
    # Summaries
    "BudgetNotifications",
    "BudgetStatus",
    "CategoryTotal",
    "FinancialSummary",
    "MonthSummary",
    # Sync state
    "CollectionSnapshot",
    "EntityKind",
    "SyncScope",
    "SyncState",
    # Sync events
    "EventSeverity",
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
]
