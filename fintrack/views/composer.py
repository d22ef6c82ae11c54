"""
Account-Scoped View Composer

Filters the synchronized incomes and expenses down to the selected bank
account and derives every dashboard figure from the result.

DESIGN DECISION: Selection and data changes go through ONE update path.
Filtering and recomputation run together and publish one immutable
AccountView, so a consumer never sees account B selected with account
A's records, or records that disagree with the summary next to them.
"""

from collections.abc import Iterable
from datetime import date
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from fintrack.calculations import (
    DEFAULT_UPCOMING_WINDOW_DAYS,
    category_series,
    compute_summary,
    upcoming_bills,
)
from fintrack.models.categories import DEFAULT_EXPENSE_CATEGORIES, ExpenseCategory
from fintrack.models.records import BankAccount, Expense, Income
from fintrack.models.summary import CategoryTotal, FinancialSummary
from fintrack.models.sync import CollectionSnapshot
from fintrack.sync.store import CollectionSyncStore


logger = structlog.get_logger(__name__)

ViewListener = Callable[["AccountView"], None]

_UNSET = object()


class AccountView(BaseModel):
    """
    Everything a dashboard renders for one selection.

    Incomes and expenses only hold records of
    `selected_account` (all records when nothing is selected), and
    `summary` and `category_series` are computed from exactly those
    records.
    """
    model_config = ConfigDict(frozen=True)

    selected_account: Optional[BankAccount] = None
    incomes: tuple[Income, ...] = ()
    expenses: tuple[Expense, ...] = ()
    summary: FinancialSummary = Field(default_factory=FinancialSummary.empty)
    category_series: list[CategoryTotal] = Field(default_factory=list)
    upcoming_bills: list[Expense] = Field(default_factory=list)
    errors: tuple[str, ...] = ()
    loading: bool = False
    version: int = Field(
        default=0,
        description="Increases with every published view"
    )

    @property
    def selected_account_id(self) -> Optional[str]:
        return self.selected_account.id if self.selected_account else None


def filter_by_account(records: Iterable, account: Optional[BankAccount]) -> tuple:
    """Keep records owned by `account`; all records when it is None."""
    if account is None:
        return tuple(records)
    return tuple(r for r in records if r.bank_account_id == account.id)


class AccountScopedViewComposer:
    """
    Derives the account-scoped view from unfiltered collections.

    Usage:
        composer = AccountScopedViewComposer()
        composer.add_listener(render)
        composer.update(incomes=all_incomes, expenses=all_expenses)
        composer.select_account(account)
    """

    def __init__(
        self,
        categories: Iterable[ExpenseCategory] = DEFAULT_EXPENSE_CATEGORIES,
        upcoming_window_days: int = DEFAULT_UPCOMING_WINDOW_DAYS,
        today: Callable[[], date] = date.today,
    ):
        self._categories = tuple(categories)
        self._upcoming_window_days = upcoming_window_days
        self._today = today

        self._incomes: tuple[Income, ...] = ()
        self._expenses: tuple[Expense, ...] = ()
        self._selected: Optional[BankAccount] = None
        self._errors: tuple[str, ...] = ()
        self._loading = False

        self._listeners: list[ViewListener] = []
        self._view = AccountView()

    @property
    def view(self) -> AccountView:
        return self._view

    @property
    def selected_account(self) -> Optional[BankAccount]:
        return self._selected

    @property
    def all_incomes(self) -> tuple[Income, ...]:
        return self._incomes

    @property
    def all_expenses(self) -> tuple[Expense, ...]:
        return self._expenses

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Register a callable that receives every published view."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def select_account(self, account: Optional[BankAccount]) -> AccountView:
        return self.update(selected_account=account)

    def update_incomes(self, incomes: Iterable[Income]) -> AccountView:
        return self.update(incomes=incomes)

    def update_expenses(self, expenses: Iterable[Expense]) -> AccountView:
        return self.update(expenses=expenses)

    def update(
        self,
        *,
        incomes=_UNSET,
        expenses=_UNSET,
        selected_account=_UNSET,
        errors=_UNSET,
        loading=_UNSET,
    ) -> AccountView:
        """
        Apply any combination of input changes and publish one new view.

        Omitted arguments keep their current value. Passing several at once
        (e.g. a new selection together with its records) still publishes a
        single view.
        """
        if incomes is not _UNSET:
            self._incomes = tuple(incomes)
        if expenses is not _UNSET:
            self._expenses = tuple(expenses)
        if selected_account is not _UNSET:
            self._selected = selected_account
        if errors is not _UNSET:
            self._errors = tuple(errors)
        if loading is not _UNSET:
            self._loading = bool(loading)

        self._view = self._compose()
        self._publish()
        return self._view

    def attach(
        self,
        incomes_store: CollectionSyncStore,
        expenses_store: CollectionSyncStore,
    ) -> Callable[[], None]:
        """
        Follow one incomes store and one expenses store.

        Every snapshot of either store triggers one recompute. Loading and
        error state of both stores are folded into the view.

        Returns:
            A callable that stops following the stores
        """
        stores = (incomes_store, expenses_store)

        def on_snapshot(_snapshot: CollectionSnapshot) -> None:
            self.update(
                incomes=incomes_store.items,
                expenses=expenses_store.items,
                errors=[s.error for s in stores if s.error],
                loading=any(s.loading for s in stores),
            )

        removers = [store.add_listener(on_snapshot) for store in stores]
        on_snapshot(incomes_store.snapshot)

        def detach() -> None:
            for remove in removers:
                remove()

        return detach

    def _compose(self) -> AccountView:
        account = self._selected
        incomes = filter_by_account(self._incomes, account)
        expenses = filter_by_account(self._expenses, account)
        starting_balance = account.starting_balance if account else 0

        return AccountView(
            selected_account=account,
            incomes=incomes,
            expenses=expenses,
            summary=compute_summary(incomes, expenses, starting_balance),
            category_series=category_series(expenses, self._categories),
            upcoming_bills=upcoming_bills(
                expenses, self._today(), self._upcoming_window_days
            ),
            errors=self._errors,
            loading=self._loading,
            version=self._view.version + 1,
        )

    def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._view)
            except Exception:
                logger.exception("view_listener_failed", version=self._view.version)
