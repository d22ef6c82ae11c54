"""
Finance Session

This module ties together the sync stores and the view composer for
one signed-in user:
1. Bank accounts and budgets are synchronized per user
2. Incomes and expenses are synchronized per bank account
3. The composer filters them down to the selected account

DESIGN DECISION: The session owns every store it creates.
Stores are opened and closed as accounts appear and disappear, and a
user switch tears everything down before the new user's data arrives,
so no view ever mixes two users' or two accounts' records.
"""

import asyncio
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from itertools import chain
from typing import Callable, Optional

import structlog

from fintrack.audit import SyncAuditLogger, configure_logging
from fintrack.calculations import budget_notifications, format_currency, year_summaries
from fintrack.config import SyncSettings, get_settings
from fintrack.models.records import BankAccount, Budget, RemoteRecord
from fintrack.models.summary import BudgetNotifications, MonthSummary
from fintrack.models.sync import CollectionSnapshot, EntityKind, SyncScope, SyncState
from fintrack.services.remote import (
    GoogleSheetsCollectionClient,
    InMemoryCollectionClient,
    RemoteCollectionClient,
)
from fintrack.sync import RECORD_MODELS, CollectionSyncStore, StoreClosedError, create_store
from fintrack.views import AccountScopedViewComposer, AccountView, ViewListener


logger = structlog.get_logger(__name__)

KIND_BY_MODEL = {model: kind for kind, model in RECORD_MODELS.items()}


class FinanceSession:
    """
    One user's synchronized finances.

    Usage:
        session = FinanceSession(client)
        session.add_listener(render)
        await session.set_user("user-123")
        session.select_account("acc-1")
        ...
        await session.close()
    """

    def __init__(
        self,
        client: RemoteCollectionClient,
        audit_logger: Optional[SyncAuditLogger] = None,
        composer: Optional[AccountScopedViewComposer] = None,
        sync_settings: Optional[SyncSettings] = None,
    ):
        settings = sync_settings or get_settings().sync
        self._client = client
        self._audit = audit_logger or SyncAuditLogger()
        self._fallback_on_empty = settings.fallback_on_empty_snapshot
        self._auto_select = settings.auto_select_first_account
        self._composer = composer or AccountScopedViewComposer(
            upcoming_window_days=settings.upcoming_bills_window_days,
        )

        self._user_id: Optional[str] = None
        self._selected_id: Optional[str] = None
        self._selection_made = False

        self._accounts_store = self._new_store(EntityKind.BANK_ACCOUNTS)
        self._budgets_store = self._new_store(EntityKind.BUDGETS)
        self._accounts_store.add_listener(self._on_accounts)
        self._budgets_store.add_listener(self._on_records)

        self._income_stores: dict[str, CollectionSyncStore] = {}
        self._expense_stores: dict[str, CollectionSyncStore] = {}

        self._tasks: set[asyncio.Task] = set()
        self._batch_depth = 0
        self._closed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def client(self) -> RemoteCollectionClient:
        return self._client

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def view(self) -> AccountView:
        return self._composer.view

    @property
    def composer(self) -> AccountScopedViewComposer:
        return self._composer

    @property
    def accounts(self) -> tuple[BankAccount, ...]:
        return self._accounts_store.items

    @property
    def budgets(self) -> tuple[Budget, ...]:
        return self._budgets_store.items

    @property
    def selected_account_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_account(self) -> Optional[BankAccount]:
        return self._find_account(self._selected_id)

    @property
    def accounts_store(self) -> CollectionSyncStore:
        return self._accounts_store

    @property
    def budgets_store(self) -> CollectionSyncStore:
        return self._budgets_store

    def income_store(self, account_id: str) -> Optional[CollectionSyncStore]:
        return self._income_stores.get(account_id)

    def expense_store(self, account_id: str) -> Optional[CollectionSyncStore]:
        return self._expense_stores.get(account_id)

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Register a callable that receives every new AccountView."""
        return self._composer.add_listener(listener)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def set_user(self, user_id: Optional[str]) -> None:
        """
        Switch the session to another user (None signs out).

        Raises:
            StoreClosedError: If the session has been closed
        """
        if self._closed:
            raise StoreClosedError("session is closed")
        if user_id == self._user_id:
            return

        logger.info("session_user_changed", has_user=user_id is not None)
        self._user_id = user_id
        self._selected_id = None
        self._selection_made = False

        with self._batch():
            self._close_account_stores(list(self._income_stores))
        self._sync_view()

        scope = SyncScope(user_id=user_id)
        await asyncio.gather(
            self._accounts_store.bind(scope),
            self._budgets_store.bind(scope),
        )

    def select_account(self, account_id: Optional[str]) -> AccountView:
        """
        Select one bank account, or None for all accounts combined.

        Raises:
            ValueError: If the account is not one of the user's accounts
        """
        if account_id is not None and self._find_account(account_id) is None:
            raise ValueError(f"Unknown bank account: {account_id}")
        self._selected_id = account_id
        self._selection_made = True
        return self._sync_view()

    async def refresh(self) -> None:
        """
        Re-read every collection directly.

        Stores whose push channel has failed are re-bound instead, which
        reopens the channel and reloads the collection through it.
        """
        await asyncio.gather(*(self._refresh_store(store) for store in self._all_stores()))

    async def drain(self) -> None:
        """Wait until every store binding and fetch has finished."""
        while True:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            for store in self._all_stores():
                await store.drain()
            if not self._tasks:
                return

    async def close(self) -> None:
        """Dispose of every store. Closing twice is harmless."""
        if self._closed:
            return
        self._closed = True

        with self._batch():
            self._close_account_stores(list(self._income_stores))
            self._accounts_store.close()
            self._budgets_store.close()
        self._sync_view()

        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Derived figures
    # ------------------------------------------------------------------

    def budget_notifications(self, on: Optional[date] = None) -> BudgetNotifications:
        """Budgets over their limit or past their alert threshold."""
        return budget_notifications(
            self.budgets,
            self._composer.all_expenses,
            self.accounts,
            on,
        )

    def format_amount(self, value: Decimal) -> str:
        """Format an amount with the configured currency prefix."""
        return format_currency(value, get_settings().app.currency_prefix)

    def year_report(self, year: int, account_id: Optional[str] = None) -> list[MonthSummary]:
        """
        Month-by-month figures of one account for a year.

        Defaults to the selected account.

        Raises:
            ValueError: If no account is given or selected
        """
        account = self._find_account(account_id or self._selected_id)
        if account is None:
            raise ValueError("No bank account selected")
        return year_summaries(
            self._composer.all_incomes,
            self._composer.all_expenses,
            account,
            year,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, record: RemoteRecord) -> bool:
        """
        Create or replace a record in the remote store.

        The local view changes when the store pushes the write back.
        """
        path = self._path_for(record)
        data = record.model_dump(by_alias=True, mode="json", exclude={"id"})
        return await self._client.set_document(path, record.id, data)

    async def delete(self, record: RemoteRecord) -> bool:
        """Delete a record from the remote store."""
        return await self._client.delete_document(self._path_for(record), record.id)

    def _path_for(self, record: RemoteRecord) -> str:
        kind = KIND_BY_MODEL[type(record)]
        scope = SyncScope(
            user_id=record.user_id or self._user_id,
            bank_account_id=getattr(record, "bank_account_id", None),
        )
        return scope.collection_path(kind)

    # ------------------------------------------------------------------
    # Store wiring
    # ------------------------------------------------------------------

    def _new_store(self, kind: EntityKind) -> CollectionSyncStore:
        return create_store(
            self._client,
            kind,
            audit_logger=self._audit,
            fallback_on_empty=self._fallback_on_empty,
        )

    def _all_stores(self) -> list[CollectionSyncStore]:
        return [
            self._accounts_store,
            self._budgets_store,
            *self._income_stores.values(),
            *self._expense_stores.values(),
        ]

    @contextmanager
    def _batch(self):
        """Hold back view updates until the block is done."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1

    def _on_accounts(self, snapshot: CollectionSnapshot) -> None:
        with self._batch():
            if snapshot.state == SyncState.SYNCED:
                self._reconcile_account_stores(snapshot.items)
            elif snapshot.state == SyncState.IDLE:
                self._close_account_stores(list(self._income_stores))
            self._resolve_selection(snapshot)
        self._on_records(snapshot)

    def _on_records(self, _snapshot: CollectionSnapshot) -> None:
        if not self._batch_depth:
            self._sync_view()

    def _reconcile_account_stores(self, accounts: tuple[BankAccount, ...]) -> None:
        account_ids = {account.id for account in accounts}
        self._close_account_stores(
            [account_id for account_id in self._income_stores if account_id not in account_ids]
        )

        for account in accounts:
            if account.id in self._income_stores:
                continue
            scope = SyncScope(user_id=self._user_id, bank_account_id=account.id)
            for kind, stores in (
                (EntityKind.INCOMES, self._income_stores),
                (EntityKind.EXPENSES, self._expense_stores),
            ):
                store = self._new_store(kind)
                store.add_listener(self._on_records)
                stores[account.id] = store
                self._spawn(self._bind(store, scope))

    def _close_account_stores(self, account_ids: list[str]) -> None:
        for account_id in account_ids:
            for stores in (self._income_stores, self._expense_stores):
                store = stores.pop(account_id, None)
                if store is not None:
                    store.close()

    def _resolve_selection(self, snapshot: CollectionSnapshot) -> None:
        if snapshot.state not in (SyncState.SYNCED, SyncState.IDLE):
            return

        if self._selected_id is not None and self._find_account(self._selected_id) is None:
            logger.info("selected_account_removed")
            self._selected_id = None
            self._selection_made = False

        if (
            self._auto_select
            and not self._selection_made
            and self._selected_id is None
            and snapshot.items
        ):
            self._selected_id = snapshot.items[0].id

    async def _refresh_store(self, store: CollectionSyncStore) -> None:
        if store.path is not None and not store.connected and store.state == SyncState.ERRORED:
            await self._bind(store, store.scope)
        else:
            await store.refresh()

    async def _bind(self, store: CollectionSyncStore, scope: SyncScope) -> None:
        try:
            await store.bind(scope)
        except StoreClosedError:
            # Account went away before its stores finished opening
            pass

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _find_account(self, account_id: Optional[str]) -> Optional[BankAccount]:
        if account_id is None:
            return None
        for account in self._accounts_store.items:
            if account.id == account_id:
                return account
        return None

    def _sync_view(self) -> AccountView:
        accounts = self._accounts_store.items
        incomes = chain.from_iterable(
            self._income_stores[a.id].items for a in accounts if a.id in self._income_stores
        )
        expenses = chain.from_iterable(
            self._expense_stores[a.id].items for a in accounts if a.id in self._expense_stores
        )
        stores = self._all_stores()

        return self._composer.update(
            incomes=incomes,
            expenses=expenses,
            selected_account=self._find_account(self._selected_id),
            errors=[store.error for store in stores if store.error],
            loading=any(store.loading for store in stores),
        )


def create_session(use_storage: bool = True) -> FinanceSession:
    """
    Factory function to create a configured session.

    Args:
        use_storage: Whether to use Google Sheets storage

    Returns:
        A FinanceSession backed by Google Sheets, or by an in-memory store
        when storage is disabled or not configured
    """
    configure_logging()
    client: Optional[RemoteCollectionClient] = None

    if use_storage:
        try:
            client = GoogleSheetsCollectionClient()
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    if client is None:
        client = InMemoryCollectionClient()

    return FinanceSession(client)
