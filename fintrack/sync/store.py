"""
Collection Sync Store

Keeps one local mirror of one remote collection. The collection is chosen
by the store's entity kind and its current scope (user, optionally bank
account).

DESIGN DECISION: The store is an explicit state machine driven by four
inputs - scope changes, pushed snapshots, push-channel errors and direct
fetch completions. Each input is handled by exactly one method below.

Two counters keep asynchronous results honest:
- `revision` goes up on every scope change and on close. Every callback
  and fetch captures it when it starts and is ignored if it no longer
  matches when it finishes.
- the fetch sequence goes up for every direct fetch. Only the most
  recently issued fetch may write `items`, so a fallback fetch and a
  manual refresh can never both apply.

Tie-break between fetches:
- A refresh supersedes a pending fallback fetch.
- An empty push while a refresh is pending starts no fallback.
- A non-empty push supersedes a pending fallback, not a pending refresh.
- A refresh requested while one is pending joins the pending one.
"""

import asyncio
from functools import partial
from typing import Callable, Optional

import structlog

from fintrack.audit import SyncAuditLogger, create_correlation_id
from fintrack.config import get_settings
from fintrack.models.sync import CollectionSnapshot, EntityKind, SyncScope, SyncState
from fintrack.services.remote.interface import (
    RemoteCollectionClient,
    RemoteDocument,
    Unsubscribe,
)
from fintrack.sync.decoder import decode_documents


logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[CollectionSnapshot], None]


class StoreClosedError(RuntimeError):
    """Raised when a closed store is asked to bind a new scope."""
    pass


class CollectionSyncStore:
    """
    Local materialized view of one remote collection.

    Consumers read `items`, `loading` and `error` (or the combined
    `snapshot`), call `refresh()` to force a direct re-read, and may
    register listeners that receive every new snapshot.

    Usage:
        store = CollectionSyncStore(client, EntityKind.INCOMES)
        await store.bind(SyncScope(user_id="u1", bank_account_id="a1"))
        ...
        store.close()
    """

    def __init__(
        self,
        client: RemoteCollectionClient,
        kind: EntityKind,
        audit_logger: Optional[SyncAuditLogger] = None,
        fallback_on_empty: Optional[bool] = None,
    ):
        self._client = client
        self._kind = kind
        self._audit = audit_logger or SyncAuditLogger()
        self._fallback_on_empty = (
            fallback_on_empty
            if fallback_on_empty is not None
            else get_settings().sync.fallback_on_empty_snapshot
        )
        self._correlation_id = create_correlation_id()

        self._scope = SyncScope()
        self._path: Optional[str] = None
        self._revision = 0
        self._snapshot = CollectionSnapshot(kind=kind)

        self._unsubscribe: Optional[Unsubscribe] = None
        self._failed_revision: Optional[int] = None
        self._channel_error: Optional[str] = None
        self._fetch_seq = 0
        self._fallback_seq: Optional[int] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

        self._listeners: list[SnapshotListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def kind(self) -> EntityKind:
        return self._kind

    @property
    def scope(self) -> SyncScope:
        return self._scope

    @property
    def path(self) -> Optional[str]:
        """Collection path for the current scope, None when idle."""
        return self._path

    @property
    def snapshot(self) -> CollectionSnapshot:
        return self._snapshot

    @property
    def items(self) -> tuple:
        return self._snapshot.items

    @property
    def loading(self) -> bool:
        return self._snapshot.loading

    @property
    def error(self) -> Optional[str]:
        return self._snapshot.error

    @property
    def state(self) -> SyncState:
        return self._snapshot.state

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def connected(self) -> bool:
        """True while a push channel is open for the current scope."""
        return self._unsubscribe is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a callable that receives every new snapshot.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Scope lifecycle
    # ------------------------------------------------------------------

    async def bind(self, scope: Optional[SyncScope]) -> None:
        """
        Point the store at a new scope.

        An incomplete scope leaves the store IDLE with no subscription.
        A complete scope opens exactly one subscription for it, after
        tearing down the previous one. Binding the scope the store is
        already synchronizing is a no-op; binding it again after the
        push channel failed reopens the channel.

        Raises:
            StoreClosedError: If the store has been closed
        """
        if self._closed:
            raise StoreClosedError(f"{self._kind.value} store is closed")

        scope = scope or SyncScope()
        if scope == self._scope and self._is_bound_to_scope():
            return

        self._teardown_subscription()
        self._invalidate()
        self._scope = scope
        revision = self._revision

        if not scope.is_complete_for(self._kind):
            self._path = None
            self._audit.scope_changed(None, revision, self._correlation_id)
            self._publish(items=(), loading=False, error=None, state=SyncState.IDLE)
            return

        path = scope.collection_path(self._kind)
        self._path = path
        self._audit.scope_changed(path, revision, self._correlation_id)
        self._publish(items=(), loading=True, error=None, state=SyncState.LOADING)

        try:
            unsubscribe = await self._client.subscribe(
                path,
                partial(self._on_snapshot, revision),
                partial(self._on_error, revision),
            )
        except Exception as e:
            if revision != self._revision:
                return
            message = self._describe("listen for", e)
            self._channel_error = message
            self._audit.subscription_failed(path, revision, message, self._correlation_id)
            self._publish(loading=False, error=message, state=SyncState.ERRORED)
            return

        if revision != self._revision:
            # Scope moved on while the channel was opening
            unsubscribe()
            self._audit.stale_result_discarded(
                path, "subscription", revision, self._revision, self._correlation_id,
            )
            return

        if self._failed_revision == revision:
            # Channel already reported failure before the handle arrived
            unsubscribe()
            return

        self._unsubscribe = unsubscribe
        self._audit.subscription_opened(path, revision, self._correlation_id)

    def close(self) -> None:
        """
        Dispose of the store.

        Cancels the subscription and invalidates every in-flight fetch, so
        their completions are no-ops. Closing twice is harmless.
        """
        if self._closed:
            return
        self._teardown_subscription()
        self._invalidate()
        self._scope = SyncScope()
        self._path = None
        self._publish(items=(), loading=False, error=None, state=SyncState.IDLE)
        self._closed = True
        self._listeners.clear()

    async def refresh(self) -> None:
        """
        Re-read the collection directly, bypassing the push channel.

        Replaces `items` on success. Failures are recorded in `error`,
        never raised. Does nothing when the scope is undefined.

        A refresh does not reopen a failed push channel: the store stays
        ERRORED with the channel error until `bind` is called again.
        """
        if self._path is None:
            return

        if self._refresh_task is not None and not self._refresh_task.done():
            await asyncio.shield(self._refresh_task)
            return

        revision = self._revision
        seq = self._next_fetch()
        self._fallback_seq = None
        self._publish(loading=True)

        task = self._spawn(self._run_refresh(revision, seq, self._path))
        self._refresh_task = task
        await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait until every fetch this store has started has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Push channel callbacks
    # ------------------------------------------------------------------

    def _on_snapshot(self, revision: int, documents: list[RemoteDocument]) -> None:
        if revision != self._revision:
            return

        path = self._path
        if documents:
            items = self._decode(documents)
            # A real push makes any pending fallback answer obsolete
            self._fallback_seq = None
            self._publish(items=items, loading=False, error=None, state=SyncState.SYNCED)
            self._audit.snapshot_applied(path, len(items), revision, self._correlation_id)
            return

        refresh_pending = self._refresh_task is not None and not self._refresh_task.done()
        will_fetch = self._fallback_on_empty and not refresh_pending
        self._audit.empty_snapshot_received(path, revision, will_fetch, self._correlation_id)

        if not self._fallback_on_empty:
            self._publish(items=(), loading=False, error=None, state=SyncState.SYNCED)
            return
        if refresh_pending:
            return

        seq = self._next_fetch()
        self._fallback_seq = seq
        self._spawn(self._run_fallback(revision, seq, path))

    def _on_error(self, revision: int, error: Exception) -> None:
        if revision != self._revision:
            return

        # The channel is dead; release it
        self._failed_revision = revision
        self._teardown_subscription()
        message = self._describe("listen for", error)
        self._channel_error = message
        self._audit.subscription_failed(self._path, revision, message, self._correlation_id)
        self._publish(loading=False, error=message, state=SyncState.ERRORED)

    # ------------------------------------------------------------------
    # Direct fetches
    # ------------------------------------------------------------------

    async def _run_fallback(self, revision: int, seq: int, path: str) -> None:
        try:
            documents = await self._client.query(path)
        except Exception as e:
            if not self._fallback_is_current(revision, seq):
                self._discard(path, "fallback", revision)
                return
            self._fallback_seq = None
            message = self._describe("fetch", e)
            self._audit.fetch_failed(path, "fallback", revision, message, self._correlation_id)
            # The push reported empty; that is the last thing known
            self._publish(items=(), loading=False, error=message, state=SyncState.ERRORED)
            return

        if not self._fallback_is_current(revision, seq):
            self._discard(path, "fallback", revision)
            return

        self._fallback_seq = None
        items = self._decode(documents)
        self._publish(items=items, loading=False, error=None, state=SyncState.SYNCED)
        self._audit.fallback_applied(path, len(items), revision, self._correlation_id)

    async def _run_refresh(self, revision: int, seq: int, path: str) -> None:
        try:
            documents = await self._client.query(path)
        except Exception as e:
            if not self._fetch_is_current(revision, seq):
                self._discard(path, "refresh", revision)
                return
            message = self._describe("fetch", e)
            self._audit.fetch_failed(path, "refresh", revision, message, self._correlation_id)
            self._publish(loading=False, error=message, state=SyncState.ERRORED)
            return

        if not self._fetch_is_current(revision, seq):
            self._discard(path, "refresh", revision)
            return

        items = self._decode(documents)
        if self._channel_error is not None:
            # Fresh items, but nothing will push further changes
            self._publish(
                items=items, loading=False, error=self._channel_error, state=SyncState.ERRORED,
            )
        else:
            self._publish(items=items, loading=False, error=None, state=SyncState.SYNCED)
        self._audit.refresh_completed(path, len(items), revision, self._correlation_id)

    def _fetch_is_current(self, revision: int, seq: int) -> bool:
        return revision == self._revision and seq == self._fetch_seq

    def _fallback_is_current(self, revision: int, seq: int) -> bool:
        return self._fetch_is_current(revision, seq) and seq == self._fallback_seq

    def _next_fetch(self) -> int:
        self._fetch_seq += 1
        return self._fetch_seq

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _discard(self, path: str, reason: str, started_revision: int) -> None:
        self._audit.stale_result_discarded(
            path, reason, started_revision, self._revision, self._correlation_id,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_bound_to_scope(self) -> bool:
        if not self._scope.is_complete_for(self._kind):
            return True
        # Connected, or still opening the channel
        return self.connected or self._snapshot.state == SyncState.LOADING

    def _invalidate(self) -> None:
        """Start a new revision; everything in flight becomes stale."""
        self._revision += 1
        self._channel_error = None
        self._fetch_seq += 1
        self._fallback_seq = None
        self._refresh_task = None

    def _teardown_subscription(self) -> None:
        if self._unsubscribe is None:
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        try:
            unsubscribe()
        finally:
            self._audit.subscription_closed(self._path, self._revision, self._correlation_id)

    def _decode(self, documents: list[RemoteDocument]) -> tuple:
        return decode_documents(documents, self._kind, self._scope, self._audit)

    def _describe(self, action: str, error: Exception) -> str:
        detail = str(error) or error.__class__.__name__
        return f"Failed to {action} {self._kind.value}: {detail}"

    def _publish(self, **changes) -> None:
        changes.setdefault("scope", self._scope)
        changes["revision"] = self._revision
        self._snapshot = self._snapshot.model_copy(update=changes)

        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception(
                    "sync_listener_failed",
                    kind=self._kind.value,
                    revision=self._revision,
                )


def create_store(
    client: RemoteCollectionClient,
    kind: EntityKind,
    audit_logger: Optional[SyncAuditLogger] = None,
    fallback_on_empty: Optional[bool] = None,
) -> CollectionSyncStore:
    """Build a store for one entity kind."""
    return CollectionSyncStore(
        client,
        kind,
        audit_logger=audit_logger,
        fallback_on_empty=fallback_on_empty,
    )
