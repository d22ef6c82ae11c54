"""
In-Memory Remote Collection Client

Dict-backed implementation of the remote collection interface. It is used
by tests and by sessions that run without storage configured.

Behaves like a push-based document store:
- Snapshots are delivered on the event loop, never inline
- A new subscription receives the current contents soon after opening
- Every write pushes a fresh snapshot to the collection's subscribers

It can also imitate the two failure modes the sync layer must survive:
a stale local cache that first reports an empty collection, and a push
channel that dies with an error.
"""

import asyncio
from collections import defaultdict
from typing import Any, Optional

from fintrack.services.remote.interface import (
    ErrorCallback,
    RemoteCollectionClient,
    RemoteDocument,
    SnapshotCallback,
    SubscriptionError,
    Unsubscribe,
    split_collection_path,
)


class _Subscription:
    """One open push channel."""

    def __init__(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ):
        self.path = path
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class InMemoryCollectionClient(RemoteCollectionClient):
    """
    Remote collection client backed by plain dicts.

    Args:
        stale_first_snapshot: Deliver an empty first snapshot to every new
            subscription, the way a cold local cache does
    """

    def __init__(self, stale_first_snapshot: bool = False):
        self._collections: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)
        self._stale_first_snapshot = stale_first_snapshot
        self._failures: dict[str, Exception] = {}
        self.query_count: dict[str, int] = defaultdict(int)

    # ------------------------------------------------------------------
    # Test and setup helpers
    # ------------------------------------------------------------------

    def seed(self, path: str, documents: dict[str, dict[str, Any]]) -> None:
        """Load documents into a collection, notifying open subscriptions."""
        split_collection_path(path)
        self._collections[path].update(
            {doc_id: dict(data) for doc_id, data in documents.items()}
        )
        if self._active_subscriptions(path):
            self._notify(path)

    def fail_queries(self, path: str, error: Optional[Exception]) -> None:
        """Make queries on a path raise `error` (None clears the failure)."""
        if error is None:
            self._failures.pop(path, None)
        else:
            self._failures[path] = error

    def fail_subscriptions(self, path: str, error: Exception) -> None:
        """Terminate every open subscription on a path with an error."""
        loop = asyncio.get_running_loop()
        for subscription in self._active_subscriptions(path):
            subscription.active = False
            loop.call_soon(subscription.on_error, error)
        self._subscriptions[path] = []

    def subscriber_count(self, path: str) -> int:
        return len(self._active_subscriptions(path))

    # ------------------------------------------------------------------
    # RemoteCollectionClient
    # ------------------------------------------------------------------

    async def query(self, path: str) -> list[RemoteDocument]:
        """Read a collection."""
        split_collection_path(path)
        self.query_count[path] += 1
        await asyncio.sleep(0)
        if path in self._failures:
            raise self._failures[path]
        return self._documents(path)

    async def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Open a push channel on a collection."""
        try:
            split_collection_path(path)
        except ValueError as e:
            raise SubscriptionError(str(e))

        loop = asyncio.get_running_loop()
        subscription = _Subscription(path, on_snapshot, on_error)
        self._subscriptions[path].append(subscription)

        first = [] if self._stale_first_snapshot else self._documents(path)
        loop.call_soon(self._deliver, subscription, first)

        def unsubscribe() -> None:
            subscription.active = False
            if subscription in self._subscriptions[path]:
                self._subscriptions[path].remove(subscription)

        return unsubscribe

    async def set_document(
        self,
        path: str,
        document_id: str,
        data: dict[str, Any],
    ) -> bool:
        """Create or replace a document."""
        split_collection_path(path)
        self._collections[path][document_id] = dict(data)
        self._notify(path)
        return True

    async def delete_document(self, path: str, document_id: str) -> bool:
        """Delete a document."""
        split_collection_path(path)
        if document_id not in self._collections[path]:
            return False
        del self._collections[path][document_id]
        self._notify(path)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _documents(self, path: str) -> list[RemoteDocument]:
        return [
            RemoteDocument(id=doc_id, data=dict(data))
            for doc_id, data in self._collections[path].items()
        ]

    def _active_subscriptions(self, path: str) -> list[_Subscription]:
        return [s for s in self._subscriptions.get(path, []) if s.active]

    def _notify(self, path: str) -> None:
        loop = asyncio.get_running_loop()
        documents = self._documents(path)
        for subscription in self._active_subscriptions(path):
            loop.call_soon(self._deliver, subscription, documents)

    @staticmethod
    def _deliver(
        subscription: _Subscription,
        documents: list[RemoteDocument],
    ) -> None:
        # Closed between scheduling and delivery
        if subscription.active:
            subscription.on_snapshot(documents)
