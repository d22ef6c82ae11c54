"""
Abstract Remote Collection Interface

DESIGN DECISION: The remote document store is reached only through this
interface. This allows us to:
1. Swap the backend (Google Sheets today) without touching sync logic
2. Use in-memory storage for testing
3. Keep the sync stores decoupled from any vendor SDK

The interface is intentionally small: a point query, a push subscription,
and the two writes a finance tracker needs. It is not an ORM.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class RemoteDocument(BaseModel):
    """One document of a remote collection, as delivered by the store."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned document identifier"
    )
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Document payload"
    )


SnapshotCallback = Callable[[list[RemoteDocument]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class RemoteCollectionClient(ABC):
    """
    Abstract interface for a remote document store.

    Any backend (Google Sheets, a hosted document database, memory)
    must implement these methods.
    """

    @abstractmethod
    async def query(self, path: str) -> list[RemoteDocument]:
        """
        Read every document currently in a collection.

        Args:
            path: Collection path, e.g. users/u1/bankAccounts

        Returns:
            The documents, in store order

        Raises:
            FetchError: If the read fails
        """
        pass

    @abstractmethod
    async def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """
        Open a push channel on a collection.

        `on_snapshot` receives the full document list after every change.
        It may receive an empty list, which does not prove the collection
        is empty. `on_error` fires at most once, after which the
        subscription delivers nothing more.

        Args:
            path: Collection path
            on_snapshot: Called with each new snapshot
            on_error: Called once if the channel fails

        Returns:
            A callable that closes the subscription; calling it more
            than once is harmless

        Raises:
            SubscriptionError: If the channel cannot be opened
        """
        pass

    @abstractmethod
    async def set_document(
        self,
        path: str,
        document_id: str,
        data: dict[str, Any],
    ) -> bool:
        """
        Create or replace a document.

        Returns:
            True if written successfully

        Raises:
            RemoteStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_document(self, path: str, document_id: str) -> bool:
        """
        Delete a document.

        Returns:
            True if a document was deleted, False if it did not exist
        """
        pass


class RemoteStoreError(Exception):
    """Base exception for remote store operations."""
    pass


class FetchError(RemoteStoreError):
    """A point query failed."""
    pass


class SubscriptionError(RemoteStoreError):
    """A push channel could not be opened or has failed."""
    pass


class ConnectionError(RemoteStoreError):
    """Could not connect to the store backend."""
    pass


def split_collection_path(path: str) -> list[str]:
    """
    Split a collection path into its segments.

    Collection paths have an odd number of segments
    (collection/doc/collection/...).

    Raises:
        ValueError: If the path is not a collection path
    """
    segments = [segment for segment in path.split("/") if segment]
    if not segments or len(segments) % 2 == 0:
        raise ValueError(f"Not a collection path: {path!r}")
    return segments
