"""
Remote Collection Package

Provides the abstract interface to the remote document store and its
concrete implementations. Google Sheets is the hosted backend; the
in-memory client serves tests and storage-less sessions.
"""

from fintrack.services.remote.interface import (
    ConnectionError,
    FetchError,
    RemoteCollectionClient,
    RemoteDocument,
    RemoteStoreError,
    SubscriptionError,
    Unsubscribe,
    split_collection_path,
)
from fintrack.services.remote.memory import InMemoryCollectionClient
from fintrack.services.remote.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
)

__all__ = [
    # Interface
    "RemoteCollectionClient",
    "RemoteDocument",
    "Unsubscribe",
    "split_collection_path",
    # Exceptions
    "ConnectionError",
    "FetchError",
    "RemoteStoreError",
    "SubscriptionError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    "InMemoryCollectionClient",
]
