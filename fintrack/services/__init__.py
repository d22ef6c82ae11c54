"""Services package."""

from fintrack.services.remote import (
    ConnectionError,
    FetchError,
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    InMemoryCollectionClient,
    RemoteCollectionClient,
    RemoteDocument,
    RemoteStoreError,
    SubscriptionError,
)

__all__ = [
    "ConnectionError",
    "FetchError",
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    "InMemoryCollectionClient",
    "RemoteCollectionClient",
    "RemoteDocument",
    "RemoteStoreError",
    "SubscriptionError",
]
