"""Collection synchronization package."""

from fintrack.sync.decoder import RECORD_MODELS, decode_documents
from fintrack.sync.store import (
    CollectionSyncStore,
    SnapshotListener,
    StoreClosedError,
    create_store,
)

__all__ = [
    "CollectionSyncStore",
    "RECORD_MODELS",
    "SnapshotListener",
    "StoreClosedError",
    "create_store",
    "decode_documents",
]
