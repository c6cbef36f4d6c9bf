"""Services package."""

from pocket_ledger.services.storage import (
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
    StoreUnavailableError,
    Subscription,
)

__all__ = [
    "InMemoryRecordStore",
    "NotFoundError",
    "RecordStoreInterface",
    "StorageError",
    "StoreUnavailableError",
    "Subscription",
]
