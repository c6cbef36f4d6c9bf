"""
Storage Services Package

Provides the abstract record store interface and concrete implementations.
Google Sheets is the hosted backend; the in-memory store backs tests and
runs without any credentials.
"""

from pocket_ledger.services.storage.interface import (
    NotFoundError,
    RecordStoreInterface,
    SnapshotCallback,
    StorageError,
    StoreUnavailableError,
    Subscription,
    scope_bounds,
    select_snapshot,
)
from pocket_ledger.services.storage.memory import InMemoryRecordStore

__all__ = [
    # Interfaces
    "RecordStoreInterface",
    "SnapshotCallback",
    "Subscription",
    # Helpers
    "scope_bounds",
    "select_snapshot",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # In-memory implementation
    "InMemoryRecordStore",
]
