"""
Abstract Record Store Interface

DESIGN DECISION: The ledger core never talks to a database directly.
It sees one abstract record store that can:
1. Run a live query (push a full snapshot on every change)
2. Insert, update and delete single records
3. Look up a single record or the user's profile

This allows us to:
1. Swap Google Sheets for a real document store later
2. Use in-memory storage for testing
3. Keep the aggregation and filter engines transport-agnostic

Every store instance is scoped to exactly one user. How that scoping is
enforced (a sheet column, a document path) is the implementation's business.
"""

from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta
from typing import Callable, Iterable, Optional

from pocket_ledger.models.transaction import (
    DateRange,
    Transaction,
    TransactionPayload,
    UserProfile,
)


SnapshotCallback = Callable[[list[Transaction]], None]


class Subscription:
    """
    Cancelable handle for one live query.

    Closing is idempotent. Once closed, the store must not deliver
    another snapshot through this handle.
    """

    def __init__(
        self,
        scope: DateRange,
        on_close: Optional[Callable[["Subscription"], None]] = None,
    ):
        self.scope = scope
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop further deliveries."""
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close(self)


class RecordStoreInterface(ABC):
    """
    Abstract interface for the per-user transaction store.

    Any storage implementation (Google Sheets, a document database, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def subscribe(
        self,
        scope: DateRange,
        on_snapshot: SnapshotCallback,
    ) -> Subscription:
        """
        Open a live query.

        Args:
            scope: Date range the query is restricted to
            on_snapshot: Called with the FULL matching record set, ordered
                         by date descending, once initially and again on
                         every underlying change

        Returns:
            Handle that cancels the query when closed

        Raises:
            StoreUnavailableError: If the query cannot be opened
        """
        pass

    @abstractmethod
    async def insert(self, payload: TransactionPayload) -> str:
        """
        Insert a new transaction.

        Returns:
            The id the store assigned

        Raises:
            StoreUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, payload: TransactionPayload) -> None:
        """
        Overwrite an existing transaction's fields.

        Raises:
            NotFoundError: If no record has this id
            StoreUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """
        Remove a transaction.

        Raises:
            NotFoundError: If no record has this id (e.g. already removed)
            StoreUnavailableError: If the write fails
        """
        pass

    @abstractmethod
    async def get_by_id(self, record_id: str) -> Optional[Transaction]:
        """
        Retrieve a single transaction.

        Returns:
            The transaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_user_profile(self) -> Optional[UserProfile]:
        """
        Retrieve the profile document of the store's user.

        Returns:
            The profile if one exists, None otherwise
        """
        pass


def scope_bounds(scope: DateRange) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Translate a calendar range into a half-open datetime interval.

    The start bound is midnight of the start day (inclusive); the end
    bound is midnight of the day AFTER the end day (exclusive), so the
    whole end day is inside the scope.
    """
    lower = datetime.combine(scope.start, time.min) if scope.start else None
    upper = (
        datetime.combine(scope.end + timedelta(days=1), time.min)
        if scope.end
        else None
    )
    return lower, upper


def select_snapshot(
    records: Iterable[Transaction],
    scope: DateRange,
) -> list[Transaction]:
    """Records within the scope, newest first, as a live query delivers them."""
    lower, upper = scope_bounds(scope)
    matching = [
        record for record in records
        if (lower is None or record.date >= lower)
        and (upper is None or record.date < upper)
    ]
    matching.sort(key=lambda r: r.date, reverse=True)
    return matching


class StorageError(Exception):
    """Base exception for record store operations."""
    pass


class NotFoundError(StorageError):
    """Targeted record does not exist (or no longer exists)."""

    def __init__(self, record_id: str, message: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message or f"Transaction not found: {record_id}")


class StoreUnavailableError(StorageError):
    """Could not reach the storage backend, or it rejected the call."""
    pass
