"""
Transaction Cache and Live Feed

The cache holds the latest snapshot of the chart-scoped live query.
It is only ever replaced wholesale: a snapshot is the complete matching
record set, so there is nothing to diff and no way to apply half of one.

The feed owns the subscription that fills the cache. Changing the chart
range opens a new subscription and closes the old one; anything the old
subscription still delivers afterwards is dropped.
"""

from typing import Callable, Optional, Sequence

from pocket_ledger.logs import get_logger
from pocket_ledger.models.transaction import DateRange, Transaction
from pocket_ledger.services.storage.interface import (
    RecordStoreInterface,
    Subscription,
)


CacheListener = Callable[["TransactionCache"], None]


class TransactionCache:
    """
    Current record set for one query scope, newest first.

    `version` increases by one per applied snapshot, so derived views
    can tell whether they are stale.
    """

    def __init__(self, scope: Optional[DateRange] = None):
        self._records: tuple[Transaction, ...] = ()
        self._scope = scope or DateRange()
        self._version = 0
        self._listeners: list[CacheListener] = []
        self._logger = get_logger(__name__)

    @property
    def scope(self) -> DateRange:
        return self._scope

    @property
    def version(self) -> int:
        return self._version

    @property
    def loaded(self) -> bool:
        """Whether any snapshot has arrived yet."""
        return self._version > 0

    def current(self) -> tuple[Transaction, ...]:
        """The cached records, in the order the store delivered them."""
        return self._records

    def find(self, record_id: str) -> Optional[Transaction]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def apply_snapshot(
        self,
        records: Sequence[Transaction],
        scope: Optional[DateRange] = None,
    ) -> None:
        """Replace the entire cached set, then notify listeners."""
        self._records = tuple(records)
        if scope is not None:
            self._scope = scope
        self._version += 1
        self._logger.debug(
            "snapshot_applied",
            count=len(self._records),
            version=self._version,
        )
        for listener in list(self._listeners):
            listener(self)

    def add_listener(self, listener: CacheListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CacheListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._records)


class LiveTransactionFeed:
    """
    Keeps a TransactionCache in sync with one live query.

    Each subscription is tagged with a generation number. Only the
    newest generation may write to the cache.
    """

    def __init__(self, store: RecordStoreInterface, cache: TransactionCache):
        self._store = store
        self._cache = cache
        self._subscription: Optional[Subscription] = None
        self._generation = 0
        self._logger = get_logger(__name__)

    @property
    def cache(self) -> TransactionCache:
        return self._cache

    @property
    def active(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    @property
    def scope(self) -> Optional[DateRange]:
        return self._subscription.scope if self._subscription else None

    def _snapshot_handler(self, generation: int, scope: DateRange):
        def on_snapshot(records: list[Transaction]) -> None:
            if generation != self._generation:
                self._logger.debug(
                    "stale_snapshot_dropped",
                    generation=generation,
                    current_generation=self._generation,
                )
                return
            self._cache.apply_snapshot(records, scope)
        return on_snapshot

    async def start(self, scope: Optional[DateRange] = None) -> None:
        """Open the live query (or re-scope it if already open)."""
        await self.change_scope(scope or self._cache.scope)

    async def change_scope(self, scope: DateRange) -> None:
        """
        Replace the live query with one for `scope`.

        The new subscription is opened before the old one is closed, so
        if opening fails the previous query (and cache) stay as they were.
        The cache switches over when the first new snapshot arrives.

        Raises:
            StoreUnavailableError: If the new query cannot be opened
        """
        generation = self._generation + 1
        try:
            subscription = await self._store.subscribe(
                scope, self._snapshot_handler(generation, scope)
            )
        except Exception as e:
            self._logger.error(
                "subscription_failed",
                scope=scope.model_dump(mode="json"),
                error=str(e),
            )
            raise

        previous = self._subscription
        self._generation = generation
        self._subscription = subscription
        if previous is not None:
            previous.close()
        self._logger.info(
            "live_query_opened",
            scope=scope.model_dump(mode="json"),
            generation=generation,
        )

    def stop(self) -> None:
        """Close the live query. The cache keeps its last snapshot."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        # Anything already scheduled for the closed query is now stale
        self._generation += 1
