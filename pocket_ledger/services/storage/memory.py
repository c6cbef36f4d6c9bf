"""
In-Memory Record Store

A complete record store that lives in process memory. Used:
1. In tests (no network, deterministic)
2. As the fallback when Google Sheets isn't configured

It behaves like a real live-query backend in the one way that matters to
the ledger: snapshots are delivered LATER, on the event loop, never inside
the write call. A caller that inserts a record and immediately reads the
cache will not see it yet.
"""

import asyncio
from typing import Iterable, Optional
from uuid import uuid4

from pocket_ledger.logs import get_logger
from pocket_ledger.models.transaction import (
    DateRange,
    Transaction,
    TransactionPayload,
    UserProfile,
)
from pocket_ledger.services.storage.interface import (
    NotFoundError,
    RecordStoreInterface,
    SnapshotCallback,
    StoreUnavailableError,
    Subscription,
    select_snapshot,
)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Dictionary-backed record store for a single user.

    Set `available = False` to make every call fail with
    StoreUnavailableError, e.g. to exercise error paths.
    """

    def __init__(
        self,
        records: Iterable[Transaction] = (),
        profile: Optional[UserProfile] = None,
    ):
        self._records: dict[str, Transaction] = {r.id: r for r in records}
        self._profile = profile
        self._subscriptions: dict[Subscription, SnapshotCallback] = {}
        self._logger = get_logger(__name__)
        self.available = True

    def _check_available(self, operation: str) -> None:
        if not self.available:
            raise StoreUnavailableError(f"Record store unavailable during {operation}")

    def _schedule_delivery(self, subscription: Subscription) -> None:
        loop = asyncio.get_running_loop()
        loop.call_soon(self._deliver, subscription)

    def _deliver(self, subscription: Subscription) -> None:
        callback = self._subscriptions.get(subscription)
        if callback is None or subscription.closed:
            return
        # Always computed from the state at delivery time: a full, consistent set
        callback(select_snapshot(self._records.values(), subscription.scope))

    def _broadcast(self) -> None:
        for subscription in list(self._subscriptions):
            self._schedule_delivery(subscription)

    def _forget(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription, None)
        self._logger.debug("subscription_closed", scope=subscription.scope.model_dump(mode="json"))

    @property
    def open_subscriptions(self) -> int:
        return len(self._subscriptions)

    async def subscribe(
        self,
        scope: DateRange,
        on_snapshot: SnapshotCallback,
    ) -> Subscription:
        self._check_available("subscribe")
        subscription = Subscription(scope, on_close=self._forget)
        self._subscriptions[subscription] = on_snapshot
        self._schedule_delivery(subscription)
        self._logger.debug("subscription_opened", scope=scope.model_dump(mode="json"))
        return subscription

    async def insert(self, payload: TransactionPayload) -> str:
        self._check_available("insert")
        record_id = uuid4().hex
        self._records[record_id] = Transaction(id=record_id, **payload.model_dump())
        self._broadcast()
        return record_id

    async def update(self, record_id: str, payload: TransactionPayload) -> None:
        self._check_available("update")
        if record_id not in self._records:
            raise NotFoundError(record_id)
        self._records[record_id] = Transaction(id=record_id, **payload.model_dump())
        self._broadcast()

    async def delete(self, record_id: str) -> None:
        self._check_available("delete")
        if self._records.pop(record_id, None) is None:
            raise NotFoundError(record_id)
        self._broadcast()

    async def get_by_id(self, record_id: str) -> Optional[Transaction]:
        self._check_available("get_by_id")
        return self._records.get(record_id)

    async def get_user_profile(self) -> Optional[UserProfile]:
        self._check_available("get_user_profile")
        return self._profile
