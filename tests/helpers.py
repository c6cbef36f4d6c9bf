"""Builders and store doubles shared by the tests."""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pocket_ledger.models.transaction import (
    Transaction,
    TransactionCategory,
    TransactionPayload,
    TransactionType,
)
from pocket_ledger.services.storage import InMemoryRecordStore


def make_txn(
    id: str,
    amount,
    type: str = "expense",
    category: TransactionCategory = TransactionCategory.FOOD,
    when: Optional[datetime] = None,
    note: str = "",
) -> Transaction:
    return Transaction(
        id=id,
        amount=Decimal(str(amount)),
        type=TransactionType(type),
        category=category,
        date=when or datetime(2024, 1, 1, 12, 0),
        note=note,
    )


async def settle() -> None:
    """Give scheduled snapshot deliveries a chance to run."""
    for _ in range(3):
        await asyncio.sleep(0)


class RecordingStore(InMemoryRecordStore):
    """In-memory store that remembers every write it was asked for."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls: list[tuple] = []

    async def insert(self, payload: TransactionPayload) -> str:
        self.calls.append(("insert", payload))
        return await super().insert(payload)

    async def update(self, record_id: str, payload: TransactionPayload) -> None:
        self.calls.append(("update", record_id, payload))
        await super().update(record_id, payload)

    async def delete(self, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        await super().delete(record_id)
