"""Tests for edit sessions and deletes."""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest

from pocket_ledger.ledger.cache import LiveTransactionFeed, TransactionCache
from pocket_ledger.ledger.session import (
    EditMode,
    EditSession,
    SessionClosedError,
    delete_transaction,
)
from pocket_ledger.models.transaction import TransactionCategory, TransactionType
from pocket_ledger.services.storage import NotFoundError, StoreUnavailableError
from pocket_ledger.validation import TransactionValidator, ValidationError
from tests.helpers import RecordingStore, make_txn, settle


@pytest.fixture
def validator():
    return TransactionValidator(max_amount=Decimal("1000000"))


def _fill(session, **fields):
    for name, value in fields.items():
        session.set_field(name, value)


class TestStartingSessions:

    def test_create_starts_blank(self, validator):
        session = EditSession.create(RecordingStore(), validator=validator)
        assert session.mode == EditMode.CREATE
        assert session.target_id is None
        assert session.fields == {
            "amount": None,
            "category": None,
            "type": TransactionType.EXPENSE,
            "note": "",
            "date": None,
        }

    def test_edit_seeded_from_record(self, validator):
        record = make_txn("t9", "12.50", "income", TransactionCategory.SALARY,
                          datetime(2024, 5, 1, 9, 0), note="bonus")
        session = EditSession.edit(RecordingStore([record]), record, validator=validator)
        assert session.mode == EditMode.EDIT
        assert session.target_id == "t9"
        assert session.fields["amount"] == Decimal("12.50")
        assert session.fields["note"] == "bonus"
        assert session.fields["date"] == datetime(2024, 5, 1, 9, 0)

    def test_edit_requires_a_record(self, validator):
        with pytest.raises(ValueError):
            EditSession.start(RecordingStore(), EditMode.EDIT, validator=validator)

    def test_fields_is_a_copy(self, validator):
        session = EditSession.create(RecordingStore(), validator=validator)
        session.fields["amount"] = "99"
        assert session.fields["amount"] is None

    def test_unknown_field(self, validator):
        session = EditSession.create(RecordingStore(), validator=validator)
        with pytest.raises(ValueError, match="Unknown field"):
            session.set_field("user_id", "someone-else")


class TestCommit:

    def test_create_commit_inserts_once(self, validator):
        store = RecordingStore()

        async def scenario():
            session = EditSession.create(store, validator=validator)
            _fill(session, amount="250", category="Food", note=" lunch ", date=date(2024, 3, 1))
            record_id = await session.commit()
            return session, record_id, await store.get_by_id(record_id)

        session, record_id, stored = asyncio.run(scenario())
        assert session.closed
        assert [call[0] for call in store.calls] == ["insert"]
        assert stored.amount == Decimal("250")
        assert stored.note == "lunch"
        assert stored.date == datetime(2024, 3, 1)

    def test_edit_commit_updates_target(self, validator):
        record = make_txn("t1", 40)
        store = RecordingStore([record])

        async def scenario():
            session = EditSession.edit(store, record, validator=validator)
            session.set_field("amount", "45")
            return await session.commit(), await store.get_by_id("t1")

        record_id, stored = asyncio.run(scenario())
        assert record_id == "t1"
        assert store.calls[0][:2] == ("update", "t1")
        assert stored.amount == Decimal("45")
        assert stored.date == record.date

    def test_invalid_amount_issues_no_write(self, validator):
        store = RecordingStore()
        session = EditSession.create(store, validator=validator)
        _fill(session, amount="abc", category=TransactionCategory.FOOD)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(session.commit())

        assert exc_info.value.fields == ["amount"]
        assert store.calls == []
        assert not session.closed
        assert session.fields["amount"] == "abc"

    def test_fix_and_retry_after_validation_error(self, validator):
        store = RecordingStore()
        session = EditSession.create(store, validator=validator)
        _fill(session, amount="abc", category=TransactionCategory.FOOD)
        with pytest.raises(ValidationError):
            asyncio.run(session.commit())

        session.set_field("amount", "15")
        asyncio.run(session.commit())
        assert session.closed
        assert len(store.calls) == 1

    def test_edit_of_deleted_record_keeps_session_open(self, validator):
        record = make_txn("gone", 10)
        store = RecordingStore()
        session = EditSession.edit(store, record, validator=validator)

        with pytest.raises(NotFoundError):
            asyncio.run(session.commit())
        assert not session.closed

    def test_store_failure_keeps_session_open(self, validator):
        store = RecordingStore()
        store.available = False
        session = EditSession.create(store, validator=validator)
        _fill(session, amount="5", category="Bills")

        with pytest.raises(StoreUnavailableError):
            asyncio.run(session.commit())
        assert not session.closed
        assert session.fields["category"] == "Bills"
        assert len(store.calls) == 1

    def test_commit_does_not_touch_cache(self, validator):
        store = RecordingStore()
        cache = TransactionCache()

        async def scenario():
            feed = LiveTransactionFeed(store, cache)
            await feed.start()
            await settle()
            session = EditSession.create(store, validator=validator)
            _fill(session, amount="5", category="Food")
            record_id = await session.commit()
            before = cache.find(record_id)
            await settle()
            return before, cache.find(record_id)

        before, after = asyncio.run(scenario())
        assert before is None
        assert after is not None

    def test_offset_date_reaches_the_cache(self, validator):
        store = RecordingStore([make_txn("old", 5, when=datetime(2024, 2, 1, 12, 0))])
        cache = TransactionCache()

        async def scenario():
            feed = LiveTransactionFeed(store, cache)
            await feed.start()
            await settle()
            session = EditSession.create(store, validator=validator)
            _fill(session, amount="30", category="Food", date="2024-03-01T10:00:00+05:30")
            record_id = await session.commit()
            await settle()
            first = cache.find(record_id)
            later_id = await store.insert(make_txn("x", 1).to_payload())
            await settle()
            return first, cache.find(later_id)

        first, later = asyncio.run(scenario())
        assert first is not None
        assert first.date.tzinfo is None
        assert later is not None

    def test_clearing_date_on_edit_is_rejected(self, validator):
        record = make_txn("t1", 40, when=datetime(2023, 7, 9, 18, 0))
        store = RecordingStore([record])
        session = EditSession.edit(store, record, validator=validator)
        for blank in (None, ""):
            session.set_field("date", blank)
            with pytest.raises(ValidationError) as exc_info:
                asyncio.run(session.commit())
            assert exc_info.value.fields == ["date"]
        assert store.calls == []
        assert not session.closed

    def test_blank_date_on_create_means_now(self, validator):
        store = RecordingStore()

        async def scenario():
            session = EditSession.create(store, validator=validator)
            _fill(session, amount="3", category="Food")
            before = datetime.now()
            record_id = await session.commit()
            return before, await store.get_by_id(record_id)

        before, stored = asyncio.run(scenario())
        assert stored.date >= before


class TestClosing:

    def test_cancel_writes_nothing(self, validator):
        store = RecordingStore()
        session = EditSession.create(store, validator=validator)
        session.set_field("amount", "10")
        session.cancel()
        assert session.closed
        assert store.calls == []

    def test_closed_session_is_unusable(self, validator):
        session = EditSession.create(RecordingStore(), validator=validator)
        session.cancel()
        with pytest.raises(SessionClosedError):
            session.set_field("amount", "10")
        with pytest.raises(SessionClosedError):
            asyncio.run(session.commit())
        with pytest.raises(SessionClosedError):
            session.cancel()

    def test_committed_session_cannot_commit_again(self, validator):
        store = RecordingStore()
        session = EditSession.create(store, validator=validator)
        _fill(session, amount="1", category="Other")
        asyncio.run(session.commit())
        with pytest.raises(SessionClosedError):
            asyncio.run(session.commit())
        assert len(store.calls) == 1


class TestDeleteTransaction:

    def test_delete_removes_after_snapshot(self, example_records):
        store = RecordingStore(example_records)
        cache = TransactionCache()

        async def scenario():
            feed = LiveTransactionFeed(store, cache)
            await feed.start()
            await settle()
            await delete_transaction(store, "t2")
            still_there = cache.find("t2") is not None
            await settle()
            return still_there

        assert asyncio.run(scenario())
        assert [r.id for r in cache.current()] == ["t3", "t1"]

    def test_delete_missing_record(self, example_records):
        store = RecordingStore(example_records)
        cache = TransactionCache()

        async def scenario():
            feed = LiveTransactionFeed(store, cache)
            await feed.start()
            await settle()
            version = cache.version
            with pytest.raises(NotFoundError):
                await delete_transaction(store, "nope")
            await settle()
            return version

        version = asyncio.run(scenario())
        assert cache.version == version
        assert len(cache) == 3

    def test_delete_store_unavailable(self, example_records):
        store = RecordingStore(example_records)
        store.available = False
        with pytest.raises(StoreUnavailableError):
            asyncio.run(delete_transaction(store, "t1"))
