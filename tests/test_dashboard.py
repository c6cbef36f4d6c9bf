"""End-to-end flows through the ledger dashboard on the in-memory store."""

import asyncio
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from pocket_ledger.config.settings import AppSettings
from pocket_ledger.dashboard import LedgerDashboard, create_dashboard
from pocket_ledger.models.transaction import (
    CategoryFilter,
    TransactionCategory,
    UserProfile,
)
from pocket_ledger.services.storage import (
    InMemoryRecordStore,
    NotFoundError,
    StoreUnavailableError,
)
from pocket_ledger.validation import ValidationError
from tests.helpers import RecordingStore, settle


class ProfileFailingStore(InMemoryRecordStore):

    async def get_user_profile(self):
        raise StoreUnavailableError("profiles sheet missing")


def _settings(**overrides):
    values = {"user_id": "u1", "max_transaction_amount": 1000000.0}
    values.update(overrides)
    return AppSettings(**values)


class TestOpening:

    def test_open_loads_summary(self, example_records):
        async def scenario():
            dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
            await dashboard.open()
            await settle()
            return dashboard

        dashboard = asyncio.run(scenario())
        totals = dashboard.summary.totals
        assert (totals.income, totals.expense, totals.balance) == (100, 55, 45)
        assert [r.id for r in dashboard.visible_transactions()] == ["t3", "t2", "t1"]

    def test_summary_empty_before_first_snapshot(self, example_records):
        dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
        assert dashboard.summary.totals.balance == 0
        assert dashboard.summary.monthly_series == []

    def test_default_chart_days(self):
        dashboard = LedgerDashboard(InMemoryRecordStore(), _settings(default_chart_days=30))
        today = date.today()
        assert dashboard.chart_range.start == today - timedelta(days=30)
        assert dashboard.chart_range.end == today

    def test_all_time_by_default(self):
        dashboard = LedgerDashboard(InMemoryRecordStore(), _settings())
        assert dashboard.chart_range.is_unbounded

    def test_close_stops_live_query(self, example_records):
        store = InMemoryRecordStore(example_records)

        async def scenario():
            dashboard = LedgerDashboard(store, _settings())
            await dashboard.open()
            await settle()
            dashboard.close()

        asyncio.run(scenario())
        assert store.open_subscriptions == 0


class TestWritesFlowBack:

    def test_create_updates_summary_after_snapshot(self, example_records):
        async def scenario():
            dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
            await dashboard.open()
            await settle()
            session = dashboard.start_create()
            session.set_field("amount", "20")
            session.set_field("category", TransactionCategory.TRANSPORT)
            session.set_field("date", date(2024, 2, 2))
            await session.commit()
            balance_before = dashboard.summary.totals.balance
            await settle()
            return dashboard, balance_before

        dashboard, balance_before = asyncio.run(scenario())
        assert balance_before == 45
        assert dashboard.summary.totals.balance == 25
        categories = [row.category for row in dashboard.summary.category_breakdown]
        assert categories == [TransactionCategory.FOOD, TransactionCategory.TRANSPORT]

    def test_edit_then_delete(self, example_records):
        async def scenario():
            dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
            await dashboard.open()
            await settle()
            session = dashboard.start_edit("t2")
            session.set_field("amount", "60")
            await session.commit()
            await settle()
            expense_after_edit = dashboard.summary.totals.expense
            await dashboard.delete_transaction("t3")
            await settle()
            return dashboard, expense_after_edit

        dashboard, expense_after_edit = asyncio.run(scenario())
        assert expense_after_edit == 75
        assert dashboard.summary.totals.expense == 60
        assert dashboard.cache.find("t3") is None

    def test_start_edit_needs_cached_record(self, example_records):
        dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
        with pytest.raises(NotFoundError):
            dashboard.start_edit("t1")

    def test_max_amount_from_settings(self):
        store = RecordingStore()
        dashboard = LedgerDashboard(store, _settings(max_transaction_amount=100.0))
        session = dashboard.start_create()
        session.set_field("amount", "100.5")
        session.set_field("category", "Food")
        with pytest.raises(ValidationError):
            asyncio.run(session.commit())
        assert store.calls == []


class TestViews:

    def test_list_filter_narrows_within_chart_range(self, example_records):
        async def scenario():
            dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
            await dashboard.open()
            await settle()
            await dashboard.set_chart_range(date(2024, 1, 6), None)
            await settle()
            return dashboard

        dashboard = asyncio.run(scenario())
        assert [r.id for r in dashboard.visible_transactions()] == ["t3", "t2"]
        dashboard.list_view.select_date_filter(date(2024, 1, 1), date(2024, 1, 31))
        assert [r.id for r in dashboard.visible_transactions()] == ["t2"]
        dashboard.list_view.select_category_filter(TransactionCategory.SALARY)
        assert dashboard.visible_transactions() == []

    def test_list_filter_does_not_change_summary(self, example_records):
        async def scenario():
            dashboard = LedgerDashboard(InMemoryRecordStore(example_records), _settings())
            await dashboard.open()
            await settle()
            return dashboard

        dashboard = asyncio.run(scenario())
        dashboard.list_view.active_filter = CategoryFilter(category=TransactionCategory.FOOD)
        assert [r.id for r in dashboard.visible_transactions()] == ["t3", "t2"]
        assert dashboard.summary.totals.income == 100

    def test_chart_range_change(self, example_records):
        async def scenario():
            store = InMemoryRecordStore(example_records)
            dashboard = LedgerDashboard(store, _settings())
            await dashboard.open()
            await settle()
            await dashboard.set_chart_range(date(2024, 2, 1), date(2024, 2, 29))
            months_before = [p.month for p in dashboard.summary.monthly_series]
            await settle()
            return store, dashboard, months_before

        store, dashboard, months_before = asyncio.run(scenario())
        assert months_before == ["2024-01", "2024-02"]
        assert [p.month for p in dashboard.summary.monthly_series] == ["2024-02"]
        assert dashboard.chart_range.start == date(2024, 2, 1)
        assert store.open_subscriptions == 1

    def test_inverted_chart_range_rejected(self):
        dashboard = LedgerDashboard(InMemoryRecordStore(), _settings())
        with pytest.raises(ValueError):
            asyncio.run(dashboard.set_chart_range(date(2024, 2, 1), date(2024, 1, 1)))

    def test_new_record_outside_chart_range_not_shown(self):
        async def scenario():
            store = InMemoryRecordStore()
            dashboard = LedgerDashboard(store, _settings())
            await dashboard.set_chart_range(date(2024, 1, 1), date(2024, 1, 31))
            session = dashboard.start_create()
            session.set_field("amount", "9")
            session.set_field("category", "Food")
            session.set_field("date", datetime(2024, 2, 1, 0, 0))
            await session.commit()
            await settle()
            return dashboard

        dashboard = asyncio.run(scenario())
        assert dashboard.visible_transactions() == []
        assert dashboard.summary.totals.expense == Decimal("0")


class TestDisplayName:

    def test_profile_name(self):
        store = InMemoryRecordStore(profile=UserProfile(user_id="u1", name="Asha"))
        dashboard = LedgerDashboard(store, _settings(user_email="asha@example.com"))
        assert asyncio.run(dashboard.load_display_name()) == "Asha"

    def test_falls_back_to_email(self):
        store = InMemoryRecordStore(profile=UserProfile(user_id="u1"))
        dashboard = LedgerDashboard(store, _settings(user_email="asha@example.com"))
        assert asyncio.run(dashboard.load_display_name()) == "asha@example.com"

    def test_falls_back_to_user_id(self):
        dashboard = LedgerDashboard(InMemoryRecordStore(), _settings())
        assert asyncio.run(dashboard.load_display_name()) == "u1"

    def test_lookup_failure_uses_fallback(self):
        dashboard = LedgerDashboard(ProfileFailingStore(), _settings(user_email="a@b.in"))
        assert asyncio.run(dashboard.load_display_name()) == "a@b.in"


class TestCreateDashboard:

    def test_in_memory(self):
        dashboard = create_dashboard(use_storage=False)
        assert isinstance(dashboard.store, InMemoryRecordStore)

    def test_unconfigured_sheets_falls_back(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        dashboard = create_dashboard(use_storage=True)
        assert isinstance(dashboard.store, InMemoryRecordStore)
