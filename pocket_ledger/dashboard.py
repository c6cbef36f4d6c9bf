"""
Ledger Dashboard

This module ties the components together:
- Record store → live feed → transaction cache
- Cache → aggregation engine (summary cards and charts)
- Cache → filter engine (transaction list)
- Edit sessions and deletes → record store

DESIGN DECISION: All view state is explicit. The chart range and the list
filter live on the dashboard object, not in module globals or the UI
framework's session.

The chart range scopes the live query, and the list reads the same cache.
The list can therefore never show a transaction outside the chart range;
its own date filter only narrows further.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import AppSettings
from pocket_ledger.ledger.aggregation import summarize
from pocket_ledger.ledger.cache import LiveTransactionFeed, TransactionCache
from pocket_ledger.ledger.filters import ListViewState
from pocket_ledger.ledger.session import EditSession, delete_transaction
from pocket_ledger.logs import configure_logging, get_logger
from pocket_ledger.models.transaction import (
    DashboardSummary,
    DateRange,
    Transaction,
)
from pocket_ledger.services.storage import (
    InMemoryRecordStore,
    NotFoundError,
    RecordStoreInterface,
)
from pocket_ledger.validation import TransactionValidator


class LedgerDashboard:
    """
    Everything one open dashboard needs.

    Flow:
    1. open() → live query for the chart range starts filling the cache
    2. Every snapshot → summary recomputed on next access
    3. start_create()/start_edit() → EditSession → commit → store write
    4. The store pushes a new snapshot → cache → views
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        settings: Optional[AppSettings] = None,
        chart_range: Optional[DateRange] = None,
    ):
        self._store = store
        self._settings = settings or get_settings().app
        self._cache = TransactionCache(chart_range or self._initial_chart_range())
        self._feed = LiveTransactionFeed(store, self._cache)
        self._validator = TransactionValidator(
            max_amount=Decimal(str(self._settings.max_transaction_amount))
        )
        self.list_view = ListViewState()
        self._summary: Optional[DashboardSummary] = None
        self._logger = get_logger(__name__)
        self._cache.add_listener(self._on_cache_changed)

    def _initial_chart_range(self) -> DateRange:
        days = self._settings.default_chart_days
        if not days:
            return DateRange()
        today = date.today()
        return DateRange(start=today - timedelta(days=days), end=today)

    def _on_cache_changed(self, cache: TransactionCache) -> None:
        # Drop the memoized summary; it is rebuilt lazily
        self._summary = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def store(self) -> RecordStoreInterface:
        return self._store

    @property
    def cache(self) -> TransactionCache:
        return self._cache

    @property
    def chart_range(self) -> DateRange:
        return self._feed.scope or self._cache.scope

    async def open(self) -> None:
        """Start the live query for the current chart range."""
        await self._feed.start(self._cache.scope)

    def close(self) -> None:
        """Stop the live query. Views keep showing the last snapshot."""
        self._feed.stop()

    async def set_chart_range(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> DateRange:
        """
        Re-scope the live query.

        The cache (and every view) keeps the old range's data until the
        new query delivers its first snapshot.
        """
        scope = DateRange(start=start, end=end)
        await self._feed.change_scope(scope)
        return scope

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def summary(self) -> DashboardSummary:
        """Totals, category breakdown, monthly and daily series."""
        if self._summary is None:
            self._summary = summarize(self._cache.current())
        return self._summary

    def visible_transactions(self) -> list[Transaction]:
        """The transaction list after the list filter."""
        return self.list_view.apply(self._cache.current())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def start_create(self) -> EditSession:
        return EditSession.create(self._store, validator=self._validator)

    def start_edit(self, record_id: str) -> EditSession:
        """
        Open an edit form seeded from the cached record.

        Raises:
            NotFoundError: The record is not in the current snapshot
        """
        record = self._cache.find(record_id)
        if record is None:
            raise NotFoundError(record_id)
        return EditSession.edit(self._store, record, validator=self._validator)

    async def delete_transaction(self, record_id: str) -> None:
        await delete_transaction(self._store, record_id)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def load_display_name(self) -> str:
        """
        Name to greet the user with.

        Profile name, else configured email, else user id. A profile lookup
        failure is logged and the fallback is used.
        """
        fallback = self._settings.user_email or self._settings.user_id
        try:
            profile = await self._store.get_user_profile()
        except Exception as e:
            self._logger.warning("profile_lookup_failed", error=str(e))
            return fallback
        if profile is None:
            return fallback
        return profile.name or fallback


def create_dashboard(use_storage: bool = True) -> LedgerDashboard:
    """
    Factory function to create a dashboard.

    Args:
        use_storage: Whether to connect to Google Sheets.
                    Set to False (or leave Sheets unconfigured) to run on
                    the in-memory store.
    """
    app_settings = get_settings().app
    configure_logging(app_settings.debug_mode)
    logger = get_logger(__name__)

    store: RecordStoreInterface
    if use_storage:
        try:
            from pocket_ledger.services.storage.google_sheets import (
                GoogleSheetsClient,
                GoogleSheetsRecordStore,
            )
            store = GoogleSheetsRecordStore(
                user_id=app_settings.user_id,
                client=GoogleSheetsClient(),
            )
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            store = InMemoryRecordStore()
    else:
        store = InMemoryRecordStore()

    return LedgerDashboard(store, settings=app_settings)
