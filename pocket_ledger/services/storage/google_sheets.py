"""
Google Sheets Record Store

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view and fix their ledger directly in Sheets
2. Nothing to host or migrate for a one-person ledger

TRADEOFFS:
- No push notifications, so live queries POLL the sheet and deliver a
  snapshot whenever the matching set changed (and right after our own writes)
- No server-side filtering (we filter in Python; fine for a personal ledger)
- Every user shares one worksheet; rows are scoped by the user_id column

Transport calls retry with backoff. Once retries are exhausted the
failure surfaces as StoreUnavailableError and the caller decides what to do.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import GoogleSheetsSettings
from pocket_ledger.logs import get_logger
from pocket_ledger.models.transaction import (
    DateRange,
    Transaction,
    TransactionCategory,
    TransactionPayload,
    TransactionType,
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


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "updated_at",
    "date",
    "type",
    "category",
    "amount",
    "note",
]

# Column mappings for Profiles sheet
PROFILE_COLUMNS = [
    "user_id",
    "name",
    "email",
]


class GoogleSheetsClient:
    """Owns the authorized gspread handle and the two worksheets."""

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def poll_interval(self) -> float:
        return self._settings.poll_interval_seconds

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service account key (once, then reused)."""
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StoreUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the ledger spreadsheet by key."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # First run: lay down the header row
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_profiles_sheet(self) -> gspread.Worksheet:
        """Get or create the Profiles worksheet."""
        return self._get_or_create_sheet(
            self._settings.profiles_sheet_name, PROFILE_COLUMNS
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    Transactions are stored as rows, one transaction per row.
    gspread is blocking, so sheet I/O runs in a worker thread.
    """

    def __init__(
        self,
        user_id: str,
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._user_id = user_id
        self._client = client or GoogleSheetsClient()
        self._polls: dict[Subscription, tuple[asyncio.Task, asyncio.Event]] = {}
        self._logger = get_logger(__name__)

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _transaction_to_row(
        self,
        record_id: str,
        payload: TransactionPayload,
        created_at: str,
    ) -> list:
        """Convert a write payload to a spreadsheet row."""
        return [
            record_id,
            self._user_id,
            created_at,
            datetime.now().isoformat(),
            payload.date.isoformat(),
            payload.type.value,
            payload.category.value,
            str(payload.amount),
            payload.note,
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        """Convert a spreadsheet row to a Transaction."""
        # Rows edited by hand may be short
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return Transaction(
            id=safe_get(0),
            date=datetime.fromisoformat(safe_get(4)),
            type=TransactionType(safe_get(5)),
            category=TransactionCategory(safe_get(6, TransactionCategory.OTHER.value)),
            amount=Decimal(safe_get(7, "0")),
            note=safe_get(8),
        )

    # -------------------------------------------------------------------------
    # Blocking sheet I/O (runs in a worker thread)
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self) -> list[list]:
        """All transaction rows of this user, with their 1-based sheet index."""
        sheet = self._client.get_transactions_sheet()
        all_rows = sheet.get_all_values()
        return [
            [idx, row]
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is the header
            if row and row[0] and len(row) > 1 and row[1] == self._user_id
        ]

    def _load_records(self) -> list[Transaction]:
        records = []
        for _, row in self._read_rows():
            try:
                records.append(self._row_to_transaction(row))
            except Exception as e:
                # A hand-edited row that no longer parses; leave it out
                self._logger.warning("malformed_row_skipped", row_id=row[0], error=str(e))
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, row: list) -> None:
        sheet = self._client.get_transactions_sheet()
        sheet.append_row(row, value_input_option="RAW")

    def _find(self, record_id: str) -> Optional[tuple[int, list]]:
        for idx, row in self._read_rows():
            if row[0] == record_id:
                return idx, row
        return None

    def _overwrite(self, record_id: str, payload: TransactionPayload) -> None:
        found = self._find(record_id)
        if found is None:
            raise NotFoundError(record_id)
        idx, row = found
        created_at = row[2] if len(row) > 2 else ""
        new_row = self._transaction_to_row(record_id, payload, created_at)
        sheet = self._client.get_transactions_sheet()
        sheet.update(
            values=[new_row],
            range_name=f"A{idx}:{chr(ord('A') + len(new_row) - 1)}{idx}",
            value_input_option="RAW",
        )

    def _remove(self, record_id: str) -> None:
        found = self._find(record_id)
        if found is None:
            raise NotFoundError(record_id)
        sheet = self._client.get_transactions_sheet()
        sheet.delete_rows(found[0])

    def _fetch(self, record_id: str) -> Optional[Transaction]:
        found = self._find(record_id)
        if found is None:
            return None
        try:
            return self._row_to_transaction(found[1])
        except Exception as e:
            self._logger.warning("malformed_row_skipped", row_id=record_id, error=str(e))
            return None

    def _load_profile(self) -> Optional[UserProfile]:
        sheet = self._client.get_profiles_sheet()
        for row in sheet.get_all_values()[1:]:
            if row and row[0] == self._user_id:
                return UserProfile(
                    user_id=row[0],
                    name=row[1] if len(row) > 1 and row[1] else None,
                    email=row[2] if len(row) > 2 and row[2] else None,
                )
        return None

    async def _call(self, operation: str, func, *args):
        """Run blocking sheet I/O off the event loop and normalize failures."""
        try:
            return await asyncio.to_thread(func, *args)
        except (NotFoundError, StoreUnavailableError):
            raise
        except Exception as e:
            self._logger.error("sheets_call_failed", operation=operation, error=str(e))
            raise StoreUnavailableError(f"Failed to {operation}: {e}") from e

    # -------------------------------------------------------------------------
    # Live queries
    # -------------------------------------------------------------------------

    async def _poll(
        self,
        subscription: Subscription,
        on_snapshot: SnapshotCallback,
        wake: asyncio.Event,
    ) -> None:
        last_delivered: Optional[list[Transaction]] = None
        while not subscription.closed:
            try:
                records = await self._call("poll", self._load_records)
            except StoreUnavailableError:
                # Keep the previous snapshot; try again next interval
                records = None
            if records is not None and not subscription.closed:
                try:
                    snapshot = select_snapshot(records, subscription.scope)
                    if snapshot != last_delivered:
                        on_snapshot(snapshot)
                        last_delivered = snapshot
                except Exception as e:
                    # Undelivered; the next poll tries again
                    self._logger.error(
                        "snapshot_delivery_failed",
                        scope=subscription.scope.model_dump(mode="json"),
                        error_type=type(e).__name__,
                        error=str(e),
                    )
            wake.clear()
            try:
                await asyncio.wait_for(wake.wait(), timeout=self._client.poll_interval)
            except asyncio.TimeoutError:
                pass

    def _stop_poll(self, subscription: Subscription) -> None:
        task, _ = self._polls.pop(subscription, (None, None))
        if task is not None:
            task.cancel()
        self._logger.debug("subscription_closed", scope=subscription.scope.model_dump(mode="json"))

    def _wake_polls(self) -> None:
        for _, wake in self._polls.values():
            wake.set()

    async def subscribe(
        self,
        scope: DateRange,
        on_snapshot: SnapshotCallback,
    ) -> Subscription:
        # Fail fast if the sheet can't be reached at all
        await self._call("open live query", self._client.get_transactions_sheet)
        subscription = Subscription(scope, on_close=self._stop_poll)
        wake = asyncio.Event()
        task = asyncio.create_task(self._poll(subscription, on_snapshot, wake))
        self._polls[subscription] = (task, wake)
        self._logger.debug("subscription_opened", scope=scope.model_dump(mode="json"))
        return subscription

    # -------------------------------------------------------------------------
    # Writes and lookups
    # -------------------------------------------------------------------------

    async def insert(self, payload: TransactionPayload) -> str:
        record_id = uuid4().hex
        row = self._transaction_to_row(record_id, payload, datetime.now().isoformat())
        await self._call("insert transaction", self._append, row)
        self._wake_polls()
        return record_id

    async def update(self, record_id: str, payload: TransactionPayload) -> None:
        await self._call("update transaction", self._overwrite, record_id, payload)
        self._wake_polls()

    async def delete(self, record_id: str) -> None:
        await self._call("delete transaction", self._remove, record_id)
        self._wake_polls()

    async def get_by_id(self, record_id: str) -> Optional[Transaction]:
        return await self._call("get transaction", self._fetch, record_id)

    async def get_user_profile(self) -> Optional[UserProfile]:
        return await self._call("get profile", self._load_profile)
