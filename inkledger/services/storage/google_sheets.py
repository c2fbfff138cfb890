"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the shared backend because:
1. The studio owner can open the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Several devices can write to the same sheet

TRADEOFFS:
- Sheets has no push channel, so live subscriptions poll the worksheet
  and only deliver when the snapshot actually changed
- There is no server timestamp, so the adapter stamps created_at with
  its own UTC clock at write time
- Limited query capabilities (we sort and decode in Python)

Connection setup and read polls are retried with tenacity. Writes are
never retried automatically: the user repeats the action instead.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from inkledger.config import GoogleSheetsSettings, get_settings
from inkledger.models.transaction import (
    DecodeError,
    NewTransaction,
    decode_transaction,
    sort_newest_first,
)
from inkledger.services.storage.interface import (
    CollectionPath,
    ConnectionError,
    ErrorCallback,
    Snapshot,
    SnapshotCallback,
    Subscription,
    SubscriptionError,
    TransactionStoreInterface,
    WriteError,
)


logger = structlog.get_logger(__name__)


# Column mappings for the transactions worksheet
TRANSACTION_COLUMNS = [
    "id",
    "created_at",
    "client_name",
    "artist",
    "service",
    "payment_method",
    "value",
    "obs",
    "user_id",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str) -> gspread.Worksheet:
        """Get or create a transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoogleSheetsTransactionStore(TransactionStoreInterface):
    """
    Google Sheets implementation of the transaction store.

    One worksheet per collection path, one transaction per row.
    """

    def __init__(
        self,
        path: CollectionPath,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval: float = 5.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._path = path
        self._client = client or GoogleSheetsClient()
        self._poll_interval = poll_interval
        self._clock = clock or _utcnow
        self._last_timestamp: Optional[datetime] = None

    @property
    def path(self) -> CollectionPath:
        return self._path

    @property
    def worksheet_title(self) -> str:
        # Sheet titles cannot hold the full path separators nicely
        return ".".join(self._path.parts[1:])

    def _worksheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self.worksheet_title)

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _record_to_row(self, transaction_id: str, record: NewTransaction) -> list:
        """Convert a new transaction to a spreadsheet row."""
        return [
            transaction_id,
            self._next_timestamp().isoformat(),
            record.client_name,
            record.artist,
            record.service.value,
            record.payment_method.value,
            str(record.value),
            record.obs,
            record.user_id,
        ]

    def _row_to_document(self, row: list) -> dict[str, Any]:
        """Convert a spreadsheet row to a raw document for decoding."""
        # Short rows leave the trailing fields out so decoding can flag them
        return {
            column: row[index]
            for index, column in enumerate(TRANSACTION_COLUMNS)
            if index < len(row)
        }

    def _append_sync(self, row: list) -> None:
        sheet = self._worksheet()
        sheet.append_row(row, value_input_option="RAW")

    async def append(self, record: NewTransaction) -> str:
        """Append a transaction row."""
        transaction_id = uuid4().hex
        # Stamp on the event loop thread, _next_timestamp is not thread-safe
        row = self._record_to_row(transaction_id, record)
        try:
            await asyncio.to_thread(self._append_sync, row)
        except Exception as e:
            raise WriteError(f"Failed to save transaction: {e}") from e
        return transaction_id

    def _remove_sync(self, transaction_id: str) -> bool:
        sheet = self._worksheet()
        cell = sheet.find(transaction_id, in_column=1)
        if cell is None:
            return False

        # Other clients delete rows too; only delete if the row still holds this id
        current = sheet.cell(cell.row, 1).value
        if current != transaction_id:
            raise WriteError(
                f"Row {cell.row} no longer holds {transaction_id}, sheet changed during delete"
            )
        sheet.delete_rows(cell.row)
        return True

    async def remove(self, transaction_id: str) -> None:
        """Delete the row holding a transaction."""
        try:
            found = await asyncio.to_thread(self._remove_sync, transaction_id)
        except Exception as e:
            raise WriteError(f"Failed to delete transaction: {e}") from e
        if not found:
            raise WriteError(f"Transaction not found: {transaction_id}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def fetch_snapshot(self) -> Snapshot:
        """Read the whole worksheet into an ordered snapshot."""
        sheet = self._worksheet()
        all_rows = sheet.get_all_values()[1:]  # Skip header

        transactions = []
        for row in all_rows:
            if not row or not any(row):  # Skip empty rows
                continue
            try:
                transactions.append(decode_transaction(self._row_to_document(row)))
            except DecodeError as e:
                logger.warning(
                    "row_skipped",
                    worksheet=self.worksheet_title,
                    document_id=e.document_id,
                    error=str(e),
                )
        return sort_newest_first(transactions)

    def subscribe_ordered(
        self,
        on_change: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """
        Start a polling subscription on the running event loop.

        The first snapshot is delivered as soon as the first read
        completes; later reads are delivered only when something changed.
        """
        loop = asyncio.get_running_loop()
        state: dict[str, Any] = {}

        def release() -> None:
            task = state.get("task")
            if task is not None and not task.done():
                task.cancel()

        handle = Subscription(release)
        state["task"] = loop.create_task(self._poll(handle, on_change, on_error))
        return handle

    async def _poll(
        self,
        handle: Subscription,
        on_change: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        last_ids: Optional[tuple[str, ...]] = None

        while handle.active:
            try:
                snapshot = await asyncio.to_thread(self.fetch_snapshot)
            except Exception as e:
                if handle.active:
                    logger.error(
                        "subscription_poll_failed",
                        worksheet=self.worksheet_title,
                        error=str(e),
                    )
                    handle.unsubscribe()
                    on_error(SubscriptionError(f"Live ledger unavailable: {e}"))
                return

            if not handle.active:
                return

            # Records are immutable, so the id sequence identifies the snapshot
            ids = tuple(t.id for t in snapshot)
            if ids != last_ids:
                last_ids = ids
                try:
                    on_change(snapshot)
                except Exception:
                    logger.exception("subscriber_failed", worksheet=self.worksheet_title)

            await asyncio.sleep(self._poll_interval)
