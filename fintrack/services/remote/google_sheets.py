"""
Google Sheets Remote Collection Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can view and fix their data directly in Sheets
2. Nothing to provision beyond a spreadsheet and a service account
3. Sheets keeps revision history for every change

TRADEOFFS:
- Sheets has no push channel, so subscriptions poll and only deliver a
  snapshot when the collection's content actually changed
- No transactions (one document per row keeps writes independent)
- Limited query capabilities (we filter rows by path in Python)

Layout: one worksheet per entity kind. Every row is one document of
one collection; the `path` column says which collection.

gspread is blocking, so every sheet call runs in a worker thread
(`asyncio.to_thread`) and polling never stalls the event loop.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from fintrack.config import get_settings
from fintrack.services.remote.interface import (
    ConnectionError,
    ErrorCallback,
    FetchError,
    RemoteCollectionClient,
    RemoteDocument,
    RemoteStoreError,
    SnapshotCallback,
    SubscriptionError,
    Unsubscribe,
    split_collection_path,
)


# Column layout shared by every collection worksheet
DOCUMENT_COLUMNS = [
    "path",
    "id",
    "data_json",
    "updated_at",
]


class GoogleSheetsClient:
    """
    Connection to the configured spreadsheet.

    Authenticates lazily and hands out one worksheet per entity kind.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Authorize gspread with the service account.

        Retried on failure; the client is reused once connected.
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

    def get_collection_sheet(self, path: str) -> gspread.Worksheet:
        """Get or create the worksheet holding a collection's documents."""
        collection = split_collection_path(path)[-1]
        title = self._settings.sheet_name_for(collection)

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # First use of this kind: add the worksheet and header row
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)
        return sheet


class GoogleSheetsCollectionClient(RemoteCollectionClient):
    """
    Google Sheets implementation of the remote collection interface.

    Document payloads are JSON-serialized into one cell.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._poll_interval = (
            poll_interval_seconds
            if poll_interval_seconds is not None
            else self._client.settings.poll_interval_seconds
        )

    def _row_to_document(self, row: list) -> RemoteDocument:
        """Convert a spreadsheet row to a RemoteDocument."""
        # Short rows read as empty cells
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        data_json = safe_get(2)
        return RemoteDocument(
            id=safe_get(1),
            data=json.loads(data_json) if data_json else {},
        )

    def _document_to_row(
        self,
        path: str,
        document_id: str,
        data: dict[str, Any],
    ) -> list:
        """Convert a document to a spreadsheet row."""
        return [
            path,
            document_id,
            json.dumps(data, default=str),
            datetime.now(timezone.utc).isoformat(),
        ]

    def _read_rows(self, path: str) -> list[list[str]]:
        """Blocking read of the worksheet holding a collection."""
        sheet = self._client.get_collection_sheet(path)
        return sheet.get_all_values()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def query(self, path: str) -> list[RemoteDocument]:
        """Read every document of a collection."""
        try:
            all_rows = (await asyncio.to_thread(self._read_rows, path))[1:]  # Skip header
        except Exception as e:
            raise FetchError(f"Failed to read {path}: {e}")

        documents = []
        for row in all_rows:
            if not row or row[0] != path or len(row) < 2 or not row[1]:
                continue
            try:
                documents.append(self._row_to_document(row))
            except ValueError:
                continue  # Skip rows with broken JSON
        return documents

    async def subscribe(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """
        Open a polling push channel on a collection.

        The first poll always delivers; later polls deliver only when the
        collection's content changed since the last delivery.
        """
        try:
            await asyncio.to_thread(self._client.get_collection_sheet, path)
        except Exception as e:
            raise SubscriptionError(f"Failed to subscribe to {path}: {e}")

        task = asyncio.create_task(self._poll(path, on_snapshot, on_error))

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _poll(
        self,
        path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        last_fingerprint = None
        while True:
            try:
                documents = await self.query(path)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not isinstance(e, RemoteStoreError):
                    e = SubscriptionError(str(e))
                on_error(e)
                return

            fingerprint = tuple(
                (document.id, json.dumps(document.data, sort_keys=True, default=str))
                for document in documents
            )
            if fingerprint != last_fingerprint:
                last_fingerprint = fingerprint
                on_snapshot(documents)

            await asyncio.sleep(self._poll_interval)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set_document(
        self,
        path: str,
        document_id: str,
        data: dict[str, Any],
    ) -> bool:
        """Create or replace a document."""
        try:
            return await asyncio.to_thread(self._write_row, path, document_id, data)
        except Exception as e:
            raise RemoteStoreError(f"Failed to write {path}/{document_id}: {e}")

    async def delete_document(self, path: str, document_id: str) -> bool:
        """Delete a document."""
        try:
            return await asyncio.to_thread(self._delete_row, path, document_id)
        except Exception as e:
            raise RemoteStoreError(f"Failed to delete {path}/{document_id}: {e}")

    def _write_row(self, path: str, document_id: str, data: dict[str, Any]) -> bool:
        sheet = self._client.get_collection_sheet(path)
        all_rows = sheet.get_all_values()
        new_row = self._document_to_row(path, document_id, data)

        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if len(row) > 1 and row[0] == path and row[1] == document_id:
                for col_idx, value in enumerate(new_row, start=1):
                    sheet.update_cell(idx, col_idx, value)
                return True

        sheet.append_row(new_row, value_input_option="RAW")
        return True

    def _delete_row(self, path: str, document_id: str) -> bool:
        sheet = self._client.get_collection_sheet(path)
        all_rows = sheet.get_all_values()

        for idx, row in enumerate(all_rows[1:], start=2):
            if len(row) > 1 and row[0] == path and row[1] == document_id:
                sheet.delete_rows(idx)
                return True

        return False
