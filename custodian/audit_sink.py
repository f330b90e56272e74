"""Best-effort audit export of uploads and deletions to Google Sheets."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Optional

from common.logging_config import get_logger
from custodian.exceptions import AuditSinkError

logger = get_logger(__name__)

SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

STATUS_ACTIVE = "Active"
STATUS_DELETED = "Deleted"

FILE_ID_COLUMN = 0
OWNER_ID_COLUMN = 1
STATUS_COLUMN_LETTER = "H"


@dataclass(frozen=True)
class AuditRecord:
    file_id: int
    user_id: int
    username: str
    file_name: str
    file_type: str
    size: int
    created_at: datetime

    def as_row(self) -> List[Any]:
        return [
            self.file_id,
            self.user_id,
            self.username,
            self.file_name,
            self.file_type,
            self.size,
            self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            STATUS_ACTIVE,
        ]


class AuditSink(ABC):
    """Append-only record of file events kept outside the stores."""

    @abstractmethod
    def log_file_upload(self, record: AuditRecord) -> None:
        ...

    @abstractmethod
    def mark_file_deleted(self, file_id: int) -> None:
        ...

    @abstractmethod
    def mark_owner_files_deleted(self, user_id: int) -> None:
        ...


class NullAuditSink(AuditSink):
    """Used when no spreadsheet is configured."""

    def log_file_upload(self, record: AuditRecord) -> None:
        logger.debug(f"Audit disabled, skipping upload record for file {record.file_id}")

    def mark_file_deleted(self, file_id: int) -> None:
        pass

    def mark_owner_files_deleted(self, user_id: int) -> None:
        pass


def _cell_matches(row: List[Any], column: int, value: int) -> bool:
    if len(row) <= column:
        return False
    cell = row[column]
    try:
        return int(float(cell)) == value
    except (TypeError, ValueError):
        return False


class SheetsAuditSink(AuditSink):
    """
    Audit sink backed by one worksheet.

    Columns: file id, user id, username, file name, file type, size,
    uploaded at, status.
    """

    def __init__(self, service, spreadsheet_id: str, sheet_name: str = "Sheet1"):
        """
        Args:
            service: Google Sheets v4 service resource
            spreadsheet_id: Target spreadsheet
            sheet_name: Worksheet title
        """
        self.values = service.spreadsheets().values()
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name

    @classmethod
    def from_service_account(cls, credentials_path: str, spreadsheet_id: str, sheet_name: str) -> "SheetsAuditSink":
        from google.oauth2 import service_account
        from googleapiclient.discovery import build

        credentials = service_account.Credentials.from_service_account_file(
            credentials_path, scopes=SHEETS_SCOPES
        )
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        logger.info(f"Google Sheets audit sink ready [spreadsheet={spreadsheet_id}] [sheet={sheet_name}]")
        return cls(service, spreadsheet_id, sheet_name)

    def _range(self, cells: str) -> str:
        return f"{self.sheet_name}!{cells}"

    def _read_rows(self) -> List[List[Any]]:
        try:
            response = self.values.get(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A1:H"),
            ).execute()
        except Exception as e:
            raise AuditSinkError(f"Unable to read audit sheet: {e}") from e
        return response.get("values", [])

    def _set_status(self, row_numbers: Iterable[int], status: str) -> int:
        data = [
            {"range": self._range(f"{STATUS_COLUMN_LETTER}{row_number}"), "values": [[status]]}
            for row_number in row_numbers
        ]
        if not data:
            return 0
        try:
            self.values.batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"valueInputOption": "USER_ENTERED", "data": data},
            ).execute()
        except Exception as e:
            raise AuditSinkError(f"Unable to update audit status: {e}") from e
        return len(data)

    def log_file_upload(self, record: AuditRecord) -> None:
        try:
            self.values.append(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A:H"),
                valueInputOption="USER_ENTERED",
                insertDataOption="INSERT_ROWS",
                body={"values": [record.as_row()]},
            ).execute()
        except Exception as e:
            raise AuditSinkError(f"Unable to append audit row: {e}") from e

    def mark_file_deleted(self, file_id: int) -> None:
        rows = self._read_rows()
        matches = [i + 1 for i, row in enumerate(rows) if _cell_matches(row, FILE_ID_COLUMN, file_id)]
        if not matches:
            raise AuditSinkError(f"File with ID {file_id} not found in audit sheet")
        self._set_status(matches[:1], STATUS_DELETED)

    def mark_owner_files_deleted(self, user_id: int) -> None:
        rows = self._read_rows()
        matches = [i + 1 for i, row in enumerate(rows) if _cell_matches(row, OWNER_ID_COLUMN, user_id)]
        self._set_status(matches, STATUS_DELETED)


def create_audit_sink(settings) -> AuditSink:
    """
    Build the configured audit sink.

    Falls back to NullAuditSink when auditing is not configured or the
    spreadsheet client cannot be created.
    """
    if not settings.audit_enabled:
        logger.info("Audit sink not configured, audit export disabled")
        return NullAuditSink()

    try:
        return SheetsAuditSink.from_service_account(
            settings.google_credentials_path,
            settings.audit_spreadsheet_id,
            settings.audit_sheet_name,
        )
    except Exception as e:
        logger.warning(f"Failed to initialize Google Sheets audit sink, continuing without it: {e}")
        return NullAuditSink()


class AuditRecorder:
    """
    Runs audit calls off the event loop and swallows their failures.
    """

    def __init__(self, sink: AuditSink):
        self.sink = sink

    async def _call(self, description: str, func, *args) -> bool:
        try:
            await asyncio.to_thread(func, *args)
        except Exception as e:
            logger.error(f"Audit sink failure ({description}): {e}")
            return False
        return True

    async def file_uploaded(self, record: AuditRecord) -> bool:
        ok = await self._call(f"upload of file {record.file_id}", self.sink.log_file_upload, record)
        if ok:
            logger.info(f"File upload audited: ID={record.file_id}, User={record.username}")
        return ok

    async def file_deleted(self, file_id: int) -> bool:
        return await self._call(f"deletion of file {file_id}", self.sink.mark_file_deleted, file_id)

    async def owner_files_deleted(self, user_id: int) -> bool:
        return await self._call(f"deletion of files of user {user_id}", self.sink.mark_owner_files_deleted, user_id)
