"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Users can view their plan directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions. Upserts are "find row, then write" and are not
  atomic across processes; a single app instance writes the sheet.
- Limited query capabilities (we filter in Python)

Plans are stored one row per user. Inputs and results are kept as
JSON columns so the schema can grow without re-laying out the sheet.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from retirement_planner.config import get_settings
from retirement_planner.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventType,
    AuditSeverity,
)
from retirement_planner.models.plan import (
    ProjectionInput,
    ProjectionResult,
    RetirementPlan,
)
from retirement_planner.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    RetirementPlanStorageInterface,
    StorageError,
)


# Column mappings for RetirementPlans sheet
PLAN_COLUMNS = [
    "user_id",
    "plan_id",
    "created_at",
    "updated_at",
    "calculated_at",
    "inputs_json",
    "result_json",
]


def _safe_getter(row: list):
    """Index into a sheet row, tolerating short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_plans_sheet(self) -> gspread.Worksheet:
        """Get or create the RetirementPlans worksheet."""
        return self._get_or_create_sheet(
            self._settings.plans_sheet_name,
            PLAN_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsPlanStorage(RetirementPlanStorageInterface):
    """
    Google Sheets implementation of plan storage.

    One row per user, keyed by the user_id column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _plan_to_row(self, plan: RetirementPlan) -> list:
        """Convert a RetirementPlan to a spreadsheet row."""
        return [
            plan.user_id,
            str(plan.id),
            plan.created_at.isoformat(),
            plan.updated_at.isoformat(),
            plan.calculated_at.isoformat(),
            plan.inputs.model_dump_json(),
            plan.result.model_dump_json(),
        ]

    def _row_to_plan(self, row: list) -> RetirementPlan:
        """Convert a spreadsheet row to a RetirementPlan."""
        safe_get = _safe_getter(row)

        return RetirementPlan(
            user_id=safe_get(0),
            id=UUID(safe_get(1)),
            created_at=datetime.fromisoformat(safe_get(2)),
            updated_at=datetime.fromisoformat(safe_get(3)),
            calculated_at=datetime.fromisoformat(safe_get(4)),
            inputs=ProjectionInput.model_validate_json(safe_get(5)),
            result=ProjectionResult.model_validate_json(safe_get(6)),
        )

    def _find_row(self, all_rows: list[list], user_id: str) -> Optional[int]:
        """1-based sheet row number of the user's plan (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == user_id:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def upsert_plan(self, plan: RetirementPlan) -> tuple[RetirementPlan, bool]:
        """Create or overwrite the user's plan row."""
        try:
            sheet = self._client.get_plans_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, plan.user_id)

            if idx is None:
                sheet.append_row(self._plan_to_row(plan), value_input_option="RAW")
                return plan, False

            stored = self._row_to_plan(all_rows[idx - 1]).replaced_by(plan)
            for col_idx, value in enumerate(self._plan_to_row(stored), start=1):
                sheet.update_cell(idx, col_idx, value)
            return stored, True
        except Exception as e:
            raise StorageError(f"Failed to save plan: {e}")

    async def get_plan(self, user_id: str) -> Optional[RetirementPlan]:
        """Retrieve the user's plan."""
        try:
            sheet = self._client.get_plans_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, user_id)
            if idx is None:
                return None
            return self._row_to_plan(all_rows[idx - 1])
        except Exception as e:
            raise StorageError(f"Failed to get plan: {e}")

    async def delete_plan(self, user_id: str) -> Optional[UUID]:
        """Delete the user's plan row."""
        try:
            sheet = self._client.get_plans_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, user_id)
            if idx is None:
                return None

            plan_id = _safe_getter(all_rows[idx - 1])(1)
            sheet.delete_rows(idx)
            return UUID(plan_id) if plan_id else None
        except Exception as e:
            raise StorageError(f"Failed to delete plan: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        target = str(correlation_id)
        events = self._read_events(lambda row: len(row) > 7 and row[7] == target)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_user(self, user_id: str) -> list[AuditEvent]:
        """Get events concerning a user."""
        events = self._read_events(lambda row: len(row) > 4 and row[4] == user_id)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events(lambda row: True)
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
