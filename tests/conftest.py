"""
Shared fixtures for the tracker core tests.

Everything runs against the in-memory store; no test talks to Google.
"""

from datetime import date

import pytest

from src.audit import AuditLogger
from src.engines import (
    BackupService,
    FinanceLedger,
    GoalTracker,
    HabitTracker,
    Portfolio,
    SettingsService,
)
from src.services.storage import InMemoryAuditStorage, InMemoryRecordStore


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the Sheets backend."""

    def __init__(self, headers):
        self.rows = [list(headers)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def append_rows(self, rows, value_input_option=None):
        self.rows.extend(list(row) for row in rows)

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = value

    def delete_rows(self, index):
        del self.rows[index - 1]

    def clear(self):
        self.rows = []


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; worksheets live in a dict."""

    worksheet_prefix = "test_"
    audit_sheet_name = "AuditLog"

    def __init__(self):
        self.sheets = {}

    def get_worksheet(self, title, headers, rows=1000):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(headers)
        return self.sheets[title]


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()


@pytest.fixture
def january() -> date:
    # 2024-01-01 is a Monday, so January 2024 splits into 4 full weeks + 3 days
    return date(2024, 1, 1)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def habit_tracker(store, audit_logger, january) -> HabitTracker:
    return HabitTracker(store, audit_logger, selected_month=january)


@pytest.fixture
def ledger(store, audit_logger, january) -> FinanceLedger:
    return FinanceLedger(store, audit_logger, selected_month=january)


@pytest.fixture
def portfolio(store, audit_logger) -> Portfolio:
    return Portfolio(store, audit_logger)


@pytest.fixture
def goal_tracker(store, audit_logger) -> GoalTracker:
    return GoalTracker(store, audit_logger)


@pytest.fixture
def settings_service(store, audit_logger) -> SettingsService:
    return SettingsService(store, audit_logger)


@pytest.fixture
def backup_service(store, audit_logger) -> BackupService:
    return BackupService(store, audit_logger)
