"""
Application Wiring for Personal Tracker

This module ties together the record store, the audit logger and the
engines. Views call into the resulting TrackerApp and render what it
returns; they never touch the store directly.

DESIGN DECISION: Every engine gets the same store instance. Each engine
keeps only a projection of that store, so after an operation that
touches several collections (a backup import) all projections are
reloaded.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from src.audit import AuditLogger
from src.config import get_settings
from src.engines import (
    BackupService,
    FinanceLedger,
    GoalTracker,
    HabitTracker,
    Portfolio,
    SettingsService,
)
from src.models.records import AppSettings
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
)


@dataclass
class TrackerApp:
    """All engines sharing one record store."""

    store: RecordStoreInterface
    audit_logger: AuditLogger
    habits: HabitTracker
    finance: FinanceLedger
    portfolio: Portfolio
    goals: GoalTracker
    settings: SettingsService
    backup: BackupService

    async def load_all(self) -> AppSettings:
        """Load every projection. Returns the (possibly new) settings record."""
        settings = await self.settings.load()
        await self.habits.load()
        await self.finance.load_transactions_for_month()
        await self.portfolio.load_stocks()
        await self.goals.load_goals()
        return settings

    async def set_selected_month(self, month: date) -> None:
        """Move the habit and finance views to another month."""
        await self.habits.set_selected_month(month)
        await self.finance.set_selected_month(month)

    async def export_backup(self) -> str:
        return await self.backup.export_data()

    async def import_backup(self, blob: str) -> dict[str, int]:
        """Replace the store from a backup, then reload every projection."""
        counts = await self.backup.import_data(blob)
        await self.load_all()
        return counts


def create_store(
    backend: Optional[str] = None,
) -> tuple[RecordStoreInterface, AuditLogger]:
    """
    Build the configured record store and a matching audit logger.

    Args:
        backend: 'memory' or 'google_sheets'. Defaults to the
                 TRACKER_STORAGE_BACKEND setting.
    """
    backend = backend or get_settings().storage.backend

    if backend == "google_sheets":
        client = GoogleSheetsClient()
        store = GoogleSheetsRecordStore(client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(client))
    elif backend == "memory":
        store = InMemoryRecordStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    return store, audit_logger


def create_app_components(
    store: Optional[RecordStoreInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
    selected_month: Optional[date] = None,
) -> TrackerApp:
    """
    Factory function to create all application components.

    Args:
        store: Record store to use. If None, the configured backend is built.
        audit_logger: Audit logger to use. If None, one matching the
                      store is created (local-only for an injected store).
        selected_month: Month shown by the habit and finance views.
                        Defaults to the current month.

    Returns:
        TrackerApp with every engine wired to the same store
    """
    app_settings = get_settings().app

    if store is None:
        store, default_logger = create_store()
        audit_logger = audit_logger or default_logger
    audit_logger = audit_logger or AuditLogger()

    return TrackerApp(
        store=store,
        audit_logger=audit_logger,
        habits=HabitTracker(
            store,
            audit_logger,
            selected_month=selected_month,
            top_habits_limit=app_settings.top_habits_limit,
        ),
        finance=FinanceLedger(store, audit_logger, selected_month=selected_month),
        portfolio=Portfolio(store, audit_logger),
        goals=GoalTracker(store, audit_logger),
        settings=SettingsService(store, audit_logger, defaults=app_settings),
        backup=BackupService(
            store,
            audit_logger,
            version=app_settings.backup_version,
            indent=app_settings.backup_indent,
        ),
    )
