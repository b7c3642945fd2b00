"""
Settings Service

The settings record is a singleton with the fixed id "default". It is
created on first load and only updated afterwards.
"""

from typing import Optional

from src.audit import AuditLogger
from src.config import TrackerSettings
from src.models.audit import AuditEventType
from src.models.records import SETTINGS_ID, AppSettings, utc_now
from src.services.storage import RecordStoreInterface


class SettingsService:
    """Loads and updates the user's settings record."""

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        defaults: Optional[TrackerSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._defaults = defaults or TrackerSettings()
        self._settings: Optional[AppSettings] = None

    @property
    def settings(self) -> Optional[AppSettings]:
        return self._settings

    async def load(self) -> AppSettings:
        """Return the stored settings, creating them if absent."""
        existing = await self._store.settings.all()
        if existing:
            self._settings = existing[0]
            return self._settings

        settings = AppSettings(
            id=SETTINGS_ID,
            user_name=self._defaults.default_user_name,
            currency=self._defaults.currency,
            month_start_day=self._defaults.default_month_start_day,
        )
        await self._store.settings.add(settings)
        self._settings = settings

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.SETTINGS_CREATED,
                "settings",
                settings.id,
                "Default settings created",
            )
        return settings

    async def update(self, **fields) -> Optional[AppSettings]:
        """
        Update the loaded settings record.

        Does nothing (returns None) if settings were never loaded.
        """
        if self._settings is None:
            return None

        fields.pop("id", None)
        fields.pop("created_at", None)
        fields["updated_at"] = utc_now()
        updated = await self._store.settings.update(self._settings.id, fields)
        if updated is None:
            return None
        self._settings = updated

        if self._audit_logger:
            await self._audit_logger.log_record_changed(
                AuditEventType.SETTINGS_UPDATED,
                "settings",
                updated.id,
                "Settings updated",
                {"fields": sorted(k for k in fields if k != "updated_at")},
            )
        return updated
