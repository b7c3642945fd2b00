"""
Backup Engine

Export writes every collection verbatim into one JSON snapshot:

    {
      "version": 1,
      "exportedAt": "<ISO-8601 timestamp>",
      "data": {
        "habits": [...], "habitEntries": [...], "goals": [...],
        "stocks": [...], "transactions": [...], "settings": [...]
      }
    }

Import is a FULL REPLACE. Every collection is cleared, then each array
present in the snapshot is inserted. There is no merge with existing
data and no rollback: a failure between clear and insert leaves the
store partially emptied.

DESIGN DECISION: The snapshot is parsed and every record validated
before anything is cleared, so a malformed file never destroys data.
"""

import json
from typing import Any, Optional

from pydantic import ValidationError

from src.audit import AuditLogger
from src.models.records import Record, utc_now
from src.services.storage import RecordStoreInterface, StorageError
from src.validation import BackupFormatError, validate_snapshot_shape


# Store collection -> key in the snapshot's "data" object
BACKUP_KEYS = {
    "habits": "habits",
    "habit_entries": "habitEntries",
    "goals": "goals",
    "stocks": "stocks",
    "transactions": "transactions",
    "settings": "settings",
}


class BackupService:
    """Serializes the whole record store and restores it."""

    def __init__(
        self,
        store: RecordStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        version: int = 1,
        indent: int = 2,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._version = version
        self._indent = indent

    async def export_snapshot(self) -> dict[str, Any]:
        """The snapshot as a JSON-compatible dict."""
        data = {}
        for name, key in BACKUP_KEYS.items():
            records = await self._store.collection(name).all()
            data[key] = [record.to_wire() for record in records]

        snapshot = {
            "version": self._version,
            "exportedAt": utc_now().isoformat(),
            "data": data,
        }

        if self._audit_logger:
            await self._audit_logger.log_backup_exported(
                {key: len(rows) for key, rows in data.items()}
            )
        return snapshot

    async def export_data(self) -> str:
        """The snapshot serialized as indented JSON text."""
        snapshot = await self.export_snapshot()
        return json.dumps(snapshot, indent=self._indent, ensure_ascii=False)

    async def import_data(self, blob: str) -> dict[str, int]:
        """
        Replace the whole store with the contents of a snapshot.

        Returns:
            Number of records inserted per snapshot key

        Raises:
            BackupFormatError: If the blob is not valid JSON, lacks
                `version`/`data`, or holds a malformed record. Nothing
                has been changed in that case.
            StorageError: If the store fails while clearing or inserting
        """
        try:
            parsed = json.loads(blob)
        except (json.JSONDecodeError, TypeError) as e:
            await self._fail(f"Backup is not valid JSON: {e}")

        shape = validate_snapshot_shape(parsed)
        if shape.has_errors:
            await self._fail(f"Invalid backup file format: {shape.summary()}")

        try:
            records = self._parse_records(parsed["data"])
        except ValueError as e:
            await self._fail(str(e))

        counts = {}
        try:
            for name in BACKUP_KEYS:
                await self._store.collection(name).clear()

            for name, key in BACKUP_KEYS.items():
                items = records[name]
                if items:
                    await self._store.collection(name).bulk_add(items)
                counts[key] = len(items)
        except StorageError as e:
            # The store may now be partially cleared
            if self._audit_logger:
                await self._audit_logger.log_error(
                    "backup_import_interrupted",
                    str(e),
                    {"restored": counts},
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_backup_imported(counts)
        return counts

    def _parse_records(self, data: dict) -> dict[str, list[Record]]:
        """Validated records per collection."""
        records = {}
        for name, key in BACKUP_KEYS.items():
            rows = data.get(key) or []
            if not isinstance(rows, list):
                raise ValueError(f"Backup field '{key}' must be an array")
            model = self._store.collection(name).model
            try:
                records[name] = [model.model_validate(row) for row in rows]
            except ValidationError as e:
                raise ValueError(
                    f"Invalid record in '{key}': {e.error_count()} validation errors"
                ) from e
        return records

    async def _fail(self, message: str) -> None:
        if self._audit_logger:
            await self._audit_logger.log_backup_import_failed(message)
        raise BackupFormatError(f"Import failed: {message}")
