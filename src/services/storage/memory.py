"""
In-Memory Storage Implementation

Dict-backed collections that keep insertion order. Used for tests and
for running the core without any external backend.
"""

from typing import Any, Optional

from src.models.audit import AuditEvent
from src.models.records import (
    AppSettings,
    FinanceTransaction,
    Goal,
    Habit,
    HabitEntry,
    Stock,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    RecordCollectionInterface,
    RecordStoreInterface,
    RecordT,
    StorageError,
)


def _in_range(value: Any, lower: Any, upper: Any, inclusive: bool) -> bool:
    if value is None:
        return False
    if inclusive:
        return lower <= value <= upper
    return lower < value < upper


class InMemoryCollection(RecordCollectionInterface[RecordT]):
    """One collection held in a dict keyed by record id."""

    def __init__(self, model: type[RecordT]):
        self.model = model
        self._records: dict[str, RecordT] = {}

    def _check_type(self, record: RecordT) -> None:
        if not isinstance(record, self.model):
            raise StorageError(
                f"Expected {self.model.__name__}, got {type(record).__name__}"
            )

    async def add(self, record: RecordT) -> RecordT:
        self._check_type(record)
        if record.id in self._records:
            raise DuplicateError(f"{self.model.__name__} already exists: {record.id}")
        self._records[record.id] = record
        return record

    async def bulk_add(self, records: list[RecordT]) -> int:
        seen: set[str] = set()
        for record in records:
            self._check_type(record)
            if record.id in self._records or record.id in seen:
                raise DuplicateError(f"{self.model.__name__} already exists: {record.id}")
            seen.add(record.id)
        for record in records:
            self._records[record.id] = record
        return len(records)

    async def get(self, record_id: str) -> Optional[RecordT]:
        return self._records.get(record_id)

    async def update(self, record_id: str, fields: dict[str, Any]) -> Optional[RecordT]:
        existing = self._records.get(record_id)
        if existing is None:
            return None
        merged = {**existing.model_dump(), **fields, "id": record_id}
        updated = self.model.model_validate(merged)
        self._records[record_id] = updated
        return updated

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def delete_where(self, field: str, value: Any) -> int:
        doomed = [
            record_id
            for record_id, record in self._records.items()
            if getattr(record, field, None) == value
        ]
        for record_id in doomed:
            del self._records[record_id]
        return len(doomed)

    async def all(self) -> list[RecordT]:
        return list(self._records.values())

    async def range_by_field(
        self,
        field: str,
        lower: Any,
        upper: Any,
        inclusive: bool = True,
    ) -> list[RecordT]:
        return [
            record
            for record in self._records.values()
            if _in_range(getattr(record, field, None), lower, upper, inclusive)
        ]

    async def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class InMemoryRecordStore(RecordStoreInterface):
    """All six collections held in memory."""

    def __init__(self):
        self.habits = InMemoryCollection(Habit)
        self.habit_entries = InMemoryCollection(HabitEntry)
        self.goals = InMemoryCollection(Goal)
        self.stocks = InMemoryCollection(Stock)
        self.transactions = InMemoryCollection(FinanceTransaction)
        self.settings = InMemoryCollection(AppSettings)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            event
            for event in self._events
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
