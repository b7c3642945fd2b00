"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the persistence engine outside the core
2. Use in-memory storage for testing
3. Swap Google Sheets for a real database later
4. Keep aggregation logic decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Each collection is a key-value table keyed by record id, with one
secondary range query (used on the `date` field).
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from src.models.audit import AuditEvent
from src.models.records import Record


RecordT = TypeVar("RecordT", bound=Record)


class RecordCollectionInterface(ABC, Generic[RecordT]):
    """
    Abstract interface for one keyed collection of records.

    Field names passed to `update`, `delete_where` and `range_by_field`
    are the Python attribute names (e.g. 'habit_id', 'date').
    """

    #: Pydantic model stored in this collection
    model: type[RecordT]

    @abstractmethod
    async def add(self, record: RecordT) -> RecordT:
        """
        Insert a new record.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def bulk_add(self, records: list[RecordT]) -> int:
        """
        Insert many records.

        Returns:
            Number of records inserted

        Raises:
            DuplicateError: If any id already exists
        """
        pass

    @abstractmethod
    async def get(self, record_id: str) -> Optional[RecordT]:
        """Retrieve a record by id, None if absent."""
        pass

    @abstractmethod
    async def update(self, record_id: str, fields: dict[str, Any]) -> Optional[RecordT]:
        """
        Merge `fields` into an existing record.

        Returns:
            The updated record, or None if no record has this id
        """
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted
        """
        pass

    @abstractmethod
    async def delete_where(self, field: str, value: Any) -> int:
        """
        Delete every record whose `field` equals `value`.

        Returns:
            Number of records deleted
        """
        pass

    @abstractmethod
    async def all(self) -> list[RecordT]:
        """Full collection scan, in insertion order."""
        pass

    @abstractmethod
    async def range_by_field(
        self,
        field: str,
        lower: Any,
        upper: Any,
        inclusive: bool = True,
    ) -> list[RecordT]:
        """
        Records whose `field` lies between `lower` and `upper`.

        Args:
            field: Attribute to compare
            lower: Lower bound
            upper: Upper bound
            inclusive: Whether both bounds are included
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every record."""
        pass


class RecordStoreInterface(ABC):
    """
    The six collections owned by the record store.

    Each collection is independently keyed; there is no referential
    integrity between them.
    """

    COLLECTIONS = (
        "habits",
        "habit_entries",
        "goals",
        "stocks",
        "transactions",
        "settings",
    )

    habits: RecordCollectionInterface
    habit_entries: RecordCollectionInterface
    goals: RecordCollectionInterface
    stocks: RecordCollectionInterface
    transactions: RecordCollectionInterface
    settings: RecordCollectionInterface

    def collection(self, name: str) -> RecordCollectionInterface:
        """Look up a collection by its attribute name."""
        if name not in self.COLLECTIONS:
            raise KeyError(f"Unknown collection: {name}")
        return getattr(self, name)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """All events for one record, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
