"""
Storage Services Package

Provides abstract interfaces and concrete implementations of the record store.
An in-memory store is always available; Google Sheets is the persistent
backend, and both satisfy the same interface.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    RecordCollectionInterface,
    RecordStoreInterface,
    StorageError,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCollection,
    InMemoryRecordStore,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollection,
    GoogleSheetsRecordStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordCollectionInterface",
    "RecordStoreInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCollection",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsCollection",
    "GoogleSheetsRecordStore",
]
