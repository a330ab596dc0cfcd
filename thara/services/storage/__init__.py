"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend and a Google Sheets backend; the ledger only
depends on the interfaces.
"""

from thara.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntityStoreInterface,
    InvalidFieldError,
    LedgerStorage,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)
from thara.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntityStore,
    InMemoryProfileStore,
    create_memory_storage,
)
from thara.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsEntityStore,
    GoogleSheetsProfileStore,
    create_sheets_storage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntityStoreInterface",
    "LedgerStorage",
    "ProfileStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "InvalidFieldError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    "InMemoryProfileStore",
    "create_memory_storage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsEntityStore",
    "GoogleSheetsProfileStore",
    "create_sheets_storage",
]
