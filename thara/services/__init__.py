"""Services package."""

from thara.services.storage import (
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

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "EntityStoreInterface",
    "InvalidFieldError",
    "LedgerStorage",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
]
