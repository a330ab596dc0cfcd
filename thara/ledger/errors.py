"""
Ledger Exceptions

Persistence failures surface as StorageError from the storage package.
The errors here describe a request the ledger refuses to carry out.
"""

from typing import Optional
from uuid import UUID


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class NotAuthenticatedError(LedgerError):
    """A mutation was attempted without a resolved user profile."""
    pass


class EntityNotFoundError(LedgerError):
    """
    An operation referenced an id that is not in the session snapshot.

    Usually means the caller holds a stale list; reload and retry.
    """

    def __init__(self, entity_type: str, entity_id: UUID, message: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} not found: {entity_id}")
