"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real document database later
2. Use in-memory storage for testing
3. Keep the ledger logic decoupled from storage implementation

Every record kind (transactions, obligations, goals, assets) gets the same
small capability set: create, get, update, delete and list-by-owner.
Profiles are keyed by user id and additionally expose an atomic balance
adjustment, which is the only shared aggregate the ledger mutates.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from thara.models.audit import AuditEvent
from thara.models.ledger import Asset, Goal, Obligation, Transaction, UserProfile


RecordT = TypeVar("RecordT", Transaction, Obligation, Goal, Asset)


# Fields a caller may change after creation. Transactions are immutable;
# ids and owners never change.
UPDATABLE_FIELDS: dict[type, frozenset[str]] = {
    Transaction: frozenset(),
    Obligation: frozenset({"name", "amount", "paid"}),
    Goal: frozenset({"name", "target_amount", "deadline", "current_amount"}),
    Asset: frozenset({"name", "type", "value", "note"}),
    UserProfile: frozenset({"display_name", "cycle_start_day"}),
}


def apply_update(record: BaseModel, fields: dict[str, Any]) -> BaseModel:
    """
    Return a re-validated copy of `record` with `fields` replaced.

    Raises:
        InvalidFieldError: If a field is unknown, not updatable,
            or the new value fails validation.
    """
    record_type = type(record)
    unknown = set(fields) - set(record_type.model_fields)
    if unknown:
        raise InvalidFieldError(
            f"Unknown field(s) for {record_type.__name__}: {sorted(unknown)}"
        )

    locked = set(fields) - UPDATABLE_FIELDS.get(record_type, frozenset())
    if locked:
        raise InvalidFieldError(
            f"Field(s) of {record_type.__name__} cannot be updated: {sorted(locked)}"
        )

    data = record.model_dump()
    data.update(fields)
    try:
        return record_type.model_validate(data)
    except ValidationError as e:
        raise InvalidFieldError(str(e)) from e


def sort_records(
    records: list[RecordT],
    order_by: Optional[str],
    descending: bool,
) -> list[RecordT]:
    """Sort records by a field name; `None` keeps insertion order."""
    if order_by is None:
        return list(reversed(records)) if descending else list(records)
    if records and order_by not in type(records[0]).model_fields:
        raise InvalidFieldError(f"Cannot order by unknown field: {order_by}")
    return sorted(records, key=lambda r: getattr(r, order_by), reverse=descending)


class EntityStoreInterface(ABC, Generic[RecordT]):
    """
    Abstract interface for one collection of user-owned records.

    Any storage implementation (memory, Google Sheets, a document DB)
    must implement these methods. Every record carries a `user_id`,
    which is the only filter predicate the ledger needs.
    """

    @abstractmethod
    async def create(self, record: RecordT) -> UUID:
        """
        Save a new record.

        Returns:
            The record's id

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get(self, record_id: UUID) -> Optional[RecordT]:
        """
        Retrieve a record by its id.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def update(self, record_id: UUID, fields: dict[str, Any]) -> RecordT:
        """
        Replace some fields of an existing record.

        Returns:
            The updated record

        Raises:
            NotFoundError: If the record doesn't exist
            InvalidFieldError: If a field is unknown or immutable
        """
        pass

    @abstractmethod
    async def delete(self, record_id: UUID) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if none existed
        """
        pass

    @abstractmethod
    async def list_by_user(
        self,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[RecordT]:
        """
        List every record owned by a user.

        Args:
            user_id: Owner to filter by
            order_by: Field name to sort by (insertion order if None)
            descending: Sort newest/largest first
        """
        pass


class ProfileStorageInterface(ABC):
    """
    Abstract interface for user profiles.

    The balance is never written directly. It only moves through
    adjust_balance so a backend can apply the change atomically.
    """

    @abstractmethod
    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        """Retrieve a profile, or None if the user has none yet."""
        pass

    @abstractmethod
    async def create_profile(self, profile: UserProfile) -> bool:
        """
        Save a new profile.

        Raises:
            DuplicateError: If the user already has a profile
        """
        pass

    @abstractmethod
    async def update_profile(self, uid: str, fields: dict[str, Any]) -> UserProfile:
        """
        Replace non-balance fields of a profile.

        Raises:
            NotFoundError: If the profile doesn't exist
            InvalidFieldError: If a field is unknown or not updatable
        """
        pass

    @abstractmethod
    async def adjust_balance(self, uid: str, delta: Decimal) -> Decimal:
        """
        Add `delta` (may be negative) to the stored balance.

        Returns:
            The balance after the adjustment

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        pass


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
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one obligation payment).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class LedgerStorage:
    """
    The set of stores one backend provides to the ledger.

    Groups the four record collections with the profile store so the
    ledger receives a single collaborator.
    """

    def __init__(
        self,
        profiles: ProfileStorageInterface,
        transactions: EntityStoreInterface[Transaction],
        obligations: EntityStoreInterface[Obligation],
        goals: EntityStoreInterface[Goal],
        assets: EntityStoreInterface[Asset],
    ):
        self.profiles = profiles
        self.transactions = transactions
        self.obligations = obligations
        self.goals = goals
        self.assets = assets


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class InvalidFieldError(StorageError):
    """An update named an unknown or immutable field, or an invalid value."""
    pass
