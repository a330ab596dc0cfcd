"""
In-Memory Storage Implementation

Keeps every collection in a dict keyed by id. Used for tests and as the
default backend when no spreadsheet is configured.

The balance adjustment runs under an asyncio lock, so concurrent
sessions in one process cannot lose each other's updates.
"""

import asyncio
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from thara.models.audit import AuditEvent
from thara.models.ledger import Asset, Goal, Obligation, Transaction, UserProfile
from thara.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntityStoreInterface,
    LedgerStorage,
    NotFoundError,
    ProfileStorageInterface,
    RecordT,
    apply_update,
    sort_records,
)


class InMemoryEntityStore(EntityStoreInterface[RecordT]):
    """One collection of records held in a dict (insertion ordered)."""

    def __init__(self) -> None:
        self._records: dict[UUID, RecordT] = {}

    async def create(self, record: RecordT) -> UUID:
        if record.id in self._records:
            raise DuplicateError(f"Record already exists: {record.id}")
        self._records[record.id] = record.model_copy(deep=True)
        return record.id

    async def get(self, record_id: UUID) -> Optional[RecordT]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record else None

    async def update(self, record_id: UUID, fields: dict[str, Any]) -> RecordT:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        updated = apply_update(record, fields)
        self._records[record_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, record_id: UUID) -> bool:
        return self._records.pop(record_id, None) is not None

    async def list_by_user(
        self,
        user_id: str,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[RecordT]:
        owned = [
            record.model_copy(deep=True)
            for record in self._records.values()
            if record.user_id == user_id
        ]
        return sort_records(owned, order_by, descending)


class InMemoryProfileStore(ProfileStorageInterface):
    """Profiles keyed by uid."""

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}
        self._lock = asyncio.Lock()

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        profile = self._profiles.get(uid)
        return profile.model_copy() if profile else None

    async def create_profile(self, profile: UserProfile) -> bool:
        if profile.uid in self._profiles:
            raise DuplicateError(f"Profile already exists: {profile.uid}")
        self._profiles[profile.uid] = profile.model_copy()
        return True

    async def update_profile(self, uid: str, fields: dict[str, Any]) -> UserProfile:
        async with self._lock:
            profile = self._profiles.get(uid)
            if profile is None:
                raise NotFoundError(f"Profile not found: {uid}")
            updated = apply_update(profile, fields)
            self._profiles[uid] = updated
            return updated.model_copy()

    async def adjust_balance(self, uid: str, delta: Decimal) -> Decimal:
        async with self._lock:
            profile = self._profiles.get(uid)
            if profile is None:
                raise NotFoundError(f"Profile not found: {uid}")
            new_balance = profile.balance + delta
            self._profiles[uid] = profile.model_copy(update={"balance": new_balance})
            return new_balance


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(reversed(self._events), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_memory_storage() -> LedgerStorage:
    """Build a LedgerStorage whose collections all live in memory."""
    return LedgerStorage(
        profiles=InMemoryProfileStore(),
        transactions=InMemoryEntityStore[Transaction](),
        obligations=InMemoryEntityStore[Obligation](),
        goals=InMemoryEntityStore[Goal](),
        assets=InMemoryEntityStore[Asset](),
    )
