"""Shared fixtures: an in-memory backend and a ledger pinned to a fixed clock."""

from datetime import datetime
from decimal import Decimal

import pytest
import pytest_asyncio

from thara.audit import AuditLogger
from thara.ledger import BalanceLedger, LedgerSession
from thara.models.ledger import UserProfile
from thara.services.storage import InMemoryAuditStorage, create_memory_storage


USER_ID = "user-1"
NOW = datetime(2024, 3, 15, 12, 0)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def storage():
    return create_memory_storage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


async def make_ledger(storage, audit_logger, clock, balance=Decimal("0")) -> BalanceLedger:
    profile = UserProfile(
        uid=USER_ID,
        email="user@example.com",
        balance=balance,
        cycle_start_day=23,
        created_at=NOW,
    )
    await storage.profiles.create_profile(profile)
    session = LedgerSession(user_id=USER_ID, profile=profile)
    ledger = BalanceLedger(storage, session, audit_logger=audit_logger, clock=clock)
    await ledger.load()
    return ledger


@pytest_asyncio.fixture
async def ledger(storage, audit_logger, clock):
    return await make_ledger(storage, audit_logger, clock)
