"""
Main Orchestrator for Thara

This module ties together all the components:
1. Storage backend selection (memory or Google Sheets)
2. Audit logger wiring
3. Session start (load or create the profile, then load the ledger)

DESIGN DECISION: One BalanceLedger is built per authenticated session.
The signed-in user is passed in explicitly; authentication itself happens
outside this package.
"""

from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

import structlog

from thara.audit import AuditLogger, create_correlation_id
from thara.config import get_settings
from thara.ledger import BalanceLedger, LedgerSession
from thara.models.audit import AuditEventBuilder
from thara.models.ledger import UserProfile
from thara.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    LedgerStorage,
    create_memory_storage,
    create_sheets_storage,
)


logger = structlog.get_logger("thara.orchestrator")


def create_storage(
    backend: Optional[str] = None,
) -> tuple[LedgerStorage, AuditStorageInterface]:
    """
    Build the ledger storage and audit storage for a backend.

    Args:
        backend: "memory" or "google_sheets". Defaults to the configured one.
    """
    backend = backend or get_settings().ledger.storage_backend

    if backend == "google_sheets":
        client = GoogleSheetsClient()
        return create_sheets_storage(client), GoogleSheetsAuditStorage(client)
    if backend == "memory":
        return create_memory_storage(), InMemoryAuditStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    use_storage: bool = True,
) -> tuple[LedgerStorage, AuditLogger]:
    """
    Factory function to create the shared application components.

    Args:
        use_storage: Whether to use the configured backend. When False,
                    or when the backend cannot be configured, everything
                    is kept in memory and audit events are logged locally.

    Returns:
        (ledger_storage, audit_logger)
    """
    if use_storage:
        try:
            storage, audit_storage = create_storage()
            return storage, AuditLogger(audit_storage)
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    return create_memory_storage(), AuditLogger()


async def ensure_profile(
    storage: LedgerStorage,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    audit_logger: Optional[AuditLogger] = None,
    clock: Callable[[], datetime] = datetime.now,
    correlation_id: Optional[UUID] = None,
) -> UserProfile:
    """
    Load the user's profile, creating it on first sign-in.

    New profiles start with a zero balance and the configured default
    cycle start day.
    """
    profile = await storage.profiles.get_profile(user_id)
    if profile is not None:
        return profile

    profile = UserProfile(
        uid=user_id,
        email=email,
        display_name=display_name or None,
        cycle_start_day=get_settings().ledger.default_cycle_start_day,
        created_at=clock(),
    )
    try:
        await storage.profiles.create_profile(profile)
    except DuplicateError:
        # Another session created it first.
        return await storage.profiles.get_profile(user_id)

    if audit_logger:
        await audit_logger.log(AuditEventBuilder.profile_created(
            user_id=user_id,
            cycle_start_day=profile.cycle_start_day,
            correlation_id=correlation_id,
        ))
    return profile


async def start_session(
    storage: LedgerStorage,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    audit_logger: Optional[AuditLogger] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> BalanceLedger:
    """
    Start a ledger session for an authenticated user.

    Resolves the profile, builds the session context and loads all of
    the user's records.

    Returns:
        A loaded BalanceLedger for the user
    """
    correlation_id = create_correlation_id()
    profile = await ensure_profile(
        storage,
        user_id,
        email,
        display_name=display_name,
        audit_logger=audit_logger,
        clock=clock,
        correlation_id=correlation_id,
    )

    session = LedgerSession(user_id=user_id, profile=profile)
    ledger = BalanceLedger(storage, session, audit_logger=audit_logger, clock=clock)
    await ledger.load(correlation_id=correlation_id)

    logger.info(
        "session_started",
        user_id=user_id,
        transactions=len(ledger.session.transactions),
        audit_persisted=bool(audit_logger and audit_logger.storage is not None),
    )
    return ledger
