"""
Audit Models for Thara

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of balance changes
2. Debugging information when a multi-step operation stops half way
3. Ability to reconstruct how a balance was reached

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Session
    PROFILE_CREATED = "profile_created"
    DATA_LOADED = "data_loaded"
    DATA_LOAD_FAILED = "data_load_failed"
    CYCLE_START_DAY_UPDATED = "cycle_start_day_updated"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Obligations
    OBLIGATION_ADDED = "obligation_added"
    OBLIGATION_PAID = "obligation_paid"
    OBLIGATION_PAYMENT_SKIPPED = "obligation_payment_skipped"
    OBLIGATION_DELETED = "obligation_deleted"

    # Goals
    GOAL_ADDED = "goal_added"
    GOAL_DEPOSIT = "goal_deposit"
    GOAL_DELETED = "goal_deleted"

    # Assets
    ASSET_ADDED = "asset_added"
    ASSET_UPDATED = "asset_updated"
    ASSET_DELETED = "asset_deleted"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which user and entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the ledger the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'goal', 'profile')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one obligation payment)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(user_id, tx_id, ...)
        event = AuditEventBuilder.goal_deposit(user_id, goal_id, ...)

    Money values are passed as strings so details stay JSON-serializable.
    """

    @staticmethod
    def profile_created(
        user_id: str,
        cycle_start_day: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_CREATED,
            user_id=user_id,
            entity_type="profile",
            correlation_id=correlation_id,
            description="Profile created with zero balance",
            details={"cycle_start_day": cycle_start_day},
        )

    @staticmethod
    def data_loaded(
        user_id: str,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Ledger data loaded",
            details=counts,
        )

    @staticmethod
    def data_load_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Failed to load ledger data",
            error_message=error_message,
        )

    @staticmethod
    def cycle_start_day_updated(
        user_id: str,
        old_day: int,
        new_day: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CYCLE_START_DAY_UPDATED,
            user_id=user_id,
            entity_type="profile",
            correlation_id=correlation_id,
            description=f"Cycle start day changed from {old_day} to {new_day}",
            details={"old_day": old_day, "new_day": new_day},
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        category: str,
        balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount} recorded",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "category": category,
                "balance_after": str(balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: UUID,
        amount: Decimal,
        balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction of {amount} deleted and reversed",
            details={
                "amount": str(amount),
                "balance_after": str(balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def obligation_added(
        user_id: str,
        obligation_id: UUID,
        name: str,
        amount: Decimal,
        cycle_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_ADDED,
            user_id=user_id,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description=f"Obligation added: {name}",
            details={"amount": str(amount), "cycle_id": cycle_id},
            is_user_action=True,
        )

    @staticmethod
    def obligation_paid(
        user_id: str,
        obligation_id: UUID,
        transaction_id: UUID,
        reused_transaction: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_PAID,
            user_id=user_id,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description="Obligation marked as paid",
            details={
                "transaction_id": str(transaction_id),
                "reused_transaction": reused_transaction,
            },
            is_user_action=True,
        )

    @staticmethod
    def obligation_payment_skipped(
        user_id: str,
        obligation_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OBLIGATION_PAYMENT_SKIPPED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="obligation",
            entity_id=obligation_id,
            correlation_id=correlation_id,
            description="Obligation already paid; payment not repeated",
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        event_type: AuditEventType,
        user_id: str,
        entity_type: str,
        entity_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def goal_added(
        user_id: str,
        goal_id: UUID,
        name: str,
        target_amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_ADDED,
            user_id=user_id,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal added: {name}",
            details={"target_amount": str(target_amount)},
            is_user_action=True,
        )

    @staticmethod
    def goal_deposit(
        user_id: str,
        goal_id: UUID,
        amount: Decimal,
        current_amount: Decimal,
        balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_DEPOSIT,
            user_id=user_id,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Deposited {amount} into goal",
            details={
                "amount": str(amount),
                "current_amount": str(current_amount),
                "balance_after": str(balance),
            },
            is_user_action=True,
        )

    @staticmethod
    def asset_added(
        user_id: str,
        asset_id: UUID,
        name: str,
        asset_type: str,
        value: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSET_ADDED,
            user_id=user_id,
            entity_type="asset",
            entity_id=asset_id,
            correlation_id=correlation_id,
            description=f"Asset added: {name}",
            details={"type": asset_type, "value": str(value)},
            is_user_action=True,
        )

    @staticmethod
    def asset_updated(
        user_id: str,
        asset_id: UUID,
        old_value: Decimal,
        new_value: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSET_UPDATED,
            user_id=user_id,
            entity_type="asset",
            entity_id=asset_id,
            correlation_id=correlation_id,
            description="Asset value updated",
            details={"old_value": str(old_value), "new_value": str(new_value)},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
