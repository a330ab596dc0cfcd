"""
Data Models Package

This package contains all Pydantic models used in Thara.
All data flowing through the ledger must conform to these schemas.
"""

from thara.models.ledger import (
    CATEGORY_LABELS,
    Asset,
    AssetCreate,
    AssetType,
    CycleSummary,
    FinancialCycle,
    Goal,
    GoalCreate,
    Obligation,
    ObligationCreate,
    Transaction,
    TransactionCategory,
    TransactionCreate,
    TransactionType,
    UserProfile,
)
from thara.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CATEGORY_LABELS",
    "Asset",
    "AssetCreate",
    "AssetType",
    "CycleSummary",
    "FinancialCycle",
    "Goal",
    "GoalCreate",
    "Obligation",
    "ObligationCreate",
    "Transaction",
    "TransactionCategory",
    "TransactionCreate",
    "TransactionType",
    "UserProfile",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
