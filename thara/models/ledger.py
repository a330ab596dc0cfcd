"""
Core Ledger Models for Thara

These models define the strict schemas for every record the ledger stores.
They are designed to:
1. Enforce type safety at runtime
2. Reject unknown fields instead of merging arbitrary shapes
3. Be serializable for storage and logging

DESIGN DECISION: Stored records are always built explicitly from a
"create" input model plus the fields the ledger owns (id, user, timestamps).
Callers never hand a free-form dict to the persistence layer.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _now() -> datetime:
    return datetime.now()


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Amounts are stored positive."""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionCategory(str, Enum):
    """
    Supported transaction categories.

    DESIGN DECISION: A closed set of tags rather than free text, so
    cycle summaries can group reliably.
    """
    FOOD = "food"
    FUEL = "fuel"
    BILLS = "bills"
    SHOPPING = "shopping"
    HEALTH = "health"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    TRANSPORT = "transport"
    SALARY = "salary"
    OTHER = "other"


class AssetType(str, Enum):
    """Kinds of manually valued net-worth items."""
    GOLD = "gold"
    REALESTATE = "realestate"
    ACCOUNT = "account"
    OTHER = "other"


# Display metadata for the single supported locale.
CATEGORY_LABELS: dict[TransactionCategory, dict[str, str]] = {
    TransactionCategory.FOOD: {"icon": "🍔", "label": "طعام"},
    TransactionCategory.FUEL: {"icon": "⛽", "label": "وقود"},
    TransactionCategory.BILLS: {"icon": "💡", "label": "فواتير"},
    TransactionCategory.SHOPPING: {"icon": "🛍️", "label": "تسوق"},
    TransactionCategory.HEALTH: {"icon": "🏥", "label": "صحة"},
    TransactionCategory.EDUCATION: {"icon": "📚", "label": "تعليم"},
    TransactionCategory.ENTERTAINMENT: {"icon": "🎮", "label": "ترفيه"},
    TransactionCategory.TRANSPORT: {"icon": "🚗", "label": "مواصلات"},
    TransactionCategory.SALARY: {"icon": "💰", "label": "راتب"},
    TransactionCategory.OTHER: {"icon": "📦", "label": "أخرى"},
}


class _Record(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    @field_validator("date", "created_at", mode="after", check_fields=False)
    @classmethod
    def to_naive_local(cls, v: datetime) -> datetime:
        """Store timestamps as naive local time so they always compare."""
        if v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v


# =============================================================================
# INPUT MODELS - what a caller may supply
# =============================================================================

class TransactionCreate(_Record):
    """Caller-supplied fields of a new transaction."""

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Always positive; the sign comes from the type"
    )
    category: TransactionCategory
    note: Optional[str] = Field(default=None, max_length=500)
    date: datetime = Field(default_factory=_now)


class ObligationCreate(_Record):
    """Caller-supplied fields of a new obligation."""

    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class GoalCreate(_Record):
    """Caller-supplied fields of a new savings goal."""

    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    deadline: Optional[date] = None


class AssetCreate(_Record):
    """Caller-supplied fields of a new asset."""

    name: str = Field(..., min_length=1, max_length=200)
    type: AssetType
    value: Decimal = Field(..., ge=0, decimal_places=2)
    note: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# STORED RECORDS
# =============================================================================

class Transaction(TransactionCreate):
    """
    A recorded income or expense.

    Immutable once stored; the only mutation is deletion.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)

    # Set only on transactions synthesized by a composite command,
    # e.g. "obligation:<id>:<cycle>". Lets a retried command find the
    # transaction it already wrote.
    operation_key: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign implied by the transaction type."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Obligation(ObligationCreate):
    """
    A bill-like liability tracked for the period it was created in.

    Lifecycle: unpaid -> paid (one way). May be deleted in either state.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    paid: bool = False
    cycle_id: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Calendar month (UTC) the obligation was created in"
    )

    @property
    def payment_key(self) -> str:
        return f"obligation:{self.id}:{self.cycle_id}"


class Goal(GoalCreate):
    """A savings target funded by deposits reserved out of the balance."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    created_at: datetime = Field(default_factory=_now)

    @property
    def progress(self) -> float:
        """Fraction of the target reached, capped at 1.0."""
        return min(float(self.current_amount / self.target_amount), 1.0)


class Asset(AssetCreate):
    """A manually valued net-worth item. Not part of the spendable balance."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_now)


class UserProfile(_Record):
    """
    Per-user profile.

    CRITICAL: `balance` is a denormalized cache maintained incrementally by
    the ledger. It cannot be re-derived from the transaction log alone
    because goal deposits reserve funds without a transaction.
    """

    uid: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    display_name: Optional[str] = Field(default=None, max_length=200)
    balance: Decimal = Field(default=Decimal("0"), decimal_places=2)
    cycle_start_day: int = Field(default=23, ge=1, le=28)
    created_at: datetime = Field(default_factory=_now)


# =============================================================================
# DERIVED VALUES
# =============================================================================

class FinancialCycle(BaseModel):
    """
    A custom accounting period starting on a fixed day of the month.

    Never persisted; computed on demand from the profile's cycle start day.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="'{year}-{month}' of the start date")
    start_date: datetime
    end_date: datetime

    @model_validator(mode='after')
    def validate_window(self) -> 'FinancialCycle':
        if self.end_date < self.start_date:
            raise ValueError("Cycle end cannot be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date


class CycleSummary(BaseModel):
    """Totals of the transactions that fall in one cycle."""

    cycle: FinancialCycle
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    expense_by_category: dict[TransactionCategory, Decimal] = Field(default_factory=dict)
    transaction_count: int = Field(default=0, ge=0)

    @property
    def net(self) -> Decimal:
        return self.income - self.expense
