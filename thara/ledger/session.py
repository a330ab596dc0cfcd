"""
Ledger Session

DESIGN DECISION: The signed-in user's profile and the records loaded for
them live in an explicit session object, built once per authenticated
session and handed to the ledger. Nothing reads a global "current user".

The session holds mirrors of persisted state. Only the ledger mutates it,
and only after the corresponding storage call has completed.
"""

from typing import Optional
from uuid import UUID

from thara.ledger.errors import EntityNotFoundError, NotAuthenticatedError
from thara.models.ledger import Asset, Goal, Obligation, Transaction, UserProfile


class LedgerSession:
    """Per-user state for one authenticated session."""

    def __init__(self, user_id: str, profile: Optional[UserProfile] = None):
        self.user_id = user_id
        self.profile = profile
        self.transactions: list[Transaction] = []  # newest first
        self.obligations: list[Obligation] = []
        self.goals: list[Goal] = []
        self.assets: list[Asset] = []
        self.loaded = False

    def require_profile(self) -> UserProfile:
        """
        Return the profile or fail.

        Raises:
            NotAuthenticatedError: If no profile has been resolved
        """
        if self.profile is None:
            raise NotAuthenticatedError(
                f"No profile loaded for user {self.user_id!r}"
            )
        return self.profile

    def clear(self) -> None:
        """Forget all cached state (e.g. on sign out)."""
        self.profile = None
        self.transactions = []
        self.obligations = []
        self.goals = []
        self.assets = []
        self.loaded = False

    # -------------------------------------------------------------------------
    # Lookups over the loaded snapshot
    # -------------------------------------------------------------------------

    def find_transaction(self, transaction_id: UUID) -> Transaction:
        return _find(self.transactions, transaction_id, "transaction")

    def find_obligation(self, obligation_id: UUID) -> Obligation:
        return _find(self.obligations, obligation_id, "obligation")

    def find_goal(self, goal_id: UUID) -> Goal:
        return _find(self.goals, goal_id, "goal")

    def find_asset(self, asset_id: UUID) -> Asset:
        return _find(self.assets, asset_id, "asset")

    def find_by_operation_key(self, operation_key: str) -> Optional[Transaction]:
        for tx in self.transactions:
            if tx.operation_key == operation_key:
                return tx
        return None

    # -------------------------------------------------------------------------
    # Mirror updates
    # -------------------------------------------------------------------------

    def insert_transaction(self, transaction: Transaction) -> None:
        """Insert keeping the list ordered by date, newest first."""
        index = 0
        while index < len(self.transactions) and self.transactions[index].date > transaction.date:
            index += 1
        self.transactions.insert(index, transaction)

    @staticmethod
    def replace(records: list, updated) -> None:
        for index, record in enumerate(records):
            if record.id == updated.id:
                records[index] = updated
                return

    @staticmethod
    def remove(records: list, record_id: UUID) -> None:
        records[:] = [r for r in records if r.id != record_id]


def _find(records: list, record_id: UUID, entity_type: str):
    for record in records:
        if record.id == record_id:
            return record
    raise EntityNotFoundError(entity_type, record_id)
