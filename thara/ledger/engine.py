"""
Balance Ledger

Orchestrates every mutation that touches the user's balance so the
balance, the transaction log, obligation state and goal progress stay
consistent with each other.

DESIGN DECISION: The balance only moves through the store's
adjust_balance (an increment, not an overwrite), applied right after the
entity write it belongs to. A stale cached balance can therefore never
be written back over a newer one.

Composite operations:
- pay_obligation = add expense transaction + mark obligation paid.
  The transaction carries an operation key derived from the obligation,
  so a repeated or retried payment reuses it instead of charging twice.
- deposit_to_goal = raise goal progress + lower balance. No transaction
  is recorded; goal deposits reserve funds outside the transaction log.

REMAINING GAP: the entity write and the balance adjustment are two store
calls. If the process dies between them the balance misses one change.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Union
from uuid import UUID

import structlog

from thara.audit import AuditLogger, create_correlation_id
from thara.config import get_settings
from thara.cycles.calculator import (
    MAX_CYCLE_START_DAY,
    MIN_CYCLE_START_DAY,
    get_current_cycle,
    obligation_period_label,
    to_local_datetime,
)
from thara.ledger.errors import EntityNotFoundError, LedgerError
from thara.ledger.session import LedgerSession
from thara.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from thara.models.ledger import (
    Asset,
    AssetCreate,
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
from thara.services.storage import LedgerStorage, StorageError


OBLIGATION_PAYMENT_NOTE = "دفع التزام: {name}"


def _to_decimal(amount: Union[Decimal, int, float, str]) -> Decimal:
    return amount if isinstance(amount, Decimal) else Decimal(str(amount))


class BalanceLedger:
    """
    The ledger for one signed-in user.

    Owns no global state: the user and their cached records come from the
    LedgerSession it is constructed with.
    """

    def __init__(
        self,
        storage: LedgerStorage,
        session: LedgerSession,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            storage: Backend stores for profiles and the four collections
            session: The signed-in user's session context
            audit_logger: Optional audit trail; if None nothing is audited
            clock: Source of "now" for new records and the current cycle
        """
        self._storage = storage
        self._session = session
        self._audit_logger = audit_logger
        self._clock = clock
        self._logger = structlog.get_logger("thara.ledger")

    @property
    def session(self) -> LedgerSession:
        return self._session

    @property
    def profile(self) -> UserProfile:
        return self._session.require_profile()

    @property
    def balance(self) -> Decimal:
        return self._session.require_profile().balance

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            await self._audit_logger.log(event)

    @asynccontextmanager
    async def _storage_call(self, operation: str, correlation_id: Optional[UUID]):
        """
        Report a failed store call, then let it propagate.

        Storage failures are audited as storage errors and anything else
        except ledger errors as a system error.
        """
        try:
            yield
        except StorageError as e:
            self._logger.error(
                "ledger_storage_error",
                operation=operation,
                user_id=self._session.user_id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation=operation,
                    error_message=str(e),
                    user_id=self._session.user_id,
                    correlation_id=correlation_id,
                )
            raise
        except LedgerError:
            raise
        except Exception as e:
            self._logger.error(
                "ledger_unexpected_error",
                operation=operation,
                user_id=self._session.user_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation, "user_id": self._session.user_id},
                    correlation_id=correlation_id,
                )
            raise

    async def _apply_balance(self, delta: Decimal) -> Decimal:
        profile = self._session.require_profile()
        new_balance = await self._storage.profiles.adjust_balance(profile.uid, delta)
        self._session.profile = profile.model_copy(update={"balance": new_balance})
        return new_balance

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self, correlation_id: Optional[UUID] = None) -> None:
        """
        Load every collection of the session user into the session.

        Transactions are ordered newest first.

        Raises:
            StorageError: If any collection fails to load. The session
                keeps its previous contents and stays unloaded.
        """
        user_id = self._session.user_id
        try:
            transactions = await self._storage.transactions.list_by_user(
                user_id, order_by="date", descending=True
            )
            obligations = await self._storage.obligations.list_by_user(user_id)
            goals = await self._storage.goals.list_by_user(user_id)
            assets = await self._storage.assets.list_by_user(user_id)
        except StorageError as e:
            self._logger.error("ledger_load_failed", user_id=user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_load_failed(
                    user_id=user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        self._session.transactions = transactions
        self._session.obligations = obligations
        self._session.goals = goals
        self._session.assets = assets
        self._session.loaded = True

        await self._audit(AuditEventBuilder.data_loaded(
            user_id=user_id,
            counts={
                "transactions": len(transactions),
                "obligations": len(obligations),
                "goals": len(goals),
                "assets": len(assets),
            },
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        data: TransactionCreate,
        correlation_id: Optional[UUID] = None,
        operation_key: Optional[str] = None,
    ) -> Transaction:
        """
        Record a transaction and move the balance by its signed amount.

        Returns:
            The stored transaction (with its generated id)

        Raises:
            NotAuthenticatedError: If the session has no profile
            StorageError: If a store call fails
        """
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()

        transaction = Transaction(
            **data.model_dump(),
            user_id=profile.uid,
            operation_key=operation_key,
        )

        async with self._storage_call("add_transaction", correlation_id):
            await self._storage.transactions.create(transaction)
            self._session.insert_transaction(transaction)
            balance = await self._apply_balance(transaction.signed_amount)

        await self._audit(AuditEventBuilder.transaction_added(
            user_id=profile.uid,
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            category=transaction.category.value,
            balance=balance,
            correlation_id=correlation_id,
        ))
        return transaction

    async def delete_transaction(
        self,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a transaction and reverse its effect on the balance.

        Raises:
            NotAuthenticatedError: If the session has no profile
            EntityNotFoundError: If the id is not in the loaded snapshot,
                or the store no longer has it
        """
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        transaction = self._session.find_transaction(transaction_id)

        async with self._storage_call("delete_transaction", correlation_id):
            deleted = await self._storage.transactions.delete(transaction_id)
            if not deleted:
                # Removed elsewhere; whoever removed it reversed the balance.
                LedgerSession.remove(self._session.transactions, transaction_id)
                raise EntityNotFoundError(
                    "transaction", transaction_id,
                    f"transaction {transaction_id} was already deleted from storage",
                )
            LedgerSession.remove(self._session.transactions, transaction_id)
            balance = await self._apply_balance(-transaction.signed_amount)

        await self._audit(AuditEventBuilder.transaction_deleted(
            user_id=profile.uid,
            transaction_id=transaction_id,
            amount=transaction.amount,
            balance=balance,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Obligations
    # -------------------------------------------------------------------------

    async def add_obligation(
        self,
        data: ObligationCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Obligation:
        """Create an unpaid obligation labelled with the current calendar month."""
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()

        obligation = Obligation(
            **data.model_dump(),
            user_id=profile.uid,
            paid=False,
            cycle_id=obligation_period_label(self._clock()),
        )

        async with self._storage_call("add_obligation", correlation_id):
            await self._storage.obligations.create(obligation)
        self._session.obligations.append(obligation)

        await self._audit(AuditEventBuilder.obligation_added(
            user_id=profile.uid,
            obligation_id=obligation.id,
            name=obligation.name,
            amount=obligation.amount,
            cycle_id=obligation.cycle_id,
            correlation_id=correlation_id,
        ))
        return obligation

    async def pay_obligation(
        self,
        obligation_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """
        Pay an obligation: record a "bills" expense, then mark it paid.

        Idempotent. Paying an already-paid obligation changes nothing and
        returns the recorded payment (None if it is not in the snapshot).
        If an earlier attempt recorded the expense but failed to mark the
        obligation, the recorded expense is reused.

        Returns:
            The payment transaction
        """
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        obligation = self._session.find_obligation(obligation_id)

        payment = self._session.find_by_operation_key(obligation.payment_key)

        if obligation.paid:
            self._logger.warning(
                "obligation_already_paid",
                user_id=profile.uid,
                obligation_id=str(obligation_id),
            )
            await self._audit(AuditEventBuilder.obligation_payment_skipped(
                user_id=profile.uid,
                obligation_id=obligation_id,
                correlation_id=correlation_id,
            ))
            return payment

        reused = payment is not None
        if payment is None:
            payment = await self.add_transaction(
                TransactionCreate(
                    type=TransactionType.EXPENSE,
                    amount=obligation.amount,
                    category=TransactionCategory.BILLS,
                    note=OBLIGATION_PAYMENT_NOTE.format(name=obligation.name),
                    date=self._clock(),
                ),
                correlation_id=correlation_id,
                operation_key=obligation.payment_key,
            )

        async with self._storage_call("pay_obligation", correlation_id):
            updated = await self._storage.obligations.update(obligation_id, {"paid": True})
        LedgerSession.replace(self._session.obligations, updated)

        await self._audit(AuditEventBuilder.obligation_paid(
            user_id=profile.uid,
            obligation_id=obligation_id,
            transaction_id=payment.id,
            reused_transaction=reused,
            correlation_id=correlation_id,
        ))
        return payment

    async def delete_obligation(
        self,
        obligation_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete an obligation in either state. The balance is untouched."""
        await self._delete_record(
            "obligation",
            self._session.find_obligation,
            self._storage.obligations,
            self._session.obligations,
            AuditEventType.OBLIGATION_DELETED,
            obligation_id,
            correlation_id,
        )

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    async def add_goal(
        self,
        data: GoalCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """Create a goal with nothing saved yet."""
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()

        goal = Goal(
            **data.model_dump(),
            user_id=profile.uid,
            current_amount=Decimal("0"),
            created_at=self._clock(),
        )

        async with self._storage_call("add_goal", correlation_id):
            await self._storage.goals.create(goal)
        self._session.goals.append(goal)

        await self._audit(AuditEventBuilder.goal_added(
            user_id=profile.uid,
            goal_id=goal.id,
            name=goal.name,
            target_amount=goal.target_amount,
            correlation_id=correlation_id,
        ))
        return goal

    async def deposit_to_goal(
        self,
        goal_id: UUID,
        amount: Union[Decimal, int, float, str],
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """
        Move `amount` from the spendable balance into a goal.

        No transaction is recorded. The balance drops by `amount` and the
        goal's current amount rises by it.

        Raises:
            ValueError: If amount is not positive
            EntityNotFoundError: If the goal is not in the snapshot
        """
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        amount = _to_decimal(amount)
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")

        goal = self._session.find_goal(goal_id)

        async with self._storage_call("deposit_to_goal", correlation_id):
            updated = await self._storage.goals.update(
                goal_id, {"current_amount": goal.current_amount + amount}
            )
            LedgerSession.replace(self._session.goals, updated)
            balance = await self._apply_balance(-amount)

        await self._audit(AuditEventBuilder.goal_deposit(
            user_id=profile.uid,
            goal_id=goal_id,
            amount=amount,
            current_amount=updated.current_amount,
            balance=balance,
            correlation_id=correlation_id,
        ))
        return updated

    async def delete_goal(
        self,
        goal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a goal. Deposited funds are not returned to the balance."""
        await self._delete_record(
            "goal",
            self._session.find_goal,
            self._storage.goals,
            self._session.goals,
            AuditEventType.GOAL_DELETED,
            goal_id,
            correlation_id,
        )

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    async def add_asset(
        self,
        data: AssetCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Asset:
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()

        asset = Asset(
            **data.model_dump(),
            user_id=profile.uid,
            created_at=self._clock(),
        )

        async with self._storage_call("add_asset", correlation_id):
            await self._storage.assets.create(asset)
        self._session.assets.append(asset)

        await self._audit(AuditEventBuilder.asset_added(
            user_id=profile.uid,
            asset_id=asset.id,
            name=asset.name,
            asset_type=asset.type.value,
            value=asset.value,
            correlation_id=correlation_id,
        ))
        return asset

    async def update_asset(
        self,
        asset_id: UUID,
        value: Union[Decimal, int, float, str],
        correlation_id: Optional[UUID] = None,
    ) -> Asset:
        """Replace an asset's value."""
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        value = _to_decimal(value)
        if value < 0:
            raise ValueError(f"Asset value cannot be negative, got {value}")

        asset = self._session.find_asset(asset_id)

        async with self._storage_call("update_asset", correlation_id):
            updated = await self._storage.assets.update(asset_id, {"value": value})
        LedgerSession.replace(self._session.assets, updated)

        await self._audit(AuditEventBuilder.asset_updated(
            user_id=profile.uid,
            asset_id=asset_id,
            old_value=asset.value,
            new_value=updated.value,
            correlation_id=correlation_id,
        ))
        return updated

    async def delete_asset(
        self,
        asset_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._delete_record(
            "asset",
            self._session.find_asset,
            self._storage.assets,
            self._session.assets,
            AuditEventType.ASSET_DELETED,
            asset_id,
            correlation_id,
        )

    async def _delete_record(
        self,
        entity_type: str,
        find,
        store,
        cached: list,
        event_type: AuditEventType,
        record_id: UUID,
        correlation_id: Optional[UUID],
    ) -> None:
        """Shared delete for records without balance side effects."""
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        find(record_id)

        async with self._storage_call(f"delete_{entity_type}", correlation_id):
            deleted = await store.delete(record_id)
        LedgerSession.remove(cached, record_id)
        if not deleted:
            raise EntityNotFoundError(
                entity_type, record_id,
                f"{entity_type} {record_id} was already deleted from storage",
            )

        await self._audit(AuditEventBuilder.entity_deleted(
            event_type=event_type,
            user_id=profile.uid,
            entity_type=entity_type,
            entity_id=record_id,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def set_cycle_start_day(
        self,
        day: int,
        correlation_id: Optional[UUID] = None,
    ) -> UserProfile:
        """Change the day of the month on which cycles start."""
        correlation_id = correlation_id or create_correlation_id()
        profile = self._session.require_profile()
        if not MIN_CYCLE_START_DAY <= day <= MAX_CYCLE_START_DAY:
            raise ValueError(
                f"cycle start day must be between {MIN_CYCLE_START_DAY} "
                f"and {MAX_CYCLE_START_DAY}, got {day}"
            )

        async with self._storage_call("set_cycle_start_day", correlation_id):
            updated = await self._storage.profiles.update_profile(
                profile.uid, {"cycle_start_day": day}
            )
        self._session.profile = updated

        await self._audit(AuditEventBuilder.cycle_start_day_updated(
            user_id=profile.uid,
            old_day=profile.cycle_start_day,
            new_day=day,
            correlation_id=correlation_id,
        ))
        return updated

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def current_cycle(self, today: Optional[datetime] = None) -> FinancialCycle:
        """The cycle containing `today` (default: now) for this user's start day."""
        profile = self._session.require_profile()
        return get_current_cycle(profile.cycle_start_day, today or self._clock())

    def current_cycle_transactions(self, today: Optional[datetime] = None) -> list[Transaction]:
        """Loaded transactions that fall in the current cycle, newest first."""
        cycle = self.current_cycle(today)
        return [
            tx for tx in self._session.transactions
            if cycle.contains(to_local_datetime(tx.date))
        ]

    def recent_transactions(self, limit: Optional[int] = None) -> list[Transaction]:
        if limit is None:
            limit = get_settings().ledger.recent_transactions_limit
        return self._session.transactions[:limit]

    def cycle_summary(self, today: Optional[datetime] = None) -> CycleSummary:
        """Income, expense and per-category expense totals for the current cycle."""
        cycle = self.current_cycle(today)
        summary = CycleSummary(cycle=cycle)
        for tx in self.current_cycle_transactions(today):
            summary.transaction_count += 1
            if tx.type == TransactionType.INCOME:
                summary.income += tx.amount
            else:
                summary.expense += tx.amount
                summary.expense_by_category[tx.category] = (
                    summary.expense_by_category.get(tx.category, Decimal("0")) + tx.amount
                )
        return summary
