"""
Tests for Thara models

Test strategy:
1. Unit tests for individual models and their validators
2. Audit event construction and serialization
3. No storage or clock dependencies
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from thara.models.ledger import (
    CATEGORY_LABELS,
    Asset,
    AssetType,
    CycleSummary,
    FinancialCycle,
    Goal,
    Obligation,
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


class TestTransactionModels:
    """Tests for transaction models."""

    def test_transaction_create(self):
        data = TransactionCreate(
            type=TransactionType.EXPENSE,
            amount=Decimal("30.50"),
            category=TransactionCategory.FOOD,
            note="  lunch  ",
            date=datetime(2024, 3, 1, 13, 0),
        )
        assert data.amount == Decimal("30.50")
        assert data.note == "lunch"

    @pytest.mark.parametrize("amount", ["0", "-1"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            TransactionCreate(
                type=TransactionType.INCOME,
                amount=Decimal(amount),
                category=TransactionCategory.SALARY,
            )

    def test_amount_rejects_more_than_two_decimals(self):
        with pytest.raises(ValidationError):
            TransactionCreate(
                type=TransactionType.INCOME,
                amount=Decimal("1.005"),
                category=TransactionCategory.SALARY,
            )

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(type="expense", amount=Decimal("5"), category="pets")

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(
                type=TransactionType.INCOME,
                amount=Decimal("5"),
                category=TransactionCategory.SALARY,
                balance=Decimal("100"),
            )

    def test_signed_amount(self):
        common = dict(amount=Decimal("12.5"), category=TransactionCategory.OTHER, user_id="u")
        assert Transaction(type=TransactionType.INCOME, **common).signed_amount == Decimal("12.5")
        assert Transaction(type=TransactionType.EXPENSE, **common).signed_amount == Decimal("-12.5")

    def test_aware_date_stored_as_naive_local(self):
        data = TransactionCreate(
            type=TransactionType.EXPENSE,
            amount=Decimal("30"),
            category=TransactionCategory.FOOD,
            date="2024-03-10T10:00:00Z",
        )
        expected = datetime(2024, 3, 10, 10, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert data.date.tzinfo is None
        assert data.date == expected
        assert data.date > datetime(2024, 3, 1)

    def test_aware_created_at_stored_as_naive(self):
        goal = Goal(
            name="Car",
            target_amount=Decimal("100"),
            user_id="u",
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        assert goal.created_at.tzinfo is None

    def test_transaction_gets_id(self):
        first = Transaction(type="income", amount=Decimal("1"), category="salary", user_id="u")
        second = Transaction(type="income", amount=Decimal("1"), category="salary", user_id="u")
        assert first.id != second.id
        assert first.operation_key is None


class TestObligationModel:
    """Tests for the obligation model."""

    def test_defaults_to_unpaid(self):
        obligation = Obligation(name="Rent", amount=Decimal("250"), user_id="u", cycle_id="2024-03")
        assert obligation.paid is False

    def test_payment_key_includes_id_and_month(self):
        obligation_id = uuid4()
        obligation = Obligation(
            id=obligation_id, name="Rent", amount=Decimal("250"), user_id="u", cycle_id="2024-03"
        )
        assert obligation.payment_key == f"obligation:{obligation_id}:2024-03"

    @pytest.mark.parametrize("cycle_id", ["2024-3", "March", "2024/03"])
    def test_cycle_id_must_be_padded_year_month(self, cycle_id):
        with pytest.raises(ValidationError):
            Obligation(name="Rent", amount=Decimal("250"), user_id="u", cycle_id=cycle_id)


class TestGoalModel:
    """Tests for goals."""

    def test_progress(self):
        goal = Goal(name="Car", target_amount=Decimal("200"), current_amount=Decimal("50"), user_id="u")
        assert goal.progress == pytest.approx(0.25)

    def test_progress_capped(self):
        goal = Goal(name="Car", target_amount=Decimal("100"), current_amount=Decimal("150"), user_id="u")
        assert goal.progress == 1.0

    def test_negative_current_amount_rejected(self):
        with pytest.raises(ValidationError):
            Goal(name="Car", target_amount=Decimal("100"), current_amount=Decimal("-1"), user_id="u")

    def test_deadline_optional(self):
        goal = Goal(name="Trip", target_amount=Decimal("10"), user_id="u", deadline=date(2025, 1, 1))
        assert goal.deadline == date(2025, 1, 1)


class TestAssetAndProfile:
    """Tests for assets and user profiles."""

    def test_asset_value_may_be_zero(self):
        asset = Asset(name="Old car", type=AssetType.OTHER, value=Decimal("0"), user_id="u")
        assert asset.value == Decimal("0")

    def test_asset_value_not_negative(self):
        with pytest.raises(ValidationError):
            Asset(name="Old car", type=AssetType.OTHER, value=Decimal("-5"), user_id="u")

    def test_profile_defaults(self):
        profile = UserProfile(uid="u", email="u@example.com")
        assert profile.balance == Decimal("0")
        assert profile.cycle_start_day == 23

    def test_profile_balance_may_be_negative(self):
        profile = UserProfile(uid="u", email="u@example.com", balance=Decimal("-20"))
        assert profile.balance == Decimal("-20")

    @pytest.mark.parametrize("day", [0, 29])
    def test_profile_cycle_start_day_range(self, day):
        with pytest.raises(ValidationError):
            UserProfile(uid="u", email="u@example.com", cycle_start_day=day)


class TestCycleModels:
    """Tests for cycle value objects."""

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            FinancialCycle(
                id="2024-3",
                start_date=datetime(2024, 3, 23),
                end_date=datetime(2024, 3, 1),
            )

    def test_cycle_is_frozen(self):
        cycle = FinancialCycle(
            id="2024-3",
            start_date=datetime(2024, 3, 23),
            end_date=datetime(2024, 4, 22, 23, 59, 59),
        )
        with pytest.raises(ValidationError):
            cycle.id = "2024-4"

    def test_summary_net(self):
        cycle = FinancialCycle(
            id="2024-3",
            start_date=datetime(2024, 3, 23),
            end_date=datetime(2024, 4, 22, 23, 59, 59),
        )
        summary = CycleSummary(cycle=cycle, income=Decimal("100"), expense=Decimal("30.5"))
        assert summary.net == Decimal("69.5")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            description="Loaded ledger",
        )
        assert event.event_type == AuditEventType.DATA_LOADED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_DEPOSIT,
            user_id="u",
            description="Deposit",
            details={"amount": "20"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "goal_deposit"
        assert log_dict["user_id"] == "u"
        assert log_dict["details"]["amount"] == "20"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.OBLIGATION_PAID,
            user_id="u",
            description="Obligation paid",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "obligation_paid"
        assert row[4] == "u"
        assert row[11] == "True"

    def test_builder_transaction_added(self):
        transaction_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.transaction_added(
            user_id="u",
            transaction_id=transaction_id,
            transaction_type="expense",
            amount=Decimal("30.5"),
            category="food",
            balance=Decimal("69.5"),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.entity_type == "transaction"
        assert event.entity_id == transaction_id
        assert event.correlation_id == correlation_id
        assert event.details["balance_after"] == "69.5"
        assert event.is_user_action is True

    def test_builder_payment_skipped_is_warning(self):
        event = AuditEventBuilder.obligation_payment_skipped(user_id="u", obligation_id=uuid4())
        assert event.severity == AuditSeverity.WARNING

    def test_builder_storage_error(self):
        event = AuditEventBuilder.storage_error(
            operation="add_goal",
            error_message="quota exceeded",
            user_id="u",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"
        assert event.details["operation"] == "add_goal"


class TestCategories:
    """Tests for the category enum and its display labels."""

    def test_all_categories_exist(self):
        expected = [
            "food", "fuel", "bills", "shopping", "health",
            "education", "entertainment", "transport", "salary", "other",
        ]
        for cat in expected:
            assert TransactionCategory(cat) is not None

    def test_every_category_has_label(self):
        for category in TransactionCategory:
            assert CATEGORY_LABELS[category]["label"]
            assert CATEGORY_LABELS[category]["icon"]

    def test_bills_label(self):
        assert CATEGORY_LABELS[TransactionCategory.BILLS]["label"] == "فواتير"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
