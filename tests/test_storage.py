"""
Tests for the storage layer.

The in-memory backend is exercised against the store contract. The Google
Sheets backend is covered through its row conversion helpers and a fake
worksheet; nothing here talks to the network.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from gspread.utils import rowcol_to_a1

from thara.models.ledger import (
    Goal,
    Obligation,
    Transaction,
    TransactionCategory,
    TransactionType,
    UserProfile,
)
from thara.services.storage import (
    DuplicateError,
    InMemoryEntityStore,
    InMemoryProfileStore,
    InvalidFieldError,
    NotFoundError,
)
from thara.services.storage.google_sheets import (
    GoogleSheetsEntityStore,
    GoogleSheetsProfileStore,
    model_columns,
    record_to_row,
    row_to_record,
)
from thara.services.storage.interface import apply_update, sort_records


def make_transaction(user_id="u", amount="10", day=1, **kwargs) -> Transaction:
    return Transaction(
        type=kwargs.pop("type", TransactionType.EXPENSE),
        amount=Decimal(amount),
        category=kwargs.pop("category", TransactionCategory.FOOD),
        date=datetime(2024, 3, day),
        user_id=user_id,
        **kwargs,
    )


def make_obligation(user_id="u") -> Obligation:
    return Obligation(name="Rent", amount=Decimal("100"), user_id=user_id, cycle_id="2024-03")


class TestInMemoryEntityStore:
    """Tests for the generic record collection."""

    @pytest.mark.asyncio
    async def test_create_and_get(self):
        store = InMemoryEntityStore[Transaction]()
        tx = make_transaction()
        assert await store.create(tx) == tx.id
        assert await store.get(tx.id) == tx

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        store = InMemoryEntityStore[Transaction]()
        assert await store.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_duplicate_create_rejected(self):
        store = InMemoryEntityStore[Transaction]()
        tx = make_transaction()
        await store.create(tx)
        with pytest.raises(DuplicateError):
            await store.create(tx)

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self):
        store = InMemoryEntityStore[Goal]()
        goal = Goal(name="Car", target_amount=Decimal("100"), user_id="u")
        await store.create(goal)
        fetched = await store.get(goal.id)
        fetched.current_amount = Decimal("50")
        assert (await store.get(goal.id)).current_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_update(self):
        store = InMemoryEntityStore[Obligation]()
        obligation = make_obligation()
        await store.create(obligation)
        updated = await store.update(obligation.id, {"paid": True})
        assert updated.paid is True
        assert (await store.get(obligation.id)).paid is True

    @pytest.mark.asyncio
    async def test_update_missing_raises(self):
        store = InMemoryEntityStore[Obligation]()
        with pytest.raises(NotFoundError):
            await store.update(uuid4(), {"paid": True})

    @pytest.mark.asyncio
    async def test_transactions_are_immutable(self):
        store = InMemoryEntityStore[Transaction]()
        tx = make_transaction()
        await store.create(tx)
        with pytest.raises(InvalidFieldError):
            await store.update(tx.id, {"amount": Decimal("1")})

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryEntityStore[Transaction]()
        tx = make_transaction()
        await store.create(tx)
        assert await store.delete(tx.id) is True
        assert await store.delete(tx.id) is False

    @pytest.mark.asyncio
    async def test_list_by_user_filters_and_orders(self):
        store = InMemoryEntityStore[Transaction]()
        first = make_transaction(day=1)
        third = make_transaction(day=3)
        second = make_transaction(day=2)
        other = make_transaction(user_id="someone-else", day=4)
        for tx in (first, third, second, other):
            await store.create(tx)

        newest_first = await store.list_by_user("u", order_by="date", descending=True)
        assert [t.id for t in newest_first] == [third.id, second.id, first.id]

        inserted = await store.list_by_user("u")
        assert [t.id for t in inserted] == [first.id, third.id, second.id]


class TestInMemoryProfileStore:
    """Tests for profiles and balance adjustment."""

    @pytest.mark.asyncio
    async def test_adjust_balance_accumulates(self):
        store = InMemoryProfileStore()
        await store.create_profile(UserProfile(uid="u", email="u@example.com"))
        assert await store.adjust_balance("u", Decimal("100")) == Decimal("100")
        assert await store.adjust_balance("u", Decimal("-30.5")) == Decimal("69.5")
        assert (await store.get_profile("u")).balance == Decimal("69.5")

    @pytest.mark.asyncio
    async def test_concurrent_adjustments_are_not_lost(self):
        store = InMemoryProfileStore()
        await store.create_profile(UserProfile(uid="u", email="u@example.com"))
        await asyncio.gather(*(store.adjust_balance("u", Decimal("1")) for _ in range(50)))
        assert (await store.get_profile("u")).balance == Decimal("50")

    @pytest.mark.asyncio
    async def test_adjust_missing_profile_raises(self):
        store = InMemoryProfileStore()
        with pytest.raises(NotFoundError):
            await store.adjust_balance("nobody", Decimal("1"))

    @pytest.mark.asyncio
    async def test_balance_not_updatable_directly(self):
        store = InMemoryProfileStore()
        await store.create_profile(UserProfile(uid="u", email="u@example.com"))
        with pytest.raises(InvalidFieldError):
            await store.update_profile("u", {"balance": Decimal("999")})

    @pytest.mark.asyncio
    async def test_duplicate_profile_rejected(self):
        store = InMemoryProfileStore()
        await store.create_profile(UserProfile(uid="u", email="u@example.com"))
        with pytest.raises(DuplicateError):
            await store.create_profile(UserProfile(uid="u", email="u@example.com"))


class TestUpdateHelpers:
    """Tests for apply_update and sort_records."""

    def test_unknown_field(self):
        with pytest.raises(InvalidFieldError, match="Unknown"):
            apply_update(make_obligation(), {"colour": "red"})

    def test_locked_field(self):
        with pytest.raises(InvalidFieldError, match="cannot be updated"):
            apply_update(make_obligation(), {"user_id": "other"})

    def test_invalid_value(self):
        with pytest.raises(InvalidFieldError):
            apply_update(make_obligation(), {"amount": Decimal("-1")})

    def test_sort_unknown_field(self):
        with pytest.raises(InvalidFieldError):
            sort_records([make_transaction()], "colour", False)

    def test_sort_without_field_reverses_when_descending(self):
        records = [make_transaction(day=d) for d in (1, 2, 3)]
        assert sort_records(records, None, True) == list(reversed(records))


class TestSheetRows:
    """Tests for the Google Sheets row conversion."""

    def test_key_column_first(self):
        assert model_columns(Transaction)[0] == "id"
        assert model_columns(UserProfile)[0] == "uid"

    def test_row_values_are_strings(self):
        obligation = make_obligation()
        row = record_to_row(obligation)
        columns = model_columns(Obligation)
        assert row[0] == str(obligation.id)
        assert row[columns.index("paid")] == "false"
        assert all(isinstance(value, str) for value in row)

    def test_none_becomes_empty_cell(self):
        tx = make_transaction()
        row = record_to_row(tx)
        assert row[model_columns(Transaction).index("operation_key")] == ""

    def test_row_converts_back(self):
        tx = make_transaction(amount="30.50", note="lunch", operation_key="obligation:x:2024-03")
        restored = row_to_record(Transaction, record_to_row(tx))
        assert restored == tx

    def test_paid_flag_restored(self):
        obligation = make_obligation().model_copy(update={"paid": True})
        restored = row_to_record(Obligation, record_to_row(obligation))
        assert restored.paid is True

    def test_short_row_uses_defaults(self):
        obligation = make_obligation()
        row = record_to_row(obligation)
        columns = model_columns(Obligation)
        row = row[: columns.index("paid")] + [""] + row[columns.index("paid") + 1:]
        restored = row_to_record(Obligation, row)
        assert restored.paid is False


class FakeWorksheet:
    """Records writes; serves rows like gspread's get_all_values."""

    def __init__(self, rows: list[list[str]]):
        self.rows = rows
        self.updates: list[dict] = []

    def get_all_values(self) -> list[list[str]]:
        return self.rows

    def update(self, **kwargs) -> None:
        self.updates.append(kwargs)


class FakeSheetsClient:
    def __init__(self, worksheet: FakeWorksheet, settings=None):
        self.worksheet = worksheet
        self.settings = settings

    def get_worksheet(self, title, columns, rows=1000):
        return self.worksheet


class TestSheetWrites:
    """Tests for how the Sheets stores write updated rows."""

    @pytest.mark.asyncio
    async def test_update_writes_whole_row_raw(self):
        obligation = make_obligation()
        sheet = FakeWorksheet([model_columns(Obligation), record_to_row(obligation)])
        store = GoogleSheetsEntityStore(Obligation, "Obligations", FakeSheetsClient(sheet))

        updated = await store.update(obligation.id, {"paid": True})

        assert updated.paid is True
        assert len(sheet.updates) == 1
        write = sheet.updates[0]
        assert write["range_name"] == "A2"
        assert write["value_input_option"] == "RAW"
        assert write["values"] == [record_to_row(updated)]
        assert "2024-03" in write["values"][0]

    @pytest.mark.asyncio
    async def test_adjust_balance_writes_raw_cell(self):
        profile = UserProfile(uid="u", email="u@example.com", balance=Decimal("10"))
        sheet = FakeWorksheet([model_columns(UserProfile), record_to_row(profile)])
        client = FakeSheetsClient(sheet, settings=SimpleNamespace(users_sheet_name="Users"))
        store = GoogleSheetsProfileStore(client)

        assert await store.adjust_balance("u", Decimal("-2.5")) == Decimal("7.5")

        column = model_columns(UserProfile).index("balance") + 1
        write = sheet.updates[0]
        assert write["range_name"] == rowcol_to_a1(2, column)
        assert write["values"] == [["7.5"]]
        assert write["value_input_option"] == "RAW"
