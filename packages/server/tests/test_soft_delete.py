"""
Tests for the data-access layer and soft-delete interception.

Covers:
- Filter compilation (operators, unknown fields)
- Soft-deleted rows hidden from find_many / find_first / find_unique
- Caller deleted_at filters overridden; .raw still sees deleted rows
- delete / delete_many stamp deleted_at on soft-deletable models
- Models without deleted_at are physically deleted
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import pytest

from app.core.errors import NotFoundError, ValidationError
from app.core.soft_delete import SoftDeleteStore, exclude_deleted, is_soft_deletable
from app.core.store import compile_filter, split_lookup
from app.models import Chore, Household, HouseholdMember, Notification, User


FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0)


# ---------------------------------------------------------------------------
# Unit Tests: filter helpers
# ---------------------------------------------------------------------------

class TestFilterHelpers:
    def test_split_lookup_default_operator(self):
        assert split_lookup("title") == ("title", "eq")

    def test_split_lookup_with_operator(self):
        assert split_lookup("due_date__gte") == ("due_date", "gte")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            compile_filter(Chore, {"colour": "red"})

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            compile_filter(Chore, {"title__like": "x"})

    def test_is_soft_deletable(self):
        assert is_soft_deletable(Chore)
        assert is_soft_deletable(User)
        assert not is_soft_deletable(Notification)
        assert not is_soft_deletable(HouseholdMember)

    def test_exclude_deleted_replaces_caller_lookups(self):
        where = {"title": "x", "deleted_at__isnull": False, "deleted_at__gte": FIXED_NOW}
        assert exclude_deleted(where) == {"title": "x", "deleted_at": None}

    def test_exclude_deleted_does_not_mutate_input(self):
        where = {"deleted_at": FIXED_NOW}
        exclude_deleted(where)
        assert where == {"deleted_at": FIXED_NOW}


# ---------------------------------------------------------------------------
# Integration Tests: reads
# ---------------------------------------------------------------------------

class TestSoftDeleteReads:
    @pytest.mark.asyncio
    async def test_deleted_row_invisible_to_find_many(self, store, factory):
        household = await factory.household()
        kept = await factory.chore(household, "Dishes")
        gone = await factory.chore(household, "Laundry")

        await store.delete(Chore, {"id": gone.id})

        chores = await store.find_many(Chore, {"household_id": household.id})
        assert [c.id for c in chores] == [kept.id]

    @pytest.mark.asyncio
    async def test_deleted_row_invisible_to_find_first_and_unique(self, store, factory):
        household = await factory.household()
        chore = await factory.chore(household)

        await store.delete(Chore, {"id": chore.id})

        assert await store.find_first(Chore, {"id": chore.id}) is None
        assert await store.find_unique(Chore, {"id": chore.id}) is None

    @pytest.mark.asyncio
    async def test_caller_deleted_at_filter_is_overridden(self, store, factory):
        household = await factory.household()
        chore = await factory.chore(household)
        await store.delete(Chore, {"id": chore.id})

        found = await store.find_many(Chore, {"deleted_at__isnull": False})
        assert found == []

    @pytest.mark.asyncio
    async def test_raw_store_sees_deleted_rows(self, store, factory):
        household = await factory.household()
        chore = await factory.chore(household)
        await store.delete(Chore, {"id": chore.id})

        row = await store.raw.find_unique(Chore, {"id": chore.id})
        assert row is not None
        assert row.deleted_at is not None

    @pytest.mark.asyncio
    async def test_operators(self, store, factory):
        household = await factory.household()
        soon = await factory.chore(household, "Soon", due_in=timedelta(hours=2))
        later = await factory.chore(household, "Later", due_in=timedelta(days=3))
        await factory.chore(household, "Undated")

        undated = await store.find_many(Chore, {"due_date": None})
        assert [c.title for c in undated] == ["Undated"]

        dated = await store.find_many(Chore, {"due_date__ne": None}, order_by=[Chore.due_date])
        assert [c.id for c in dated] == [soon.id, later.id]

        by_title = await store.find_many(Chore, {"title__in": ["Soon", "Later"], "title__not_in": ["Later"]})
        assert [c.id for c in by_title] == [soon.id]


# ---------------------------------------------------------------------------
# Integration Tests: deletes
# ---------------------------------------------------------------------------

class TestSoftDeleteWrites:
    @pytest.mark.asyncio
    async def test_delete_stamps_deleted_at_with_clock(self, factory):
        store = SoftDeleteStore(factory.store.raw, clock=lambda: FIXED_NOW)
        household = await factory.household()
        chore = await factory.chore(household)

        await store.delete(Chore, {"id": chore.id})

        row = await store.raw.find_unique(Chore, {"id": chore.id})
        assert row.deleted_at == FIXED_NOW

    @pytest.mark.asyncio
    async def test_delete_many_soft_deletes_matching_rows(self, store, factory):
        household = await factory.household()
        await factory.chore(household, "A")
        await factory.chore(household, "B")
        other = await factory.household("Other")
        survivor = await factory.chore(other, "C")

        count = await store.delete_many(Chore, {"household_id": household.id})

        assert count == 2
        assert await store.find_many(Chore, {"household_id": household.id}) == []
        assert len(await store.raw.find_many(Chore, {"household_id": household.id})) == 2
        assert [c.id for c in await store.find_many(Chore)] == [survivor.id]

    @pytest.mark.asyncio
    async def test_hard_delete_for_models_without_deleted_at(self, store, factory):
        user = await factory.user()
        notification = await store.create(
            Notification, {"user_id": user.id, "type": "NEW_MESSAGE", "message": "hi"}
        )

        await store.delete(Notification, {"id": notification.id})

        assert await store.raw.find_unique(Notification, {"id": notification.id}) is None

    @pytest.mark.asyncio
    async def test_delete_missing_row_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            await store.delete(Chore, {"id": uuid.uuid4()})
        with pytest.raises(NotFoundError):
            await store.delete(Notification, {"id": uuid.uuid4()})

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, store, factory):
        await store.commit()
        with pytest.raises(RuntimeError):
            async with store.transaction():
                await factory.household("Doomed")
                raise RuntimeError("boom")

        assert await store.find_many(Household) == []
