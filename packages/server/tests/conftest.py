"""
Shared fixtures: in-memory SQLite store, record factories, fake channels.
"""

from __future__ import annotations

import os

# Settings are cached on first import; point them at SQLite before any app import.
os.environ.setdefault("HEARTH_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("HEARTH_SECRET_KEY", "test-secret-key-with-at-least-32-bytes!")
os.environ.setdefault("HEARTH_LOG_FORMAT", "text")

import uuid
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.errors import DispatchError
from app.core.soft_delete import SoftDeleteStore
from app.core.store import Store
from app.models import (
    Chore,
    ChoreAssignment,
    Expense,
    ExpenseSplit,
    Household,
    HouseholdMember,
    NotificationSettings,
    RecurrenceRule,
    Thread,
    User,
)
from app.models.base import utcnow


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session) -> SoftDeleteStore:
    return SoftDeleteStore(Store(session))


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

class Factory:
    """Creates rows through the store (flushed; tests commit when another session must see them)."""

    def __init__(self, store: SoftDeleteStore):
        self.store = store

    async def user(self, name: str = "Alex", email: Optional[str] = "", **fields: Any) -> User:
        """An empty email gets a unique generated address; pass None for no email."""
        if email == "":
            email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
        return await self.store.create(User, {"name": name, "email": email, **fields})

    async def household(self, name: str = "Maple House") -> Household:
        return await self.store.create(Household, {"name": name})

    async def member(
        self,
        household: Household,
        user: User,
        role: str = "MEMBER",
        *,
        is_accepted: bool = True,
        left_at: Optional[datetime] = None,
    ) -> HouseholdMember:
        return await self.store.create(
            HouseholdMember,
            {
                "household_id": household.id,
                "user_id": user.id,
                "role": role,
                "is_accepted": is_accepted,
                "left_at": left_at,
            },
        )

    async def settings(self, user: User, **flags: bool) -> NotificationSettings:
        return await self.store.create(NotificationSettings, {"user_id": user.id, **flags})

    async def chore(
        self,
        household: Household,
        title: str = "Take out trash",
        *,
        due_in: Optional[timedelta] = None,
        assignees: tuple = (),
        **fields: Any,
    ) -> Chore:
        due_date = utcnow() + due_in if due_in is not None else None
        chore = await self.store.create(
            Chore,
            {"household_id": household.id, "title": title, "due_date": due_date, **fields},
        )
        for user in assignees:
            await self.store.create(ChoreAssignment, {"chore_id": chore.id, "user_id": user.id})
        return chore

    async def recurrence(self, frequency: str = "WEEKLY") -> RecurrenceRule:
        return await self.store.create(RecurrenceRule, {"frequency": frequency})

    async def expense(
        self,
        household: Household,
        creator: User,
        description: str = "Groceries",
        amount: float = 60.0,
        *,
        due_in: Optional[timedelta] = None,
        splits: tuple = (),
    ) -> Expense:
        due_date = utcnow() + due_in if due_in is not None else None
        expense = await self.store.create(
            Expense,
            {
                "household_id": household.id,
                "created_by_id": creator.id,
                "description": description,
                "amount": amount,
                "due_date": due_date,
            },
        )
        for user, share in splits:
            await self.store.create(
                ExpenseSplit, {"expense_id": expense.id, "user_id": user.id, "amount": share}
            )
        return expense

    async def thread(self, household: Household, author: User, title: str = "General") -> Thread:
        return await self.store.create(
            Thread, {"household_id": household.id, "author_id": author.id, "title": title}
        )


@pytest.fixture
def factory(store) -> Factory:
    return Factory(store)


# ---------------------------------------------------------------------------
# Fake channels
# ---------------------------------------------------------------------------

class FakeEmailSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, text: str) -> bool:
        if self.fail:
            raise DispatchError("smtp down", channel="email")
        self.sent.append({"to": to, "subject": subject, "text": text})
        return True


class FakePushSender:
    def __init__(self, fail: bool = False, invalid: tuple = (), disabled: bool = False):
        self.fail = fail
        self.disabled = disabled
        self.invalid = set(invalid)
        self.calls: list[dict] = []

    async def send(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: Optional[dict] = None,
        *,
        tokens: list[str],
    ) -> Optional[list[str]]:
        if self.disabled:
            return None
        if self.fail:
            raise DispatchError("gateway down", channel="push")
        self.calls.append(
            {"user_id": user_id, "title": title, "body": body, "data": data, "tokens": list(tokens)}
        )
        return [token for token in tokens if token in self.invalid]


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def fakes() -> SimpleNamespace:
    """Fake channel classes, for tests that need a failing or token-rejecting sender."""
    return SimpleNamespace(Email=FakeEmailSender, Push=FakePushSender)
