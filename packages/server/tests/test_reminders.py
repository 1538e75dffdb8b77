"""
Tests for ReminderJob.

Covers:
- Chore reminder scenario: one assignee, email only
- Window, status and soft-delete filtering
- Expense split reminders and message wording
- Reminders ignore notification preferences
- One failing reminder does not abort the run
- Repeated runs inside the window remind each pair once
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from app.core.store import Store
from app.models import Chore, Notification
from app.services.delivery import NotificationDelivery
from app.tasks.reminders import (
    ReminderJob,
    chore_reminder_message,
    expense_reminder_message,
    format_due_date,
)

NOW = datetime(2026, 10, 19, 8, 0, 0)


async def notifications(session_factory) -> list[Notification]:
    async with session_factory() as session:
        return await Store(session).find_many(Notification, order_by=[Notification.message])


@pytest.fixture
def job(session_factory, email_sender, push_sender):
    return ReminderJob(
        session_factory,
        NotificationDelivery(email_sender, push_sender),
        clock=lambda: NOW,
    )


# ---------------------------------------------------------------------------
# Unit Tests: message formatting
# ---------------------------------------------------------------------------

class TestMessages:
    def test_format_due_date(self):
        assert format_due_date(datetime(2026, 10, 19, 18, 0)) == "Mon Oct 19 2026"
        assert format_due_date(datetime(2026, 11, 5)) == "Thu Nov 05 2026"
        assert format_due_date(None) == "No due date"

    def test_chore_message(self):
        msg = chore_reminder_message("Dishes", "Maple House", datetime(2026, 10, 19, 18, 0))
        assert msg == 'Reminder: Chore "Dishes" in household "Maple House" is due on Mon Oct 19 2026.'

    def test_expense_message(self):
        msg = expense_reminder_message(12.5, "Groceries", "Maple House", datetime(2026, 10, 20, 9, 0))
        assert msg == (
            'Reminder: You owe $12.50 for expense "Groceries" in household "Maple House" '
            "due on Tue Oct 20 2026."
        )


# ---------------------------------------------------------------------------
# Integration Tests: chores
# ---------------------------------------------------------------------------

class TestChoreReminders:
    @pytest.mark.asyncio
    async def test_single_assignee_with_email_only(self, job, store, factory, session_factory, email_sender, push_sender):
        household = await factory.household("Maple House")
        user = await factory.user("Robin")
        await factory.chore(household, "Dishes", assignees=(user,), due_date=NOW + timedelta(hours=10))
        await store.commit()

        result = await job.run()

        rows = await notifications(session_factory)
        assert len(rows) == 1
        assert rows[0].user_id == user.id
        assert rows[0].type == "CHORE_ASSIGNED"
        assert rows[0].message == 'Reminder: Chore "Dishes" in household "Maple House" is due on Mon Oct 19 2026.'
        assert email_sender.sent == [{"to": user.email, "subject": "Chore Reminder", "text": rows[0].message}]
        assert push_sender.calls == []
        assert result.succeeded == 1

    @pytest.mark.asyncio
    async def test_push_payload_type(self, job, store, factory, push_sender):
        household = await factory.household()
        user = await factory.user(email=None, device_tokens=["tok"])
        await factory.chore(household, assignees=(user,), due_date=NOW + timedelta(hours=1))
        await store.commit()

        await job.run()

        assert push_sender.calls[0]["title"] == "Chore Reminder"
        assert push_sender.calls[0]["data"] == {"type": "CHORE_REMINDER"}

    @pytest.mark.asyncio
    async def test_one_reminder_per_assignee(self, job, store, factory, session_factory, email_sender):
        household = await factory.household()
        a = await factory.user("A")
        b = await factory.user("B")
        await factory.chore(household, assignees=(a, b), due_date=NOW + timedelta(hours=3))
        await store.commit()

        await job.run()

        assert sorted(row.user_id for row in await notifications(session_factory)) == sorted([a.id, b.id])
        assert len(email_sender.sent) == 2

    @pytest.mark.asyncio
    async def test_filters_window_status_and_deleted(self, job, store, factory, session_factory):
        household = await factory.household()
        user = await factory.user()
        await factory.chore(household, "Done", assignees=(user,), due_date=NOW + timedelta(hours=2), status="COMPLETED")
        await factory.chore(household, "Far", assignees=(user,), due_date=NOW + timedelta(hours=30))
        await factory.chore(household, "Past", assignees=(user,), due_date=NOW - timedelta(hours=1))
        deleted = await factory.chore(household, "Gone", assignees=(user,), due_date=NOW + timedelta(hours=2))
        await store.delete(Chore, {"id": deleted.id})
        await store.commit()

        result = await job.run()

        assert await notifications(session_factory) == []
        assert result.processed == 0

    @pytest.mark.asyncio
    async def test_preferences_are_not_consulted(self, job, store, factory, session_factory, email_sender):
        household = await factory.household()
        user = await factory.user()
        await factory.settings(user, chore_notif=False, reminders_notif=False)
        await factory.chore(household, assignees=(user,), due_date=NOW + timedelta(hours=2))
        await store.commit()

        await job.run()

        assert len(email_sender.sent) == 1


# ---------------------------------------------------------------------------
# Integration Tests: expenses
# ---------------------------------------------------------------------------

class TestExpenseReminders:
    @pytest.mark.asyncio
    async def test_split_reminders(self, job, store, factory, session_factory, email_sender, push_sender):
        household = await factory.household("Maple House")
        payer = await factory.user("Payer")
        owes = await factory.user("Owes", device_tokens=["tok"])
        expense = await factory.expense(household, payer, "Groceries", 25.0, splits=((owes, 12.5),))
        expense.due_date = NOW + timedelta(hours=20)
        await store.commit()

        await job.run()

        rows = await notifications(session_factory)
        assert [(r.user_id, r.type) for r in rows] == [(owes.id, "PAYMENT_REMINDER")]
        assert rows[0].message == (
            'Reminder: You owe $12.50 for expense "Groceries" in household "Maple House" '
            "due on Tue Oct 20 2026."
        )
        assert email_sender.sent[0]["subject"] == "Expense Reminder"
        assert push_sender.calls[0]["data"] == {"type": "EXPENSE_REMINDER"}

    @pytest.mark.asyncio
    async def test_expense_outside_window_ignored(self, job, store, factory, session_factory):
        household = await factory.household()
        payer = await factory.user()
        expense = await factory.expense(household, payer, splits=((payer, 10.0),))
        expense.due_date = NOW + timedelta(days=3)
        await store.commit()

        await job.run()

        assert await notifications(session_factory) == []


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------

class _ExplodingEmail:
    """Raises an unexpected error for one address."""

    def __init__(self, bad_address: str):
        self.bad_address = bad_address
        self.sent: list[str] = []

    async def send(self, to: str, subject: str, text: str) -> bool:
        if to == self.bad_address:
            raise RuntimeError("unexpected")
        self.sent.append(to)
        return True


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_failure_does_not_abort_run(self, store, factory, session_factory, push_sender):
        household = await factory.household()
        bad = await factory.user("Bad")
        good = await factory.user("Good")
        await factory.chore(household, "First", assignees=(bad,), due_date=NOW + timedelta(hours=1))
        await factory.chore(household, "Second", assignees=(good,), due_date=NOW + timedelta(hours=2))
        await store.commit()

        email = _ExplodingEmail(bad.email)
        job = ReminderJob(session_factory, NotificationDelivery(email, push_sender), clock=lambda: NOW)

        result = await job.run()

        assert result.failed == 1
        assert result.succeeded == 1
        assert not result.ok
        assert email.sent == [good.email]
        rows = await notifications(session_factory)
        assert [r.user_id for r in rows] == [good.id]


# ---------------------------------------------------------------------------
# Repeated runs
# ---------------------------------------------------------------------------

class TestRepeatedRuns:
    @pytest.mark.asyncio
    async def test_hourly_reruns_remind_once(self, store, factory, session_factory, email_sender, push_sender):
        household = await factory.household()
        user = await factory.user()
        await factory.chore(household, "Dishes", assignees=(user,), due_date=NOW + timedelta(hours=10))
        await store.commit()

        results = []
        for hour in range(10):
            job = ReminderJob(
                session_factory,
                NotificationDelivery(email_sender, push_sender),
                clock=lambda hour=hour: NOW + timedelta(hours=hour),
            )
            results.append(await job.run())

        assert len(await notifications(session_factory)) == 1
        assert len(email_sender.sent) == 1
        assert results[0].succeeded == 1
        assert all(r.succeeded == 0 and r.skipped == 1 for r in results[1:])

    @pytest.mark.asyncio
    async def test_new_due_date_is_reminded_again(self, job, store, factory, session_factory, email_sender):
        household = await factory.household()
        user = await factory.user()
        chore = await factory.chore(household, "Dishes", assignees=(user,), due_date=NOW + timedelta(hours=2))
        await store.commit()

        await job.run()
        chore.due_date = NOW + timedelta(hours=20)
        await store.commit()
        await job.run()

        assert len(await notifications(session_factory)) == 2
        assert len(email_sender.sent) == 2
