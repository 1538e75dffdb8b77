"""
Background job: remind assignees and payers of chores and expenses coming due.

Looks ahead a fixed window (24h by default) from the start of the run. Every
(chore, assignee) and (expense, split) pair gets a persisted notification,
an email when the user has an address and a push when they have devices.
Reminders are sent regardless of notification preferences, and at most once
per pair and due date: a pair that already has its reminder row is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy.orm import selectinload

from app.models.base import utcnow
from app.models.chore import Chore, ChoreAssignment
from app.models.expense import Expense, ExpenseSplit
from app.models.notification import Notification
from app.services.delivery import NotificationDelivery, Recipient
from app.tasks.base import JobResult, SessionFactory, soft_store
from hearth_shared.schemas.common import ChoreStatus, NotificationType

log = structlog.get_logger()

JOB_NAME = "reminders"
DEFAULT_WINDOW = timedelta(hours=24)

CHORE_SUBJECT = "Chore Reminder"
EXPENSE_SUBJECT = "Expense Reminder"
CHORE_PUSH_TYPE = "CHORE_REMINDER"
EXPENSE_PUSH_TYPE = "EXPENSE_REMINDER"


def format_due_date(value: Optional[datetime]) -> str:
    """Render like ``Mon Oct 19 2026``."""
    return value.strftime("%a %b %d %Y") if value else "No due date"


def chore_reminder_message(title: str, household_name: str, due_date: datetime) -> str:
    return (
        f'Reminder: Chore "{title}" in household "{household_name}" '
        f"is due on {format_due_date(due_date)}."
    )


def expense_reminder_message(
    amount: float, description: str, household_name: str, due_date: Optional[datetime]
) -> str:
    return (
        f'Reminder: You owe ${amount:.2f} for expense "{description}" '
        f'in household "{household_name}" due on {format_due_date(due_date)}.'
    )


@dataclass
class _Reminder:
    recipient: Recipient
    type: NotificationType
    subject: str
    message: str
    push_type: str
    source_id: str


class ReminderJob:
    def __init__(
        self,
        session_factory: SessionFactory,
        delivery: NotificationDelivery,
        *,
        window: timedelta = DEFAULT_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._delivery = delivery
        self._window = window
        self._clock = clock

    async def _chore_reminders(self, store, now: datetime, horizon: datetime, result: JobResult) -> list[_Reminder]:
        chores = await store.find_many(
            Chore,
            {
                "due_date__gte": now,
                "due_date__lte": horizon,
                "status__ne": ChoreStatus.COMPLETED.value,
            },
            options=[
                selectinload(Chore.assignments).selectinload(ChoreAssignment.user),
                selectinload(Chore.household),
            ],
        )

        reminders = []
        for chore in chores:
            for assignment in chore.assignments:
                user = assignment.user
                if user is None or user.deleted_at is not None:
                    result.skipped += 1
                    continue
                reminders.append(
                    _Reminder(
                        recipient=Recipient.from_user(user),
                        type=NotificationType.CHORE_ASSIGNED,
                        subject=CHORE_SUBJECT,
                        message=chore_reminder_message(chore.title, chore.household.name, chore.due_date),
                        push_type=CHORE_PUSH_TYPE,
                        source_id=str(chore.id),
                    )
                )
        return reminders

    async def _expense_reminders(self, store, now: datetime, horizon: datetime, result: JobResult) -> list[_Reminder]:
        expenses = await store.find_many(
            Expense,
            {"due_date__gte": now, "due_date__lte": horizon},
            options=[
                selectinload(Expense.splits).selectinload(ExpenseSplit.user),
                selectinload(Expense.household),
            ],
        )

        reminders = []
        for expense in expenses:
            for split in expense.splits:
                user = split.user
                if user is None or user.deleted_at is not None:
                    result.skipped += 1
                    continue
                reminders.append(
                    _Reminder(
                        recipient=Recipient.from_user(user),
                        type=NotificationType.PAYMENT_REMINDER,
                        subject=EXPENSE_SUBJECT,
                        message=expense_reminder_message(
                            split.amount, expense.description, expense.household.name, expense.due_date
                        ),
                        push_type=EXPENSE_PUSH_TYPE,
                        source_id=str(expense.id),
                    )
                )
        return reminders

    async def _already_reminded(self, store, reminder: _Reminder) -> bool:
        """The message names the item and its due date, so an equal row means this pair was reminded."""
        existing = await store.find_first(
            Notification,
            {
                "user_id": reminder.recipient.user_id,
                "type": reminder.type.value,
                "message": reminder.message,
            },
        )
        return existing is not None

    async def run(self) -> JobResult:
        result = JobResult(JOB_NAME)
        now = self._clock()
        horizon = now + self._window

        async with self._session_factory() as session:
            store = soft_store(session)
            reminders = await self._chore_reminders(store, now, horizon, result)
            reminders += await self._expense_reminders(store, now, horizon, result)

            for reminder in reminders:
                result.processed += 1
                if await self._already_reminded(store, reminder):
                    result.skipped += 1
                    continue
                try:
                    await self._delivery.deliver(
                        store,
                        reminder.recipient,
                        reminder.type,
                        reminder.message,
                        subject=reminder.subject,
                        data={"type": reminder.push_type},
                        check_preferences=False,
                    )
                    await store.commit()
                    result.succeeded += 1
                except Exception:
                    await store.rollback()
                    result.failed += 1
                    log.exception(
                        "reminders.failed",
                        source_id=reminder.source_id,
                        user_id=str(reminder.recipient.user_id),
                    )

        log.info(JOB_NAME + ".completed", **result.as_dict())
        return result
