"""
Background job: dispatch unread notifications over email and push.

Each pass loads every unread notification with its user and the user's
notification settings, checks the type against the user's preferences and,
when enabled, sends and marks the notification read. A notification whose
dispatch is disabled, or whose user has no settings record, stays unread.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.orm import selectinload

from app.models.notification import Notification
from app.models.user import User
from app.services.delivery import NotificationDelivery, Recipient, should_send, subject_for
from app.services.notifications import prune_device_tokens
from app.tasks.base import JobResult, SessionFactory, soft_store

log = structlog.get_logger()

JOB_NAME = "notification_dispatch"


@dataclass
class _Pending:
    notification_id: uuid.UUID
    type: str
    message: str
    recipient: Recipient


class NotificationDispatchJob:
    def __init__(self, session_factory: SessionFactory, delivery: NotificationDelivery):
        self._session_factory = session_factory
        self._delivery = delivery

    async def run(self) -> JobResult:
        result = JobResult(JOB_NAME)

        async with self._session_factory() as session:
            store = soft_store(session)
            notifications = await store.find_many(
                Notification,
                {"is_read": False},
                order_by=[Notification.created_at],
                options=[selectinload(Notification.user).selectinload(User.notification_settings)],
            )
            pending = []
            for notification in notifications:
                user = notification.user
                settings = user.notification_settings[0] if user.notification_settings else None
                pending.append(
                    _Pending(
                        notification.id,
                        notification.type,
                        notification.message,
                        Recipient.from_user(user, settings),
                    )
                )

            for item in pending:
                result.processed += 1
                recipient = item.recipient

                if recipient.preferences is None:
                    log.warning("notification.no_settings", user_id=str(recipient.user_id))
                    result.skipped += 1
                    continue
                if not should_send(item.type, recipient.preferences):
                    log.info(
                        "notification.disabled",
                        user_id=str(recipient.user_id),
                        type=item.type,
                    )
                    result.skipped += 1
                    continue

                try:
                    report = await self._delivery.dispatch(
                        recipient,
                        subject_for(item.type),
                        item.message,
                        {"type": item.type},
                    )
                    if report.invalid_tokens:
                        await prune_device_tokens(store, recipient.user_id, report.invalid_tokens)
                    await store.update(Notification, {"id": item.notification_id}, {"is_read": True})
                    await store.commit()
                    result.succeeded += 1
                except Exception:
                    await store.rollback()
                    result.failed += 1
                    log.exception(
                        "notification.dispatch_failed",
                        notification_id=str(item.notification_id),
                    )

        log.info(JOB_NAME + ".completed", **result.as_dict())
        return result
