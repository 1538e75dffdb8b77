"""
Notification delivery shared by the background jobs.

``NotificationDelivery.deliver`` is the one path that turns "tell this user
something" into a persisted ``Notification`` row plus email and push attempts.
A failing channel is logged and reported; it never blocks the other channel.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import structlog

from app.core.errors import DispatchError
from app.core.soft_delete import SoftDeleteStore
from app.models.notification import Notification
from app.models.user import User
from app.services.notifications import prune_device_tokens
from hearth_shared.schemas.common import NotificationType
from hearth_shared.schemas.notifications import NotificationPreferences

log = structlog.get_logger()

# Preference flags that gate each notification type; any one enabled flag is enough.
PREFERENCE_FLAGS: dict[str, tuple[str, ...]] = {
    NotificationType.NEW_MESSAGE.value: ("message_notif",),
    NotificationType.CHORE_ASSIGNED.value: ("chore_notif",),
    NotificationType.EXPENSE_UPDATED.value: ("finance_notif",),
    NotificationType.PAYMENT_REMINDER.value: ("finance_notif",),
    NotificationType.EVENT_REMINDER.value: ("calendar_notif", "reminders_notif"),
}

SUBJECTS: dict[str, str] = {
    NotificationType.NEW_MESSAGE.value: "New Message in Your Household",
    NotificationType.CHORE_ASSIGNED.value: "New Chore Assignment",
    NotificationType.EXPENSE_UPDATED.value: "Expense Update",
    NotificationType.PAYMENT_REMINDER.value: "Payment Reminder",
    NotificationType.EVENT_REMINDER.value: "Event Reminder",
}
DEFAULT_SUBJECT = "New Notification"


def _type_value(notification_type: str | NotificationType) -> str:
    if isinstance(notification_type, NotificationType):
        return notification_type.value
    return notification_type


def should_send(notification_type: str | NotificationType, preferences: NotificationPreferences) -> bool:
    """Whether the user's preferences allow dispatching this notification type."""
    flags = PREFERENCE_FLAGS.get(_type_value(notification_type))
    if not flags:
        return True
    return any(getattr(preferences, flag) for flag in flags)


def subject_for(notification_type: str | NotificationType) -> str:
    return SUBJECTS.get(_type_value(notification_type), DEFAULT_SUBJECT)


# ---------------------------------------------------------------------------
# Channel protocols
# ---------------------------------------------------------------------------

class EmailSender(Protocol):
    async def send(self, to: str, subject: str, text: str) -> bool: ...


class PushSender(Protocol):
    async def send(
        self,
        user_id: uuid.UUID,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
        *,
        tokens: list[str],
    ) -> Optional[list[str]]: ...


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

@dataclass
class Recipient:
    """Plain snapshot of the user fields delivery needs."""

    user_id: uuid.UUID
    email: Optional[str] = None
    device_tokens: list[str] = field(default_factory=list)
    preferences: Optional[NotificationPreferences] = None

    @classmethod
    def from_user(cls, user: User, settings: Any = None) -> "Recipient":
        preferences = NotificationPreferences.model_validate(settings) if settings is not None else None
        return cls(
            user_id=user.id,
            email=user.email,
            device_tokens=list(user.device_tokens or []),
            preferences=preferences,
        )


@dataclass
class DeliveryReport:
    email_sent: bool = False
    push_sent: bool = False
    failed_channels: list[str] = field(default_factory=list)
    invalid_tokens: list[str] = field(default_factory=list)
    skipped: bool = False
    notification_id: Optional[uuid.UUID] = None

    @property
    def attempted(self) -> bool:
        return not self.skipped


class NotificationDelivery:
    """Email + push dispatch with per-channel failure isolation."""

    def __init__(self, email_sender: EmailSender, push_sender: PushSender):
        self.email_sender = email_sender
        self.push_sender = push_sender

    async def dispatch(
        self,
        recipient: Recipient,
        subject: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> DeliveryReport:
        """Send over every channel the recipient has; no persistence, no preference check."""
        report = DeliveryReport()

        if recipient.email:
            try:
                report.email_sent = await self.email_sender.send(recipient.email, subject, message)
            except DispatchError as exc:
                report.failed_channels.append(exc.channel)
                log.error(
                    "notification.channel_failed",
                    channel=exc.channel,
                    user_id=str(recipient.user_id),
                    error=exc.message,
                )

        if recipient.device_tokens:
            try:
                rejected = await self.push_sender.send(
                    recipient.user_id,
                    subject,
                    message,
                    data,
                    tokens=recipient.device_tokens,
                )
                # None: push channel disabled, nothing sent
                if rejected is not None:
                    report.invalid_tokens = rejected
                    report.push_sent = len(rejected) < len(recipient.device_tokens)
            except DispatchError as exc:
                report.failed_channels.append(exc.channel)
                log.error(
                    "notification.channel_failed",
                    channel=exc.channel,
                    user_id=str(recipient.user_id),
                    error=exc.message,
                )

        return report

    async def deliver(
        self,
        store: SoftDeleteStore,
        recipient: Recipient,
        notification_type: str | NotificationType,
        message: str,
        *,
        subject: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
        check_preferences: bool = True,
    ) -> DeliveryReport:
        """Persist a notification for ``recipient`` and dispatch it.

        With ``check_preferences`` the recipient's flags decide first; a user
        without a settings record is not notified.
        """
        type_value = _type_value(notification_type)
        if check_preferences and (
            recipient.preferences is None or not should_send(type_value, recipient.preferences)
        ):
            log.info("notification.skipped", user_id=str(recipient.user_id), type=type_value)
            return DeliveryReport(skipped=True)

        notification = await store.create(
            Notification,
            {
                "user_id": recipient.user_id,
                "type": type_value,
                "message": message,
                "is_read": False,
            },
        )

        report = await self.dispatch(
            recipient,
            subject or subject_for(type_value),
            message,
            data if data is not None else {"type": type_value},
        )
        report.notification_id = notification.id

        if report.invalid_tokens:
            await prune_device_tokens(store, recipient.user_id, report.invalid_tokens)

        log.info(
            "notification.delivered",
            user_id=str(recipient.user_id),
            type=type_value,
            email=report.email_sent,
            push=report.push_sent,
            failed=report.failed_channels,
        )
        return report
