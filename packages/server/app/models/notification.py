"""Notification and per-user notification settings models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .base import UUIDMixin, utcnow


class Notification(UUIDMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # NotificationType value
    message: str = Field(nullable=False)
    is_read: bool = Field(default=False, nullable=False, index=True)
    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_column_kwargs={"server_default": sa.func.now()},
        sa_type=sa.DateTime(timezone=True),
    )

    user: Optional["User"] = Relationship()


class NotificationSettings(UUIDMixin, SQLModel, table=True):
    __tablename__ = "notification_settings"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    household_id: Optional[uuid.UUID] = Field(default=None, foreign_key="households.id")
    message_notif: bool = True
    mentions_notif: bool = True
    reactions_notif: bool = True
    chore_notif: bool = True
    finance_notif: bool = True
    calendar_notif: bool = True
    reminders_notif: bool = True

    user: Optional["User"] = Relationship(back_populates="notification_settings")
