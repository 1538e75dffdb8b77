"""Notification schemas shared between the API server and the worker."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .common import NotificationType


class NotificationPreferences(BaseModel):
    """Per-user dispatch flags, read from a notification settings row."""

    model_config = ConfigDict(from_attributes=True)

    message_notif: bool = True
    mentions_notif: bool = True
    reactions_notif: bool = True
    chore_notif: bool = True
    finance_notif: bool = True
    calendar_notif: bool = True
    reminders_notif: bool = True


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class DeviceTokenRequest(BaseModel):
    token: str = Field(min_length=1, max_length=4096)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    type: NotificationType
    message: str
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    data: List[NotificationResponse]


class DeviceTokenListResponse(BaseModel):
    device_tokens: List[str]
