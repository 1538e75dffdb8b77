"""
Notification inbox endpoints for the authenticated user.

Notifications are never deleted; marking one read commits first, then emits ``notification_update`` to the user's room.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_user
from app.core.database import get_store
from app.core.realtime import EventBroadcaster, get_broadcaster
from app.core.soft_delete import SoftDeleteStore
from app.models.user import User
from app.services import notifications as notification_service
from hearth_shared.schemas.notifications import NotificationListResponse, NotificationResponse

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
):
    items = await notification_service.list_notifications(store, user.id, unread_only=unread, limit=limit)
    return NotificationListResponse(data=[NotificationResponse.model_validate(n) for n in items])


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    notification = await notification_service.mark_read(store, user.id, notification_id)
    response = NotificationResponse.model_validate(notification)
    await store.commit()

    await broadcaster.emit_to_user(
        "notification_update", user.id, {"action": "read", "notification": response}
    )
    return response

