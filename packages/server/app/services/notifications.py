"""
Notification inbox and device-token management.
"""

from __future__ import annotations

import uuid
from typing import Iterable

import structlog

from app.core.errors import NotFoundError
from app.core.soft_delete import SoftDeleteStore
from app.models.notification import Notification
from app.models.user import User

log = structlog.get_logger()


async def list_notifications(
    store: SoftDeleteStore,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    where = {"user_id": user_id}
    if unread_only:
        where["is_read"] = False
    return await store.find_many(
        Notification,
        where,
        order_by=[Notification.created_at.desc()],
        limit=limit,
    )


async def _get_own_notification(
    store: SoftDeleteStore, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    notification = await store.find_first(Notification, {"id": notification_id, "user_id": user_id})
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def mark_read(
    store: SoftDeleteStore, user_id: uuid.UUID, notification_id: uuid.UUID
) -> Notification:
    await _get_own_notification(store, user_id, notification_id)
    return await store.update(Notification, {"id": notification_id}, {"is_read": True})



# ---------------------------------------------------------------------------
# Device tokens
# ---------------------------------------------------------------------------

async def register_device_token(store: SoftDeleteStore, user: User, token: str) -> list[str]:
    """Add a push token to the user. Registering a known token is a no-op."""
    tokens = list(user.device_tokens or [])
    if token not in tokens:
        tokens.append(token)
        await store.update(User, {"id": user.id}, {"device_tokens": tokens})
        log.info("device_token.registered", user_id=str(user.id), count=len(tokens))
    return tokens


async def remove_device_token(store: SoftDeleteStore, user: User, token: str) -> list[str]:
    """Remove a push token. Removing an unknown token is a no-op."""
    tokens = [existing for existing in (user.device_tokens or []) if existing != token]
    if len(tokens) != len(user.device_tokens or []):
        await store.update(User, {"id": user.id}, {"device_tokens": tokens})
        log.info("device_token.removed", user_id=str(user.id), count=len(tokens))
    return tokens


async def prune_device_tokens(
    store: SoftDeleteStore, user_id: uuid.UUID, invalid_tokens: Iterable[str]
) -> int:
    """Drop tokens the push gateway rejected. Returns the number removed."""
    invalid = set(invalid_tokens)
    user = await store.find_unique(User, {"id": user_id})
    if user is None or not invalid:
        return 0
    current = list(user.device_tokens or [])
    kept = [token for token in current if token not in invalid]
    removed = len(current) - len(kept)
    if removed:
        await store.update(User, {"id": user_id}, {"device_tokens": kept})
        log.info("device_token.pruned", user_id=str(user_id), removed=removed)
    return removed
