"""
Household-scoped operations: membership checks, chores, thread messages.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog

from app.core.errors import ForbiddenError, NotFoundError
from app.core.soft_delete import SoftDeleteStore
from app.models.chore import Chore
from app.models.household import Household, HouseholdMember
from app.models.thread import Message, Thread
from hearth_shared.schemas.common import HouseholdRole

log = structlog.get_logger()


async def verify_membership(
    store: SoftDeleteStore,
    household_id: uuid.UUID,
    user_id: uuid.UUID,
    roles: Optional[Iterable[HouseholdRole]] = None,
) -> HouseholdMember:
    """Return the caller's active, accepted membership or raise ForbiddenError."""
    household = await store.find_unique(Household, {"id": household_id})
    if household is None:
        raise NotFoundError("Household not found")

    membership = await store.find_first(
        HouseholdMember,
        {
            "household_id": household_id,
            "user_id": user_id,
            "left_at": None,
            "is_accepted": True,
        },
    )
    if membership is None:
        raise ForbiddenError("Not a member of this household")

    if roles is not None:
        allowed = {role.value for role in roles}
        if membership.role not in allowed:
            raise ForbiddenError("Insufficient household role")
    return membership


# ---------------------------------------------------------------------------
# Chores
# ---------------------------------------------------------------------------

async def list_chores(store: SoftDeleteStore, household_id: uuid.UUID) -> list[Chore]:
    return await store.find_many(
        Chore,
        {"household_id": household_id},
        order_by=[Chore.due_date, Chore.created_at],
    )


async def delete_chore(store: SoftDeleteStore, household_id: uuid.UUID, chore_id: uuid.UUID) -> Chore:
    """Soft-delete a chore of this household."""
    chore = await store.find_first(Chore, {"id": chore_id, "household_id": household_id})
    if chore is None:
        raise NotFoundError("Chore not found")
    deleted = await store.delete(Chore, {"id": chore_id})
    log.info("chore.deleted", chore_id=str(chore_id), household_id=str(household_id))
    return deleted


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------

async def get_thread(store: SoftDeleteStore, household_id: uuid.UUID, thread_id: uuid.UUID) -> Thread:
    thread = await store.find_first(Thread, {"id": thread_id, "household_id": household_id})
    if thread is None:
        raise NotFoundError("Thread not found")
    return thread


async def create_message(
    store: SoftDeleteStore, thread: Thread, author_id: uuid.UUID, content: str
) -> Message:
    message = await store.create(
        Message,
        {"thread_id": thread.id, "author_id": author_id, "content": content},
    )
    log.info("message.created", message_id=str(message.id), thread_id=str(thread.id))
    return message
