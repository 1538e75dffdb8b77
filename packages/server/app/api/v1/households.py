"""
Household-scoped endpoints.

- GET /chores: list live chores (member)
- DELETE /chores/{chore_id}: soft delete (ADMIN), then ``chore_update``
- POST /threads/{thread_id}/messages: post a message (member), then
  ``message_update`` to the thread and household rooms
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.database import get_store
from app.core.realtime import EventBroadcaster, get_broadcaster
from app.core.soft_delete import SoftDeleteStore
from app.models.user import User
from app.services import households as household_service
from hearth_shared.schemas.common import HouseholdRole
from hearth_shared.schemas.households import (
    ChoreListResponse,
    ChoreResponse,
    MessageCreateRequest,
    MessageResponse,
)

router = APIRouter()


@router.get("/chores", response_model=ChoreListResponse)
async def list_chores(
    household_id: UUID,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
):
    await household_service.verify_membership(store, household_id, user.id)
    chores = await household_service.list_chores(store, household_id)
    return ChoreListResponse(data=[ChoreResponse.model_validate(c) for c in chores])


@router.delete("/chores/{chore_id}", status_code=204)
async def delete_chore(
    household_id: UUID,
    chore_id: UUID,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await household_service.verify_membership(store, household_id, user.id, roles=[HouseholdRole.ADMIN])
    await household_service.delete_chore(store, household_id, chore_id)
    await store.commit()

    await broadcaster.emit_to_household(
        "chore_update", household_id, {"action": "deleted", "chore_id": chore_id}
    )


@router.post("/threads/{thread_id}/messages", response_model=MessageResponse, status_code=201)
async def create_message(
    household_id: UUID,
    thread_id: UUID,
    body: MessageCreateRequest,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    await household_service.verify_membership(store, household_id, user.id)
    thread = await household_service.get_thread(store, household_id, thread_id)
    message = await household_service.create_message(store, thread, user.id, body.content)
    response = MessageResponse.model_validate(message)
    await store.commit()

    await broadcaster.emit_to_thread(
        "message_update", thread_id, household_id, {"action": "created", "message": response}
    )
    return response
