"""
Current-user endpoints: push device token registration.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import get_current_user
from app.core.database import get_store
from app.core.soft_delete import SoftDeleteStore
from app.models.user import User
from app.services import notifications as notification_service
from hearth_shared.schemas.notifications import DeviceTokenListResponse, DeviceTokenRequest

router = APIRouter()


@router.post("/me/device-tokens", response_model=DeviceTokenListResponse)
async def register_device_token(
    body: DeviceTokenRequest,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
):
    tokens = await notification_service.register_device_token(store, user, body.token)
    return DeviceTokenListResponse(device_tokens=tokens)


@router.delete("/me/device-tokens/{token}", response_model=DeviceTokenListResponse)
async def remove_device_token(
    token: str,
    user: User = Depends(get_current_user),
    store: SoftDeleteStore = Depends(get_store),
):
    tokens = await notification_service.remove_device_token(store, user, token)
    return DeviceTokenListResponse(device_tokens=tokens)
