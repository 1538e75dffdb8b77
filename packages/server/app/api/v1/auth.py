"""
Authentication endpoints.

- Email/password login issuing a bearer JWT
- Logout, which revokes the presented token
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Response

from app.core.auth import (
    authorization_header,
    bearer_token,
    create_jwt,
    revoke_jwt,
    verify_password,
    verify_token,
)
from app.core.config import get_settings
from app.core.database import get_store
from app.core.errors import AuthError
from app.core.soft_delete import SoftDeleteStore
from app.models.user import User
from hearth_shared.schemas.users import LoginRequest, TokenResponse

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, store: SoftDeleteStore = Depends(get_store)):
    """Exchange email and password for a bearer token."""
    user = await store.find_first(User, {"email": body.email})
    if not user or not user.password_hash or not verify_password(body.password, user.password_hash):
        log.info("auth.login_failed", email=body.email)
        raise AuthError("Invalid email or password")

    token, _jti = create_jwt(user.id, user.email)
    log.info("auth.login", user_id=str(user.id))
    return TokenResponse(access_token=token, expires_in=settings.jwt_expire_minutes * 60)


@router.post("/logout", status_code=204)
async def logout(authorization: Optional[str] = Depends(authorization_header)):
    """Revoke the presented token for the rest of its lifetime."""
    payload = await verify_token(bearer_token(authorization))
    if payload.jti:
        ttl = max(1, settings.jwt_expire_minutes * 60)
        await revoke_jwt(payload.jti, ttl_seconds=ttl)
    log.info("auth.logout", user_id=str(payload.user_id))
    return Response(status_code=204)
