"""
Authentication for Hearth.

- Email/password login with bcrypt hashes
- JWT session tokens with a Redis revocation list
- ``verify_token`` used by both the HTTP dependencies and the WebSocket handshake
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends
from fastapi.security import APIKeyHeader

from app.core.config import get_settings
from app.core.database import get_store
from app.core.errors import AuthError
from app.core.redis import get_redis, redis_key
from app.core.soft_delete import SoftDeleteStore
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with cost factor 12."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode(), hashed.encode())


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TokenPayload:
    user_id: uuid.UUID
    email: Optional[str]
    jti: Optional[str]


def create_jwt(
    user_id: uuid.UUID,
    email: Optional[str],
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(redis_key("jwt", "revoked", jti), ttl_seconds, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(redis_key("jwt", "revoked", jti)) > 0


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

async def verify_token(token: Optional[str]) -> TokenPayload:
    """Verify a bearer token; raises AuthError when it cannot be trusted."""
    if not token:
        raise AuthError("Authentication required")
    try:
        payload = decode_jwt(token)
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired")
    except jwt.PyJWTError:
        raise AuthError("Invalid token")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise AuthError("Session has been revoked")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise AuthError("Invalid token subject")

    return TokenPayload(user_id=user_id, email=payload.get("email"), jti=jti)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


async def get_current_user(
    authorization: Optional[str] = Depends(authorization_header),
    store: SoftDeleteStore = Depends(get_store),
) -> User:
    """Authenticate the request and load the (non-deleted) user."""
    payload = await verify_token(bearer_token(authorization))
    user = await store.find_unique(User, {"id": payload.user_id})
    if user is None:
        raise AuthError("User not found")
    return user
