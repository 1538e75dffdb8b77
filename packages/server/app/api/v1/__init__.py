"""
API v1 Router

Household-scoped endpoints are prefixed with /households/{household_id}.
"""

from fastapi import APIRouter
from . import households, notifications, realtime, users

router = APIRouter()

router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(households.router, prefix="/households/{household_id}", tags=["Households"])
router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/notifications",
            "/users/me/device-tokens",
            "/households/{household_id}/chores",
            "/households/{household_id}/threads/{thread_id}/messages",
            "/realtime/ws",
        ],
    }
