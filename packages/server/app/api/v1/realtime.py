"""
Real-time WebSocket endpoint.

    WS /api/v1/realtime/ws?token=<jwt>

The token may also come as ``Authorization: Bearer <jwt>``. The socket is
accepted first; a token or user that cannot be verified then closes it with
code 4001. Each join opens its own short-lived database session, so an idle
connection holds none. Client frames are JSON objects with a ``type``:

- ping → pong
- join_household / leave_household {"household_id"}
- join_thread / leave_thread {"household_id", "thread_id"}

Joins are checked against household membership. Server events arrive as
``{"event": <name>, "data": <payload>}``.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from app.core.auth import bearer_token
from app.core.database import get_store_opener
from app.core.errors import AppError, AuthError
from app.core.realtime import ConnectionRegistration, EventBroadcaster, get_broadcaster
from app.services.households import get_thread, verify_membership

router = APIRouter()
logger = logging.getLogger(__name__)


def _frame(frame_type: str, **fields) -> str:
    return json.dumps({"type": frame_type, **fields})


async def _handle_frame(
    frame: dict,
    registration: ConnectionRegistration,
    broadcaster: EventBroadcaster,
    open_store: Callable,
) -> str:
    """Apply one client frame; returns the reply frame."""
    frame_type = frame.get("type")

    if frame_type == "ping":
        return _frame("pong")

    if frame_type in ("join_household", "leave_household", "join_thread", "leave_thread"):
        try:
            household_id = UUID(str(frame.get("household_id")))
            thread_id = UUID(str(frame["thread_id"])) if "thread" in frame_type else None
        except (KeyError, ValueError):
            return _frame("error", code=400, message="Invalid household_id or thread_id")

        if frame_type == "leave_household":
            changed = broadcaster.leave_household(registration, household_id)
            return _frame("left", room="household", id=str(household_id), changed=changed)
        if frame_type == "leave_thread":
            changed = broadcaster.leave_thread(registration, thread_id)
            return _frame("left", room="thread", id=str(thread_id), changed=changed)

        async with open_store() as store:
            await verify_membership(store, household_id, registration.user_id)
            if thread_id is not None:
                await get_thread(store, household_id, thread_id)

        if frame_type == "join_household":
            changed = broadcaster.join_household(registration, household_id)
            return _frame("joined", room="household", id=str(household_id), changed=changed)
        changed = broadcaster.join_thread(registration, thread_id)
        return _frame("joined", room="thread", id=str(thread_id), changed=changed)

    return _frame("error", code=400, message=f"Unknown frame type: {frame_type}")


@router.websocket("/ws")
async def realtime_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    open_store: Callable = Depends(get_store_opener),
    broadcaster: EventBroadcaster = Depends(get_broadcaster),
):
    token = token or bearer_token(websocket.headers.get("authorization"))
    await websocket.accept()

    try:
        async with open_store() as store:
            registration = await broadcaster.register_connection(websocket, token, store)
    except AuthError as exc:
        logger.info("Realtime handshake rejected: %s", exc.message)
        await websocket.close(code=4001, reason="authentication_failed")
        return

    try:
        while True:
            data = await websocket.receive_text()
            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(_frame("error", code=400, message="Could not parse frame as JSON."))
                continue
            if not isinstance(frame, dict):
                await websocket.send_text(_frame("error", code=400, message="Frame must be a JSON object."))
                continue

            try:
                reply = await _handle_frame(frame, registration, broadcaster, open_store)
            except AppError as exc:
                reply = _frame("error", code=exc.status_code, message=exc.message)
            await websocket.send_text(reply)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unregister(registration)
