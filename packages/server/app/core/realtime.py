"""
Room-scoped WebSocket fan-out.

Features:
- Handshake verifies the bearer token and joins the user's own room plus the
  room of every household they actively belong to
- Rooms: ``user:<id>``, ``household:<id>``, ``thread:<id>``
- Emits deduplicate by connection, so a socket in several targeted rooms
  receives an event once
- Dead sockets are dropped on the first failed send

State is in-memory and rebuilt from reconnects after a restart.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Iterable

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder
from starlette.requests import HTTPConnection

from app.core.auth import TokenPayload, verify_token
from app.core.errors import AuthError, BroadcasterNotInitializedError
from app.core.soft_delete import SoftDeleteStore
from app.models.household import Household, HouseholdMember
from app.models.user import User

logger = logging.getLogger(__name__)

TokenVerifier = Callable[[str | None], Awaitable[TokenPayload]]


def user_room(user_id: uuid.UUID | str) -> str:
    return f"user:{user_id}"


def household_room(household_id: uuid.UUID | str) -> str:
    return f"household:{household_id}"


def thread_room(thread_id: uuid.UUID | str) -> str:
    return f"thread:{thread_id}"


class ConnectionRegistration:
    """Tracks a single WebSocket connection and the rooms it has joined."""

    __slots__ = ("id", "websocket", "user_id", "email", "rooms", "jti")

    def __init__(
        self,
        websocket: WebSocket,
        user_id: uuid.UUID,
        email: str | None = None,
        jti: str | None = None,
    ):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.email = email
        self.rooms: set[str] = set()
        self.jti = jti

    @property
    def household_ids(self) -> set[str]:
        prefix = household_room("")
        return {room[len(prefix):] for room in self.rooms if room.startswith(prefix)}


class EventBroadcaster:
    """
    In-memory registry of authenticated connections grouped into rooms.

    One instance per process, created with the app and initialized on startup.
    Handlers call the ``emit_*`` methods after their transaction commits.
    """

    def __init__(self, verifier: TokenVerifier = verify_token) -> None:
        self._verify = verifier
        self._initialized = False
        # connection id -> registration
        self._connections: dict[str, ConnectionRegistration] = {}
        # room -> connection ids
        self._rooms: dict[str, set[str]] = {}

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        self._initialized = True
        logger.info("Event broadcaster initialized")

    def shutdown(self) -> None:
        self._connections.clear()
        self._rooms.clear()
        self._initialized = False
        logger.info("Event broadcaster shut down")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise BroadcasterNotInitializedError("Event broadcaster used before initialize()")

    def room_members(self, room: str) -> set[str]:
        """Connection ids currently in a room (empty set for unknown rooms)."""
        return set(self._rooms.get(room, ()))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # --- Registration ---

    async def register_connection(
        self,
        websocket: WebSocket,
        token: str | None,
        store: SoftDeleteStore,
    ) -> ConnectionRegistration:
        """
        Authenticate a handshake and place the connection in its rooms.

        Raises AuthError for a missing/invalid token or an unknown user; the
        caller closes the socket in that case.
        """
        self._require_initialized()
        payload = await self._verify(token)

        user = await store.find_unique(User, {"id": payload.user_id})
        if user is None:
            raise AuthError("User not found")

        memberships = await store.find_many(
            HouseholdMember,
            {"user_id": user.id, "left_at": None, "is_accepted": True},
        )
        # Soft-deleted households are hidden by the store, so their rooms are skipped
        live_households = set()
        if memberships:
            households = await store.find_many(
                Household, {"id__in": [m.household_id for m in memberships]}
            )
            live_households = {household.id for household in households}
        memberships = [m for m in memberships if m.household_id in live_households]

        registration = ConnectionRegistration(
            websocket, user.id, email=user.email, jti=payload.jti
        )
        self._connections[registration.id] = registration
        self._join(registration, user_room(user.id))
        for membership in memberships:
            self._join(registration, household_room(membership.household_id))

        logger.info(
            "Realtime connected: user=%s households=%d total=%d",
            user.id,
            len(memberships),
            len(self._connections),
        )
        return registration

    def unregister(self, registration: ConnectionRegistration) -> None:
        """Remove a connection from every room. Safe to call twice."""
        if self._connections.pop(registration.id, None) is None:
            return
        for room in list(registration.rooms):
            self._leave(registration, room)
        logger.info("Realtime disconnected: user=%s", registration.user_id)

    # --- Room membership ---

    def _join(self, registration: ConnectionRegistration, room: str) -> bool:
        if room in registration.rooms:
            return False
        registration.rooms.add(room)
        self._rooms.setdefault(room, set()).add(registration.id)
        return True

    def _leave(self, registration: ConnectionRegistration, room: str) -> bool:
        if room not in registration.rooms:
            return False
        registration.rooms.discard(room)
        members = self._rooms.get(room)
        if members is not None:
            members.discard(registration.id)
            if not members:
                del self._rooms[room]
        return True

    def join_household(self, registration: ConnectionRegistration, household_id: uuid.UUID | str) -> bool:
        return self._join(registration, household_room(household_id))

    def leave_household(self, registration: ConnectionRegistration, household_id: uuid.UUID | str) -> bool:
        return self._leave(registration, household_room(household_id))

    def join_thread(self, registration: ConnectionRegistration, thread_id: uuid.UUID | str) -> bool:
        return self._join(registration, thread_room(thread_id))

    def leave_thread(self, registration: ConnectionRegistration, thread_id: uuid.UUID | str) -> bool:
        return self._leave(registration, thread_room(thread_id))

    # --- Emit ---

    async def emit(self, event: str, rooms: Iterable[str], payload: Any) -> int:
        """Send ``{"event", "data"}`` once to every connection in any of ``rooms``."""
        self._require_initialized()

        targets: list[ConnectionRegistration] = []
        seen: set[str] = set()
        for room in rooms:
            for conn_id in self._rooms.get(room, ()):
                if conn_id in seen:
                    continue
                seen.add(conn_id)
                registration = self._connections.get(conn_id)
                if registration is not None:
                    targets.append(registration)

        if not targets:
            return 0

        msg_text = json.dumps(jsonable_encoder({"event": event, "data": payload}))

        delivered = 0
        dead_connections = []
        for registration in targets:
            try:
                await registration.websocket.send_text(msg_text)
                delivered += 1
            except Exception:
                dead_connections.append(registration)

        for dead in dead_connections:
            logger.warning("Dropping dead realtime connection: user=%s", dead.user_id)
            self.unregister(dead)

        return delivered

    async def emit_to_user(self, event: str, user_id: uuid.UUID | str, payload: Any) -> int:
        return await self.emit(event, [user_room(user_id)], payload)

    async def emit_to_household(self, event: str, household_id: uuid.UUID | str, payload: Any) -> int:
        return await self.emit(event, [household_room(household_id)], payload)

    async def emit_to_thread(
        self,
        event: str,
        thread_id: uuid.UUID | str,
        household_id: uuid.UUID | str,
        payload: Any,
    ) -> int:
        """Thread events also reach the household room, each socket once."""
        return await self.emit(event, [thread_room(thread_id), household_room(household_id)], payload)


def get_broadcaster(conn: HTTPConnection) -> EventBroadcaster:
    """FastAPI dependency: the process-wide broadcaster stored on app.state."""
    broadcaster = getattr(conn.app.state, "broadcaster", None)
    if broadcaster is None:
        raise BroadcasterNotInitializedError("No event broadcaster configured on the application")
    return broadcaster
