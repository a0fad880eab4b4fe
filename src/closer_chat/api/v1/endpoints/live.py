"""WebSocket endpoint of the live channel.

Frames are JSON objects ``{"event": <name>, "data": <payload>}`` in both
directions. There is no error envelope: frames that cannot be handled are
logged and ignored, and the client falls back to REST fetches.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import anyio
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from closer_chat.core.security import extract_bearer_token
from closer_chat.db.time import utcnow
from closer_chat.services import rooms
from closer_chat.services.live import Connection, LiveChannel, room_channel, user_channel

from ..dependencies import SessionDep, authenticate_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


def _room_key(data: Any) -> str | None:
    """Accept either a bare room key or an object carrying one."""
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        for name in ("room_key", "roomKey", "chatId"):
            value = data.get(name)
            if isinstance(value, str) and value:
                return value
    return None


class LiveSession:
    """Handles the client events of one authenticated connection."""

    def __init__(self, channel: LiveChannel, db: Session, connection: Connection) -> None:
        self.channel = channel
        self.db = db
        self.connection = connection
        self.handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "join-chat": self.join_chat,
            "send-message": self.send_message,
            "typing": self.typing,
            "stop-typing": self.stop_typing,
            "user_online": self.user_online,
            "notification_read": self.notification_read,
            "notifications_all_read": self.notifications_all_read,
        }

    @property
    def websocket(self) -> WebSocket:
        return self.connection.websocket

    def _joined(self, room_key: str | None) -> bool:
        return room_key is not None and self.channel.is_member(self.websocket, room_channel(room_key))

    async def dispatch(self, raw: str) -> None:
        """Route one incoming frame to its handler."""
        try:
            frame = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON frame from user %s", self.connection.user_id)
            return
        if not isinstance(frame, dict):
            return

        handler = self.handlers.get(frame.get("event"))
        if handler is None:
            logger.debug("Ignoring unknown event %r", frame.get("event"))
            return
        try:
            await handler(frame.get("data"))
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Live event %s failed: %s", frame.get("event"), exc)

    async def join_chat(self, data: Any) -> None:
        room_key = _room_key(data)
        if room_key is None:
            return
        try:
            room = rooms.find_room(self.db, room_key)
            allowed = room is not None and self.connection.user_id in room.participant_ids
        finally:
            # End the read transaction so later lookups see fresh rows.
            self.db.rollback()
        if not allowed:
            logger.info("User %s may not join chat %s", self.connection.username, room_key)
            return
        self.channel.join(self.websocket, room_channel(room_key))
        logger.info("User %s joined chat %s", self.connection.username, room_key)
        await self.channel.send(self.websocket, "chat-joined", {"roomKey": room_key})

    async def send_message(self, data: Any) -> None:
        # Ephemeral relay; persistence happens through the REST endpoint.
        room_key = _room_key(data)
        if not self._joined(room_key) or not isinstance(data, dict):
            return
        content = data.get("content") or data.get("message")
        if not isinstance(content, str) or not content.strip():
            return
        await self.channel.emit_to_room(
            room_key,
            "receive-message",
            {
                "id": uuid.uuid4().hex,
                "roomKey": room_key,
                "content": content,
                "sender": {"id": self.connection.user_id, "username": self.connection.username},
                "timestamp": data.get("timestamp") or utcnow().isoformat(),
            },
        )

    async def typing(self, data: Any) -> None:
        room_key = _room_key(data)
        if not self._joined(room_key):
            return
        await self.channel.emit_to_room(
            room_key,
            "user-typing",
            {"userId": self.connection.user_id, "username": self.connection.username},
            exclude=self.websocket,
        )

    async def stop_typing(self, data: Any) -> None:
        room_key = _room_key(data)
        if not self._joined(room_key):
            return
        await self.channel.emit_to_room(
            room_key,
            "user-stop-typing",
            {"userId": self.connection.user_id},
            exclude=self.websocket,
        )

    async def user_online(self, data: Any) -> None:
        await self.channel.broadcast(
            "user_status",
            {"userId": self.connection.user_id, "status": "online"},
            exclude=self.websocket,
        )

    async def notification_read(self, data: Any) -> None:
        # Keep the user's other tabs and devices in sync.
        await self.channel.emit(
            user_channel(self.connection.user_id),
            "notification_marked_read",
            data,
            exclude=self.websocket,
        )

    async def notifications_all_read(self, data: Any) -> None:
        await self.channel.emit(
            user_channel(self.connection.user_id),
            "notifications_all_marked_read",
            {},
            exclude=self.websocket,
        )


@router.websocket("/live")
async def live_endpoint(
    websocket: WebSocket,
    db: SessionDep,
    token: str | None = Query(None),
) -> None:
    """Authenticated live channel.

    Auth
    ----
    - Bearer token from the ``Authorization`` header, or the ``token``
      query parameter.
    - Invalid tokens and deleted users are rejected with close code 1008
      before the connection is accepted.
    """
    channel: LiveChannel = websocket.app.state.live_channel
    raw_token = token or extract_bearer_token(websocket.headers.get("authorization"))
    user = authenticate_token(db, raw_token)
    if user is None:
        logger.info("Rejected live connection: authentication failed")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id, username = user.id, user.username
    db.rollback()
    connection = await channel.connect(websocket, user_id, username)
    session = LiveSession(channel, db, connection)
    try:
        while True:
            raw = await websocket.receive_text()
            await session.dispatch(raw)
    except WebSocketDisconnect:
        pass
    finally:
        channel.disconnect(websocket)
        # Runs during server shutdown too, when the endpoint task is cancelled.
        with anyio.CancelScope(shield=True):
            await channel.broadcast("user_status", {"userId": user_id, "status": "offline"})
