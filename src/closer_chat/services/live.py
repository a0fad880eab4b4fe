"""Live channel: authenticated publish/subscribe over WebSocket connections.

Every authenticated connection joins one private channel named after its
user (``user_<id>``) and may join room channels (``room_<key>``) on request.
Delivery is at-most-once and best effort: emitting to a channel without
members is a no-op and connections that fail to receive are dropped. The
durable path is the database; clients recover missed events by fetching
history.

A single ``LiveChannel`` is constructed per application and injected into the
handlers that push events.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


def user_channel(user_id: int) -> str:
    """Return the private channel name of ``user_id``."""
    return f"user_{user_id}"


def room_channel(room_key: str) -> str:
    """Return the channel name of a chat room."""
    return f"room_{room_key}"


@dataclass
class Connection:
    """An accepted WebSocket and the identity it authenticated as."""

    websocket: WebSocket
    user_id: int
    username: str
    channels: set[str] = field(default_factory=set)


class LiveChannel:
    """Registry of live connections and the channels they belong to.

    Designed for a single event loop; it is not thread-safe.
    """

    def __init__(self) -> None:
        # channel name -> websockets subscribed to it
        self._members: dict[str, list[WebSocket]] = {}
        # websocket -> connection metadata, for disconnect handling
        self._connections: dict[WebSocket, Connection] = {}

    async def connect(self, websocket: WebSocket, user_id: int, username: str) -> Connection:
        """Accept ``websocket`` and subscribe it to the user's private channel."""
        await websocket.accept()
        connection = Connection(websocket=websocket, user_id=user_id, username=username)
        self._connections[websocket] = connection
        self.join(websocket, user_channel(user_id))
        logger.info("User %s connected (%d live connections)", username, len(self._connections))
        return connection

    def join(self, websocket: WebSocket, channel: str) -> None:
        """Subscribe a connected websocket to ``channel``."""
        connection = self._connections.get(websocket)
        if connection is None:
            return
        members = self._members.setdefault(channel, [])
        if websocket not in members:
            members.append(websocket)
        connection.channels.add(channel)

    def disconnect(self, websocket: WebSocket) -> Connection | None:
        """Forget ``websocket`` and drop all of its channel memberships."""
        connection = self._connections.pop(websocket, None)
        if connection is None:
            return None
        for channel in connection.channels:
            members = self._members.get(channel)
            if not members:
                continue
            if websocket in members:
                members.remove(websocket)
            if not members:
                del self._members[channel]
        logger.info("User %s disconnected", connection.username)
        return connection

    def get_connection(self, websocket: WebSocket) -> Connection | None:
        """Return metadata for an accepted websocket."""
        return self._connections.get(websocket)

    def is_member(self, websocket: WebSocket, channel: str) -> bool:
        """Return True when ``websocket`` is subscribed to ``channel``."""
        return websocket in self._members.get(channel, [])

    def channel_size(self, channel: str) -> int:
        """Return the number of connections subscribed to ``channel``."""
        return len(self._members.get(channel, []))

    def is_online(self, user_id: int) -> bool:
        """Return True when the user has at least one live connection."""
        return self.channel_size(user_channel(user_id)) > 0

    async def emit(
        self,
        channel: str,
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send ``event`` to every member of ``channel``.

        Returns:
            Number of connections the frame was delivered to.
        """
        targets = [ws for ws in self._members.get(channel, []) if ws is not exclude]
        if not targets:
            logger.debug("No live members on %s; dropping %s", channel, event)
            return 0
        return await self._deliver(targets, event, data)

    async def emit_to_user(self, user_id: int, event: str, data: Any) -> int:
        """Send ``event`` on the private channel of ``user_id``."""
        return await self.emit(user_channel(user_id), event, data)

    async def emit_to_room(
        self,
        room_key: str,
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send ``event`` to every connection that joined ``room_key``."""
        return await self.emit(room_channel(room_key), event, data, exclude=exclude)

    async def send(self, websocket: WebSocket, event: str, data: Any) -> bool:
        """Send ``event`` to a single connection."""
        return await self._safe_send(websocket, {"event": event, "data": jsonable_encoder(data)})

    async def broadcast(self, event: str, data: Any, exclude: WebSocket | None = None) -> int:
        """Send ``event`` to every live connection."""
        targets = [ws for ws in self._connections if ws is not exclude]
        if not targets:
            return 0
        return await self._deliver(targets, event, data)

    async def _deliver(self, targets: list[WebSocket], event: str, data: Any) -> int:
        frame = {"event": event, "data": jsonable_encoder(data)}
        results = await asyncio.gather(
            *[self._safe_send(ws, frame) for ws in targets],
            return_exceptions=True,
        )
        failed = [ws for ws, ok in zip(targets, results) if ok is not True]
        for ws in failed:
            logger.debug("Removing dead connection after failed %s", event)
            self.disconnect(ws)
        return len(targets) - len(failed)

    async def _safe_send(self, websocket: WebSocket, frame: dict[str, Any]) -> bool:
        try:
            await websocket.send_json(frame)
            return True
        except Exception as exc:
            logger.debug("Failed to send to connection: %s", exc)
            return False
