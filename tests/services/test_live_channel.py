# tests/services/test_live_channel.py
"""Tests for the live channel registry and fan-out."""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from closer_chat.services.live import LiveChannel, room_channel, user_channel


def _socket() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def channel() -> LiveChannel:
    return LiveChannel()


def test_channel_names() -> None:
    assert user_channel(3) == "user_3"
    assert room_channel("3-9") == "room_3-9"


@pytest.mark.asyncio
async def test_connect_accepts_and_joins_user_channel(channel) -> None:
    ws = _socket()

    connection = await channel.connect(ws, 7, "alice")

    ws.accept.assert_awaited_once()
    assert connection.user_id == 7
    assert channel.is_member(ws, user_channel(7))
    assert channel.is_online(7)
    assert channel.get_connection(ws) is connection


@pytest.mark.asyncio
async def test_emit_without_members_is_a_noop(channel) -> None:
    assert await channel.emit_to_user(42, "new_notification", {"id": 1}) == 0
    assert await channel.emit_to_room("1-2", "receive-message", {}) == 0


@pytest.mark.asyncio
async def test_emit_to_user_reaches_every_connection_of_the_user(channel) -> None:
    phone, laptop, other = _socket(), _socket(), _socket()
    await channel.connect(phone, 1, "alice")
    await channel.connect(laptop, 1, "alice")
    await channel.connect(other, 2, "bob")

    delivered = await channel.emit_to_user(1, "unread_count_update", {"unreadCount": 4})

    assert delivered == 2
    frame = {"event": "unread_count_update", "data": {"unreadCount": 4}}
    phone.send_json.assert_awaited_once_with(frame)
    laptop.send_json.assert_awaited_once_with(frame)
    other.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_room_emit_honours_exclude(channel) -> None:
    alice, bob = _socket(), _socket()
    await channel.connect(alice, 1, "alice")
    await channel.connect(bob, 2, "bob")
    channel.join(alice, room_channel("1-2"))
    channel.join(bob, room_channel("1-2"))

    delivered = await channel.emit_to_room("1-2", "user-typing", {"userId": 1}, exclude=alice)

    assert delivered == 1
    alice.send_json.assert_not_awaited()
    bob.send_json.assert_awaited_once()


@pytest.mark.asyncio
async def test_join_is_idempotent_and_requires_connection(channel) -> None:
    ws = _socket()
    channel.join(ws, room_channel("1-2"))
    assert channel.channel_size(room_channel("1-2")) == 0

    await channel.connect(ws, 1, "alice")
    channel.join(ws, room_channel("1-2"))
    channel.join(ws, room_channel("1-2"))
    assert channel.channel_size(room_channel("1-2")) == 1


@pytest.mark.asyncio
async def test_payload_is_json_encoded(channel) -> None:
    ws = _socket()
    await channel.connect(ws, 1, "alice")

    await channel.emit_to_user(1, "new_notification", {"created_at": datetime(2024, 5, 1, 12, 30)})

    ws.send_json.assert_awaited_once_with(
        {"event": "new_notification", "data": {"created_at": "2024-05-01T12:30:00"}}
    )


@pytest.mark.asyncio
async def test_failed_delivery_drops_dead_connection(channel) -> None:
    alive, dead = _socket(), _socket()
    dead.send_json.side_effect = RuntimeError("connection closed")
    await channel.connect(alive, 1, "alice")
    await channel.connect(dead, 1, "alice")

    delivered = await channel.emit_to_user(1, "new_notification", {})

    assert delivered == 1
    assert channel.get_connection(dead) is None
    assert channel.channel_size(user_channel(1)) == 1


@pytest.mark.asyncio
async def test_disconnect_drops_all_memberships(channel) -> None:
    ws = _socket()
    await channel.connect(ws, 1, "alice")
    channel.join(ws, room_channel("1-2"))

    connection = channel.disconnect(ws)

    assert connection is not None
    assert connection.channels == {user_channel(1), room_channel("1-2")}
    assert channel.channel_size(user_channel(1)) == 0
    assert channel.channel_size(room_channel("1-2")) == 0
    assert not channel.is_online(1)
    assert channel.disconnect(ws) is None


@pytest.mark.asyncio
async def test_broadcast_and_send(channel) -> None:
    alice, bob = _socket(), _socket()
    await channel.connect(alice, 1, "alice")
    await channel.connect(bob, 2, "bob")

    assert await channel.broadcast("user_status", {"userId": 1, "status": "online"}, exclude=alice) == 1
    assert await channel.send(alice, "chat-joined", {"roomKey": "1-2"}) is True
    alice.send_json.assert_awaited_once_with({"event": "chat-joined", "data": {"roomKey": "1-2"}})
