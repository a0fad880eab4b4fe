# tests/v1/test_chat_api.py
"""Tests for chat room and message endpoints."""

from fastapi import status

from closer_chat.services import rooms
from closer_chat.services.live import room_channel, user_channel


def _open_room(client, headers, other_user_id) -> dict:
    response = client.get(f"/api/v1/chat/room/{other_user_id}", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    return response.json()["data"]


def _send(client, headers, room_key, content):
    return client.post(
        "/api/v1/chat/message",
        json={"room_key": room_key, "content": content},
        headers=headers,
    )


def test_get_or_create_room(client, alice, bob, alice_headers, bob_headers) -> None:
    """Both participants resolve the same room."""
    response = client.get(f"/api/v1/chat/room/{bob.id}", headers=alice_headers)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["success"] is True
    assert body["status_code"] == 200
    room = body["data"]
    assert room["room_key"] == rooms.room_key_for(alice.id, bob.id)
    assert [p["username"] for p in room["participants"]] == ["alice", "bob"]
    assert room["last_message"] is None

    assert _open_room(client, bob_headers, alice.id)["id"] == room["id"]


def test_room_with_self_is_rejected(client, alice, alice_headers) -> None:
    response = client.get(f"/api/v1/chat/room/{alice.id}", headers=alice_headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {
        "status_code": 400,
        "detail": "You cannot start a chat with yourself",
        "success": False,
    }


def test_room_with_unknown_user(client, alice_headers) -> None:
    response = client.get("/api/v1/chat/room/9999", headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False


def test_requires_authentication(client, bob) -> None:
    response = client.get(f"/api/v1/chat/room/{bob.id}")
    assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    response = client.get("/api/v1/chat/rooms", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_send_message_persists_broadcasts_and_notifies(
    client, live_channel, alice, bob, alice_headers
) -> None:
    room = _open_room(client, alice_headers, bob.id)

    response = _send(client, alice_headers, room["room_key"], "  hey bob  ")

    assert response.status_code == status.HTTP_201_CREATED
    message = response.json()["data"]
    assert message["content"] == "hey bob"
    assert message["sender"]["username"] == "alice"
    assert message["room_key"] == room["room_key"]

    [broadcast] = live_channel.emitted(room_channel(room["room_key"]), "receive-message")
    assert broadcast["id"] == message["id"]

    [pushed] = live_channel.emitted(user_channel(bob.id), "new_notification")
    assert pushed["type"] == "message"
    assert pushed["data"]["room_key"] == room["room_key"]
    assert pushed["data"]["message_id"] == message["id"]
    assert live_channel.emitted(user_channel(alice.id)) == []


def test_send_message_requires_content(client, bob, alice_headers) -> None:
    room = _open_room(client, alice_headers, bob.id)

    response = _send(client, alice_headers, room["room_key"], "   ")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Chat ID and content are required"

    response = client.post("/api/v1/chat/message", json={"content": "hi"}, headers=alice_headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_outsider_cannot_read_or_write(client, carol, bob, alice_headers, headers_for) -> None:
    room = _open_room(client, alice_headers, bob.id)
    carol_headers = headers_for(carol)

    assert _send(client, carol_headers, room["room_key"], "hi").status_code == status.HTTP_403_FORBIDDEN
    response = client.get(f"/api/v1/chat/messages/{room['room_key']}", headers=carol_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    response = client.patch(f"/api/v1/chat/messages/{room['room_key']}/read", headers=carol_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_unknown_room(client, alice_headers) -> None:
    response = client.get("/api/v1/chat/messages/998-999", headers=alice_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Chat room not found"


def test_rooms_list_tracks_unread_counts(client, alice, bob, alice_headers, bob_headers) -> None:
    room = _open_room(client, alice_headers, bob.id)
    for text in ("one", "two"):
        _send(client, alice_headers, room["room_key"], text)

    [listed] = client.get("/api/v1/chat/rooms", headers=bob_headers).json()["data"]
    assert listed["unread_count"] == 2
    assert listed["last_message"]["content"] == "two"

    response = client.patch(f"/api/v1/chat/messages/{room['room_key']}/read", headers=bob_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {"marked": 2}

    response = client.patch(f"/api/v1/chat/messages/{room['room_key']}/read", headers=bob_headers)
    assert response.json()["data"] == {"marked": 0}

    [listed] = client.get("/api/v1/chat/rooms", headers=bob_headers).json()["data"]
    assert listed["unread_count"] == 0


def test_message_history_pagination(client, bob, alice_headers) -> None:
    room = _open_room(client, alice_headers, bob.id)
    for number in range(1, 52):
        _send(client, alice_headers, room["room_key"], f"message {number}")

    url = f"/api/v1/chat/messages/{room['room_key']}"
    first = client.get(url, headers=alice_headers).json()["data"]
    assert len(first["messages"]) == 50
    assert first["messages"][-1]["content"] == "message 51"
    assert first["pagination"] == {
        "current_page": 1,
        "total_pages": 2,
        "total_messages": 51,
        "has_next_page": True,
        "has_prev_page": False,
    }

    second = client.get(url, params={"page": 2}, headers=alice_headers).json()["data"]
    assert [m["content"] for m in second["messages"]] == ["message 1"]
    assert second["pagination"]["has_prev_page"] is True

    fallback = client.get(url, params={"page": "abc", "limit": "0"}, headers=alice_headers).json()["data"]
    assert fallback["pagination"]["current_page"] == 1
    assert len(fallback["messages"]) == 50


def test_page_beyond_history_is_empty(client, alice_headers, bob) -> None:
    room = _open_room(client, alice_headers, bob.id)
    _send(client, alice_headers, room["room_key"], "hello")

    response = client.get(
        f"/api/v1/chat/messages/{room['room_key']}",
        params={"page": str(10**18)},
        headers=alice_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["messages"] == []
    assert data["pagination"]["total_messages"] == 1
    assert data["pagination"]["has_next_page"] is False


def test_offline_recipient_recovers_from_history(
    client, live_channel, alice, bob, alice_headers, bob_headers
) -> None:
    """A message to an offline user is persisted and notified even though no push lands."""
    room = _open_room(client, alice_headers, bob.id)

    response = _send(client, alice_headers, room["room_key"], "are you around?")
    assert response.status_code == status.HTTP_201_CREATED

    pushes = [event for event in live_channel.events if event[0] == user_channel(bob.id)]
    assert pushes
    assert all(delivered == 0 for *_, delivered in pushes)

    history = client.get(f"/api/v1/chat/messages/{room['room_key']}", headers=bob_headers).json()["data"]
    assert [m["content"] for m in history["messages"]] == ["are you around?"]

    inbox = client.get("/api/v1/notifications", headers=bob_headers).json()["data"]
    [notification] = inbox["notifications"]
    assert notification["type"] == "message"
    assert notification["data"]["room_key"] == room["room_key"]
    assert notification["sender"]["username"] == "alice"
    assert inbox["pagination"]["unread_count"] == 1
