# tests/services/test_chatbot_store.py
"""Tests for chatbot conversation persistence."""

import pytest

from closer_chat.core.errors import BadRequestError
from closer_chat.services import chatbot, messages, rooms


def test_user_and_ai_messages_share_the_chatbot_room(db_session, alice) -> None:
    prompt = chatbot.save_chatbot_message(db_session, alice.id, "I had a long day")
    reply = chatbot.save_chatbot_message(db_session, alice.id, "Tell me about it", is_ai_message=True)

    assert prompt.room_key == reply.room_key == rooms.chatbot_room_key(alice.id)
    assert prompt.sender_id == alice.id
    assert reply.sender_id is None
    assert reply.is_ai_message is True
    assert reply.sender_info["name"] == "Your AI Friend"

    page = messages.list_messages(db_session, prompt.room_key, alice.id)
    assert [m.content for m in page.messages] == ["I had a long day", "Tell me about it"]


def test_empty_chatbot_message_is_rejected(db_session, alice) -> None:
    with pytest.raises(BadRequestError):
        chatbot.save_chatbot_message(db_session, alice.id, "  ", is_ai_message=True)
