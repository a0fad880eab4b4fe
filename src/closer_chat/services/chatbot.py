# src/closer_chat/services/chatbot.py
"""Persistence for conversations with the AI companion."""

from sqlalchemy.orm import Session

from closer_chat.models import Message

from . import messages, rooms


def save_chatbot_message(db: Session, user_id: int, content: str | None, is_ai_message: bool = False) -> Message:
    """Store a message in the user's chatbot room.

    User-authored messages are stored as sent by the user; AI replies carry
    no sender and are attributed to the AI companion.
    """
    room = rooms.get_or_create_chatbot_room(db, user_id)
    if is_ai_message:
        return messages.append_ai_message(db, room.room_key, content)
    return messages.append_message(db, room.room_key, user_id, content)
