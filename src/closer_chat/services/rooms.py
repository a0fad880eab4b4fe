"""Chat room resolution.

A room key is derived from the sorted participant ids, so both ends of a
conversation converge on the same row no matter who opens it first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from closer_chat.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from closer_chat.core.settings import settings
from closer_chat.models import AI_SENDER_INFO, ChatParticipant, ChatRoom, User

from . import messages as message_store

logger = logging.getLogger(__name__)

CHATBOT_KEY_PREFIX = "chatbot"

__all__ = [
    "RoomSummary",
    "room_key_for",
    "chatbot_room_key",
    "find_room",
    "get_or_create_room",
    "get_or_create_chatbot_room",
    "require_participant",
    "list_rooms",
]


@dataclass
class RoomSummary:
    """A room as seen by one participant in the room list."""

    room: ChatRoom
    unread_count: int
    participants: list[dict[str, Any]]


def room_key_for(user_a: int | str, user_b: int | str) -> str:
    """Return the canonical key of the conversation between two users."""
    return settings.room_key_separator.join(sorted((str(user_a), str(user_b))))


def chatbot_room_key(user_id: int | str) -> str:
    """Return the key of a user's chatbot conversation."""
    return f"{CHATBOT_KEY_PREFIX}{settings.room_key_separator}{user_id}"


def find_room(db: Session, room_key: str) -> ChatRoom | None:
    """Return the room stored under ``room_key``, if any."""
    return db.scalars(select(ChatRoom).where(ChatRoom.room_key == room_key)).first()


def _insert_room(db: Session, room: ChatRoom) -> ChatRoom:
    room_key = room.room_key
    db.add(room)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same key first; converge on its row.
        db.rollback()
        logger.info("Room %s was created concurrently; re-fetching", room_key)
        existing = find_room(db, room_key)
        if existing is None:
            raise ConflictError("Chat room could not be created") from None
        return existing
    logger.info("Created chat room %s", room_key)
    return room


def get_or_create_room(db: Session, current_user_id: int, other_user_id: int | None) -> ChatRoom:
    """Return the conversation between two users, creating it on first contact.

    Raises:
        BadRequestError: If the other participant is missing or is the caller.
        NotFoundError: If the other participant does not exist.
    """
    if other_user_id is None:
        raise BadRequestError("Participant ID is required")
    if other_user_id == current_user_id:
        raise BadRequestError("You cannot start a chat with yourself")

    room_key = room_key_for(current_user_id, other_user_id)
    room = find_room(db, room_key)
    if room is not None:
        return room

    if db.get(User, other_user_id) is None:
        raise NotFoundError("User not found")

    room = ChatRoom(
        room_key=room_key,
        memberships=[
            ChatParticipant(user_id=current_user_id, position=0),
            ChatParticipant(user_id=other_user_id, position=1),
        ],
    )
    return _insert_room(db, room)


def get_or_create_chatbot_room(db: Session, user_id: int) -> ChatRoom:
    """Return the user's single-party chatbot room, creating it if needed."""
    room_key = chatbot_room_key(user_id)
    room = find_room(db, room_key)
    if room is not None:
        return room

    room = ChatRoom(
        room_key=room_key,
        is_chatbot=True,
        memberships=[ChatParticipant(user_id=user_id, position=0)],
    )
    return _insert_room(db, room)


def require_participant(db: Session, room_key: str | None, user_id: int) -> ChatRoom:
    """Return the room if ``user_id`` participates in it.

    Raises:
        BadRequestError: If no key was given.
        NotFoundError: If the room does not exist.
        ForbiddenError: If the user is not a participant.
    """
    if not room_key:
        raise BadRequestError("Chat ID is required")
    room = find_room(db, room_key)
    if room is None:
        raise NotFoundError("Chat room not found")
    if user_id not in room.participant_ids:
        raise ForbiddenError("Access denied to this chat")
    return room


def list_rooms(db: Session, user_id: int) -> list[RoomSummary]:
    """Return the user's rooms, most recently active first, with unread counts."""
    stmt = (
        select(ChatRoom)
        .join(ChatParticipant, ChatParticipant.room_id == ChatRoom.id)
        .where(ChatParticipant.user_id == user_id)
        .order_by(ChatRoom.last_activity.desc(), ChatRoom.id.desc())
    )
    summaries: list[RoomSummary] = []
    for room in db.scalars(stmt).unique():
        if room.is_chatbot:
            # AI replies never count as unread.
            summaries.append(RoomSummary(room=room, unread_count=0, participants=[dict(AI_SENDER_INFO)]))
            continue
        summaries.append(
            RoomSummary(
                room=room,
                unread_count=message_store.unread_count(db, room.room_key, user_id),
                participants=[user.summary() for user in room.participants],
            )
        )
    return summaries
