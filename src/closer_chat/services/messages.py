"""Message persistence, history pagination and read-state tracking."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import DateTime, Integer, exists, func, insert, literal, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from closer_chat.core.errors import BadRequestError, ForbiddenError
from closer_chat.core.settings import settings
from closer_chat.db.time import utcnow
from closer_chat.models import ChatRoom, Message, MessageReadReceipt

from . import rooms

logger = logging.getLogger(__name__)


@dataclass
class MessagePage:
    """One page of room history, oldest message first."""

    messages: list[Message]
    current_page: int
    total_pages: int
    total_messages: int
    has_next_page: bool
    has_prev_page: bool

    def pagination(self) -> dict[str, Any]:
        """Return the page metadata as a plain mapping."""
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_messages": self.total_messages,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


def coerce_positive_int(value: Any, default: int, maximum: int | None = None) -> int:
    """Coerce a user-supplied page or limit to a positive integer.

    Missing, non-numeric and non-positive values fall back to ``default``;
    values above ``maximum`` are clamped.
    """
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    if maximum is not None:
        number = min(number, maximum)
    return number


def _not_sent_by(user_id: int):
    # AI messages have no sender and are never "sent by" a user.
    return or_(Message.sender_id.is_(None), Message.sender_id != user_id)


def _persist(db: Session, room: ChatRoom, message: Message) -> Message:
    """Insert the message and move the room pointer in one transaction."""
    db.add(message)
    try:
        db.flush()
        db.execute(
            update(ChatRoom)
            .where(ChatRoom.id == room.id)
            .values(last_message_id=message.id, last_activity=message.created_at)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store message in room %s", room.room_key)
        raise
    db.refresh(message)
    return message


def append_message(db: Session, room_key: str | None, sender_id: int, content: str | None) -> Message:
    """Persist a message sent by ``sender_id`` in ``room_key``.

    Raises:
        BadRequestError: If the key or content is blank.
        NotFoundError: If the room does not exist.
        ForbiddenError: If the sender is not a participant.
    """
    text = (content or "").strip()
    if not room_key or not text:
        raise BadRequestError("Chat ID and content are required")

    room = rooms.require_participant(db, room_key, sender_id)
    message = Message(room_key=room.room_key, sender_id=sender_id, content=text)
    return _persist(db, room, message)


def append_ai_message(db: Session, room_key: str, content: str | None) -> Message:
    """Persist an AI-authored message in a chatbot room."""
    text = (content or "").strip()
    if not text:
        raise BadRequestError("Message is required")

    room = rooms.find_room(db, room_key)
    if room is None or not room.is_chatbot:
        raise ForbiddenError("AI messages can only be stored in chatbot rooms")
    message = Message(room_key=room.room_key, sender_id=None, is_ai_message=True, content=text)
    return _persist(db, room, message)


def list_messages(
    db: Session,
    room_key: str | None,
    user_id: int,
    page: Any = None,
    limit: Any = None,
) -> MessagePage:
    """Return one page of history for a participant of ``room_key``.

    The newest ``limit`` messages of the page are fetched newest-first and
    reversed so the page reads oldest-first.
    """
    room = rooms.require_participant(db, room_key, user_id)
    page = coerce_positive_int(page, 1, settings.max_page)
    limit = coerce_positive_int(limit, settings.message_page_size, settings.max_page_size)

    stmt = (
        select(Message)
        .where(Message.room_key == room.room_key)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    messages = list(db.scalars(stmt).unique())
    messages.reverse()

    total = db.scalar(
        select(func.count()).select_from(Message).where(Message.room_key == room.room_key)
    ) or 0

    return MessagePage(
        messages=messages,
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_messages=total,
        has_next_page=page * limit < total,
        has_prev_page=page > 1,
    )


def _insert_receipts(db: Session, room_key: str, reader_id: int) -> int:
    already_read = select(MessageReadReceipt.message_id).where(
        MessageReadReceipt.user_id == reader_id
    )
    unread = select(
        Message.id,
        literal(reader_id, type_=Integer),
        literal(utcnow(), type_=DateTime()),
    ).where(
        Message.room_key == room_key,
        _not_sent_by(reader_id),
        Message.id.not_in(already_read),
    )
    result = db.execute(
        insert(MessageReadReceipt).from_select(["message_id", "user_id", "read_at"], unread)
    )
    db.commit()
    return result.rowcount or 0


def mark_read(db: Session, room_key: str | None, reader_id: int) -> int:
    """Add a read receipt from ``reader_id`` to every unread message in the room.

    A single ``INSERT ... SELECT`` adds the receipts, so calling this again
    adds nothing.

    Returns:
        Number of receipts added.
    """
    room = rooms.require_participant(db, room_key, reader_id)
    try:
        added = _insert_receipts(db, room.room_key, reader_id)
    except IntegrityError:
        # A concurrent mark-read for the same reader won; the retry skips its receipts.
        db.rollback()
        added = _insert_receipts(db, room.room_key, reader_id)
    if added:
        logger.debug("User %s read %d messages in %s", reader_id, added, room.room_key)
    return added


def unread_count(db: Session, room_key: str, user_id: int) -> int:
    """Count messages in ``room_key`` not sent by ``user_id`` and not read by them."""
    has_receipt = exists().where(
        MessageReadReceipt.message_id == Message.id,
        MessageReadReceipt.user_id == user_id,
    )
    stmt = (
        select(func.count())
        .select_from(Message)
        .where(Message.room_key == room_key, _not_sent_by(user_id), ~has_receipt)
    )
    return db.scalar(stmt) or 0
