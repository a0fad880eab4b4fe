# src/closer_chat/models/chat.py
"""Models describing chat rooms, their messages and read receipts."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from closer_chat.db.session import Base
from closer_chat.db.time import utcnow

from .user import User

# Display fields used in place of a sender for AI-authored messages.
AI_SENDER_INFO: dict[str, Any] = {
    "id": "ai-assistant",
    "name": "Your AI Friend",
    "avatar_url": "/chatbot.png",
}


class ChatParticipant(Base):
    """Links a user to a room; ``position`` preserves participant order."""

    __tablename__ = "chat_room_participant"

    room_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_room.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        primary_key=True,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    room: Mapped[ChatRoom] = relationship("ChatRoom", back_populates="memberships")
    user: Mapped[User] = relationship("User", lazy="joined")


class ChatRoom(Base):
    """Two-party conversation, or a single-party chatbot conversation.

    The room key is derived from the sorted participant ids so that both
    ends of a conversation resolve to the same row.
    """

    __tablename__ = "chat_room"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    last_message_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("chat_message.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_activity: Mapped[datetime] = mapped_column(default=utcnow, index=True)
    is_chatbot: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    memberships: Mapped[list[ChatParticipant]] = relationship(
        "ChatParticipant",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="ChatParticipant.position",
        lazy="selectin",
    )
    last_message: Mapped[Message | None] = relationship("Message", lazy="joined")

    @property
    def participants(self) -> list[User]:
        """Return participant users in creation order."""
        return [membership.user for membership in self.memberships]

    @property
    def participant_ids(self) -> list[int]:
        """Return participant ids in creation order."""
        return [membership.user_id for membership in self.memberships]


class Message(Base):
    """Chat message, attached to its room by key rather than by row."""

    __tablename__ = "chat_message"
    __table_args__ = (Index("ix_chat_message_room_created", "room_key", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_key: Mapped[str] = mapped_column(String(128), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Absent for AI-authored messages.
    sender_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        nullable=True,
    )
    is_ai_message: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    edited_at: Mapped[datetime | None] = mapped_column(nullable=True)

    sender: Mapped[User | None] = relationship("User", lazy="joined")
    read_receipts: Mapped[list[MessageReadReceipt]] = relationship(
        "MessageReadReceipt",
        cascade="all, delete-orphan",
        order_by="MessageReadReceipt.read_at",
        lazy="selectin",
    )

    @property
    def sender_info(self) -> dict[str, Any] | None:
        """Return the display fields of whoever authored the message."""
        if self.is_ai_message:
            return dict(AI_SENDER_INFO)
        if self.sender is None:
            return None
        return self.sender.summary()


class MessageReadReceipt(Base):
    """Record that ``user_id`` has read ``message_id``.

    The composite primary key allows at most one receipt per reader.
    """

    __tablename__ = "message_read_receipt"

    message_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("chat_message.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id"),
        primary_key=True,
        index=True,
    )
    read_at: Mapped[datetime] = mapped_column(default=utcnow)
