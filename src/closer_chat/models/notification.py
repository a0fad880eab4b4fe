# src/closer_chat/models/notification.py
"""Notification records delivered to users."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from closer_chat.db.session import Base
from closer_chat.db.time import utcnow

from .user import User

NOTIFICATION_TYPES = ("follow", "message", "like", "comment", "mention")

# Types that reuse an unread notification from the same sender inside the dedup window.
DEDUPLICATED_TYPES = frozenset({"follow", "like"})


class Notification(Base):
    """Notification for ``recipient_id`` about an action by ``sender_id``."""

    __tablename__ = "notification"
    __table_args__ = (
        CheckConstraint(
            "type IN ('follow', 'message', 'like', 'comment', 'mention')",
            name="ck_notification_type",
        ),
        CheckConstraint("recipient_id <> sender_id", name="ck_notification_not_self"),
        Index("ix_notification_recipient_read_created", "recipient_id", "read", "created_at"),
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    sender: Mapped[User] = relationship("User", foreign_keys=[sender_id], lazy="joined")
