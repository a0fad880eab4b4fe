# src/closer_chat/models/social.py
"""Models capturing likes and comments on post media."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from closer_chat.db.session import Base
from closer_chat.db.time import utcnow

from .user import User


class Like(Base):
    """A single user's like of a single media item within a post."""

    __tablename__ = "post_like"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", "media_id", name="uq_post_like_user_post_media"),
        Index("ix_post_like_post_media", "post_id", "media_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("post.id"), nullable=False)
    media_id: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)


class Comment(Base):
    """Append-only comment on a post media item."""

    __tablename__ = "post_comment"
    __table_args__ = (Index("ix_post_comment_post_media", "post_id", "media_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False)
    post_id: Mapped[int] = mapped_column(Integer, ForeignKey("post.id"), nullable=False)
    media_id: Mapped[str] = mapped_column(String(128), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    user: Mapped[User] = relationship("User")
