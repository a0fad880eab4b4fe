# src/closer_chat/models/user.py
"""SQLAlchemy models for user accounts and the follow graph."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from closer_chat.db.session import Base
from closer_chat.db.time import utcnow

# Composite primary key keeps each follow edge unique.
user_follow = Table(
    "user_follow",
    Base.metadata,
    Column("follower_id", Integer, ForeignKey("user_account.id"), primary_key=True),
    Column("followed_id", Integer, ForeignKey("user_account.id"), primary_key=True),
)


class User(Base):
    """Registered account of the social application."""

    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    secret_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    following: Mapped[list[User]] = relationship(
        "User",
        secondary=user_follow,
        primaryjoin=lambda: User.id == user_follow.c.follower_id,
        secondaryjoin=lambda: User.id == user_follow.c.followed_id,
        back_populates="followers",
    )
    followers: Mapped[list[User]] = relationship(
        "User",
        secondary=user_follow,
        primaryjoin=lambda: User.id == user_follow.c.followed_id,
        secondaryjoin=lambda: User.id == user_follow.c.follower_id,
        back_populates="following",
    )

    def summary(self) -> dict[str, object]:
        """Return the public display fields embedded in chat and notification payloads."""
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "avatar_url": self.avatar_url,
        }


class Post(Base):
    """Media post owned by a user; likes and comments point at it."""

    __tablename__ = "post"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("user_account.id"), nullable=False, index=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    author: Mapped[User] = relationship("User")
