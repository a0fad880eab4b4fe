# src/closer_chat/services/social.py
"""Follow, like and comment actions and the notifications they trigger."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from closer_chat.core.errors import BadRequestError, ConflictError, NotFoundError
from closer_chat.core.settings import settings
from closer_chat.models import Comment, Like, Post, User

from .messages import coerce_positive_int
from .notifications import NotificationService

logger = logging.getLogger(__name__)

__all__ = [
    "CommentPage",
    "follow_user",
    "unfollow_user",
    "like_media",
    "unlike_media",
    "add_comment",
    "list_comments",
    "likes_count",
    "comments_count",
]


@dataclass
class CommentPage:
    """Comments on a media item, newest first."""

    comments: list[Comment]
    total_comments: int
    has_more: bool


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _get_post(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


async def follow_user(
    db: Session, notifier: NotificationService, current_user_id: int, target_user_id: int
) -> None:
    """Make ``current_user_id`` follow ``target_user_id`` and notify the target."""
    if current_user_id == target_user_id:
        raise BadRequestError("You cannot follow yourself")

    target = _get_user(db, target_user_id)
    current = _get_user(db, current_user_id)
    if any(user.id == target.id for user in current.following):
        raise BadRequestError("You are already following this user")

    current.following.append(target)
    db.commit()

    try:
        await notifier.notify_follow(db, current_user_id, target_user_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Failed to create follow notification: %s", exc)


def unfollow_user(db: Session, current_user_id: int, target_user_id: int) -> None:
    """Remove the follow edge from ``current_user_id`` to ``target_user_id``."""
    if current_user_id == target_user_id:
        raise BadRequestError("You cannot unfollow yourself")

    target = _get_user(db, target_user_id)
    current = _get_user(db, current_user_id)
    if not any(user.id == target.id for user in current.following):
        raise BadRequestError("You are not following this user")

    current.following.remove(target)
    db.commit()


def likes_count(db: Session, post_id: int, media_id: str) -> int:
    """Count likes on one media item."""
    stmt = select(func.count()).select_from(Like).where(Like.post_id == post_id, Like.media_id == media_id)
    return db.scalar(stmt) or 0


def comments_count(db: Session, post_id: int, media_id: str) -> int:
    """Count comments on one media item."""
    stmt = (
        select(func.count())
        .select_from(Comment)
        .where(Comment.post_id == post_id, Comment.media_id == media_id)
    )
    return db.scalar(stmt) or 0


async def like_media(
    db: Session, notifier: NotificationService, user_id: int, post_id: int, media_id: str
) -> int:
    """Record a like and notify the post owner.

    Returns:
        The updated like count of the media item.

    Raises:
        ConflictError: If the user already liked this media item.
    """
    if not media_id:
        raise BadRequestError("Post ID and Media ID are required")
    post = _get_post(db, post_id)

    existing = db.scalars(
        select(Like).where(Like.user_id == user_id, Like.post_id == post_id, Like.media_id == media_id)
    ).first()
    if existing is not None:
        raise ConflictError("Post already liked")

    db.add(Like(user_id=user_id, post_id=post_id, media_id=media_id))
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Post already liked") from exc

    try:
        await notifier.notify_like(db, user_id, post.author_id, post.id, media_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to send like notification: %s", exc)

    return likes_count(db, post_id, media_id)


def unlike_media(db: Session, user_id: int, post_id: int, media_id: str) -> int:
    """Delete the user's like of a media item and return the updated count."""
    like = db.scalars(
        select(Like).where(Like.user_id == user_id, Like.post_id == post_id, Like.media_id == media_id)
    ).first()
    if like is None:
        raise NotFoundError("Like not found")
    db.delete(like)
    db.commit()
    return likes_count(db, post_id, media_id)


async def add_comment(
    db: Session,
    notifier: NotificationService,
    user_id: int,
    post_id: int,
    media_id: str,
    text: str | None,
) -> Comment:
    """Append a comment to a media item and notify the post owner."""
    body = (text or "").strip()
    if not media_id or not body:
        raise BadRequestError("Comment cannot be empty")
    post = _get_post(db, post_id)

    comment = Comment(user_id=user_id, post_id=post.id, media_id=media_id, text=body)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    try:
        await notifier.notify_comment(db, user_id, post.author_id, post.id, comment.id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to send comment notification: %s", exc)

    return comment


def list_comments(
    db: Session, post_id: int, media_id: str, page: Any = None, limit: Any = None
) -> CommentPage:
    """Return comments on a media item, newest first."""
    page = coerce_positive_int(page, 1, settings.max_page)
    limit = coerce_positive_int(limit, 20, 100)
    skip = (page - 1) * limit

    stmt = (
        select(Comment)
        .where(Comment.post_id == post_id, Comment.media_id == media_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset(skip)
        .limit(limit)
    )
    comments = list(db.scalars(stmt))
    total = comments_count(db, post_id, media_id)
    return CommentPage(comments=comments, total_comments=total, has_more=skip + len(comments) < total)
