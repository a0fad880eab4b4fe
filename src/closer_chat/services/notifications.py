"""Notification fan-out and notification inbox queries."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from closer_chat.core.errors import BadRequestError, NotFoundError
from closer_chat.core.settings import settings
from closer_chat.db.time import utcnow
from closer_chat.models import Notification, User
from closer_chat.models.notification import DEDUPLICATED_TYPES, NOTIFICATION_TYPES
from closer_chat.schemas.notification import NotificationResponse

from .live import LiveChannel
from .messages import coerce_positive_int

logger = logging.getLogger(__name__)


@dataclass
class NotificationPage:
    """One page of a user's notifications, newest first."""

    notifications: list[Notification]
    current: int
    total: int
    count: int
    unread_count: int

    def pagination(self) -> dict[str, int]:
        """Return the page metadata as a plain mapping."""
        return {
            "current": self.current,
            "total": self.total,
            "count": self.count,
            "unread_count": self.unread_count,
        }


def _describe(user: User) -> str:
    return f"{user.name} (@{user.username})"


class NotificationService:
    """Creates notifications and pushes them over the live channel.

    Live pushes are best effort: failures are logged and never propagate to
    the action that triggered the notification.
    """

    def __init__(self, channel: LiveChannel) -> None:
        self.channel = channel

    async def _push(self, user_id: int, event: str, data: Any) -> None:
        try:
            await self.channel.emit_to_user(user_id, event, data)
        except Exception as exc:
            logger.warning("Failed to push %s to user %s: %s", event, user_id, exc)

    async def _push_unread_count(self, db: Session, user_id: int) -> None:
        await self._push(user_id, "unread_count_update", {"unreadCount": self.unread_count(db, user_id)})

    def _find_recent_unread(
        self, db: Session, recipient_id: int, sender_id: int, type_: str
    ) -> Notification | None:
        cutoff = utcnow() - timedelta(hours=settings.notification_dedup_window_hours)
        stmt = (
            select(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.sender_id == sender_id,
                Notification.type == type_,
                Notification.read.is_(False),
                Notification.created_at >= cutoff,
            )
            .order_by(Notification.created_at.desc())
        )
        return db.scalars(stmt).first()

    async def notify(
        self,
        db: Session,
        type_: str,
        recipient_id: int,
        sender_id: int,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Create a notification for ``recipient_id`` and push it live.

        Returns:
            None for self-notifications; the existing notification when a
            follow or like is repeated inside the dedup window; otherwise
            the newly created notification.
        """
        if type_ not in NOTIFICATION_TYPES:
            raise BadRequestError(f"Unknown notification type: {type_}")
        if recipient_id == sender_id:
            return None

        if type_ in DEDUPLICATED_TYPES:
            existing = self._find_recent_unread(db, recipient_id, sender_id, type_)
            if existing is not None:
                return existing

        notification = Notification(
            recipient_id=recipient_id,
            sender_id=sender_id,
            type=type_,
            message=message,
            data=data or {},
        )
        db.add(notification)
        db.commit()
        db.refresh(notification)

        payload = NotificationResponse.from_model(notification).model_dump(mode="json")
        await self._push(recipient_id, "new_notification", payload)
        await self._push_unread_count(db, recipient_id)
        return notification

    async def notify_follow(self, db: Session, follower_id: int, followed_id: int) -> Notification | None:
        """Tell ``followed_id`` that ``follower_id`` started following them."""
        follower = db.get(User, follower_id)
        if follower is None:
            return None
        return await self.notify(
            db, "follow", followed_id, follower_id, f"{_describe(follower)} started following you"
        )

    async def notify_like(
        self, db: Session, liker_id: int, post_owner_id: int, post_id: int, media_id: str | None = None
    ) -> Notification | None:
        """Tell the post owner that ``liker_id`` liked their post."""
        liker = db.get(User, liker_id)
        if liker is None:
            return None
        data: dict[str, Any] = {"post_id": post_id}
        if media_id is not None:
            data["media_id"] = media_id
        return await self.notify(
            db, "like", post_owner_id, liker_id, f"{_describe(liker)} liked your post", data
        )

    async def notify_comment(
        self, db: Session, commenter_id: int, post_owner_id: int, post_id: int, comment_id: int
    ) -> Notification | None:
        """Tell the post owner that ``commenter_id`` commented on their post."""
        commenter = db.get(User, commenter_id)
        if commenter is None:
            return None
        return await self.notify(
            db,
            "comment",
            post_owner_id,
            commenter_id,
            f"{_describe(commenter)} commented on your post",
            {"post_id": post_id, "comment_id": comment_id},
        )

    async def notify_message(
        self,
        db: Session,
        sender_id: int,
        recipient_id: int,
        message_id: int,
        room_id: int,
        room_key: str,
    ) -> Notification | None:
        """Tell ``recipient_id`` that ``sender_id`` sent them a chat message."""
        sender = db.get(User, sender_id)
        if sender is None:
            return None
        return await self.notify(
            db,
            "message",
            recipient_id,
            sender_id,
            f"{_describe(sender)} sent you a message",
            {"message_id": message_id, "room_id": room_id, "room_key": room_key},
        )

    def unread_count(self, db: Session, user_id: int) -> int:
        """Count the user's unread notifications."""
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.recipient_id == user_id, Notification.read.is_(False))
        )
        return db.scalar(stmt) or 0

    def list_notifications(
        self,
        db: Session,
        user_id: int,
        page: Any = None,
        limit: Any = None,
        unread_only: bool = False,
    ) -> NotificationPage:
        """Return one page of the user's notifications, newest first."""
        page = coerce_positive_int(page, 1, settings.max_page)
        limit = coerce_positive_int(limit, settings.notification_page_size, settings.max_page_size)

        filters = [Notification.recipient_id == user_id]
        if unread_only:
            filters.append(Notification.read.is_(False))

        stmt = (
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        notifications = list(db.scalars(stmt).unique())
        total = db.scalar(select(func.count()).select_from(Notification).where(*filters)) or 0

        return NotificationPage(
            notifications=notifications,
            current=page,
            total=math.ceil(total / limit),
            count=total,
            unread_count=self.unread_count(db, user_id),
        )

    async def mark_read(self, db: Session, user_id: int, notification_id: int) -> Notification:
        """Mark one of the user's notifications as read.

        Raises:
            NotFoundError: If the notification does not exist or is not the user's.
        """
        notification = db.scalars(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
        ).first()
        if notification is None:
            raise NotFoundError("Notification not found")

        if not notification.read:
            notification.read = True
            notification.read_at = utcnow()
            db.commit()
            db.refresh(notification)

        await self._push_unread_count(db, user_id)
        return notification

    async def mark_all_read(self, db: Session, user_id: int) -> int:
        """Mark every unread notification of the user as read.

        Returns:
            Number of notifications updated.
        """
        result = db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=utcnow())
        )
        db.commit()
        await self._push_unread_count(db, user_id)
        return result.rowcount or 0

    def delete(self, db: Session, user_id: int, notification_id: int) -> None:
        """Delete one of the user's notifications.

        Raises:
            NotFoundError: If the notification does not exist or is not the user's.
        """
        notification = db.scalars(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.recipient_id == user_id,
            )
        ).first()
        if notification is None:
            raise NotFoundError("Notification not found")
        db.delete(notification)
        db.commit()
