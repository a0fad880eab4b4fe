"""Notification-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

NotificationType = Literal["follow", "message", "like", "comment", "mention"]


class NotificationResponse(BaseModel):
    """Schema for notification information returned by the API."""

    id: int
    recipient_id: int
    sender_id: int
    sender: dict[str, Any] | None = None
    type: NotificationType
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, notification: Any) -> NotificationResponse:
        """Build the payload from a ``Notification`` row, resolving sender display fields."""
        sender = notification.sender
        return cls(
            id=notification.id,
            recipient_id=notification.recipient_id,
            sender_id=notification.sender_id,
            sender=sender.summary() if sender is not None else None,
            type=notification.type,
            message=notification.message,
            data=dict(notification.data or {}),
            read=notification.read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationPagination(BaseModel):
    """Page metadata for the notification list."""

    current: int
    total: int
    count: int
    unread_count: int


class NotificationPageResponse(BaseModel):
    """A page of notifications, newest first."""

    notifications: list[NotificationResponse]
    pagination: NotificationPagination


class UnreadCountResponse(BaseModel):
    """Unread notification counter."""

    unread_count: int
