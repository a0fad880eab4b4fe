"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query

from closer_chat.schemas import (
    ApiResponse,
    NotificationPageResponse,
    NotificationResponse,
    UnreadCountResponse,
    api_response,
)

from ..dependencies import CurrentUserDep, NotificationServiceDep, SessionDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def get_notifications(
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
    page: str | None = Query(None),
    limit: str | None = Query(None),
    unread_only: bool = Query(False, alias="unreadOnly"),
) -> ApiResponse:
    """Return one page of the caller's notifications, newest first."""
    result = notifier.list_notifications(db, current_user.id, page, limit, unread_only)
    data = NotificationPageResponse(
        notifications=[NotificationResponse.from_model(n) for n in result.notifications],
        pagination=result.pagination(),
    )
    return api_response(data.model_dump(mode="json"), "Notifications retrieved successfully")


@router.get("/unread-count")
async def get_unread_count(
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Return the caller's unread notification count."""
    data = UnreadCountResponse(unread_count=notifier.unread_count(db, current_user.id))
    return api_response(data.model_dump(), "Unread count retrieved successfully")


@router.patch("/mark-all-read")
async def mark_all_read(
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Mark every unread notification of the caller as read."""
    updated = await notifier.mark_all_read(db, current_user.id)
    return api_response({"updated": updated}, "All notifications marked as read")


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Mark one of the caller's notifications as read."""
    notification = await notifier.mark_read(db, current_user.id, notification_id)
    return api_response(
        NotificationResponse.from_model(notification).model_dump(mode="json"),
        "Notification marked as read",
    )


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Delete one of the caller's notifications."""
    notifier.delete(db, current_user.id, notification_id)
    return api_response({}, "Notification deleted successfully")
