"""Chat room and message endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, status
from sqlalchemy.exc import SQLAlchemyError

from closer_chat.schemas import (
    ApiResponse,
    MessageCreate,
    MessagePageResponse,
    MessageResponse,
    RoomResponse,
    api_response,
)
from closer_chat.services import messages as message_store
from closer_chat.services import rooms

from ..dependencies import CurrentUserDep, LiveChannelDep, NotificationServiceDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/rooms")
async def get_user_rooms(current_user: CurrentUserDep, db: SessionDep) -> ApiResponse:
    """List the caller's rooms with per-room unread counts."""
    summaries = rooms.list_rooms(db, current_user.id)
    data = [
        RoomResponse.from_model(
            summary.room,
            unread_count=summary.unread_count,
            participants=summary.participants,
        ).model_dump(mode="json")
        for summary in summaries
    ]
    return api_response(data, "Chat rooms retrieved successfully")


@router.get("/room/{other_user_id}")
async def get_or_create_room(
    other_user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ApiResponse:
    """Resolve the conversation with another user, creating it on first contact."""
    room = rooms.get_or_create_room(db, current_user.id, other_user_id)
    return api_response(
        RoomResponse.from_model(room).model_dump(mode="json"),
        "Chat room retrieved successfully",
    )


@router.get("/messages/{room_key}")
async def get_chat_messages(
    room_key: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: str | None = Query(None),
    limit: str | None = Query(None),
) -> ApiResponse:
    """Return one page of room history, oldest message first."""
    result = message_store.list_messages(db, room_key, current_user.id, page, limit)
    data = MessagePageResponse(
        messages=[MessageResponse.from_model(m) for m in result.messages],
        pagination=result.pagination(),
    )
    return api_response(data.model_dump(mode="json"), "Messages retrieved successfully")


@router.post("/message", status_code=status.HTTP_201_CREATED)
async def save_message(
    payload: MessageCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    channel: LiveChannelDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Persist a message, broadcast it to the room and notify the other participant."""
    message = message_store.append_message(db, payload.room_key, current_user.id, payload.content)
    data = MessageResponse.from_model(message).model_dump(mode="json")

    try:
        await channel.emit_to_room(message.room_key, "receive-message", data)
    except Exception as exc:
        logger.warning("Failed to broadcast message %s: %s", message.id, exc)

    room = rooms.find_room(db, message.room_key)
    if room is not None:
        for recipient_id in room.participant_ids:
            if recipient_id == current_user.id:
                continue
            try:
                await notifier.notify_message(
                    db, current_user.id, recipient_id, message.id, room.id, room.room_key
                )
            except SQLAlchemyError as exc:
                # The message is stored; a missing notification must not fail the send.
                db.rollback()
                logger.error("Failed to create message notification: %s", exc)

    return api_response(data, "Message saved successfully", status.HTTP_201_CREATED)


@router.patch("/messages/{room_key}/read")
async def mark_messages_read(
    room_key: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ApiResponse:
    """Add the caller's read receipt to every unread message in the room."""
    added = message_store.mark_read(db, room_key, current_user.id)
    return api_response({"marked": added}, "Messages marked as read")
