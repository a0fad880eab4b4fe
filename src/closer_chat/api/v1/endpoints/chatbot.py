"""Endpoints persisting conversations with the AI companion."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from closer_chat.schemas import (
    ApiResponse,
    ChatbotMessageCreate,
    MessagePageResponse,
    MessageResponse,
    RoomResponse,
    api_response,
)
from closer_chat.services import chatbot, rooms
from closer_chat.services import messages as message_store

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/chatbot", tags=["chatbot"])


@router.get("/room")
async def get_chatbot_room(current_user: CurrentUserDep, db: SessionDep) -> ApiResponse:
    """Return the caller's chatbot room, creating it on first use."""
    room = rooms.get_or_create_chatbot_room(db, current_user.id)
    return api_response(
        RoomResponse.from_model(room).model_dump(mode="json"),
        "Chatbot room retrieved successfully",
    )


@router.get("/messages")
async def get_chatbot_messages(
    current_user: CurrentUserDep,
    db: SessionDep,
    page: str | None = Query(None),
    limit: str | None = Query(None),
) -> ApiResponse:
    """Return one page of the caller's chatbot history, oldest first."""
    room = rooms.get_or_create_chatbot_room(db, current_user.id)
    result = message_store.list_messages(db, room.room_key, current_user.id, page, limit)
    data = MessagePageResponse(
        messages=[MessageResponse.from_model(m) for m in result.messages],
        pagination=result.pagination(),
    )
    return api_response(data.model_dump(mode="json"), "Chatbot messages retrieved successfully")


@router.post("/message", status_code=status.HTTP_201_CREATED)
async def save_chatbot_message(
    payload: ChatbotMessageCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ApiResponse:
    """Store a user prompt or an AI reply in the caller's chatbot room."""
    message = chatbot.save_chatbot_message(db, current_user.id, payload.content, payload.is_ai_message)
    return api_response(
        MessageResponse.from_model(message).model_dump(mode="json"),
        "Message saved successfully",
        status.HTTP_201_CREATED,
    )
