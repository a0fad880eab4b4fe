"""Chat-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageCreate(BaseModel):
    """Schema for persisting a new chat message."""

    room_key: str = Field("", description="Canonical key of the target room")
    content: str = Field("", description="Message text")

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        return value.strip()


class ChatbotMessageCreate(BaseModel):
    """Schema for persisting a message in the caller's chatbot room."""

    content: str = Field(..., description="Message text")
    is_ai_message: bool = Field(False, description="True when the text was produced by the AI companion")


class ReadReceiptResponse(BaseModel):
    """Read receipt attached to a message."""

    user_id: int
    read_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    """Schema for chat message information returned by the API."""

    id: int
    room_key: str
    content: str
    sender_id: int | None
    sender: dict[str, Any] | None = Field(None, description="Sender display fields or AI descriptor")
    is_ai_message: bool
    created_at: datetime
    edited: bool
    edited_at: datetime | None = None
    read_by: list[ReadReceiptResponse] = Field(default_factory=list)

    @classmethod
    def from_model(cls, message: Any) -> MessageResponse:
        """Build the payload from a ``Message`` row."""
        return cls(
            id=message.id,
            room_key=message.room_key,
            content=message.content,
            sender_id=message.sender_id,
            sender=message.sender_info,
            is_ai_message=message.is_ai_message,
            created_at=message.created_at,
            edited=message.edited,
            edited_at=message.edited_at,
            read_by=[ReadReceiptResponse.model_validate(receipt) for receipt in message.read_receipts],
        )


class PaginationInfo(BaseModel):
    """Page metadata for message history."""

    current_page: int
    total_pages: int
    total_messages: int
    has_next_page: bool
    has_prev_page: bool


class MessagePageResponse(BaseModel):
    """A page of message history, oldest first."""

    messages: list[MessageResponse]
    pagination: PaginationInfo


class RoomResponse(BaseModel):
    """Schema for chat room information returned by the API."""

    id: int
    room_key: str
    participants: list[dict[str, Any]]
    last_message: MessageResponse | None = None
    last_activity: datetime
    is_chatbot: bool
    unread_count: int | None = None

    @classmethod
    def from_model(
        cls,
        room: Any,
        unread_count: int | None = None,
        participants: list[dict[str, Any]] | None = None,
    ) -> RoomResponse:
        """Build the payload from a ``ChatRoom`` row."""
        if participants is None:
            participants = [user.summary() for user in room.participants]
        last_message = room.last_message
        return cls(
            id=room.id,
            room_key=room.room_key,
            participants=participants,
            last_message=MessageResponse.from_model(last_message) if last_message is not None else None,
            last_activity=room.last_activity,
            is_chatbot=room.is_chatbot,
            unread_count=unread_count,
        )
