"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .chat import (
    ChatbotMessageCreate,
    MessageCreate,
    MessagePageResponse,
    MessageResponse,
    PaginationInfo,
    ReadReceiptResponse,
    RoomResponse,
)
from .common import ApiResponse, ErrorResponse, api_response
from .notification import (
    NotificationPageResponse,
    NotificationPagination,
    NotificationResponse,
    UnreadCountResponse,
)
from .social import CommentCreate, LikeRequest

__all__ = [
    "ChatbotMessageCreate", "MessageCreate", "MessagePageResponse", "MessageResponse",
    "PaginationInfo", "ReadReceiptResponse", "RoomResponse",
    "ApiResponse", "ErrorResponse", "api_response",
    "NotificationPageResponse", "NotificationPagination", "NotificationResponse",
    "UnreadCountResponse",
    "CommentCreate", "LikeRequest",
]
