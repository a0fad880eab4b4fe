# src/closer_chat/models/__init__.py
"""SQLAlchemy models for the Closer realtime service."""

from .chat import AI_SENDER_INFO, ChatParticipant, ChatRoom, Message, MessageReadReceipt
from .notification import Notification
from .social import Comment, Like
from .user import Post, User, user_follow

__all__ = [
    "AI_SENDER_INFO",
    "ChatParticipant", "ChatRoom", "Message", "MessageReadReceipt",
    "Notification",
    "Comment", "Like",
    "Post", "User", "user_follow",
]
