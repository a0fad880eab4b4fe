# src/closer_chat/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .chat import router as chat_router
from .chatbot import router as chatbot_router
from .live import router as live_router
from .notifications import router as notifications_router
from .social import router as social_router

__all__ = [
    "chat_router",
    "chatbot_router",
    "live_router",
    "notifications_router",
    "social_router",
]
