# src/closer_chat/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    chat_router,
    chatbot_router,
    live_router,
    notifications_router,
    social_router,
)

__all__ = [
    "chat_router",
    "chatbot_router",
    "live_router",
    "notifications_router",
    "social_router",
]
