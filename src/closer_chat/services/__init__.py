# src/closer_chat/services/__init__.py
"""Business logic services for the Closer realtime service."""

from .live import LiveChannel
from .notifications import NotificationService

__all__ = [
    "LiveChannel",
    "NotificationService",
]
