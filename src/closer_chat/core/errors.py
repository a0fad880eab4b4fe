"""Error taxonomy shared by the chat and notification services.

Services raise these exceptions; the application maps them onto a structured
JSON error envelope (see ``closer_chat.main``).
"""

from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Something went wrong"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequestError(ServiceError):
    """A required field is missing or invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"


class ForbiddenError(ServiceError):
    """The actor is not a participant of the room they act on."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied to this chat"


class NotFoundError(ServiceError):
    """A room, user, notification or message does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ConflictError(ServiceError):
    """A uniqueness constraint rejected the write."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class InternalError(ServiceError):
    """Unexpected store or channel failure."""


__all__ = [
    "ServiceError",
    "BadRequestError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
