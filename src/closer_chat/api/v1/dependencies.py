"""Shared API dependencies for authentication and injected services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from closer_chat.core.security import TokenError, decode_access_token
from closer_chat.db.session import get_db
from closer_chat.models import User
from closer_chat.services.live import LiveChannel
from closer_chat.services.notifications import NotificationService

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def authenticate_token(db: Session, token: str | None) -> User | None:
    """Resolve the user an access token was issued for.

    Returns None when the token is missing, invalid, or names a user that no
    longer exists.
    """
    if not token:
        return None
    try:
        user_id = decode_access_token(token)
    except TokenError:
        return None
    return db.get(User, user_id)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        user_id = decode_access_token(credentials.credentials)
    except TokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_live_channel(request: Request) -> LiveChannel:
    """Return the live channel constructed for this application."""
    return request.app.state.live_channel


def get_notification_service(
    channel: Annotated[LiveChannel, Depends(get_live_channel)],
) -> NotificationService:
    """Return a notification service bound to the application's live channel."""
    return NotificationService(channel)


# Type aliases for injected dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
LiveChannelDep = Annotated[LiveChannel, Depends(get_live_channel)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
