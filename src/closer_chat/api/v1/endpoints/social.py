"""Follow, like and comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query, status

from closer_chat.schemas import ApiResponse, CommentCreate, LikeRequest, api_response
from closer_chat.services import social

from ..dependencies import CurrentUserDep, NotificationServiceDep, SessionDep

router = APIRouter(prefix="/social", tags=["social"])


def _serialize_comment(comment) -> dict[str, object]:
    return {
        "id": comment.id,
        "post_id": comment.post_id,
        "media_id": comment.media_id,
        "text": comment.text,
        "created_at": comment.created_at.isoformat(),
        "user": comment.user.summary() if comment.user is not None else None,
    }


@router.post("/follow/{user_id}")
async def follow_user(
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Follow another user."""
    await social.follow_user(db, notifier, current_user.id, user_id)
    return api_response({}, "User followed successfully")


@router.delete("/follow/{user_id}")
async def unfollow_user(user_id: int, current_user: CurrentUserDep, db: SessionDep) -> ApiResponse:
    """Stop following another user."""
    social.unfollow_user(db, current_user.id, user_id)
    return api_response({}, "User unfollowed successfully")


@router.post("/likes")
async def like_media(
    payload: LikeRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Like a media item of a post."""
    count = await social.like_media(db, notifier, current_user.id, payload.post_id, payload.media_id)
    return api_response({"likes_count": count, "liked": True}, "Post liked successfully")


@router.delete("/likes")
async def unlike_media(payload: LikeRequest, current_user: CurrentUserDep, db: SessionDep) -> ApiResponse:
    """Remove the caller's like of a media item."""
    count = social.unlike_media(db, current_user.id, payload.post_id, payload.media_id)
    return api_response({"likes_count": count, "liked": False}, "Post unliked successfully")


@router.post("/comments", status_code=status.HTTP_201_CREATED)
async def add_comment(
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotificationServiceDep,
) -> ApiResponse:
    """Comment on a media item of a post."""
    comment = await social.add_comment(
        db, notifier, current_user.id, payload.post_id, payload.media_id, payload.text
    )
    data = {
        "comment": _serialize_comment(comment),
        "comments_count": social.comments_count(db, payload.post_id, payload.media_id),
    }
    return api_response(data, "Comment added successfully", status.HTTP_201_CREATED)


@router.get("/comments/{post_id}/{media_id}")
async def get_comments(
    post_id: int,
    media_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    page: str | None = Query(None),
    limit: str | None = Query(None),
) -> ApiResponse:
    """List comments on a media item, newest first."""
    result = social.list_comments(db, post_id, media_id, page, limit)
    data = {
        "comments": [_serialize_comment(comment) for comment in result.comments],
        "total_comments": result.total_comments,
        "has_more": result.has_more,
    }
    return api_response(data, "Comments fetched successfully")
