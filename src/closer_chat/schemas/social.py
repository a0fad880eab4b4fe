"""Schemas for follow, like and comment actions."""

from pydantic import BaseModel, Field


class LikeRequest(BaseModel):
    """Identify the media item being liked or unliked."""

    post_id: int = Field(..., description="Post owning the media item")
    media_id: str = Field(..., min_length=1, description="Media item within the post")


class CommentCreate(BaseModel):
    """Schema for adding a comment to a media item."""

    post_id: int
    media_id: str = Field(..., min_length=1)
    text: str = Field(..., description="Comment body")
