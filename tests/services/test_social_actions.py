# tests/services/test_social_actions.py
"""Tests for follow, like and comment actions."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from closer_chat.core.errors import BadRequestError, ConflictError, NotFoundError
from closer_chat.models import Notification
from closer_chat.services import social
from closer_chat.services.live import user_channel


def _notifications_for(db_session, user_id: int) -> list[Notification]:
    return list(db_session.scalars(select(Notification).where(Notification.recipient_id == user_id)))


@pytest.mark.asyncio
async def test_follow_notifies_target(db_session, notifier, live_channel, alice, bob) -> None:
    await social.follow_user(db_session, notifier, alice.id, bob.id)

    assert [user.id for user in alice.following] == [bob.id]
    [notification] = _notifications_for(db_session, bob.id)
    assert notification.type == "follow"
    assert live_channel.emitted(user_channel(bob.id), "new_notification")


@pytest.mark.asyncio
async def test_follow_rules(db_session, notifier, alice, bob) -> None:
    with pytest.raises(BadRequestError):
        await social.follow_user(db_session, notifier, alice.id, alice.id)
    with pytest.raises(NotFoundError):
        await social.follow_user(db_session, notifier, alice.id, 9999)

    await social.follow_user(db_session, notifier, alice.id, bob.id)
    with pytest.raises(BadRequestError, match="already following"):
        await social.follow_user(db_session, notifier, alice.id, bob.id)


@pytest.mark.asyncio
async def test_follow_survives_notification_failure(db_session, notifier, alice, bob) -> None:
    failure = OperationalError("INSERT", {}, Exception("database is locked"))
    with patch.object(notifier, "notify_follow", AsyncMock(side_effect=failure)):
        await social.follow_user(db_session, notifier, alice.id, bob.id)

    db_session.refresh(alice)
    assert [user.id for user in alice.following] == [bob.id]


@pytest.mark.asyncio
async def test_unfollow(db_session, notifier, alice, bob) -> None:
    await social.follow_user(db_session, notifier, alice.id, bob.id)

    social.unfollow_user(db_session, alice.id, bob.id)

    assert alice.following == []
    with pytest.raises(BadRequestError):
        social.unfollow_user(db_session, alice.id, bob.id)


@pytest.mark.asyncio
async def test_like_notifies_post_owner_once(db_session, notifier, alice, bob, bob_post) -> None:
    count = await social.like_media(db_session, notifier, alice.id, bob_post.id, "photo-1")

    assert count == 1
    with pytest.raises(ConflictError, match="Post already liked"):
        await social.like_media(db_session, notifier, alice.id, bob_post.id, "photo-1")

    [notification] = _notifications_for(db_session, bob.id)
    assert notification.type == "like"
    assert notification.data == {"post_id": bob_post.id, "media_id": "photo-1"}


@pytest.mark.asyncio
async def test_likes_are_per_media_item(db_session, notifier, alice, bob_post) -> None:
    await social.like_media(db_session, notifier, alice.id, bob_post.id, "photo-1")

    assert await social.like_media(db_session, notifier, alice.id, bob_post.id, "photo-2") == 1
    assert social.likes_count(db_session, bob_post.id, "photo-1") == 1


@pytest.mark.asyncio
async def test_liking_own_post_does_not_notify(db_session, notifier, bob, bob_post) -> None:
    await social.like_media(db_session, notifier, bob.id, bob_post.id, "photo-1")

    assert _notifications_for(db_session, bob.id) == []


@pytest.mark.asyncio
async def test_like_unknown_post(db_session, notifier, alice) -> None:
    with pytest.raises(NotFoundError):
        await social.like_media(db_session, notifier, alice.id, 9999, "photo-1")


@pytest.mark.asyncio
async def test_unlike(db_session, notifier, alice, bob_post) -> None:
    await social.like_media(db_session, notifier, alice.id, bob_post.id, "photo-1")

    assert social.unlike_media(db_session, alice.id, bob_post.id, "photo-1") == 0
    with pytest.raises(NotFoundError, match="Like not found"):
        social.unlike_media(db_session, alice.id, bob_post.id, "photo-1")


@pytest.mark.asyncio
async def test_comment_notifies_post_owner(db_session, notifier, alice, bob, bob_post) -> None:
    comment = await social.add_comment(db_session, notifier, alice.id, bob_post.id, "photo-1", " lovely ")

    assert comment.text == "lovely"
    [notification] = _notifications_for(db_session, bob.id)
    assert notification.type == "comment"
    assert notification.data == {"post_id": bob_post.id, "comment_id": comment.id}


@pytest.mark.asyncio
async def test_empty_comment_is_rejected(db_session, notifier, alice, bob_post) -> None:
    with pytest.raises(BadRequestError, match="Comment cannot be empty"):
        await social.add_comment(db_session, notifier, alice.id, bob_post.id, "photo-1", "   ")


@pytest.mark.asyncio
async def test_list_comments_newest_first(db_session, notifier, alice, carol, bob_post) -> None:
    for text in ("first", "second", "third"):
        await social.add_comment(db_session, notifier, alice.id, bob_post.id, "photo-1", text)
    await social.add_comment(db_session, notifier, carol.id, bob_post.id, "photo-2", "elsewhere")

    page = social.list_comments(db_session, bob_post.id, "photo-1", page=1, limit=2)

    assert [comment.text for comment in page.comments] == ["third", "second"]
    assert page.total_comments == 3
    assert page.has_more is True
