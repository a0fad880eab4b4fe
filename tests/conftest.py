# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI, WebSocket
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from closer_chat.core.security import create_access_token
from closer_chat.db.session import Base
from closer_chat.db.session import get_db as app_get_session
from closer_chat.main import app as fastapi_app
from closer_chat.models import Post, User
from closer_chat.services.live import LiveChannel
from closer_chat.services.notifications import NotificationService

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)
BROADCAST = "*"


class RecordingChannel(LiveChannel):
    """Live channel that remembers every emit and broadcast, delivered or not.

    Broadcasts are recorded under the channel name ``BROADCAST``.
    """

    def __init__(self) -> None:
        super().__init__()
        self.events: list[tuple[str, str, Any, int]] = []

    async def emit(
        self,
        channel: str,
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        delivered = await super().emit(channel, event, data, exclude=exclude)
        self.events.append((channel, event, data, delivered))
        return delivered

    async def broadcast(self, event: str, data: Any, exclude: WebSocket | None = None) -> int:
        delivered = await super().broadcast(event, data, exclude=exclude)
        self.events.append((BROADCAST, event, data, delivered))
        return delivered

    def emitted(self, channel: str, event: str | None = None) -> list[Any]:
        """Return payloads emitted on ``channel``, optionally filtered by event."""
        return [
            data
            for name, evt, data, _ in self.events
            if name == channel and (event is None or evt == event)
        ]

    def broadcasted(self, event: str) -> list[Any]:
        """Return payloads broadcast to every connection as ``event``."""
        return self.emitted(BROADCAST, event)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Services commit and roll back on their own, so each test gets a fresh
    # in-memory database instead of an outer transaction.
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def live_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def notifier(live_channel: RecordingChannel) -> NotificationService:
    return NotificationService(live_channel)


@pytest.fixture()
def app(live_channel: RecordingChannel) -> Iterator[FastAPI]:
    previous = fastapi_app.state.live_channel
    fastapi_app.state.live_channel = live_channel
    try:
        yield fastapi_app
    finally:
        fastapi_app.state.live_channel = previous


@pytest.fixture(autouse=True)
def override_session_dependency(db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    fastapi_app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        fastapi_app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique usernames."""

    def _make_user(name: str = "User", username: str | None = None) -> User:
        number = next(_USER_COUNTER)
        user = User(
            username=username or f"user{number}",
            name=name,
            avatar_url=f"/avatars/{number}.png",
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def alice(make_user: Callable[..., User]) -> User:
    return make_user("Alice", "alice")


@pytest.fixture()
def bob(make_user: Callable[..., User]) -> User:
    return make_user("Bob", "bob")


@pytest.fixture()
def carol(make_user: Callable[..., User]) -> User:
    return make_user("Carol", "carol")


def auth_headers(user: User) -> dict[str, str]:
    """Return authorization headers for ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for() -> Callable[[User], dict[str, str]]:
    return auth_headers


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers(bob)


@pytest.fixture()
def bob_post(db_session: Session, bob: User) -> Post:
    """A post owned by Bob."""
    post = Post(author_id=bob.id, caption="Sunset")
    db_session.add(post)
    db_session.commit()
    db_session.refresh(post)
    return post
