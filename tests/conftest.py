import os
import tempfile
from typing import AsyncGenerator, Dict

import bcrypt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Configuration is read at import time, so it must be in place before the app loads
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="videohub-media-"))

from main import app  # noqa: E402
from api.dependencies import get_media  # noqa: E402
from core.auth import get_jwt_manager  # noqa: E402
from core.database import build_engine, create_db_and_tables, get_session  # noqa: E402
from core.models import Comment, Like, Subscription, User, Video  # noqa: E402
from core.store import EntityStore  # noqa: E402
from providers.media_provider import LocalMediaStore  # noqa: E402

TEST_PASSWORD = "Secret123!"
# Low cost factor keeps fixture users cheap
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory database per test."""
    engine = build_engine("sqlite+aiosqlite://")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def store(session_factory) -> AsyncGenerator[EntityStore, None]:
    async with session_factory() as session:
        yield EntityStore(session)


@pytest.fixture
def media_store(tmp_path) -> LocalMediaStore:
    return LocalMediaStore(root=str(tmp_path / "media"), base_url="/media")


@pytest_asyncio.fixture
async def client(session_factory, media_store) -> AsyncGenerator[AsyncClient, None]:
    """Async client against the app, wired to the per-test database and media root."""

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_media] = lambda: media_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def auth_headers(user: User) -> Dict[str, str]:
    token = get_jwt_manager().create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(store):
    """Create a user directly in the store."""

    async def _make_user(username: str, full_name: str = None) -> User:
        return await store.add(
            User(
                username=username,
                email=f"{username}@example.com",
                full_name=full_name or username.title(),
                password_hash=TEST_PASSWORD_HASH,
                avatar={"url": f"/media/images/{username}.png", "storageKey": f"images/{username}.png"},
            )
        )

    return _make_user


@pytest.fixture
def make_video(store):
    """Create a video row without going through the media store."""

    async def _make_video(owner: User, title: str = "A video", **fields) -> Video:
        return await store.add(
            Video(
                title=title,
                description=fields.pop("description", f"About {title}"),
                video_file={"url": "/media/videos/v.mp4", "storageKey": "videos/v.mp4"},
                thumbnail={"url": "/media/images/t.png", "storageKey": "images/t.png"},
                duration=fields.pop("duration", 12.5),
                owner_id=owner.id,
                **fields,
            )
        )

    return _make_video


@pytest.fixture
def make_like(store):
    async def _make_like(user: User, **target) -> Like:
        return await store.add(Like(liked_by_id=user.id, **target))

    return _make_like


@pytest.fixture
def make_comment(store):
    async def _make_comment(user: User, video: Video, content: str = "Nice video") -> Comment:
        return await store.add(Comment(content=content, video_id=video.id, owner_id=user.id))

    return _make_comment


@pytest.fixture
def make_subscription(store):
    async def _make_subscription(subscriber: User, channel: User) -> Subscription:
        return await store.add(Subscription(subscriber_id=subscriber.id, channel_id=channel.id))

    return _make_subscription


@pytest.fixture
def png_upload():
    return ("pic.png", b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")


@pytest.fixture
def mp4_upload():
    return ("clip.mp4", b"\x00\x00\x00\x18ftypmp42fake-video-bytes", "video/mp4")


@pytest.fixture
def headers_for():
    """Bearer headers for a user, signed with the app's token manager."""
    return auth_headers
