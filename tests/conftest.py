"""Test fixtures — in-memory realtime hubs, fake transports, SQLite store.

Learn: Nothing here needs a running Postgres. The realtime core is pure
in-memory state, so most tests build a fresh RealtimeHub and plug fake
transports into it. Store and REST tests use an in-memory aiosqlite
database created from the ORM metadata for each test.
"""

import os

# Must be set before any lumina import reads settings.
os.environ["LUMINA_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LUMINA_ENVIRONMENT"] = "development"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from lumina.db.models import Base
from lumina.realtime.errors import PersistenceError, TransportPushFailure
from lumina.realtime.hub import build_realtime


class FakeTransport:
    """Collects every frame pushed to it. Can be told to fail."""

    def __init__(self, fail: bool = False):
        self.frames: list[dict] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise TransportPushFailure("socket half-closed")
        self.frames.append(data)

    def of_type(self, frame_type: str) -> list:
        return [f["data"] for f in self.frames if f["type"] == frame_type]

    @property
    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]


class StubStore:
    """NotificationStore double that records creates, or always fails."""

    def __init__(self, fail: bool = False):
        self.created = []
        self.fail = fail

    async def create(self, notification):
        if self.fail:
            raise PersistenceError("database unavailable")
        self.created.append(notification)
        return notification


@pytest.fixture()
def hub():
    """A fresh hub with the ring timeout disabled."""
    return build_realtime(ring_timeout_seconds=None)


@pytest.fixture()
def connect(hub):
    """connect(identity=None, fail=False) -> (session, transport) on `hub`."""

    def _connect(identity=None, fail=False, on=None):
        target = on or hub
        transport = FakeTransport(fail=fail)
        session = target.gateway.on_connect(transport)
        if identity is not None:
            target.router.join(session.session_id, identity)
        return session, transport

    return _connect


@pytest.fixture()
def stub_store():
    return StubStore()


@pytest.fixture()
def failing_store():
    return StubStore(fail=True)


@pytest_asyncio.fixture()
async def db_session():
    """Per-test in-memory SQLite session with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


def _app_for(hub, db_session, user_id=None):
    from lumina.auth.dependencies import CurrentIdentity, get_current_user
    from lumina.db.engine import get_db
    from lumina.main import create_app

    app = create_app(hub=hub)

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    if user_id is not None:
        app.dependency_overrides[get_current_user] = lambda: CurrentIdentity(user_id=user_id)
    return app


@pytest_asyncio.fixture()
async def app(hub, db_session):
    """App authenticated as "alice", sharing the `hub` fixture."""
    return _app_for(hub, db_session, user_id="alice")


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def unauthenticated_client(hub, db_session):
    """HTTP client WITHOUT the auth override — real JWT checks apply."""
    transport = ASGITransport(app=_app_for(hub, db_session))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
