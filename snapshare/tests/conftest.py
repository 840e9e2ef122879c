import os

# Must be set before snapshare.config is imported
os.environ["TESTING"] = "true"
os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import json
import pytest
import pytest_asyncio
from typing import AsyncGenerator
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState
from snapshare.main import app
from snapshare.db.base import Base
from snapshare.db.session import get_db, enable_sqlite_foreign_keys
from snapshare.schemas.user_schema import UserCreate
from snapshare.services.auth_service import AuthService, create_access_token
from snapshare.services.redis_service import set_redis_client
from snapshare.websocket.manager import InMemoryConnectionRegistry, set_connection_registry
import snapshare.models  # noqa: F401

# Test database URL - in-memory SQLite
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine.sync_engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

@pytest_asyncio.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for calling services directly"""
    async with session_factory() as session:
        yield session

@pytest.fixture(autouse=True)
def fake_redis():
    """Isolated fake Redis per test"""
    client = FakeRedis(server=FakeServer(), decode_responses=True)
    set_redis_client(client)
    yield client
    set_redis_client(None)

@pytest.fixture(autouse=True)
def registry():
    """Fresh connection registry per test"""
    registry = InMemoryConnectionRegistry()
    set_connection_registry(registry)
    yield registry
    set_connection_registry(InMemoryConnectionRegistry())

@pytest_asyncio.fixture
async def test_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()

@pytest.fixture
def create_user(test_db):
    """Factory registering users through the auth service"""
    counter = {"n": 0}

    async def _create_user(username: str = None, **overrides):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        data = {
            "username": username,
            "email": f"{username}@example.com",
            "password": "Password123!",
            "first_name": username.capitalize(),
        }
        data.update(overrides)
        return await AuthService(test_db).create_user(UserCreate(**data))

    return _create_user

def auth_headers(user) -> dict:
    token = create_access_token({"sub": user.username, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def headers_for():
    return auth_headers

class FakeConnection:
    """Stands in for a WebSocket in registry tests"""

    def __init__(self, fail: bool = False):
        self.client_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent = []

    async def send_text(self, text: str):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(json.loads(text))

@pytest.fixture
def fake_connection():
    return FakeConnection
