"""
Centralized Test Configuration.
"""

import time

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.security import get_password_hash
from backend.app.models.user import User
from backend.app.models.enums import UserRole
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.expiry = {}
        self._closed = False

    def _alive(self, key):
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed or not self._alive(key):
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        if ex:
            self.expiry[key] = time.time() + ex
        return True

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1 if self._alive(key) else 1
        self.store[key] = value
        return value

    async def expire(self, key, seconds):
        if key not in self.store:
            return False
        self.expiry[key] = time.time() + seconds
        return True

    async def ttl(self, key):
        if not self._alive(key):
            return -2
        deadline = self.expiry.get(key)
        return -1 if deadline is None else int(deadline - time.time())

    async def delete(self, key):
        if self._closed:
            return 0
        self.expiry.pop(key, None)
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if self._alive(key) else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}
            self.expiry = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


class BrokenRedis:
    """Every command fails, as if the server were unreachable."""

    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise ConnectionError("Redis unavailable")
        return fail


mock_redis = MockRedis()


@pytest.fixture(scope="session")
def redis_client_session():
    return mock_redis


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    redis_client_session._closed = False
    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register_user(client: AsyncClient, username: str, role: str = "sender", full_name: str = None) -> dict:
    """Register through the API and return the token response plus auth headers."""
    response = await client.post("/v1/auth/register", json={
        "email": f"{username}@example.com",
        "username": username,
        "password": "password123",
        "role": role,
        "full_name": full_name or username.title(),
    })
    assert response.status_code == 201, response.text
    data = response.json()
    data["headers"] = auth_headers(data["access_token"])
    data["email"] = f"{username}@example.com"
    return data


async def create_admin(client: AsyncClient, username: str = "admin") -> dict:
    """Admins cannot self-register; insert one and log in."""
    async with TestingSessionLocal() as session:
        session.add(User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=get_password_hash("adminpass"),
            role=UserRole.ADMIN,
            full_name="Admin",
            is_active=True,
            is_superuser=True
        ))
        await session.commit()

    response = await client.post("/v1/auth/login", json={"username": username, "password": "adminpass"})
    assert response.status_code == 200, response.text
    data = response.json()
    data["headers"] = auth_headers(data["access_token"])
    return data


@pytest.fixture
async def parties(client):
    """A sender, two couriers and a recipient, all registered."""
    return {
        "sender": await register_user(client, "sender1", "sender", "Sam Sender"),
        "courier": await register_user(client, "courier1", "courier", "Casey Courier"),
        "courier2": await register_user(client, "courier2", "courier", "Chris Courier"),
        "recipient": await register_user(client, "recipient1", "recipient", "Riley Recipient"),
    }


@pytest.fixture
async def package(client, parties):
    """A freshly created package from sender1 to recipient1."""
    response = await client.post(
        "/v1/packages",
        json={
            "recipient_email": parties["recipient"]["email"],
            "title": "Laptop",
            "description": "13 inch, boxed",
            "weight": 2.5,
            "value": 1200,
            "fragile": True,
            "priority": "express",
            "pickup_address": "12 Source Rd",
            "delivery_address": "34 Target Ave",
        },
        headers=parties["sender"]["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()
