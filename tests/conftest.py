"""
Test Configuration and Fixtures
Provides shared test setup for all test cases
"""
import os
import tempfile

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="uploads-"))

import pytest
import pytest_asyncio
import sys
import uuid
from unittest.mock import patch
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.database.connection import Base
from app.models.user import User
from app.utils.security import get_password_hash, create_access_token

# Test database URL (use in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SERVICE_MODULES = [
    'app.services.auth_service',
    'app.services.user_service',
    'app.services.property_service',
    'app.services.prospect_service',
    'app.database.connection',
]


class TestSessionContext:
    """Stands in for `async with AsyncSessionLocal() as session`"""
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, *args):
        pass


@pytest_asyncio.fixture(scope="function")
async def db_session():
    """Create a fresh database for each test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_local = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_local() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def patched_sessions(db_session):
    """Point every service module's AsyncSessionLocal at the test session"""
    patches = []
    for module_name in SERVICE_MODULES:
        module = sys.modules.get(module_name)
        if module is not None and hasattr(module, 'AsyncSessionLocal'):
            patches.append(patch.object(module, 'AsyncSessionLocal', lambda: TestSessionContext(db_session)))

    for p in patches:
        p.start()
    try:
        yield db_session
    finally:
        for p in patches:
            p.stop()


@pytest_asyncio.fixture(scope="function")
async def client(patched_sessions):
    """Create test HTTP client"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def create_user(session, email=None, confirmed_token=None, credit=500, password="StrongPass123!"):
    user = User(
        id=str(uuid.uuid4()),
        name="Test Agent",
        email=email or f"agent_{uuid.uuid4().hex[:10]}@example.com",
        phone=f"+2126{uuid.uuid4().int % 10**8:08d}",
        hashed_password=get_password_hash(password),
        country_code="MA",
        confirmed_user_id=uuid.uuid4().int % 10**6 if confirmed_token else None,
        confirmed_token=confirmed_token,
        roles=["user"],
        credit=credit,
        accounts=[],
        custom_credit=[],
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def authenticated_user(client: AsyncClient, db_session):
    """Create a user and attach a Bearer token to the client"""
    user = await create_user(db_session, confirmed_token="confirmed-token-123")
    token = create_access_token(user.id, confirmed_id=user.confirmed_user_id)
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client, user


@pytest.fixture
def confirmed_user_payload():
    """What 1Confirmed returns for a registered account"""
    return {
        "id": 4242,
        "name": "Test Agent",
        "email": "agent@example.com",
        "phone": "+212600000001",
        "token": "confirmed-token-new",
        "language": "fr",
        "phone_verified_at": "2024-05-01T10:00:00Z",
        "two_factor_enabled": False,
        "two_factor_verified": False,
        "credit": {"id": 9, "credit": 750},
    }


@pytest.fixture
def make_user(db_session):
    """Factory for extra users (e.g. a second owner)"""
    async def _make(**kwargs):
        return await create_user(db_session, **kwargs)
    return _make
