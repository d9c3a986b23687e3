"""Global test configuration and fixtures for the PromptFlow credits API."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.api.core.constants import INTERNAL_API_KEY_HEADER
from src.database.models import Base, User
from src.utils.settings.app import AppSettings
from src.utils.settings.credits import CreditSettings

from tests.factories import (
    AutoRenewalLogFactory,
    CreditBucketFactory,
    CreditTransactionFactory,
    ReferralFactory,
    UserFactory,
)


@pytest.fixture
def user_factory():
    return UserFactory


@pytest.fixture
def bucket_factory():
    return CreditBucketFactory


@pytest.fixture
def transaction_factory():
    return CreditTransactionFactory


@pytest.fixture
def referral_factory():
    return ReferralFactory


@pytest.fixture
def renewal_log_factory():
    return AutoRenewalLogFactory


@pytest.fixture
def credit_settings() -> CreditSettings:
    """Settings pinned to their defaults regardless of the local .env file."""
    return CreditSettings(_env_file=None)


@pytest.fixture
def test_database_uri(tmp_path) -> str:
    """One SQLite file per test unless TEST_DATABASE_URL points elsewhere."""
    return os.getenv(
        "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'credits.db'}"
    )


@pytest_asyncio.fixture
async def async_engine(test_database_uri):
    """Create async engine with a freshly created schema."""
    engine = create_async_engine(test_database_uri, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=async_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session. Services commit through it like in production."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app(session_factory):
    """FastAPI application wired to the test database."""
    from src.main import app

    app.state.session_factory = session_factory
    yield app
    app.state.session_factory = None


# Test Data Fixtures
@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, user_factory) -> User:
    user = await user_factory.create_async(db_session, name="Test User")
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_creator(db_session: AsyncSession, user_factory) -> User:
    user = await user_factory.create_async(db_session, name="Prompt Creator")
    await db_session.commit()
    return user


# HTTP Client Fixtures
@pytest_asyncio.fixture
async def public_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without the internal key."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-promptflow-api",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def internal_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client presenting the shared internal key."""
    internal_key = AppSettings().INTERNAL_API_KEY.get_secret_value()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test-promptflow-api",
        headers={INTERNAL_API_KEY_HEADER: internal_key},
    ) as ac:
        yield ac
