from contextlib import asynccontextmanager, contextmanager
from typing import AsyncGenerator, Generator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session, sessionmaker

from src.utils.settings.database import DatabaseSettings

_database_settings = DatabaseSettings()

sync_engine = create_engine(
    _database_settings.DATABASE_URL.get_secret_value(), echo=False
)
SyncSessionLocal = sessionmaker(bind=sync_engine)

async_engine = create_async_engine(
    _database_settings.DATABASE_URL_ASYNC,
    echo=False,
    pool_size=_database_settings.DATABASE_POOL_SIZE,
    pool_pre_ping=True,
)
AsyncSessionLocal = async_sessionmaker(
    bind=async_engine, class_=AsyncSession, expire_on_commit=False
)


@asynccontextmanager
async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """Session for scheduled jobs and scripts; commits on clean exit."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@contextmanager
def get_sync_db() -> Generator[Session, None, None]:
    """Synchronous session used by migrations and maintenance scripts."""
    db = SyncSessionLocal()
    try:
        yield db
    finally:
        db.close()
