"""Database Connection and Session Management"""

import re
import ssl
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from app.config import settings


def async_database_url(url: str):
    """
    postgresql:// -> postgresql+asyncpg://, with ``sslmode`` turned into an
    SSL context since asyncpg does not understand the libpq parameter.
    """
    url = url.replace("postgresql://", "postgresql+asyncpg://")
    connect_args = {}
    if re.search(r"[?&]sslmode=(require|verify-full)", url, re.I):
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ctx
    url = re.sub(r"[?&]sslmode=[^&]+", "", url, flags=re.I)
    url = url.replace("?&", "?").rstrip("?")
    return url, connect_args


database_url, connect_args = async_database_url(settings.DATABASE_URL)

engine = create_async_engine(
    database_url,
    connect_args=connect_args,
    pool_pre_ping=True,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    echo=settings.DEBUG and settings.is_development,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Services commit their own units of work;
    anything left pending is committed here, and errors roll back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize database tables (for development only)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
