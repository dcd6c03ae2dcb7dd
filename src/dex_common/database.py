"""Async engine and session factory for the trade store (PostgreSQL via asyncpg)."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    """Declarative base for the trade store ORM models."""

    pass


# Writers are the reconcile endpoints and one sync loop; readers are the
# trades/analytics endpoints. pre_ping drops connections the DB closed
# while the sync loop was idle.
engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=10,
    max_overflow=5,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


async def ping_database(check_table: str | None = None) -> None:
    """Raise if the store is unreachable (or ``check_table`` is missing)."""
    sql = f"SELECT 1 FROM {check_table} LIMIT 1" if check_table else "SELECT 1"
    async with engine.connect() as conn:
        await conn.execute(text(sql))
