"""Database Engine and Session Management

Async engine and session-factory construction. Services never share a
session: every action opens its own unit of work from the factory.
"""
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from core.config import settings

Base = declarative_base()

SessionFactory = async_sessionmaker[AsyncSession]


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create the async engine; SQLite connections get foreign keys enabled."""
    url = url or settings.DATABASE_URL
    engine_kwargs: dict[str, Any] = {
        "echo": settings.LOG_SQL if echo is None else echo,
    }
    if not url.startswith("sqlite"):
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
        })

    engine = create_async_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> SessionFactory:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_all(engine: AsyncEngine) -> None:
    """Create every table registered on ``Base``. Used by tests and local setups."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
