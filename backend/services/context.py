"""Service Context

Process-wide objects a host application creates once and hands to every
service: engine, session factory, migration checker, shared state and the
current-user accessor.

Usage:
    async with open_service_context() as ctx:
        posts = CrudService(ctx.session_factory, ctx.mapper, Post, ..., **ctx.service_kwargs())
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine

from authorization.user import ContextVarUserAccessor, UserAccessor
from core.config import Settings, get_settings
from core.database import SessionFactory, create_engine, create_session_factory
from core.logging import configure_logging, service_logger
from core.mapping import Mapper
from core.migrations import MigrationChecker, create_migration_checker
from services.state import ServiceState

log = service_logger()


@dataclass(slots=True)
class ServiceContext:
    engine: AsyncEngine
    session_factory: SessionFactory
    migrations: MigrationChecker
    state: ServiceState = field(default_factory=ServiceState)
    user_accessor: UserAccessor = field(default_factory=ContextVarUserAccessor)
    mapper: Mapper = field(default_factory=Mapper)

    def service_kwargs(self) -> dict[str, Any]:
        """Keyword arguments shared by every database service."""
        return {
            "migrations": self.migrations,
            "user_accessor": self.user_accessor,
            "state": self.state,
        }


@asynccontextmanager
async def open_service_context(
    settings: Settings | None = None,
    configure_logs: bool = True,
) -> AsyncIterator[ServiceContext]:
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON, log_sql=settings.LOG_SQL)

    engine = create_engine(settings.DATABASE_URL, echo=settings.LOG_SQL)
    ctx = ServiceContext(
        engine=engine,
        session_factory=create_session_factory(engine),
        migrations=create_migration_checker(engine, settings),
    )
    log.info(
        "service_context_started",
        database=settings.DATABASE_NAME,
        check_migrations=settings.CHECK_MIGRATIONS,
    )
    try:
        yield ctx
    finally:
        await engine.dispose()
        log.info("service_context_closed", database=settings.DATABASE_NAME)
