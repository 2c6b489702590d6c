"""Database-Backed Service Base

Adds to the service pipeline:
- a pending-migration check before the first call (503 until migrated)
- 409 mapping for optimistic-concurrency and foreign-key failures
- one fresh ``AsyncSession`` per action and audit stamping on save
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from authorization.user import UserAccessor
from core.database import Base, SessionFactory
from core.errors import (
    ArgumentError,
    ConcurrencyConflictError,
    DatabaseErrorMapper,
    ErrorCode,
    Result,
    internal_error,
    service_unavailable,
)
from core.logging import service_logger
from core.migrations import MigrationChecker, NullMigrationChecker
from models.base import stamp_audit_fields
from services.base import ServiceBase
from services.state import ServiceState

log = service_logger()

T = TypeVar("T")


def pending_migrations_message(database_name: str, pending: list[str]) -> str:
    return f"The following migrations are still pending for {database_name}:\n" + "\n".join(pending)


class DbServiceBase(ServiceBase):
    def __init__(
        self,
        session_factory: SessionFactory,
        migrations: MigrationChecker | None = None,
        user_accessor: UserAccessor | None = None,
        state: ServiceState | None = None,
        error_mapper: DatabaseErrorMapper | None = None,
    ):
        super().__init__(user_accessor=user_accessor, state=state)
        self._session_factory = session_factory
        self._migrations = migrations or NullMigrationChecker()
        self._error_mapper = error_mapper or DatabaseErrorMapper(Base.metadata, origin=type(self).__name__)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            yield session

    async def _save_changes(self, session: AsyncSession) -> None:
        stamp_audit_fields(session, self.current_user_name)
        await session.commit()

    async def _check_migrations(self) -> Result[None] | None:
        if self._state.database_is_migrated:
            return None
        pending = await self._migrations.get_pending_migrations()
        if pending:
            log.warning(
                "pending_migrations",
                database=self._migrations.database_name,
                pending=pending,
            )
            return service_unavailable(
                pending_migrations_message(self._migrations.database_name, pending),
                origin=type(self).__name__,
            )
        self._state.database_is_migrated = True
        return None

    async def _try_execute(
        self,
        function: Callable[[], Awaitable[Result[T]]],
        dto_type: type | None = None,
    ) -> Result[T]:
        """Run ``function`` once the schema is current; ``dto_type`` names the
        DTO whose fields a foreign-key failure is reported against."""
        try:
            if (unavailable := await self._check_migrations()) is not None:
                return unavailable
            return await function()
        except ArgumentError:
            raise
        except (StaleDataError, ConcurrencyConflictError, IntegrityError) as e:
            mapped = self._error_mapper.map_exception(e, dto_type)
            if mapped is None:
                log.exception("service_call_failed", service=type(self).__name__, error_type=type(e).__name__)
                return internal_error(e, origin=type(self).__name__)
            concurrency = mapped.error.code is ErrorCode.E4011_CONCURRENCY_CONFLICT
            log.info(
                "concurrency_conflict" if concurrency else "foreign_key_violation",
                service=type(self).__name__,
                error_type=type(e).__name__,
                detail=mapped.error.message,
            )
            return mapped
        except Exception as e:
            log.exception("service_call_failed", service=type(self).__name__, error_type=type(e).__name__)
            return internal_error(e, origin=type(self).__name__)
