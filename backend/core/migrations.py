"""Pending Migration Detection

Compares the revisions applied to a database with the heads of an Alembic
script directory. Services refuse to run while anything is pending.
"""
from __future__ import annotations

from typing import Protocol

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from core.config import Settings, get_settings
from core.logging import db_logger

log = db_logger()


class MigrationChecker(Protocol):
    database_name: str

    async def get_pending_migrations(self) -> list[str]:
        """Names of migrations not yet applied, newest first."""
        ...


class NullMigrationChecker:
    """Checker for databases whose schema is managed elsewhere."""

    __slots__ = ("database_name",)

    def __init__(self, database_name: str = "database"):
        self.database_name = database_name

    async def get_pending_migrations(self) -> list[str]:
        return []


class AlembicMigrationChecker:
    """Reads pending revisions by walking from each script head down to the applied revisions."""

    __slots__ = ("engine", "script_location", "database_name")

    def __init__(self, engine: AsyncEngine, script_location: str, database_name: str = "database"):
        self.engine = engine
        self.script_location = script_location
        self.database_name = database_name

    def _script(self) -> ScriptDirectory:
        cfg = Config()
        cfg.set_main_option("script_location", self.script_location)
        return ScriptDirectory.from_config(cfg)

    async def get_pending_migrations(self) -> list[str]:
        script = self._script()
        async with self.engine.connect() as conn:
            current = await conn.run_sync(_current_heads)

        applied: set[str] = set()
        for rev in current:
            applied.update(r.revision for r in script.walk_revisions(base="base", head=rev))

        pending: list[str] = []
        seen: set[str] = set()
        for head in script.get_heads():
            for rev in script.walk_revisions(base="base", head=head):
                if rev.revision in applied or rev.revision in seen:
                    continue
                seen.add(rev.revision)
                pending.append(_display_name(rev.revision, rev.doc))

        if pending:
            log.info("pending_migrations_found", database=self.database_name, count=len(pending))
        return pending


def _current_heads(conn: Connection) -> tuple[str, ...]:
    return MigrationContext.configure(conn).get_current_heads()


def _display_name(revision: str, doc: str | None) -> str:
    return f"{revision}_{doc.strip().replace(' ', '_').lower()}" if doc else revision


def create_migration_checker(engine: AsyncEngine, settings: Settings | None = None) -> MigrationChecker:
    """Alembic checker for ``MIGRATIONS_LOCATION``, or a no-op one when ``CHECK_MIGRATIONS`` is off."""
    settings = settings or get_settings()
    if not settings.CHECK_MIGRATIONS:
        return NullMigrationChecker(settings.DATABASE_NAME)
    return AlembicMigrationChecker(engine, settings.MIGRATIONS_LOCATION, settings.DATABASE_NAME)
