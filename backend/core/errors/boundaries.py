"""Persistence Error Boundary

Maps exceptions raised while saving through SQLAlchemy into service results.
Concurrency and referential-integrity failures become 409 results; anything
the mapper does not recognise is left to the caller's catch-all.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy import MetaData, ForeignKeyConstraint
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from core.mapping import dto_field_for_column

from .builders import concurrency_conflict, foreign_key_violation
from .types import Err
from .validation import ValidationResults

FOREIGN_KEY_SQLSTATE = "23503"
SQLSERVER_FOREIGN_KEY_ERROR = 547

# SQL Server: ... conflicted with the FOREIGN KEY constraint "FK_Posts_Blogs_BlogId" ...
_SQLSERVER_FK = re.compile(
    r'FOREIGN KEY constraint "(?P<name>(FK_(?P<foreign_table>\w+?)_(?P<primary_table>\w+?)_(?P<column>\w+))|[^"]+)"'
)
# PostgreSQL: ... violates foreign key constraint "posts_blog_id_fkey" ... is not present in table "blogs".
_POSTGRES_FK = re.compile(r'violates foreign key constraint "(?P<name>[^"]+)"')
_POSTGRES_TABLE = re.compile(r'is not present in table "(?P<primary_table>[^"]+)"')


class ConcurrencyConflictError(Exception):
    """Raised when a client-supplied version token does not match the stored row."""

    def __init__(self, field: str = "timestamp"):
        super().__init__(f"Version token mismatch on '{field}'")
        self.field = field


@dataclass(slots=True)
class ForeignKeyMatch:
    constraint_name: str | None = None
    primary_table: str | None = None


def _driver_message(exc: IntegrityError) -> str:
    return str(exc.orig) if exc.orig is not None else str(exc)


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == FOREIGN_KEY_SQLSTATE:
            return True
    args = getattr(orig, "args", ()) or ()
    if any(str(a) == str(SQLSERVER_FOREIGN_KEY_ERROR) or f"({SQLSERVER_FOREIGN_KEY_ERROR})" in str(a) for a in args):
        return True
    message = _driver_message(exc).lower()
    return "foreign key constraint" in message


def parse_foreign_key_message(message: str) -> ForeignKeyMatch | None:
    """Extract the constraint name and referenced table from a driver message."""
    if m := _SQLSERVER_FK.search(message):
        return ForeignKeyMatch(constraint_name=m.group("name"), primary_table=m.group("primary_table"))
    if m := _POSTGRES_FK.search(message):
        table = _POSTGRES_TABLE.search(message)
        return ForeignKeyMatch(
            constraint_name=m.group("name"),
            primary_table=table.group("primary_table") if table else None,
        )
    if m := _POSTGRES_TABLE.search(message):
        return ForeignKeyMatch(primary_table=m.group("primary_table"))
    return None


class DatabaseErrorMapper:
    """Maps SQLAlchemy save failures to 409 results.

    ``metadata`` is used to walk a violated constraint back to the DTO field
    that carried the offending foreign key.
    """

    __slots__ = ("origin", "metadata")

    def __init__(self, metadata: MetaData | None = None, origin: str = "database"):
        self.origin = origin
        self.metadata = metadata

    def map_exception(self, exc: Exception, dto_type: type | None = None) -> Err | None:
        if isinstance(exc, (StaleDataError, ConcurrencyConflictError)):
            return concurrency_conflict(
                field=getattr(exc, "field", "timestamp"),
                cause=exc,
                origin=self.origin,
            )
        if isinstance(exc, IntegrityError) and is_foreign_key_violation(exc):
            return self.map_foreign_key_violation(exc, dto_type)
        return None

    def map_foreign_key_violation(self, exc: IntegrityError, dto_type: type | None = None) -> Err:
        match = parse_foreign_key_message(_driver_message(exc))
        if match is None:
            return foreign_key_violation(
                "Invalid relationship. A referenced resource was not found.",
                cause=exc,
                origin=self.origin,
            )

        if match.constraint_name:
            field = self._dto_field_for_constraint(match.constraint_name, dto_type)
            if field is not None:
                return foreign_key_violation(
                    "Foreign key was violated.",
                    validation=ValidationResults().add_failure(field, "Foreign key was violated."),
                    cause=exc,
                    origin=self.origin,
                    constraint=match.constraint_name,
                )
            return foreign_key_violation(
                f"Invalid relationship. The foreign key '{match.constraint_name}' was violated.",
                cause=exc,
                origin=self.origin,
                constraint=match.constraint_name,
            )

        return foreign_key_violation(
            f"Invalid relationship. '{match.primary_table}' was not found.",
            cause=exc,
            origin=self.origin,
            table=match.primary_table,
        )

    def _dto_field_for_constraint(self, constraint_name: str, dto_type: type | None) -> str | None:
        if self.metadata is None or dto_type is None:
            return None
        for table in self.metadata.tables.values():
            for constraint in table.constraints:
                if not isinstance(constraint, ForeignKeyConstraint) or constraint.name != constraint_name:
                    continue
                for column in constraint.columns:
                    if (field := dto_field_for_column(dto_type, column.name)) is not None:
                        return field
        return None
