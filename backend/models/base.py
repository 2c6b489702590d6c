"""Entity Base Classes

Mixins shared by every mapped entity: integer identity, an opaque row
version for optimistic concurrency, audit columns and a validity period for
history tables.
"""
import os
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, LargeBinary, String
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import declared_attr

ROW_VERSION_BYTES = 8


def new_row_version(_current: bytes | None = None) -> bytes:
    return os.urandom(ROW_VERSION_BYTES)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityBase:
    id = Column(Integer, primary_key=True, autoincrement=True)


class ConcurrentEntityBase(EntityBase):
    """Entity with a row version that changes on every UPDATE.

    The ORM also guards each UPDATE with ``WHERE timestamp = <loaded value>``.
    """
    timestamp = Column(LargeBinary(ROW_VERSION_BYTES), nullable=False)

    @declared_attr
    def __mapper_args__(cls):
        return {
            "version_id_col": cls.__table__.c.timestamp,
            "version_id_generator": new_row_version,
        }


class ChangeTrackingEntityBase(ConcurrentEntityBase):
    created_at = Column(DateTime(timezone=True))
    created_by = Column(String(256))
    last_changed_at = Column(DateTime(timezone=True))
    last_changed_by = Column(String(256))


class TemporalEntityBase(EntityBase):
    """Row of a history table, valid during ``[period_start, period_end)``."""
    period_start = Column(DateTime(timezone=True), nullable=False, index=True)
    period_end = Column(DateTime(timezone=True), nullable=False, index=True)


AUDIT_COLUMNS = frozenset({"created_at", "created_by", "last_changed_at", "last_changed_by"})
SYSTEM_COLUMNS = frozenset({"id", "timestamp"}) | AUDIT_COLUMNS


def stamp_audit_fields(session: AsyncSession, user_name: str | None, now: datetime | None = None) -> None:
    """Fill audit columns of pending inserts and updates. Created fields are only set on insert."""
    now = now or utcnow()
    for obj in session.new:
        if isinstance(obj, ChangeTrackingEntityBase):
            obj.created_at = now
            obj.created_by = user_name
            obj.last_changed_at = now
            obj.last_changed_by = user_name
    for obj in session.dirty:
        if isinstance(obj, ChangeTrackingEntityBase) and session.is_modified(obj):
            obj.last_changed_at = now
            obj.last_changed_by = user_name
