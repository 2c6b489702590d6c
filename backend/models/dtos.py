"""DTO Base Classes

Wire-facing pydantic models. Concrete DTOs subclass these and are mapped to
entities by ``core.mapping.Mapper``.
"""
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DtoBase(BaseModel):
    id: int | None = None

    model_config = {"from_attributes": True}


class ConcurrentDtoBase(DtoBase):
    timestamp: bytes | None = None


class ChangeTrackingDtoBase(ConcurrentDtoBase):
    created_at: datetime | None = None
    created_by: str | None = None
    last_changed_at: datetime | None = None
    last_changed_by: str | None = None


class PagedCollection(BaseModel, Generic[T]):
    """One page of a list query; ``total_count`` is only set when requested."""
    items: list[T]
    total_count: int | None = None
