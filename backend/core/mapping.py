"""DTO <-> Entity Mapping

Column-based mapping between pydantic DTOs and SQLAlchemy entities. Only
mapped column attributes are copied; identity, row version and audit columns
are owned by the persistence layer and never written from a DTO.
"""
from collections.abc import Iterable
from typing import TypeVar

from pydantic import BaseModel
from sqlalchemy import inspect

from models.base import SYSTEM_COLUMNS

TDto = TypeVar("TDto", bound=BaseModel)
TEntity = TypeVar("TEntity")


def column_keys(entity_type: type) -> list[str]:
    return [attr.key for attr in inspect(entity_type).column_attrs]


def dto_field_for_column(dto_type: type | None, column_name: str) -> str | None:
    """Name of the DTO field that carries ``column_name``, matched by name or alias."""
    for name, info in getattr(dto_type, "model_fields", {}).items():
        if column_name in (name, info.alias):
            return name
    return None


class Mapper:
    """Maps DTOs to entities and back.

    ``protected`` names columns a DTO may never set (defaults to id, timestamp
    and the audit columns).
    """

    __slots__ = ("protected",)

    def __init__(self, protected: Iterable[str] = SYSTEM_COLUMNS):
        self.protected = frozenset(protected)

    def to_dto(self, entity: object, dto_type: type[TDto]) -> TDto:
        return dto_type.model_validate(entity, from_attributes=True)

    def to_dtos(self, entities: Iterable[object], dto_type: type[TDto]) -> list[TDto]:
        return [self.to_dto(e, dto_type) for e in entities]

    def _writable_values(self, dto: BaseModel, entity_type: type) -> dict:
        data = dto.model_dump()
        keys = set(column_keys(entity_type)) - self.protected
        return {k: v for k, v in data.items() if k in keys}

    def to_entity(self, dto: BaseModel, entity_type: type[TEntity]) -> TEntity:
        return entity_type(**self._writable_values(dto, entity_type))

    def to_entities(self, dtos: Iterable[BaseModel], entity_type: type[TEntity]) -> list[TEntity]:
        return [self.to_entity(d, entity_type) for d in dtos]

    def update(self, dto: BaseModel, entity: TEntity) -> TEntity:
        """Copy writable DTO fields onto an existing entity."""
        for key, value in self._writable_values(dto, type(entity)).items():
            if getattr(entity, key) != value:
                setattr(entity, key, value)
        return entity
