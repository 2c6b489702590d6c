"""Service Request Models

Query transforms are plain callables over SQLAlchemy ``Select`` statements,
so a request can narrow, order and page the entity query it is applied to.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Generic, TypeVar

from sqlalchemy import Select

TDto = TypeVar("TDto")

QueryTransform = Callable[[Select], Select]

MIN_VALID_FROM = datetime.min.replace(tzinfo=timezone.utc)
MAX_VALID_TO = datetime.max.replace(tzinfo=timezone.utc)


def identity(stmt: Select) -> Select:
    return stmt


@dataclass(slots=True)
class GetListRequest:
    """Page query over the authorized entity set.

    ``filter`` produces the page (predicate, ordering, offset, limit).
    ``filter_for_total_count`` is only consulted when ``calculate_total_count``
    is set and must then be present.
    """
    filter: QueryTransform = identity
    filter_for_total_count: QueryTransform | None = None
    calculate_total_count: bool = False


@dataclass(slots=True)
class GetHistoryRequest(GetListRequest):
    """List request restricted to history rows valid within ``[valid_from, valid_to)``."""
    valid_from: datetime = MIN_VALID_FROM
    valid_to: datetime = MAX_VALID_TO


@dataclass(slots=True)
class UpdateMultipleRequest(Generic[TDto]):
    dtos: list[TDto] = field(default_factory=list)
    filter: QueryTransform = identity
