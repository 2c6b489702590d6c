"""List Query Builder

Builds the page and total-count transforms of ``GetListRequest`` and
``GetHistoryRequest`` from a structured query:

    query = ListQuery().filter("title__icontains", "async").order("-id").page(skip=20, top=10)
    request = ListRequestFactory(Post).create_list_request(query, calculate_total_count=True)

Conditions are compiled against the columns the statement selects, so the
same query works for an entity and for its history table.
"""
from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, select

from core.config import settings
from core.errors import ArgumentError
from core.logging import service_logger
from models.requests import MAX_VALID_TO, MIN_VALID_FROM, GetHistoryRequest, GetListRequest, QueryTransform

log = service_logger()


class FilterOperator(str, Enum):
    """Supported filter operators, written as ``field__operator``."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    ICONTAINS = "icontains"
    STARTSWITH = "startswith"
    ISTARTSWITH = "istartswith"
    ENDSWITH = "endswith"
    IENDSWITH = "iendswith"
    IN = "in"
    NOT_IN = "not_in"
    ISNULL = "isnull"
    BETWEEN = "between"


_OPERATORS = frozenset(o.value for o in FilterOperator)


@dataclass(frozen=True, slots=True)
class FilterCondition:
    field: str
    operator: FilterOperator
    value: Any

    @classmethod
    def parse(cls, key: str, value: Any) -> FilterCondition:
        """Parse ``"title__icontains"``; a key without an operator means ``eq``."""
        name, sep, op = key.rpartition("__")
        if sep and op in _OPERATORS:
            return cls(field=name, operator=FilterOperator(op), value=value)
        return cls(field=key, operator=FilterOperator.EQ, value=value)

    def to_expression(self, stmt: Select) -> ColumnElement[bool]:
        column = _column(stmt, self.field)
        op, value = self.operator, self.value

        match op:
            case FilterOperator.EQ:
                return column.is_(None) if value is None else column == value
            case FilterOperator.NE:
                return column.is_not(None) if value is None else column != value
            case FilterOperator.GT:
                return column > value
            case FilterOperator.GTE:
                return column >= value
            case FilterOperator.LT:
                return column < value
            case FilterOperator.LTE:
                return column <= value
            case FilterOperator.CONTAINS:
                return column.contains(value, autoescape=True)
            case FilterOperator.ICONTAINS:
                return column.icontains(value, autoescape=True)
            case FilterOperator.STARTSWITH:
                return column.startswith(value, autoescape=True)
            case FilterOperator.ISTARTSWITH:
                return column.istartswith(value, autoescape=True)
            case FilterOperator.ENDSWITH:
                return column.endswith(value, autoescape=True)
            case FilterOperator.IENDSWITH:
                return column.iendswith(value, autoescape=True)
            case FilterOperator.IN:
                return column.in_(list(value))
            case FilterOperator.NOT_IN:
                return column.not_in(list(value))
            case FilterOperator.ISNULL:
                return column.is_(None) if value else column.is_not(None)
            case FilterOperator.BETWEEN:
                low, high = value
                return and_(column >= low, column <= high)
        raise ArgumentError(f"Unsupported filter operator: {op}")


@dataclass(frozen=True, slots=True)
class SortField:
    field: str
    descending: bool = False

    @classmethod
    def parse(cls, value: str) -> SortField:
        """``"-created_at"`` sorts descending, ``"title"`` ascending."""
        if value.startswith("-"):
            return cls(field=value[1:], descending=True)
        return cls(field=value.lstrip("+"))

    def to_expression(self, stmt: Select) -> ColumnElement[Any]:
        column = _column(stmt, self.field)
        return column.desc() if self.descending else column.asc()


def _column(stmt: Select, name: str) -> ColumnElement[Any]:
    try:
        return stmt.selected_columns[name]
    except KeyError:
        raise ArgumentError(f"Unknown field: {name}") from None


def _primary_key(stmt: Select) -> list[ColumnElement[Any]]:
    return [c for c in stmt.selected_columns if getattr(c, "primary_key", False)]


def _selectable_fields(entity_type: type) -> set[str]:
    """Names conditions are resolved by: the keys of the entity's selected columns."""
    return set(select(entity_type).selected_columns.keys())


@dataclass(slots=True)
class ListQuery:
    """Filter, order and paging of a list or history query.

    ``top`` is clamped to the factory's maximum page size. ``None`` means
    "the maximum".
    """

    conditions: list[FilterCondition] = dataclass_field(default_factory=list)
    order_by: list[SortField] = dataclass_field(default_factory=list)
    skip: int | None = None
    top: int | None = None

    def filter(self, key: str, value: Any) -> ListQuery:
        self.conditions.append(FilterCondition.parse(key, value))
        return self

    def order(self, *fields: str) -> ListQuery:
        self.order_by.extend(SortField.parse(f) for f in fields)
        return self

    def page(self, skip: int | None = None, top: int | None = None) -> ListQuery:
        self.skip = skip
        self.top = top
        return self

    @property
    def fields(self) -> set[str]:
        return {c.field for c in self.conditions} | {s.field for s in self.order_by}

    def apply_predicate(self, stmt: Select) -> Select:
        if not self.conditions:
            return stmt
        return stmt.where(*(c.to_expression(stmt) for c in self.conditions))

    def apply_page(self, stmt: Select, max_top: int) -> Select:
        stmt = self.apply_predicate(stmt)
        if self.order_by:
            stmt = stmt.order_by(*(s.to_expression(stmt) for s in self.order_by))
        elif key := _primary_key(stmt):
            # pages are only stable over a total order
            stmt = stmt.order_by(*key)
        if self.skip:
            stmt = stmt.offset(max(0, self.skip))
        top = max_top if self.top is None else max(0, min(self.top, max_top))
        return stmt.limit(top)


class ListRequestFactory:
    """Create list and history requests for one entity type.

    Field names are checked against the columns a SELECT of the entity
    exposes when the request is created, so a bad query fails before any
    service is called.
    """

    __slots__ = ("entity_type", "max_top", "_columns")

    def __init__(self, entity_type: type | None = None, max_top: int | None = None):
        self.entity_type = entity_type
        self.max_top = max_top if max_top is not None else settings.MAX_PAGE_SIZE
        if self.max_top < 1:
            raise ArgumentError("max_top must be at least 1.")
        self._columns = _selectable_fields(entity_type) if entity_type is not None else None

    def _check_fields(self, query: ListQuery) -> None:
        if self._columns is None:
            return
        unknown = sorted(query.fields - self._columns)
        if unknown:
            raise ArgumentError(f"Unknown field(s) for {self.entity_type.__name__}: {', '.join(unknown)}")

    def _transforms(self, query: ListQuery) -> tuple[QueryTransform, QueryTransform]:
        self._check_fields(query)
        max_top = self.max_top

        def page(stmt: Select) -> Select:
            return query.apply_page(stmt, max_top)

        def count(stmt: Select) -> Select:
            return query.apply_predicate(stmt)

        return page, count

    def create_list_request(self, query: ListQuery | None = None, calculate_total_count: bool = False) -> GetListRequest:
        page, count = self._transforms(query or ListQuery())
        log.debug(
            "list_request_created",
            entity=getattr(self.entity_type, "__name__", None),
            calculate_total_count=calculate_total_count,
        )
        return GetListRequest(
            filter=page,
            filter_for_total_count=count if calculate_total_count else None,
            calculate_total_count=calculate_total_count,
        )

    def create_history_request(
        self,
        query: ListQuery | None = None,
        valid_from: datetime | None = None,
        valid_to: datetime | None = None,
        calculate_total_count: bool = False,
    ) -> GetHistoryRequest:
        page, count = self._transforms(query or ListQuery())
        return GetHistoryRequest(
            filter=page,
            filter_for_total_count=count if calculate_total_count else None,
            calculate_total_count=calculate_total_count,
            valid_from=valid_from or MIN_VALID_FROM,
            valid_to=valid_to or MAX_VALID_TO,
        )
