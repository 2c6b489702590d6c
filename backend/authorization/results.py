"""Authorization Results

Value threaded through the request side of the handler chain. Each handler
receives the previous result and returns a new one: it may lower the status,
rewrite the request values, or narrow the row filter. Instances are frozen;
every ``with_*`` call returns a copy.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from http import HTTPStatus
from typing import Any, Generic, TypeVar

from sqlalchemy import Select

from models.requests import QueryTransform, identity

TEntity = TypeVar("TEntity")


def compose(first: QueryTransform, then: QueryTransform) -> QueryTransform:
    """``then(first(source))``; used so later filters narrow earlier ones."""
    if first is identity:
        return then
    if then is identity:
        return first

    def composed(source: Select) -> Select:
        return then(first(source))

    return composed


@dataclass(frozen=True, slots=True)
class _AuthorizationResultBase:
    status: int = HTTPStatus.OK
    values: tuple[Any, ...] = ()

    @property
    def is_ok(self) -> bool:
        return self.status == HTTPStatus.OK

    @property
    def value1(self) -> Any:
        return self.values[0] if self.values else None

    @property
    def value2(self) -> Any:
        return self.values[1] if len(self.values) > 1 else None

    def with_status(self, status: int):
        """Replace the status. A failed result is never turned back into OK."""
        if not self.is_ok and status == HTTPStatus.OK:
            return self
        return replace(self, status=status)

    def with_values(self, *values: Any):
        return replace(self, values=tuple(values))

    @classmethod
    def ok(cls, *values: Any):
        return cls(HTTPStatus.OK, tuple(values))

    @classmethod
    def from_status(cls, status: int, *values: Any):
        return cls(status, tuple(values))

    @classmethod
    def forbidden(cls, *values: Any):
        return cls(HTTPStatus.FORBIDDEN, tuple(values))

    @classmethod
    def unauthorized(cls, *values: Any):
        return cls(HTTPStatus.UNAUTHORIZED, tuple(values))


@dataclass(frozen=True, slots=True)
class AuthorizationResult(_AuthorizationResultBase, Generic[TEntity]):
    """Authorization result for actions that query ``TEntity``.

    ``filter`` restricts the rows the action may see; it starts as the
    identity and only ever grows through ``with_filter``.
    """
    filter: QueryTransform = identity

    def with_filter(self, filter: QueryTransform) -> AuthorizationResult[TEntity]:
        return replace(self, filter=compose(self.filter, filter))

    def apply_filter(self, stmt: Select) -> Select:
        return self.filter(stmt)


@dataclass(frozen=True, slots=True)
class AuthorizationResultWithoutDb(_AuthorizationResultBase):
    """Authorization result for actions that never touch persistence."""
