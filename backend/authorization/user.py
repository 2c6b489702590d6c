"""Current User Access

Services and handlers read the calling user through a ``UserAccessor``.
The default accessor keeps the user in a context variable bound by the
transport layer for the lifetime of one request.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Iterator, Protocol

from core.logging import bind_context, unbind_context


@dataclass(frozen=True, slots=True)
class User:
    name: str | None
    is_authenticated: bool = True
    roles: frozenset[str] = field(default_factory=frozenset)

    def is_in_role(self, role: str) -> bool:
        return role in self.roles


ANONYMOUS = User(name=None, is_authenticated=False)

current_user_var: ContextVar[User | None] = ContextVar("current_user", default=None)


class UserAccessor(Protocol):
    def current_user(self) -> User | None:
        ...


class ContextVarUserAccessor:
    __slots__ = ()

    def current_user(self) -> User | None:
        return current_user_var.get()

    @contextmanager
    def as_user(self, user: User | None) -> Iterator[User | None]:
        """Bind ``user`` for the enclosed block, including log context."""
        token = current_user_var.set(user)
        bind_context(user=user.name if user else None)
        try:
            yield user
        finally:
            unbind_context("user")
            current_user_var.reset(token)


def is_authenticated(user: User | None) -> bool:
    return user is not None and user.is_authenticated


def user_name(accessor: UserAccessor | None) -> str | None:
    if accessor is None:
        return None
    user = accessor.current_user()
    return user.name if is_authenticated(user) else None
