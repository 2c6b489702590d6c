"""Authorization Handlers

A handler exposes one request method and one response method per action.
Request methods take and return an ``AuthorizationResult``; response methods
take and return the action's ``Result``. The base classes pass everything
through unchanged, so subclasses override only the actions they care about.

Handlers are shared by concurrent calls and must not keep per-call state.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any, Generic, TypeVar

from authorization.results import AuthorizationResult, AuthorizationResultWithoutDb
from authorization.user import User, UserAccessor, is_authenticated
from core.errors import Result, unauthorized
from models.dtos import PagedCollection

TEntity = TypeVar("TEntity")
TListDto = TypeVar("TListDto")
TFullDto = TypeVar("TFullDto")
TCreateDto = TypeVar("TCreateDto")
TUpdateDto = TypeVar("TUpdateDto")

Auth = AuthorizationResult


class ReadAuthorizationHandlerBase(Generic[TEntity, TListDto, TFullDto]):
    __slots__ = ()

    async def handle_get_single_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_get_single_response(self, previous: Result[TFullDto]) -> Result[TFullDto]:
        return previous

    async def handle_get_list_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_get_list_response(
        self, previous: Result[PagedCollection[TListDto]]
    ) -> Result[PagedCollection[TListDto]]:
        return previous

    async def handle_get_history_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_get_history_response(
        self, previous: Result[PagedCollection[TFullDto]]
    ) -> Result[PagedCollection[TFullDto]]:
        return previous


class CrudAuthorizationHandlerBase(
    ReadAuthorizationHandlerBase[TEntity, TListDto, TFullDto],
    Generic[TEntity, TCreateDto, TListDto, TFullDto, TUpdateDto],
):
    __slots__ = ()

    async def handle_create_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_create_response(self, previous: Result[TFullDto]) -> Result[TFullDto]:
        return previous

    async def handle_create_many_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_create_many_response(self, previous: Result[list[TFullDto]]) -> Result[list[TFullDto]]:
        return previous

    async def handle_update_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_update_response(self, previous: Result[TFullDto]) -> Result[TFullDto]:
        return previous

    async def handle_update_many_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_update_many_response(self, previous: Result[list[TFullDto]]) -> Result[list[TFullDto]]:
        return previous

    async def handle_delete_request(self, previous: Auth[TEntity]) -> Auth[TEntity]:
        return previous

    async def handle_delete_response(self, previous: Result[None]) -> Result[None]:
        return previous


class BasicAuthorizationHandlerBase:
    """Handler for custom services whose actions do not query entities."""

    __slots__ = ()

    async def handle_request(self, previous: AuthorizationResultWithoutDb) -> AuthorizationResultWithoutDb:
        return previous

    async def handle_response(self, previous: Result[Any]) -> Result[Any]:
        return previous


# =============================================================================
# Authenticated-user guards
# =============================================================================

class _UserGuard:
    """Rejects anonymous callers with 401 on both sides of the chain."""

    __slots__ = ()

    user_accessor: UserAccessor

    async def _request(self, previous, hook: Callable[[Any, User], Awaitable[Any]]):
        user = self.user_accessor.current_user()
        if not is_authenticated(user):
            return previous.with_status(HTTPStatus.UNAUTHORIZED)
        return await hook(previous, user)

    async def _response(self, previous, hook: Callable[[Any, User], Awaitable[Any]]):
        user = self.user_accessor.current_user()
        if not is_authenticated(user):
            return unauthorized(origin=type(self).__name__)
        return await hook(previous, user)

    async def _passthrough(self, previous, user: User):
        return previous


class UserIsAuthorizedReadHandler(_UserGuard, ReadAuthorizationHandlerBase[TEntity, TListDto, TFullDto]):
    """Read handler that requires an authenticated user.

    Override the ``*_with_user`` hooks to add per-user rules.
    """

    def __init__(self, user_accessor: UserAccessor):
        self.user_accessor = user_accessor

    async def handle_get_single_request(self, previous):
        return await self._request(previous, self.handle_get_single_request_with_user)

    async def handle_get_single_response(self, previous):
        return await self._response(previous, self.handle_get_single_response_with_user)

    async def handle_get_list_request(self, previous):
        return await self._request(previous, self.handle_get_list_request_with_user)

    async def handle_get_list_response(self, previous):
        return await self._response(previous, self.handle_get_list_response_with_user)

    async def handle_get_history_request(self, previous):
        return await self._request(previous, self.handle_get_history_request_with_user)

    async def handle_get_history_response(self, previous):
        return await self._response(previous, self.handle_get_history_response_with_user)

    handle_get_single_request_with_user = _UserGuard._passthrough
    handle_get_single_response_with_user = _UserGuard._passthrough
    handle_get_list_request_with_user = _UserGuard._passthrough
    handle_get_list_response_with_user = _UserGuard._passthrough
    handle_get_history_request_with_user = _UserGuard._passthrough
    handle_get_history_response_with_user = _UserGuard._passthrough


class UserIsAuthorizedCrudHandler(
    UserIsAuthorizedReadHandler[TEntity, TListDto, TFullDto],
    CrudAuthorizationHandlerBase[TEntity, TCreateDto, TListDto, TFullDto, TUpdateDto],
):
    """CRUD handler that requires an authenticated user for every action."""

    async def handle_create_request(self, previous):
        return await self._request(previous, self.handle_create_request_with_user)

    async def handle_create_response(self, previous):
        return await self._response(previous, self.handle_create_response_with_user)

    async def handle_create_many_request(self, previous):
        return await self._request(previous, self.handle_create_many_request_with_user)

    async def handle_create_many_response(self, previous):
        return await self._response(previous, self.handle_create_many_response_with_user)

    async def handle_update_request(self, previous):
        return await self._request(previous, self.handle_update_request_with_user)

    async def handle_update_response(self, previous):
        return await self._response(previous, self.handle_update_response_with_user)

    async def handle_update_many_request(self, previous):
        return await self._request(previous, self.handle_update_many_request_with_user)

    async def handle_update_many_response(self, previous):
        return await self._response(previous, self.handle_update_many_response_with_user)

    async def handle_delete_request(self, previous):
        return await self._request(previous, self.handle_delete_request_with_user)

    async def handle_delete_response(self, previous):
        return await self._response(previous, self.handle_delete_response_with_user)

    handle_create_request_with_user = _UserGuard._passthrough
    handle_create_response_with_user = _UserGuard._passthrough
    handle_create_many_request_with_user = _UserGuard._passthrough
    handle_create_many_response_with_user = _UserGuard._passthrough
    handle_update_request_with_user = _UserGuard._passthrough
    handle_update_response_with_user = _UserGuard._passthrough
    handle_update_many_request_with_user = _UserGuard._passthrough
    handle_update_many_response_with_user = _UserGuard._passthrough
    handle_delete_request_with_user = _UserGuard._passthrough
    handle_delete_response_with_user = _UserGuard._passthrough


class UserIsAuthorizedBasicHandler(_UserGuard, BasicAuthorizationHandlerBase):
    def __init__(self, user_accessor: UserAccessor):
        self.user_accessor = user_accessor

    async def handle_request(self, previous):
        return await self._request(previous, self.handle_request_with_user)

    async def handle_response(self, previous):
        return await self._response(previous, self.handle_response_with_user)

    handle_request_with_user = _UserGuard._passthrough
    handle_response_with_user = _UserGuard._passthrough
