"""Service Pipeline

Every service action runs through the same pipeline:

1. Seed an OK authorization result carrying the request values.
2. Fold every handler's request method over it, in registration order.
   All handlers run, even after one of them failed the status.
3. A final status other than OK ends the call with that status. The action
   and the response side are skipped.
4. Run the action with the (possibly filtered) authorization result.
5. Fold every handler's response method over the action's result, in the
   same order, each handler receiving the previous handler's output.

``ServiceBase._try_execute`` turns any unexpected exception into a generic
500 result. Cancellation is not an ``Exception`` and always propagates.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from http import HTTPStatus
from typing import Any, TypeVar

from authorization.results import AuthorizationResult, AuthorizationResultWithoutDb
from authorization.user import UserAccessor, user_name
from core.errors import ArgumentError, Result, from_status, internal_error
from core.logging import auth_logger, service_logger
from services.state import ServiceState, default_state

log = service_logger()
auth_log = auth_logger()

T = TypeVar("T")
A = TypeVar("A", AuthorizationResult, AuthorizationResultWithoutDb)
H = TypeVar("H")

RequestReducer = Callable[[A, H], Awaitable[A]]
ResponseReducer = Callable[[Result[T], H], Awaitable[Result[T]]]
Action = Callable[[A], Awaitable[Result[T]]]


async def execute_pipeline(
    seed: A,
    function: Action,
    authorize_request: RequestReducer,
    authorize_result: ResponseReducer,
    handlers: Sequence[H],
) -> Result[T]:
    """Run the request fold, the action and the response fold."""
    authorization = seed
    for handler in handlers:
        authorization = await authorize_request(authorization, handler)

    if authorization.status != HTTPStatus.OK:
        auth_log.debug(
            "authorization_rejected",
            status=int(authorization.status),
            handlers=len(handlers),
        )
        return from_status(authorization.status, origin="authorization")

    response = await function(authorization)

    for handler in handlers:
        response = await authorize_result(response, handler)

    return response


class ServiceBase:
    """Base class for services, including custom ones that never touch the database.

    ``state`` is the process-wide ``ServiceState``; pass a fresh one in tests.
    """

    def __init__(
        self,
        user_accessor: UserAccessor | None = None,
        state: ServiceState | None = None,
    ):
        self._user_accessor = user_accessor
        self._state = state or default_state()

    @property
    def current_user_name(self) -> str | None:
        return user_name(self._user_accessor)

    @property
    def state(self) -> ServiceState:
        return self._state

    def _warn_if_no_handlers(self, handlers: Sequence[Any], handler_kind: str, key: str) -> None:
        """Log the missing-handler warning once per service/type combination."""
        if handlers or not self._state.warn_once(key):
            return
        log.warning(
            "no_authorization_handler_configured",
            handler=handler_kind,
            service=key,
            detail=f"No {handler_kind} is configured. No authorization will be performed for any methods of {key}.",
        )

    async def _try_execute(
        self,
        function: Callable[[], Awaitable[Result[T]]],
        dto_type: type | None = None,
    ) -> Result[T]:
        try:
            return await function()
        except ArgumentError:
            raise
        except Exception as e:
            log.exception("service_call_failed", service=type(self).__name__, error_type=type(e).__name__)
            return internal_error(e, origin=type(self).__name__)

    async def _try_execute_with_authorization(
        self,
        values: tuple[Any, ...],
        function: Action,
        authorize_request: RequestReducer,
        authorize_result: ResponseReducer,
        handlers: Sequence[Any],
        dto_type: type | None = None,
    ) -> Result[T]:
        seed = AuthorizationResult.ok(*values)
        return await self._try_execute(
            lambda: execute_pipeline(seed, function, authorize_request, authorize_result, handlers),
            dto_type=dto_type,
        )

    async def _try_execute_with_authorization_without_db(
        self,
        values: tuple[Any, ...],
        function: Action,
        authorize_request: RequestReducer,
        authorize_result: ResponseReducer,
        handlers: Sequence[Any],
    ) -> Result[T]:
        seed = AuthorizationResultWithoutDb.ok(*values)
        return await self._try_execute(
            lambda: execute_pipeline(seed, function, authorize_request, authorize_result, handlers),
        )
