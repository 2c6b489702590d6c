"""Generic Read Service

Get-single, get-list and get-history over one entity type, each running
through the authorization pipeline. List queries run the page query and,
when requested, the total-count query concurrently in separate sessions.
"""
from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, inspect, select
from sqlalchemy.sql.util import ClauseAdapter

from authorization.handlers import ReadAuthorizationHandlerBase
from authorization.results import AuthorizationResult
from authorization.user import UserAccessor
from core.database import SessionFactory
from core.errors import ArgumentError, DatabaseErrorMapper, Ok, Result, not_found
from core.mapping import Mapper
from core.migrations import MigrationChecker
from models.dtos import PagedCollection
from models.requests import GetHistoryRequest, GetListRequest
from services.db import DbServiceBase
from services.state import ServiceState

TEntity = TypeVar("TEntity")
TListDto = TypeVar("TListDto")
TFullDto = TypeVar("TFullDto")

MISSING_COUNT_FILTER = (
    "If request.calculate_total_count is true, request.filter_for_total_count must not be None."
)


def _reads_only(stmt: Select, table) -> bool:
    return all(table.is_derived_from(f) for f in stmt.get_final_froms())


def _column_of(element, table) -> bool:
    owner = getattr(element, "table", None)
    return owner is not None and table.is_derived_from(owner)


class ReadService(DbServiceBase, Generic[TEntity, TListDto, TFullDto]):
    """Read access to ``entity_type``.

    ``history_entity_type`` is the mapped history table (a
    ``TemporalEntityBase``) used by ``get_history``; services without one do
    not support history queries.
    """

    handler_kind = "ReadAuthorizationHandler"

    def __init__(
        self,
        session_factory: SessionFactory,
        mapper: Mapper,
        entity_type: type[TEntity],
        list_dto_type: type[TListDto],
        full_dto_type: type[TFullDto],
        handlers: Sequence[ReadAuthorizationHandlerBase] = (),
        *,
        history_entity_type: type | None = None,
        migrations: MigrationChecker | None = None,
        user_accessor: UserAccessor | None = None,
        state: ServiceState | None = None,
        error_mapper: DatabaseErrorMapper | None = None,
    ):
        super().__init__(
            session_factory,
            migrations=migrations,
            user_accessor=user_accessor,
            state=state,
            error_mapper=error_mapper,
        )
        self._mapper = mapper
        self._entity_type = entity_type
        self._list_dto_type = list_dto_type
        self._full_dto_type = full_dto_type
        self._history_entity_type = history_entity_type
        self._handlers = tuple(handlers)
        type_args = self._type_arguments()
        self._warn_if_no_handlers(
            self._handlers,
            f"{self.handler_kind}[{type_args}]",
            f"{type(self).__name__}[{type_args}]",
        )

    def _type_arguments(self) -> str:
        return ", ".join(t.__name__ for t in (self._entity_type, self._list_dto_type, self._full_dto_type))

    @property
    def handlers(self) -> tuple[Any, ...]:
        return self._handlers

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _select_for_reading(self) -> Select:
        return select(self._entity_type)

    def _select_for_reading_with_authorization(self, authorization: AuthorizationResult) -> Select:
        return authorization.apply_filter(self._select_for_reading())

    def _select_history_with_authorization(
        self, authorization: AuthorizationResult, request: GetHistoryRequest
    ) -> Select:
        """The authorization filter is built against the entity and its criteria
        are moved onto the history table by column name."""
        history = self._history_entity_type
        entity_table = inspect(self._entity_type).local_table
        history_table = inspect(history).local_table

        authorized = authorization.apply_filter(select(self._entity_type))
        if not _reads_only(authorized, entity_table):
            raise ArgumentError(
                f"The authorization filter for {self._entity_type.__name__} reads other tables "
                "and cannot be applied to its history."
            )

        stmt = select(history).where(history.period_start < request.valid_to, history.period_end > request.valid_from)
        if authorized.whereclause is not None:
            adapter = ClauseAdapter(
                history_table,
                include_fn=lambda col: _column_of(col, entity_table),
                adapt_on_names=True,
            )
            stmt = stmt.where(adapter.traverse(authorized.whereclause))

        if not _reads_only(stmt, history_table):
            raise ArgumentError(
                f"The authorization filter for {self._entity_type.__name__} uses columns "
                f"missing from {history_table.name}."
            )
        return stmt

    async def _fetch_page(self, stmt: Select, dto_type: type) -> tuple[list[Any], list[Any]]:
        async with self._session() as session:
            entities = list((await session.execute(stmt)).scalars().all())
            return entities, self._mapper.to_dtos(entities, dto_type)

    async def _fetch_count(self, stmt: Select) -> int:
        async with self._session() as session:
            count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
            return (await session.execute(count_stmt)).scalar_one()

    async def _read_page(
        self,
        request: GetListRequest,
        source: Any,
        dto_type: type,
    ) -> tuple[PagedCollection, list[Any]]:
        """``source`` builds a fresh authorized statement; it is called once per query."""
        if request.calculate_total_count and request.filter_for_total_count is None:
            raise ArgumentError(MISSING_COUNT_FILTER)

        page_stmt = request.filter(source())
        if request.calculate_total_count:
            count_stmt = request.filter_for_total_count(source())
            tasks = (
                asyncio.create_task(self._fetch_page(page_stmt, dto_type)),
                asyncio.create_task(self._fetch_count(count_stmt)),
            )
            try:
                (entities, dtos), total_count = await asyncio.gather(*tasks)
            except BaseException:
                # a failed query must not leave its sibling running with an open session
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            (entities, dtos), total_count = await self._fetch_page(page_stmt, dto_type), None

        return PagedCollection(items=dtos, total_count=total_count), entities

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def get_single(self, id: int) -> Result[TFullDto]:
        return await self._try_execute_with_authorization(
            (id,),
            self._get_single,
            lambda auth, handler: handler.handle_get_single_request(auth),
            lambda result, handler: handler.handle_get_single_response(result),
            self._handlers,
        )

    async def _get_single(self, authorization: AuthorizationResult) -> Result[TFullDto]:
        id = authorization.value1
        entity_type = self._entity_type
        async with self._session() as session:
            stmt = self._select_for_reading_with_authorization(authorization).where(entity_type.id == id)
            entity = (await session.execute(stmt)).scalars().first()
            if entity is None:
                return not_found(entity_type.__name__, id, origin=type(self).__name__)
            dto = self._mapper.to_dto(entity, self._full_dto_type)

        await self._on_got_single(authorization, dto, entity)
        return Ok(dto)

    async def get_list(self, request: GetListRequest | None = None) -> Result[PagedCollection[TListDto]]:
        return await self._try_execute_with_authorization(
            (request or GetListRequest(),),
            self._get_list,
            lambda auth, handler: handler.handle_get_list_request(auth),
            lambda result, handler: handler.handle_get_list_response(result),
            self._handlers,
        )

    async def _get_list(self, authorization: AuthorizationResult) -> Result[PagedCollection[TListDto]]:
        request: GetListRequest = authorization.value1
        page, entities = await self._read_page(
            request,
            lambda: self._select_for_reading_with_authorization(authorization),
            self._list_dto_type,
        )
        await self._on_got_list(authorization, page, entities)
        return Ok(page)

    async def get_history(self, request: GetHistoryRequest | None = None) -> Result[PagedCollection[TFullDto]]:
        if self._history_entity_type is None:
            raise ArgumentError(f"{type(self).__name__} has no history entity configured.")
        return await self._try_execute_with_authorization(
            (request or GetHistoryRequest(),),
            self._get_history,
            lambda auth, handler: handler.handle_get_history_request(auth),
            lambda result, handler: handler.handle_get_history_response(result),
            self._handlers,
        )

    async def _get_history(self, authorization: AuthorizationResult) -> Result[PagedCollection[TFullDto]]:
        request: GetHistoryRequest = authorization.value1
        page, entities = await self._read_page(
            request,
            lambda: self._select_history_with_authorization(authorization, request),
            self._full_dto_type,
        )
        await self._on_got_history(authorization, page, entities)
        return Ok(page)

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    async def _on_got_single(self, authorization: AuthorizationResult, dto: TFullDto, entity: TEntity) -> None:
        """Called after the entity was read and mapped."""

    async def _on_got_list(
        self, authorization: AuthorizationResult, page: PagedCollection[TListDto], entities: list[TEntity]
    ) -> None:
        """Called after the page was read and mapped."""

    async def _on_got_history(
        self, authorization: AuthorizationResult, page: PagedCollection[TFullDto], entities: list[Any]
    ) -> None:
        pass
