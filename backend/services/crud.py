"""Generic CRUD Service

Create, update and delete (single and batch) on top of ``ReadService``.
Writes compare the client's row version with the stored one before any
field is touched, and a batch update is applied completely or not at all.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession

from authorization.handlers import CrudAuthorizationHandlerBase
from authorization.results import AuthorizationResult
from authorization.user import UserAccessor
from core.database import SessionFactory
from core.errors import (
    DatabaseErrorMapper,
    Err,
    Ok,
    Result,
    concurrency_conflict,
    conflict,
    failed_validation,
    not_found,
)
from core.logging import service_logger
from core.mapping import Mapper
from core.migrations import MigrationChecker
from models.requests import UpdateMultipleRequest
from services.read import ReadService
from services.state import ServiceState
from services.validation import ValidationService

log = service_logger()

TEntity = TypeVar("TEntity")
TCreateDto = TypeVar("TCreateDto")
TListDto = TypeVar("TListDto")
TFullDto = TypeVar("TFullDto")
TUpdateDto = TypeVar("TUpdateDto")

TIMESTAMP_REQUIRED = "You must provide a timestamp."
ENTITY_MODIFIED = "The entity was modified."


def row_version(obj: Any) -> bytes | None:
    value = getattr(obj, "timestamp", None)
    return bytes(value) if value is not None else None


def versions_match(entity: Any, dto: Any) -> bool:
    """Entities without a stored row version always match."""
    stored = row_version(entity)
    return stored is None or stored == row_version(dto)


class CrudService(
    ReadService[TEntity, TListDto, TFullDto],
    Generic[TEntity, TCreateDto, TListDto, TFullDto, TUpdateDto],
):
    handler_kind = "CrudAuthorizationHandler"

    def __init__(
        self,
        session_factory: SessionFactory,
        mapper: Mapper,
        entity_type: type[TEntity],
        create_dto_type: type[TCreateDto],
        list_dto_type: type[TListDto],
        full_dto_type: type[TFullDto],
        update_dto_type: type[TUpdateDto],
        handlers: Sequence[CrudAuthorizationHandlerBase] = (),
        *,
        validation: ValidationService | None = None,
        history_entity_type: type | None = None,
        migrations: MigrationChecker | None = None,
        user_accessor: UserAccessor | None = None,
        state: ServiceState | None = None,
        error_mapper: DatabaseErrorMapper | None = None,
    ):
        self._create_dto_type = create_dto_type
        self._update_dto_type = update_dto_type
        self._validation = validation
        super().__init__(
            session_factory,
            mapper,
            entity_type,
            list_dto_type,
            full_dto_type,
            handlers,
            history_entity_type=history_entity_type,
            migrations=migrations,
            user_accessor=user_accessor,
            state=state,
            error_mapper=error_mapper,
        )

    def _type_arguments(self) -> str:
        types = (
            self._entity_type,
            self._create_dto_type,
            self._list_dto_type,
            self._full_dto_type,
            self._update_dto_type,
        )
        return ", ".join(t.__name__ for t in types)

    def _select_for_updating(self) -> Select:
        return self._select_for_reading()

    def _select_for_updating_with_authorization(self, authorization: AuthorizationResult) -> Select:
        return authorization.apply_filter(self._select_for_updating())

    async def _find_for_updating(
        self, session: AsyncSession, authorization: AuthorizationResult, id: int
    ) -> TEntity | None:
        stmt = self._select_for_updating_with_authorization(authorization).where(self._entity_type.id == id)
        return (await session.execute(stmt)).scalars().first()

    async def _validate(self, method: str, *args: Any) -> Err | None:
        if self._validation is None:
            return None
        results = await getattr(self._validation, method)(*args)
        if results.succeeded:
            return None
        return failed_validation(results, origin=type(self).__name__)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, dto: TCreateDto) -> Result[TFullDto]:
        return await self._try_execute_with_authorization(
            (dto,),
            self._create,
            lambda auth, handler: handler.handle_create_request(auth),
            lambda result, handler: handler.handle_create_response(result),
            self._handlers,
            dto_type=self._create_dto_type,
        )

    async def _create(self, authorization: AuthorizationResult) -> Result[TFullDto]:
        dto = authorization.value1

        if (failure := await self._validate("validate_before_create", dto)) is not None:
            return failure

        async with self._session() as session:
            entity = self._mapper.to_entity(dto, self._entity_type)
            session.add(entity)

            if (failure := await self._validate("validate_after_create", dto, entity)) is not None:
                return failure

            await self._on_creating(authorization, session, entity)
            await self._save_changes(session)
            result = self._mapper.to_dto(entity, self._full_dto_type)

        log.debug("entity_created", entity=self._entity_type.__name__, id=entity.id)
        await self._on_created(authorization, result, entity)
        return Ok(result)

    async def create_many(self, dtos: Sequence[TCreateDto]) -> Result[list[TFullDto]]:
        return await self._try_execute_with_authorization(
            (list(dtos),),
            self._create_many,
            lambda auth, handler: handler.handle_create_many_request(auth),
            lambda result, handler: handler.handle_create_many_response(result),
            self._handlers,
            dto_type=self._create_dto_type,
        )

    async def _create_many(self, authorization: AuthorizationResult) -> Result[list[TFullDto]]:
        dtos = authorization.value1

        if (failure := await self._validate("validate_collection_before_create", dtos)) is not None:
            return failure

        async with self._session() as session:
            entities = self._mapper.to_entities(dtos, self._entity_type)
            session.add_all(entities)

            pairs = list(zip(dtos, entities))
            if (failure := await self._validate("validate_collection_after_create", pairs)) is not None:
                return failure

            await self._on_creating_many(authorization, session, entities)
            await self._save_changes(session)
            results = self._mapper.to_dtos(entities, self._full_dto_type)

        log.debug("entities_created", entity=self._entity_type.__name__, count=len(entities))
        await self._on_created_many(authorization, results, entities)
        return Ok(results)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update(self, dto: TUpdateDto) -> Result[TFullDto]:
        return await self._try_execute_with_authorization(
            (dto,),
            self._update,
            lambda auth, handler: handler.handle_update_request(auth),
            lambda result, handler: handler.handle_update_response(result),
            self._handlers,
            dto_type=self._update_dto_type,
        )

    async def _update(self, authorization: AuthorizationResult) -> Result[TFullDto]:
        dto = authorization.value1

        async with self._session() as session:
            entity = await self._find_for_updating(session, authorization, dto.id)
            if entity is None:
                return not_found(self._entity_type.__name__, dto.id, origin=type(self).__name__)

            if (failure := await self._validate("validate_before_update", dto, entity)) is not None:
                return failure

            if not versions_match(entity, dto):
                return concurrency_conflict(origin=type(self).__name__)

            self._mapper.update(dto, entity)

            if (failure := await self._validate("validate_after_update", dto, entity)) is not None:
                return failure

            await self._on_updating(authorization, session, entity)
            await self._save_changes(session)
            result = self._mapper.to_dto(entity, self._full_dto_type)

        log.debug("entity_updated", entity=self._entity_type.__name__, id=entity.id)
        await self._on_updated(authorization, result, entity)
        return Ok(result)

    async def update_many(self, request: UpdateMultipleRequest[TUpdateDto]) -> Result[list[TFullDto]]:
        return await self._try_execute_with_authorization(
            (request,),
            self._update_many,
            lambda auth, handler: handler.handle_update_many_request(auth),
            lambda result, handler: handler.handle_update_many_response(result),
            self._handlers,
            dto_type=self._update_dto_type,
        )

    async def _update_many(self, authorization: AuthorizationResult) -> Result[list[TFullDto]]:
        request: UpdateMultipleRequest = authorization.value1
        dtos = list(request.dtos)
        ids = {dto.id for dto in dtos}
        entity_type = self._entity_type

        async with self._session() as session:
            stmt = request.filter(
                self._select_for_updating_with_authorization(authorization).where(entity_type.id.in_(ids))
            )
            entities = {e.id: e for e in (await session.execute(stmt)).scalars().all()}

            if len(entities) != len(dtos):
                return not_found(entity_type.__name__, origin=type(self).__name__)

            pairs = [(dto, entities[dto.id]) for dto in dtos]

            if (failure := await self._validate("validate_collection_before_update", pairs)) is not None:
                return failure

            for index, (dto, entity) in enumerate(pairs):
                if not versions_match(entity, dto):
                    return concurrency_conflict(field=f"[{index}].timestamp", origin=type(self).__name__)

            for dto, entity in pairs:
                self._mapper.update(dto, entity)

            if (failure := await self._validate("validate_collection_after_update", pairs)) is not None:
                return failure

            await self._on_updating_many(authorization, session, entities)
            await self._save_changes(session)
            results = [self._mapper.to_dto(entity, self._full_dto_type) for _, entity in pairs]

        log.debug("entities_updated", entity=entity_type.__name__, count=len(pairs))
        await self._on_updated_many(authorization, results, entities)
        return Ok(results)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete(self, id: int, timestamp: bytes | None) -> Result[None]:
        return await self._try_execute_with_authorization(
            (id, timestamp),
            self._delete,
            lambda auth, handler: handler.handle_delete_request(auth),
            lambda result, handler: handler.handle_delete_response(result),
            self._handlers,
        )

    async def _delete(self, authorization: AuthorizationResult) -> Result[None]:
        id, timestamp = authorization.value1, authorization.value2

        async with self._session() as session:
            entity = await self._find_for_updating(session, authorization, id)
            if entity is None:
                return not_found(self._entity_type.__name__, id, origin=type(self).__name__)

            stored = row_version(entity)
            if stored is not None and timestamp is None:
                return conflict(TIMESTAMP_REQUIRED, origin=type(self).__name__)
            if stored is not None and stored != bytes(timestamp):
                return conflict(ENTITY_MODIFIED, origin=type(self).__name__)

            await session.delete(entity)
            await self._on_deleting(authorization, session, entity)
            await self._save_changes(session)

        log.debug("entity_deleted", entity=self._entity_type.__name__, id=id)
        await self._on_deleted(authorization, entity)
        return Ok(None)

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    async def _on_creating(self, authorization: AuthorizationResult, session: AsyncSession, entity: TEntity) -> None:
        """Called after the entity was added to the session, before it is saved."""

    async def _on_created(self, authorization: AuthorizationResult, dto: TFullDto, entity: TEntity) -> None:
        """Called after the entity was saved and mapped."""

    async def _on_creating_many(
        self, authorization: AuthorizationResult, session: AsyncSession, entities: list[TEntity]
    ) -> None:
        pass

    async def _on_created_many(
        self, authorization: AuthorizationResult, dtos: list[TFullDto], entities: list[TEntity]
    ) -> None:
        pass

    async def _on_updating(self, authorization: AuthorizationResult, session: AsyncSession, entity: TEntity) -> None:
        """Called after the DTO was applied to the entity, before it is saved."""

    async def _on_updated(self, authorization: AuthorizationResult, dto: TFullDto, entity: TEntity) -> None:
        pass

    async def _on_updating_many(
        self, authorization: AuthorizationResult, session: AsyncSession, entities: dict[int, TEntity]
    ) -> None:
        pass

    async def _on_updated_many(
        self, authorization: AuthorizationResult, dtos: list[TFullDto], entities: dict[int, TEntity]
    ) -> None:
        pass

    async def _on_deleting(self, authorization: AuthorizationResult, session: AsyncSession, entity: TEntity) -> None:
        """Called after the entity was marked for deletion, before it is saved."""

    async def _on_deleted(self, authorization: AuthorizationResult, entity: TEntity) -> None:
        pass
