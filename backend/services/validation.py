"""Business Validation for Create and Update

Validators run before the DTO is mapped (DTO only) and after it has been
applied to the entity (DTO and entity). The validation service runs every
registered validator concurrently and merges their failures.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

from core.errors import ValidationResults

TCreateDto = TypeVar("TCreateDto")
TUpdateDto = TypeVar("TUpdateDto")
TEntity = TypeVar("TEntity")
V = TypeVar("V")


class CouldNotExecuteValidationError(Exception):
    """A validator raised instead of returning its failures."""


async def _per_item(items, validate: Callable[..., Awaitable[ValidationResults]]) -> ValidationResults:
    results = ValidationResults()
    outcomes = await asyncio.gather(*(validate(*item) if isinstance(item, tuple) else validate(item) for item in items))
    for index, outcome in enumerate(outcomes):
        results.add_collection_failures(index, outcome)
    return results


class CreateValidatorBase(Generic[TCreateDto, TEntity]):
    """Base class for create validators. Every hook succeeds unless overridden.

    The collection hooks validate each item with the single-item hook and
    prefix failures with the item index.
    """

    async def validate_before_create(self, dto: TCreateDto) -> ValidationResults:
        return ValidationResults()

    async def validate_after_create(self, dto: TCreateDto, entity: TEntity) -> ValidationResults:
        return ValidationResults()

    async def validate_collection_before_create(self, dtos: Sequence[TCreateDto]) -> ValidationResults:
        return await _per_item(dtos, self.validate_before_create)

    async def validate_collection_after_create(
        self, dtos_and_entities: Sequence[tuple[TCreateDto, TEntity]]
    ) -> ValidationResults:
        return await _per_item(dtos_and_entities, self.validate_after_create)


class UpdateValidatorBase(Generic[TUpdateDto, TEntity]):
    async def validate_before_update(self, dto: TUpdateDto, entity: TEntity) -> ValidationResults:
        return ValidationResults()

    async def validate_after_update(self, dto: TUpdateDto, entity: TEntity) -> ValidationResults:
        return ValidationResults()

    async def validate_collection_before_update(
        self, dtos_and_entities: Sequence[tuple[TUpdateDto, TEntity]]
    ) -> ValidationResults:
        return await _per_item(dtos_and_entities, self.validate_before_update)

    async def validate_collection_after_update(
        self, dtos_and_entities: Sequence[tuple[TUpdateDto, TEntity]]
    ) -> ValidationResults:
        return await _per_item(dtos_and_entities, self.validate_after_update)


class ValidationService(Generic[TCreateDto, TUpdateDto, TEntity]):
    __slots__ = ("create_validators", "update_validators")

    def __init__(
        self,
        create_validators: Sequence[CreateValidatorBase[TCreateDto, TEntity]] = (),
        update_validators: Sequence[UpdateValidatorBase[TUpdateDto, TEntity]] = (),
    ):
        self.create_validators = tuple(create_validators)
        self.update_validators = tuple(update_validators)

    @staticmethod
    async def _validate_all(
        validators: Sequence[V], validate: Callable[[V], Awaitable[ValidationResults]]
    ) -> ValidationResults:
        merged = ValidationResults()
        if not validators:
            return merged
        try:
            outcomes = await asyncio.gather(*(validate(v) for v in validators))
        except Exception as e:
            raise CouldNotExecuteValidationError(f"Validation could not be executed: {e}") from e
        for outcome in outcomes:
            merged.merge(outcome)
        return merged

    async def validate_before_create(self, dto) -> ValidationResults:
        return await self._validate_all(self.create_validators, lambda v: v.validate_before_create(dto))

    async def validate_after_create(self, dto, entity) -> ValidationResults:
        return await self._validate_all(self.create_validators, lambda v: v.validate_after_create(dto, entity))

    async def validate_collection_before_create(self, dtos) -> ValidationResults:
        return await self._validate_all(self.create_validators, lambda v: v.validate_collection_before_create(dtos))

    async def validate_collection_after_create(self, dtos_and_entities) -> ValidationResults:
        return await self._validate_all(
            self.create_validators, lambda v: v.validate_collection_after_create(dtos_and_entities)
        )

    async def validate_before_update(self, dto, entity) -> ValidationResults:
        return await self._validate_all(self.update_validators, lambda v: v.validate_before_update(dto, entity))

    async def validate_after_update(self, dto, entity) -> ValidationResults:
        return await self._validate_all(self.update_validators, lambda v: v.validate_after_update(dto, entity))

    async def validate_collection_before_update(self, dtos_and_entities) -> ValidationResults:
        return await self._validate_all(
            self.update_validators, lambda v: v.validate_collection_before_update(dtos_and_entities)
        )

    async def validate_collection_after_update(self, dtos_and_entities) -> ValidationResults:
        return await self._validate_all(
            self.update_validators, lambda v: v.validate_collection_after_update(dtos_and_entities)
        )
