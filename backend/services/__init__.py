from services.state import ServiceState, default_state
from services.base import ServiceBase, execute_pipeline
from services.db import DbServiceBase, pending_migrations_message
from services.read import ReadService, MISSING_COUNT_FILTER
from services.crud import CrudService, TIMESTAMP_REQUIRED, ENTITY_MODIFIED
from services.validation import (
    CreateValidatorBase,
    UpdateValidatorBase,
    ValidationService,
    CouldNotExecuteValidationError,
)
from services.query import FilterOperator, FilterCondition, SortField, ListQuery, ListRequestFactory
from services.context import ServiceContext, open_service_context

__all__ = [
    "ServiceState",
    "default_state",
    "ServiceBase",
    "execute_pipeline",
    "DbServiceBase",
    "pending_migrations_message",
    "ReadService",
    "MISSING_COUNT_FILTER",
    "CrudService",
    "TIMESTAMP_REQUIRED",
    "ENTITY_MODIFIED",
    "CreateValidatorBase",
    "UpdateValidatorBase",
    "ValidationService",
    "CouldNotExecuteValidationError",
    "FilterOperator",
    "FilterCondition",
    "SortField",
    "ListQuery",
    "ListRequestFactory",
    "ServiceContext",
    "open_service_context",
]
