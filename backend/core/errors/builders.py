"""Service Result Builders

Ergonomic constructors for the failures a service call can surface.
Each builder returns ``Err(AppError(...))`` with the matching status and code.
"""
from http import HTTPStatus

from .types import (
    AppError,
    ErrorCode,
    ErrorContext,
    Err,
    Ok,
    Result,
    is_success_status,
    status_phrase,
)
from .validation import ValidationResults


CONCURRENCY_MESSAGE = "Concurrency validation failed. Please reload the resource."
CONCURRENCY_FIELD_MESSAGE = "Concurrency validation failed."
VALIDATION_MESSAGE = "Validation errors occurred."
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred while processing the request."


def from_status(status: int, origin: str = "") -> Result[None]:
    """Bare status result: 2xx becomes ``Ok(None)``, anything else a problem named after the status."""
    if is_success_status(status):
        return Ok(None, status)
    return problem(status, status_phrase(status), origin=origin)


def problem(
    status: int,
    message: str | None = None,
    *,
    code: ErrorCode | None = None,
    origin: str = "",
    cause: BaseException | None = None,
    **metadata,
) -> Err:
    return Err(AppError(
        status=status,
        message=message,
        code=code,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in metadata.items() if v is not None},
        cause=cause,
    ))


def failed_validation(
    results: ValidationResults,
    status: int = HTTPStatus.BAD_REQUEST,
    message: str = VALIDATION_MESSAGE,
    origin: str = "",
) -> Err:
    return Err(AppError(
        status=status,
        message=message,
        code=ErrorCode.E2000_VALIDATION_FAILED,
        validation=results,
        context=ErrorContext(origin=origin),
    ))


def unauthorized(origin: str = "") -> Err:
    return problem(HTTPStatus.UNAUTHORIZED, status_phrase(HTTPStatus.UNAUTHORIZED), origin=origin)


def forbidden(origin: str = "") -> Err:
    return problem(HTTPStatus.FORBIDDEN, status_phrase(HTTPStatus.FORBIDDEN), origin=origin)


def not_found(entity: str | None = None, id: int | None = None, origin: str = "") -> Err:
    """404 without any hint whether the row exists but is filtered out."""
    return problem(
        HTTPStatus.NOT_FOUND,
        status_phrase(HTTPStatus.NOT_FOUND),
        code=ErrorCode.E4010_NOT_FOUND,
        origin=origin,
        entity=entity,
        entity_id=id,
    )


def conflict(message: str, *, code: ErrorCode = ErrorCode.E4011_CONCURRENCY_CONFLICT, origin: str = "") -> Err:
    return problem(HTTPStatus.CONFLICT, message, code=code, origin=origin)


def concurrency_conflict(
    field: str = "timestamp",
    cause: BaseException | None = None,
    origin: str = "",
) -> Err:
    results = ValidationResults().add_failure(field, CONCURRENCY_FIELD_MESSAGE)
    return Err(AppError(
        status=HTTPStatus.CONFLICT,
        message=CONCURRENCY_MESSAGE,
        code=ErrorCode.E4011_CONCURRENCY_CONFLICT,
        validation=results,
        context=ErrorContext(origin=origin),
        cause=cause,
    ))


def foreign_key_violation(
    message: str,
    *,
    validation: ValidationResults | None = None,
    cause: BaseException | None = None,
    origin: str = "",
    **metadata,
) -> Err:
    return Err(AppError(
        status=HTTPStatus.CONFLICT,
        message=message,
        code=ErrorCode.E4012_FOREIGN_KEY_VIOLATION,
        validation=validation,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in metadata.items() if v is not None},
        cause=cause,
    ))


def service_unavailable(message: str, origin: str = "", **metadata) -> Err:
    return problem(
        HTTPStatus.SERVICE_UNAVAILABLE,
        message,
        code=ErrorCode.E4020_MIGRATIONS_PENDING,
        origin=origin,
        **metadata,
    )


def from_exception(exc: BaseException, status: int = HTTPStatus.INTERNAL_SERVER_ERROR, origin: str = "") -> Err:
    """Failure for an exception; the message never carries the exception text."""
    return problem(
        status,
        INTERNAL_ERROR_MESSAGE if status == HTTPStatus.INTERNAL_SERVER_ERROR else status_phrase(status),
        origin=origin,
        cause=exc,
    )


def internal_error(cause: BaseException | None = None, origin: str = "") -> Err:
    """500 with a generic message; the exception stays in ``cause``."""
    return problem(
        HTTPStatus.INTERNAL_SERVER_ERROR,
        INTERNAL_ERROR_MESSAGE,
        code=ErrorCode.E9001_UNEXPECTED_ERROR,
        origin=origin,
        cause=cause,
    )
