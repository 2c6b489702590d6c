"""Monadic Error Handling for Service Calls

Every service action returns ``Result[T]`` instead of raising for expected
failures (not found, conflict, authorization, pending migrations).

Usage:
    from core.errors import Ok, Err, Result, not_found

    async def get_post(post_id: int) -> Result[PostDto]:
        post = await session.get(Post, post_id)
        if post is None:
            return not_found("Post", post_id)
        return Ok(mapper.to_dto(post, PostDto))

    match await service.get_single(1):
        case Ok(post):
            print(post.title)
        case Err(error):
            log.warning("lookup_failed", status=error.status, detail=error.message)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    is_success_status,
    status_phrase,
)

from .validation import ValidationResults

from .builders import (
    CONCURRENCY_MESSAGE,
    CONCURRENCY_FIELD_MESSAGE,
    VALIDATION_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    from_status,
    from_exception,
    problem,
    failed_validation,
    unauthorized,
    forbidden,
    not_found,
    conflict,
    concurrency_conflict,
    foreign_key_violation,
    service_unavailable,
    internal_error,
)

from .boundaries import (
    ConcurrencyConflictError,
    DatabaseErrorMapper,
    ForeignKeyMatch,
    is_foreign_key_violation,
    parse_foreign_key_message,
)


class ArgumentError(ValueError):
    """Programming error in how a service was called. Never converted to a Result."""


__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "is_success_status",
    "status_phrase",
    "ValidationResults",
    "CONCURRENCY_MESSAGE",
    "CONCURRENCY_FIELD_MESSAGE",
    "VALIDATION_MESSAGE",
    "INTERNAL_ERROR_MESSAGE",
    "from_status",
    "from_exception",
    "problem",
    "failed_validation",
    "unauthorized",
    "forbidden",
    "not_found",
    "conflict",
    "concurrency_conflict",
    "foreign_key_violation",
    "service_unavailable",
    "internal_error",
    "ConcurrencyConflictError",
    "DatabaseErrorMapper",
    "ForeignKeyMatch",
    "is_foreign_key_violation",
    "parse_foreign_key_message",
    "ArgumentError",
]
