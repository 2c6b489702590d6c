"""Monadic Result Types for Service Responses

Every service action returns ``Result[T]``: either ``Ok`` holding the payload
and a 2xx status, or ``Err`` holding an ``AppError`` with a non-2xx status and
an optional problem description. Callers pattern-match on the two variants.
"""
from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Any, Callable, Generic, NoReturn, TypeVar, Union, final
from uuid import uuid4

from .validation import ValidationResults

T = TypeVar("T")
U = TypeVar("U")


def is_success_status(status: int) -> bool:
    return 200 <= int(status) < 300


def status_phrase(status: int) -> str:
    """Reason phrase for a status; custom codes fall back to the number."""
    try:
        return HTTPStatus(int(status)).phrase
    except ValueError:
        return str(int(status))


class ErrorCode(Enum):
    """Error taxonomy for service failures.

    E1xxx: Plain status failures produced by authorization handlers
    E2xxx: Validation errors
    E3xxx: Authentication/Authorization errors
    E4xxx: Persistence errors
    E9xxx: Internal/Unknown errors
    """
    E1000_STATUS = 1000

    E2000_VALIDATION_FAILED = 2000

    E3000_UNAUTHORIZED = 3000
    E3010_FORBIDDEN = 3010

    E4010_NOT_FOUND = 4010
    E4011_CONCURRENCY_CONFLICT = 4011
    E4012_FOREIGN_KEY_VIOLATION = 4012
    E4020_MIGRATIONS_PENDING = 4020

    E9001_UNEXPECTED_ERROR = 9001

    @classmethod
    def for_status(cls, status: int) -> ErrorCode:
        match int(status):
            case 401:
                return cls.E3000_UNAUTHORIZED
            case 403:
                return cls.E3010_FORBIDDEN
            case 404:
                return cls.E4010_NOT_FOUND
            case 503:
                return cls.E4020_MIGRATIONS_PENDING
            case 500:
                return cls.E9001_UNEXPECTED_ERROR
            case _:
                return cls.E1000_STATUS


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable context for error tracing."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""


@dataclass(frozen=True, slots=True)
class AppError:
    """Failure payload of a service call.

    - ``status``: HTTP-equivalent status code, never 2xx
    - ``message``: human-readable problem detail, free of stack traces
    - ``validation``: per-path failures for 400 and concurrency 409 results
    - ``cause``: the exception behind the failure, kept for server-side logging only
    """
    status: int
    message: str | None = None
    code: ErrorCode | None = None
    validation: ValidationResults | None = None
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: BaseException | None = None

    def __post_init__(self) -> None:
        if is_success_status(self.status):
            raise ValueError(f"AppError cannot carry success status {self.status}")
        if self.code is None:
            object.__setattr__(self, "code", ErrorCode.for_status(self.status))

    @property
    def title(self) -> str:
        return status_phrase(self.status)

    def to_dict(self) -> dict:
        """Problem payload for the controller layer. Never includes the cause."""
        problem: dict[str, Any] = {
            "status": int(self.status),
            "title": self.title,
            "detail": self.message,
            "code": self.code.name,
            "correlation_id": self.context.correlation_id,
        }
        if self.validation:
            problem["errors"] = self.validation.to_dict()
        return problem

    def __str__(self) -> str:
        return f"[{int(self.status)} {self.title}] {self.message or ''} (correlation_id={self.context.correlation_id})"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant. ``status`` is always 2xx."""
    value: T
    status: int = HTTPStatus.OK

    def __post_init__(self) -> None:
        if not is_success_status(self.status):
            raise ValueError(f"Ok cannot carry failure status {self.status}")

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Ok(f(self.value), self.status)

    def flat_map(self, f: Callable[[T], Result[U]]) -> Result[U]:
        return f(self.value)

    def match(self, ok: Callable[[T], U], err: Callable[[AppError], U]) -> U:
        return ok(self.value)

    async def map_async(self, f: Callable[[T], Awaitable[U]]) -> Result[U]:
        return Ok(await f(self.value), self.status)


@final
@dataclass(frozen=True, slots=True)
class Err:
    """Failure variant wrapping an ``AppError``."""
    error: AppError

    @property
    def status(self) -> int:
        return self.error.status

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> AppError:
        return self.error

    def map(self, f: Callable[[T], U]) -> Err:
        return self

    def flat_map(self, f: Callable[[T], Result[U]]) -> Err:
        return self

    def match(self, ok: Callable[[T], U], err: Callable[[AppError], U]) -> U:
        return err(self.error)

    async def map_async(self, f: Callable[[T], Awaitable[U]]) -> Err:
        return self


Result = Union[Ok[T], Err]

