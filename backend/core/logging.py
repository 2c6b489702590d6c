"""Structured Logging for the Service Layer

structlog over stdlib logging, shared by services, handlers and the
migration checker:
- colored console output in development, JSON lines in production
- context bound with ``bind_context`` (user name, correlation id) merged into every event
- credentials redacted and row-version tokens rendered as hex before output
"""
import logging
import sys
from functools import lru_cache
from typing import Any

import structlog
from structlog.types import EventDict, Processor

SENSITIVE_KEYS = frozenset({"password", "token", "secret", "authorization", "cookie", "connection_string"})

# Third-party loggers and the level they are held at unless SQL logging is on
_QUIET_LOGGERS = {
    "aiosqlite": logging.WARNING,
    "alembic": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def _redact(value: Any, depth: int = 0) -> Any:
    if depth > 5:
        return value
    if isinstance(value, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_KEYS else _redact(v, depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(v, depth + 1) for v in value]
    return value


def _censor_sensitive_keys(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    return _redact(event_dict)


def _render_bytes(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Row versions are opaque bytes; log them as hex."""
    for key, value in event_dict.items():
        if isinstance(value, (bytes, bytearray, memoryview)):
            event_dict[key] = bytes(value).hex()
    return event_dict


def _add_app_name(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("app", "restworld")
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors applied to both structlog and foreign (stdlib) events."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_app_name,
        _render_bytes,
        _censor_sensitive_keys,
    ]


def _renderer(json_logs: bool) -> Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def configure_logging(level: str = "INFO", json_logs: bool = False, log_sql: bool = False) -> None:
    """Route structlog and stdlib logging through one handler on stdout.

    Args:
        level: Root log level name.
        json_logs: JSON lines instead of colored console output.
        log_sql: Let SQLAlchemy engine logging through at DEBUG.
    """
    shared = get_shared_processors()

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(json_logs)],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if log_sql else logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to every event logged in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


@lru_cache(maxsize=None)
def _named_logger(name: str) -> structlog.stdlib.BoundLogger:
    return get_logger(f"restworld.{name}")


def service_logger() -> structlog.stdlib.BoundLogger:
    """Service pipeline events: handler warnings, failures, conflicts."""
    return _named_logger("service")


def db_logger() -> structlog.stdlib.BoundLogger:
    """Migration and persistence events."""
    return _named_logger("db")


def auth_logger() -> structlog.stdlib.BoundLogger:
    """Authorization fold outcomes."""
    return _named_logger("auth")
