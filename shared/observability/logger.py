"""Logging helpers integrating structlog and loguru with request context."""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from types import FrameType
from typing import Any, Iterator, Mapping

import structlog
from loguru import logger as loguru_logger

__all__ = [
    "configure_logging",
    "generate_request_id",
    "get_logger",
    "get_request_id",
    "request_context",
]

_REQUEST_ID: ContextVar[str | None] = ContextVar("request_id", default=None)
_CONFIGURED: bool = False
_SERVICE_NAME: str | None = None


def _format_record(record: Mapping[str, Any]) -> str:
    """Return the loguru line format used by every hospital service."""

    timestamp = record["time"].isoformat()
    level = record["level"].name
    extra = record.get("extra") or {}
    service = extra.get("service", "-")
    hospital = extra.get("hospital_id") or "-"
    request_id = extra.get("request_id") or "-"
    message = record.get("message", "")
    if not isinstance(message, str):
        message = str(message)
    # The returned string is itself treated as a format template by loguru, and
    # structlog renders JSON, so braces must be escaped.
    message = message.replace("{", "{{").replace("}", "}}")
    return f"{timestamp} | {level:<8} | {service} | {hospital} | {request_id} | {message}\n"


def _coerce_level(level: str | int) -> tuple[int, str]:
    """Normalize ``level`` to logging and loguru compatible representations."""

    if isinstance(level, int):
        numeric = level
    else:
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
    name = logging.getLevelName(numeric)
    if not isinstance(name, str):  # pragma: no cover - custom numeric levels
        name = "INFO"
    return numeric, name


def get_request_id() -> str | None:
    """Return the request identifier bound to the current context, if any."""

    return _REQUEST_ID.get()


def generate_request_id() -> str:
    """Return a new opaque request identifier."""

    return uuid.uuid4().hex


class LoguruInterceptHandler(logging.Handler):
    """Route standard logging records (uvicorn, httpx) through loguru."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - thin wrapper
        level: str | int
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        bound = loguru_logger.bind(logger=record.name)
        request_id = get_request_id()
        if request_id:
            bound = bound.bind(request_id=request_id)

        bound.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging(
    *,
    service_name: str | None = None,
    level: str | int = "INFO",
    hospital_id: str | None = None,
) -> None:
    """Configure loguru/structlog integration for the current process.

    Safe to call from every service module; sinks are installed once.
    ``service_name`` and ``hospital_id`` are attached to all entries.
    """

    global _CONFIGURED, _SERVICE_NAME

    numeric_level, level_name = _coerce_level(level)

    if not _CONFIGURED:
        loguru_logger.remove()
        loguru_logger.add(
            sys.stdout,
            level=level_name,
            enqueue=True,
            backtrace=False,
            diagnose=False,
            format=_format_record,
        )
        logging.basicConfig(
            handlers=[LoguruInterceptHandler()],
            level=numeric_level,
            force=True,
        )
        logging.captureWarnings(True)
        _configure_structlog()
        _CONFIGURED = True

    extra: dict[str, Any] = {}
    if service_name:
        _SERVICE_NAME = service_name
        extra["service"] = service_name
    if hospital_id:
        extra["hospital_id"] = hospital_id
    if extra:
        loguru_logger.configure(extra=extra)
        structlog.contextvars.bind_contextvars(**extra)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog bound logger with the given ``name``."""

    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)


@contextmanager
def request_context(request_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Bind ``request_id`` and extra context for the lifetime of the block.

    Values that were bound before entering the block are restored on exit.
    """

    extra.pop("request_id", None)
    rid = request_id or generate_request_id()
    token = _REQUEST_ID.set(rid)
    context_values = dict(extra)
    if _SERVICE_NAME and "service" not in context_values:
        context_values["service"] = _SERVICE_NAME

    context_api = structlog.contextvars
    previous_context = context_api.get_contextvars()
    context_api.bind_contextvars(request_id=rid, **context_values)
    bound_keys = list(dict.fromkeys(["request_id", *context_values.keys()]))

    with loguru_logger.contextualize(request_id=rid, **extra):
        try:
            yield rid
        finally:
            context_api.unbind_contextvars(*bound_keys)
            restore = {key: previous_context[key] for key in bound_keys if key in previous_context}
            if restore:
                context_api.bind_contextvars(**restore)
            _REQUEST_ID.reset(token)
