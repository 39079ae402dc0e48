from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Iterator, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import EventDict, Processor, WrappedLogger

try:
    PACKAGE_VERSION = version("s3-blobstore")
except PackageNotFoundError:
    PACKAGE_VERSION = os.getenv("APP_VERSION", "unknown")

# botocore logs every request at DEBUG; keep it quiet unless asked for
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


def _coerce_level(level: str | int) -> int:
    """Translate a string/int level into the numeric logging level."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _drop_none_values(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> EventDict:
    return {key: value for key, value in event_dict.items() if value is not None}


def configure_logging(
    level: str | int = "INFO",
    json_output: bool = True,
    quiet_backend: bool = True,
) -> None:
    """Configure structlog rendering and route stdlib logging through it."""
    numeric_level = _coerce_level(level)
    renderer = structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _drop_none_values,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

    if quiet_backend:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger with service metadata bound."""
    return cast(
        BoundLogger,
        structlog.get_logger(name).bind(
            service_name=os.getenv("SERVICE_NAME", "blobstore"),
            version=PACKAGE_VERSION,
        ),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind contextual fields (bucket, key, ...) for the duration of a block."""
    if not kwargs:
        yield
        return

    tokens = structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


__all__ = ["configure_logging", "get_logger", "log_context"]
