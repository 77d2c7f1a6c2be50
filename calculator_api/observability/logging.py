"""
Structured Logging with Structlog.

Every event is a snake_case name with keyword context, for example:

    logger.info("token_debited", user_id=user.id, token_count=24)

JSON output carries service/version, the request id bound by the HTTP
middleware, and never the raw session token or PayPal credentials.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from calculator_api.config import settings

# Keys whose values must not reach log storage
SENSITIVE_KEYS = frozenset(
    {
        "session_token",
        "access_token",
        "authorization",
        "client_secret",
        "api_key",
        "code",
    }
)

# Chatty libraries that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp service name and version on every entry."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.api_version
    return event_dict


def redact_sensitive(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credentials passed as log context."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        value = event_dict[key]
        if value:
            event_dict[key] = f"***{str(value)[-4:]}" if len(str(value)) > 8 else "***"
    return event_dict


def _build_processors(json_output: bool, debug: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.ExceptionRenderer() if debug else structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    return processors


def setup_logging() -> None:
    """
    Configure structlog on top of the stdlib root logger.

    LOG_FORMAT selects JSON (production) or console (local development)
    output; LOG_LEVEL applies to application loggers.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=_build_processors(
            json_output=settings.log_format == "json",
            debug=level == logging.DEBUG,
        ),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]


@contextmanager
def log_context(**context: Any) -> Iterator[None]:
    """
    Bind context (e.g. request_id) to every log entry inside the block.

    Previously bound values for the same keys are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield
