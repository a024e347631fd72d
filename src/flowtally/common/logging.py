"""Diagnostic logging for flowtally runs.

Everything here is written to stderr with structlog, either as key=value
console lines or one JSON object per line. The report and the error log
are separate files and never receive these messages.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from flowtally import __version__
from flowtally.common.config import LoggingSettings, get_settings

SERVICE_NAME = "flowtally"


def add_service_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Stamp every entry with the program name and version."""
    event_dict["service"] = SERVICE_NAME
    event_dict["version"] = __version__
    return event_dict


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    # Colours only when a person is watching
    return [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]


def setup_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and the stdlib root logger for a run.

    Args:
        settings: Logging options, read from the environment when omitted.
    """
    if settings is None:
        settings = get_settings().logging

    processors: list[Processor] = []
    if settings.include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ))
    processors.append(add_service_context)

    structlog.configure(
        processors=processors + _renderers(settings.format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # The level filter lives on the stdlib side
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, settings.level),
    )


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally pre-bound with context.

    Example:
        logger = get_logger(__name__, path="flow_log.txt")
        logger.info("Loaded table", rows=42)
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


def bind_context(**context: Any) -> None:
    """Attach values to every later log entry of this run."""
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Forget values attached with bind_context."""
    structlog.contextvars.clear_contextvars()
