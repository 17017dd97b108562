"""Structured logging for the deferred-value engine.

Uses structlog on top of stdlib logging. Diagnostics about a container are
emitted through a logger bound to its ``deferred_id``; rejection reasons are
arbitrary objects and are rendered by ``_describe_reason``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def _describe_reason(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: render a rejection reason as type + repr.

    Exceptions used as reasons also get their traceback attached, so a
    handler failure that nobody caught shows where it was raised.
    """
    if "reason" not in event_dict:
        return event_dict
    reason = event_dict["reason"]
    event_dict["reason_type"] = type(reason).__name__
    event_dict["reason"] = repr(reason)
    if isinstance(reason, BaseException) and reason.__traceback__ is not None:
        event_dict.setdefault("exc_info", reason)
    return event_dict


def _deferred_id_first(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: put the bound ``deferred_id`` ahead of other keys."""
    deferred_id = event_dict.pop("deferred_id", None)
    if deferred_id is None:
        return event_dict
    return {"deferred_id": deferred_id, **event_dict}


def setup_logging(
    level: str = "INFO",
    format: str = "console",
) -> None:
    """Configure structured logging for the host application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        _deferred_id_first,
        _describe_reason,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info
        if format == "json"
        else structlog.processors.StackInfoRenderer(),
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer(default=repr))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )


def setup_logging_from_settings(settings: Any) -> None:
    """Validate and apply the log settings of an ``EngineSettings``."""
    settings.validate_logging()
    setup_logging(level=settings.log_level, format=settings.log_format)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
