"""Structured logging for the car ledger.

structlog renders both structlog loggers and plain ``logging`` loggers:
JSON lines when not attached to a terminal, coloured console output
otherwise. Context bound through contextvars (correlation id, transaction
id) is merged into every entry.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Loggers that are too chatty at INFO for a ledger gateway
QUIET_LOGGERS = ("uvicorn.access", "httpx")


def _add_service_name(service_name: str):
    def processor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _pre_chain(service_name: str, json_output: bool) -> list[Any]:
    """Processors run on every entry before rendering."""
    chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _add_service_name(service_name),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        chain.append(structlog.processors.format_exc_info)
    return chain


def _renderer(json_output: bool) -> Any:
    if json_output:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    service_name: str = "carledger",
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Force JSON output. If None, JSON unless stderr is a TTY
            or CARLEDGER_LOG_JSON=1
        service_name: Service name included in every log entry
    """
    if json_output is None:
        json_output = not sys.stderr.isatty() or os.getenv("CARLEDGER_LOG_JSON") == "1"

    pre_chain = _pre_chain(service_name, json_output)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Handler code logs through the standard library; render it the same way
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_output),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance (typically for ``__name__``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables for all subsequent log entries in this context.

    Example:
        bind_context(correlation_id="abc123")
        logger.info("car_sold")  # Includes correlation_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
