"""Structured logging configuration for the communication hub.

Uses structlog for structured, context-rich logging with
support for both console and JSON output formats.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from commhub.container import HubContext


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Path | None = None,
    colors: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON format
        log_file: Optional file to log to
        colors: Whether to use colors in console output
    """
    stream: TextIO = sys.stderr
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        stream = open(log_file, "a")  # noqa: SIM115

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
        force=True,
    )

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(prefix_component)
        processors.append(structlog.dev.ConsoleRenderer(colors=colors))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


def get_component_logger(name: str, prefix: str) -> Any:
    """Get a logger carrying a component prefix such as ``[EventRouter]``.

    The logger is resolved lazily, so hubs and routers built before
    configure_logging still pick up the configuration in effect when they log.
    """
    return structlog.get_logger(name, component=prefix)


def prefix_component(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Render the component as a message prefix, e.g. ``[EventRouter] route_not_found``.

    A component bound through ``structlog.contextvars`` is used when the
    logger itself carries none.
    """
    component = event_dict.pop("component", None)
    if component:
        event_dict["event"] = f"{component} {event_dict.get('event', '')}"
    return event_dict


def configure_from_context(context: HubContext, log_file: Path | None = None) -> None:
    """Configure logging from a hub context.

    Args:
        context: Hub context carrying level and output format
        log_file: Optional file to log to
    """
    level = "DEBUG" if context.debug else context.log_level
    configure_logging(
        level=level,
        json_output=context.json_logs,
        log_file=log_file,
        colors=not context.json_logs,
    )


# Usage example:
# from commhub.logging_config import get_logger
#
# logger = get_logger(__name__)
#
# logger.info("module_registered",
#             module_id="mid_1718000000000_412_1",
#             events=["jump"])
