"""
Structured logging configuration for the Routine Engine.

Engine modules log through ``structlog.get_logger(__name__)`` (sessions,
controller) or plain ``logging.getLogger(__name__)`` (response log). Both
go through one ProcessorFormatter so every record carries the same keys,
including a ``session_id`` bound by the controller while it mutates a
session.

Environment variables:
- ROUTINE_ENGINE_DEV_MODE=1: colored console output instead of JSON.
- LOG_LEVEL: level of the root logger (default INFO).
- ROUTINE_ENGINE_LOG_LEVEL: level of the ``routine_engine`` loggers only.
  Per-step events (session started, branch expanded, response recorded)
  are INFO; set WARNING to keep only replacements, rejections and listener
  failures.

Usage:
    from routine_engine.lib.logging import setup_logging

    setup_logging()  # Call once at host application startup
"""

import logging
import os
import sys

import structlog

ENGINE_LOGGER_NAME = "routine_engine"


def _level(name: str | None, default: int) -> int:
    if not name:
        return default
    return getattr(logging, name.upper(), default)


def setup_logging() -> None:
    """
    Configure structlog and stdlib logging for the engine.

    In development (ROUTINE_ENGINE_DEV_MODE=1): colored console output.
    Otherwise: JSON-formatted structured logs with rendered tracebacks.
    """
    dev_mode = os.environ.get("ROUTINE_ENGINE_DEV_MODE") == "1"
    root_level = _level(os.environ.get("LOG_LEVEL"), logging.INFO)
    engine_level = _level(os.environ.get("ROUTINE_ENGINE_LOG_LEVEL"), logging.NOTSET)

    # Also applied to records from plain stdlib loggers
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if dev_mode:
        renderer = structlog.dev.ConsoleRenderer()
        final_processors = [renderer]
    else:
        renderer = structlog.processors.JSONRenderer()
        final_processors = [structlog.processors.format_exc_info, renderer]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *final_processors,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(root_level)

    # NOTSET defers to the root level
    logging.getLogger(ENGINE_LOGGER_NAME).setLevel(engine_level)
