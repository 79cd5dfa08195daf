"""
Lib package for the Routine Engine.

Contains shared utilities:
- exceptions.py: Exception hierarchy with stable error codes
- errors.py: User-facing error response builder
- logging.py: structlog configuration
"""

from routine_engine.lib.errors import (
    ALREADY_FINALIZED,
    CONFIGURATION_ERROR,
    INDEX_OUT_OF_RANGE,
    NESTING_DEPTH_EXCEEDED,
    NO_ACTIVE_SESSION,
    NO_CURRENT_HABIT,
    OPTION_NOT_FOUND,
    UNKNOWN_SESSION,
    build_error_response,
    error_response_from_exception,
    get_error_message,
)
from routine_engine.lib.exceptions import (
    AlreadyFinalizedError,
    ConfigurationError,
    IndexOutOfRangeError,
    NestingDepthExceededError,
    NoActiveSessionError,
    NoCurrentHabitError,
    OptionNotFoundError,
    UnknownSessionError,
    RoutineEngineException,
    SessionError,
    TemplateError,
)
from routine_engine.lib.logging import setup_logging

__all__ = [
    # Errors
    "ALREADY_FINALIZED",
    "CONFIGURATION_ERROR",
    "INDEX_OUT_OF_RANGE",
    "NESTING_DEPTH_EXCEEDED",
    "NO_ACTIVE_SESSION",
    "NO_CURRENT_HABIT",
    "OPTION_NOT_FOUND",
    "UNKNOWN_SESSION",
    "build_error_response",
    "error_response_from_exception",
    "get_error_message",
    # Exceptions
    "RoutineEngineException",
    "ConfigurationError",
    "SessionError",
    "NoCurrentHabitError",
    "IndexOutOfRangeError",
    "AlreadyFinalizedError",
    "NoActiveSessionError",
    "OptionNotFoundError",
    "UnknownSessionError",
    "TemplateError",
    "NestingDepthExceededError",
    # Logging
    "setup_logging",
]
