"""
Custom exception hierarchy for the Routine Engine.

All exceptions inherit from RoutineEngineException, enabling a catch-all
for engine errors while keeping the ability to catch specific types.
Every class carries a stable ``code`` that maps to a user-facing message
in ``routine_engine.lib.errors``.

All of these are local, recoverable conditions. Callers surface them as
no-ops or user-visible messages; nothing here is retried.
"""

from __future__ import annotations


class RoutineEngineException(Exception):
    """Base exception for all Routine Engine errors."""

    code = "ROUTINE_ENGINE_ERROR"


class ConfigurationError(RoutineEngineException):
    """Invalid environment variables or settings values."""

    code = "CONFIGURATION_ERROR"


class SessionError(RoutineEngineException):
    """A routine session operation could not be applied."""

    code = "SESSION_ERROR"


class NoCurrentHabitError(SessionError):
    """Mutating operation attempted while the cursor is past the queue."""

    code = "NO_CURRENT_HABIT"


class IndexOutOfRangeError(SessionError):
    """go_to() was given an index outside the live queue."""

    code = "INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"Index {index} is outside the queue (size {size})")
        self.index = index
        self.size = size


class AlreadyFinalizedError(SessionError):
    """The session was already completed or cancelled."""

    code = "ALREADY_FINALIZED"


class NoActiveSessionError(SessionError):
    """A session operation was requested but no session has been started."""

    code = "NO_ACTIVE_SESSION"


class OptionNotFoundError(SessionError):
    """An answer named an option the current habit does not offer."""

    code = "OPTION_NOT_FOUND"


class UnknownSessionError(SessionError):
    """A session id does not name a session that ended under this controller."""

    code = "UNKNOWN_SESSION"


class TemplateError(RoutineEngineException):
    """A routine template cannot be run as authored."""

    code = "TEMPLATE_ERROR"


class NestingDepthExceededError(TemplateError):
    """Conditional habits are nested deeper than the engine accepts."""

    code = "NESTING_DEPTH_EXCEEDED"

    def __init__(self, template_id: str, depth: int, max_depth: int) -> None:
        super().__init__(
            f"Template {template_id} nests conditional habits {depth} levels deep "
            f"(max {max_depth})"
        )
        self.template_id = template_id
        self.depth = depth
        self.max_depth = max_depth


__all__ = [
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
]
