"""
Centralized Error Response Builder for the Routine Engine.

Provides consistent error codes and user-facing messages so a UI layer can
turn engine exceptions into a toast, an alert or a silent no-op.

Error codes are the ``code`` attributes of the exception hierarchy in
``routine_engine.lib.exceptions``.
"""

from __future__ import annotations

from typing import Any

from routine_engine.lib.exceptions import RoutineEngineException

# =============================================================================
# Error Code Constants
# =============================================================================

NO_CURRENT_HABIT = "NO_CURRENT_HABIT"
INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
ALREADY_FINALIZED = "ALREADY_FINALIZED"
NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"
OPTION_NOT_FOUND = "OPTION_NOT_FOUND"
UNKNOWN_SESSION = "UNKNOWN_SESSION"
NESTING_DEPTH_EXCEEDED = "NESTING_DEPTH_EXCEEDED"
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

_ERROR_MESSAGES: dict[str, str] = {
    NO_CURRENT_HABIT: "There is no habit left in this routine.",
    INDEX_OUT_OF_RANGE: "Invalid habit position in routine.",
    ALREADY_FINALIZED: "This routine has already ended.",
    NO_ACTIVE_SESSION: "No routine is currently active. Please start a routine first.",
    OPTION_NOT_FOUND: "Failed to process your answer for this question.",
    UNKNOWN_SESSION: "That routine could not be found. Please finish a routine first.",
    NESTING_DEPTH_EXCEEDED: "This routine nests too many questions to run.",
    CONFIGURATION_ERROR: "The routine engine is misconfigured.",
}

_FALLBACK_MESSAGE = "An error occurred."


# =============================================================================
# Error Response Builder
# =============================================================================


def get_error_message(code: str) -> str:
    """
    Get the user-facing message for an error code.

    Args:
        code: Error code constant (e.g. NO_ACTIVE_SESSION)

    Returns:
        Message string, or a generic message for unknown codes
    """
    return _ERROR_MESSAGES.get(code, _FALLBACK_MESSAGE)


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a structured error dict: {"code": str, "message": str, "details"?: dict}.

    Args:
        code: Error code constant
        message: Optional override message (bypasses the registry)
        details: Optional additional error details
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message if message is not None else get_error_message(code),
    }
    if details is not None:
        error["details"] = details
    return error


def error_response_from_exception(exc: RoutineEngineException) -> dict[str, Any]:
    """Build an error dict for an engine exception, keeping its text as detail."""
    return build_error_response(exc.code, details={"reason": str(exc)})


__all__ = [
    # Error code constants
    "NO_CURRENT_HABIT",
    "INDEX_OUT_OF_RANGE",
    "ALREADY_FINALIZED",
    "NO_ACTIVE_SESSION",
    "OPTION_NOT_FOUND",
    "UNKNOWN_SESSION",
    "NESTING_DEPTH_EXCEEDED",
    "CONFIGURATION_ERROR",
    # Functions
    "get_error_message",
    "build_error_response",
    "error_response_from_exception",
]
