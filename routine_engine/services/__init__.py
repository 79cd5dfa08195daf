"""
Services package for the Routine Engine.

Exports:
    - RoutineSession: Queue/cursor execution of a template
    - RoutineSessionController: Single owner of the active session
    - ConditionalResponseLog: In-memory log of conditional answers
    - select / rank / select_with_reason: Context-based template selection
"""

from .conditional_responses import ConditionalResponseLog, OptionStatistics, ResponseAnalytics
from .context_selector import (
    NO_MATCH_REASON,
    RankedTemplate,
    SelectionResult,
    build_selection_reason,
    default_template,
    rank,
    select,
    select_with_reason,
)
from .routine_session import (
    RoutineSession,
    SessionChange,
    SessionListener,
    SessionState,
    SessionSummary,
)
from .session_controller import RoutineSessionController

__all__ = [
    # Session
    "RoutineSession",
    "RoutineSessionController",
    "SessionChange",
    "SessionListener",
    "SessionState",
    "SessionSummary",
    # Responses
    "ConditionalResponseLog",
    "OptionStatistics",
    "ResponseAnalytics",
    # Selection
    "NO_MATCH_REASON",
    "RankedTemplate",
    "SelectionResult",
    "build_selection_reason",
    "default_template",
    "rank",
    "select",
    "select_with_reason",
]
