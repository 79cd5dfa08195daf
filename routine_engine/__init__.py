"""
Routine Engine.

Runs habit routines: a session walks a live queue of habits with a cursor,
expanding conditional habits into the chosen option's sub-habits as the
user answers them, and a context selector picks the routine template that
fits the current time slot, day category and location.

Usage:
    from routine_engine import RoutineSessionController, load_catalog

    templates = load_catalog(payload)
    controller = RoutineSessionController()
    controller.start(templates[0])
    controller.complete_current()
"""

from routine_engine.catalog import load_catalog
from routine_engine.lib.exceptions import RoutineEngineException
from routine_engine.models import (
    Answer,
    ContextSnapshot,
    Habit,
    Plain,
    RoutineContextRule,
    RoutineTemplate,
    Skip,
)
from routine_engine.services import (
    RoutineSession,
    RoutineSessionController,
    SessionChange,
    select,
    select_with_reason,
)

__version__ = "1.0.0"

__all__ = [
    "Answer",
    "ContextSnapshot",
    "Habit",
    "Plain",
    "RoutineContextRule",
    "RoutineEngineException",
    "RoutineSession",
    "RoutineSessionController",
    "RoutineTemplate",
    "SessionChange",
    "Skip",
    "load_catalog",
    "select",
    "select_with_reason",
    "__version__",
]
