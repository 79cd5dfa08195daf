"""
Models package for the Routine Engine.

Value types shared by the session engine and the context selector.
"""

from .completion import (
    Answer,
    CompletionPayload,
    ConditionalResponse,
    HabitCompletion,
    Plain,
    Skip,
    encode_answer_notes,
    payload_from_notes,
)
from .context import (
    DEFAULT_TIME_SLOTS,
    UNKNOWN_LOCATION,
    WEEKDAY,
    WEEKEND,
    ContextSnapshot,
    DayCategory,
    DayCategorySettings,
    TimeOfDay,
    TimeSlot,
    TimeSlotDefinition,
    Weekday,
    resolve_time_slot,
)
from .habit import (
    ConditionalKind,
    ConditionalOption,
    ExternalActionKind,
    GuidedSequenceKind,
    Habit,
    HabitKind,
    HabitType,
    SequenceStep,
    TaskKind,
    TimerKind,
    TrackingKind,
    TrackingMode,
    conditional_depth,
)
from .mood import Mood, MoodRating
from .template import RoutineContextRule, RoutineTemplate

__all__ = [
    # Habits
    "Habit",
    "HabitKind",
    "HabitType",
    "TaskKind",
    "TimerKind",
    "ExternalActionKind",
    "TrackingKind",
    "TrackingMode",
    "GuidedSequenceKind",
    "SequenceStep",
    "ConditionalKind",
    "ConditionalOption",
    "conditional_depth",
    # Templates
    "RoutineTemplate",
    "RoutineContextRule",
    # Context
    "ContextSnapshot",
    "DayCategory",
    "DayCategorySettings",
    "TimeOfDay",
    "TimeSlot",
    "TimeSlotDefinition",
    "Weekday",
    "DEFAULT_TIME_SLOTS",
    "UNKNOWN_LOCATION",
    "WEEKDAY",
    "WEEKEND",
    "resolve_time_slot",
    # Completions
    "Answer",
    "Skip",
    "Plain",
    "CompletionPayload",
    "HabitCompletion",
    "ConditionalResponse",
    "encode_answer_notes",
    "payload_from_notes",
    # Moods
    "Mood",
    "MoodRating",
]
