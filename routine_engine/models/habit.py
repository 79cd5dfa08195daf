"""
Habit Model for the Routine Engine.

A habit is one step of a routine. Its behavioral kind is a tagged variant:
one frozen payload dataclass per kind, so code can dispatch on the payload
type instead of parsing strings.

Kinds:
- TaskKind: plain task, optionally with subtasks
- TimerKind: countdown with a default duration
- ExternalActionKind: launch an app or open a URL, then confirm
- TrackingKind: counter (list of items) or measurement (value + unit)
- GuidedSequenceKind: ordered timed steps
- ConditionalKind: a question whose options each carry a sub-list of habits

Conditional habits are the branch points of a routine. The session expands
the chosen option's habits into its live queue; see
``routine_engine.services.routine_session``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum

from routine_engine.config.engine import MIN_BRANCH_OPTIONS


class HabitType(StrEnum):
    """Behavioral kind of a habit."""

    TASK = "task"
    TIMER = "timer"
    EXTERNAL_ACTION = "external_action"
    TRACKING = "tracking"
    GUIDED_SEQUENCE = "guided_sequence"
    CONDITIONAL = "conditional"


class TrackingMode(StrEnum):
    """What a tracking habit records."""

    COUNTER = "counter"
    MEASUREMENT = "measurement"


def _new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Kind Payloads
# =============================================================================


@dataclass(frozen=True)
class TaskKind:
    """Plain task. Subtasks are checked off individually by the UI."""

    subtasks: tuple[str, ...] = ()


@dataclass(frozen=True)
class TimerKind:
    """Timed habit. The countdown itself is a UI concern."""

    duration: timedelta = timedelta(minutes=5)


@dataclass(frozen=True)
class ExternalActionKind:
    """Launch an external app or open a URL and wait for confirmation.

    Attributes:
        target: Bundle identifier or URL.
        title: Display name of the app or site.
    """

    target: str
    title: str

    @property
    def is_website(self) -> bool:
        """True when the target is a web URL rather than an app identifier."""
        return self.target.startswith(("http://", "https://"))


@dataclass(frozen=True)
class TrackingKind:
    """Counter or measurement tracking.

    Attributes:
        mode: COUNTER (tick off items) or MEASUREMENT (record a value).
        items: Items to count, e.g. supplements.
        unit: Unit of a measurement, e.g. "kg".
    """

    mode: TrackingMode = TrackingMode.COUNTER
    items: tuple[str, ...] = ()
    unit: str | None = None


@dataclass(frozen=True)
class SequenceStep:
    """One step of a guided sequence."""

    name: str
    duration: timedelta
    instructions: str | None = None
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class GuidedSequenceKind:
    """Ordered timed steps run one after another."""

    steps: tuple[SequenceStep, ...] = ()


@dataclass(frozen=True)
class ConditionalOption:
    """One answer to a conditional habit's question.

    Attributes:
        text: Display label of the answer.
        habits: Sub-path executed when this answer is chosen.
        id: Stable option identifier.
    """

    text: str
    habits: tuple[Habit, ...] = ()
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class ConditionalKind:
    """A question with options, each carrying its own ordered habits."""

    question: str
    options: tuple[ConditionalOption, ...] = ()


HabitKind = (
    TaskKind
    | TimerKind
    | ExternalActionKind
    | TrackingKind
    | GuidedSequenceKind
    | ConditionalKind
)

_KIND_TYPES: dict[type, HabitType] = {
    TaskKind: HabitType.TASK,
    TimerKind: HabitType.TIMER,
    ExternalActionKind: HabitType.EXTERNAL_ACTION,
    TrackingKind: HabitType.TRACKING,
    GuidedSequenceKind: HabitType.GUIDED_SEQUENCE,
    ConditionalKind: HabitType.CONDITIONAL,
}


# =============================================================================
# Habit
# =============================================================================


@dataclass(frozen=True)
class Habit:
    """A named routine step of one behavioral kind.

    ``order`` only drives authoring-time default ordering. A running session
    uses list position and never reads it.
    """

    name: str
    kind: HabitKind = field(default_factory=TaskKind)
    id: str = field(default_factory=_new_id)
    order: int = 0
    is_active: bool = True
    is_optional: bool = False
    color: str = "#007AFF"
    notes: str | None = None

    @property
    def habit_type(self) -> HabitType:
        """The HabitType tag of this habit's kind."""
        return _KIND_TYPES[type(self.kind)]

    @property
    def is_conditional(self) -> bool:
        return isinstance(self.kind, ConditionalKind)

    @property
    def is_branch_point(self) -> bool:
        """True for conditionals with enough options to branch.

        A conditional with a single option (or none) runs as a normal step
        and is never expanded.
        """
        if not isinstance(self.kind, ConditionalKind):
            return False
        return len(self.kind.options) >= MIN_BRANCH_OPTIONS

    @property
    def options(self) -> tuple[ConditionalOption, ...]:
        """Options of a conditional habit; empty for every other kind."""
        if isinstance(self.kind, ConditionalKind):
            return self.kind.options
        return ()

    def find_option(self, option_id: str) -> ConditionalOption | None:
        """Look up an option of this conditional habit by id."""
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def find_option_by_text(self, text: str) -> ConditionalOption | None:
        """Look up an option by its display text (exact match)."""
        for option in self.options:
            if option.text == text:
                return option
        return None

    @property
    def estimated_duration(self) -> timedelta:
        """Rough time this habit takes, used for routine duration estimates."""
        kind = self.kind
        if isinstance(kind, TaskKind):
            if kind.subtasks:
                return timedelta(seconds=45 * len(kind.subtasks))
            return timedelta(seconds=60)
        if isinstance(kind, TimerKind):
            return kind.duration
        if isinstance(kind, ExternalActionKind):
            return timedelta(seconds=180 if kind.is_website else 300)
        if isinstance(kind, TrackingKind):
            if kind.mode == TrackingMode.COUNTER:
                return timedelta(seconds=30 * len(kind.items))
            return timedelta(seconds=60)
        if isinstance(kind, GuidedSequenceKind):
            return sum((step.duration for step in kind.steps), timedelta())
        # Answering a question
        return timedelta(seconds=30)


def conditional_depth(habits: Iterable[Habit]) -> int:
    """Deepest conditional nesting level in a habit list.

    A conditional at the top of ``habits`` is level 0; a conditional found in
    one of its options' habits is level 1, and so on. Returns -1 when the
    list contains no conditional habit at all.
    """
    deepest = -1
    for habit in habits:
        if not isinstance(habit.kind, ConditionalKind):
            continue
        deepest = max(deepest, 0)
        for option in habit.kind.options:
            nested = conditional_depth(option.habits)
            if nested >= 0:
                deepest = max(deepest, nested + 1)
    return deepest


__all__ = [
    "HabitType",
    "TrackingMode",
    "TaskKind",
    "TimerKind",
    "ExternalActionKind",
    "TrackingKind",
    "SequenceStep",
    "GuidedSequenceKind",
    "ConditionalOption",
    "ConditionalKind",
    "HabitKind",
    "Habit",
    "conditional_depth",
]
