"""
Routine Template Model for the Routine Engine.

A template is an ordered list of habits plus optional context-matching
metadata. Templates are immutable values: a running session keeps a
reference to the template it was started from, and editing produces a new
template, so edits never leak into a live session.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import timedelta

from .context import ContextSnapshot
from .habit import Habit


def _as_frozenset(values: Iterable[str]) -> frozenset[str]:
    return frozenset(str(v) for v in values)


@dataclass(frozen=True)
class RoutineContextRule:
    """Criteria for automatic template selection.

    Each dimension is a set of accepted values. An empty set is a wildcard.

    Attributes:
        time_slots: Accepted time slot tags.
        day_category_ids: Accepted day category ids.
        location_ids: Accepted location ids.
        priority: Higher wins when several templates match.
    """

    time_slots: frozenset[str] = frozenset()
    day_category_ids: frozenset[str] = frozenset()
    location_ids: frozenset[str] = frozenset()
    priority: int = 0

    def __post_init__(self) -> None:
        # Accept any iterable of strings (lists, sets, StrEnum members)
        object.__setattr__(self, "time_slots", _as_frozenset(self.time_slots))
        object.__setattr__(self, "day_category_ids", _as_frozenset(self.day_category_ids))
        object.__setattr__(self, "location_ids", _as_frozenset(self.location_ids))

    def matches(self, snapshot: ContextSnapshot) -> bool:
        """True when every dimension is a wildcard or contains the snapshot value."""
        return (
            (not self.time_slots or snapshot.time_slot in self.time_slots)
            and (not self.day_category_ids or snapshot.day_category_id in self.day_category_ids)
            and (not self.location_ids or snapshot.location_id in self.location_ids)
        )

    def specificity(self, snapshot: ContextSnapshot) -> int:
        """Number of non-wildcard dimensions that match the snapshot."""
        score = 0
        if self.time_slots and snapshot.time_slot in self.time_slots:
            score += 1
        if self.day_category_ids and snapshot.day_category_id in self.day_category_ids:
            score += 1
        if self.location_ids and snapshot.location_id in self.location_ids:
            score += 1
        return score


@dataclass(frozen=True)
class RoutineTemplate:
    """An ordered list of habits with optional context rule.

    Templates without a context rule are never picked automatically; they
    are reachable only through explicit user choice.
    """

    name: str
    habits: tuple[Habit, ...] = ()
    context_rule: RoutineContextRule | None = None
    color: str = "#34C759"
    description: str | None = None
    is_default: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, "habits", tuple(self.habits))

    def active_habits(self) -> list[Habit]:
        """Active habits in list order; this is what a new session runs."""
        return [habit for habit in self.habits if habit.is_active]

    @property
    def active_habit_count(self) -> int:
        return len(self.active_habits())

    @property
    def estimated_duration(self) -> timedelta:
        return sum((habit.estimated_duration for habit in self.active_habits()), timedelta())

    def with_habits(self, habits: Iterable[Habit]) -> RoutineTemplate:
        """Return an edited copy with a new habit list."""
        return replace(self, habits=tuple(habits))

    def with_context_rule(self, rule: RoutineContextRule | None) -> RoutineTemplate:
        return replace(self, context_rule=rule)


__all__ = ["RoutineContextRule", "RoutineTemplate"]
