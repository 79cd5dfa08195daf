"""
Shared test fixtures for the Routine Engine.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode logging, default engine settings)
- A controllable clock for deterministic timestamps
- Habit and template builders, including conditional habits

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("ROUTINE_ENGINE_DEV_MODE", "1")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from routine_engine.config.engine import EngineSettings, reset_settings  # noqa: E402
from routine_engine.models.habit import (  # noqa: E402
    ConditionalKind,
    ConditionalOption,
    Habit,
)
from routine_engine.models.template import RoutineTemplate  # noqa: E402

T0 = datetime(2024, 3, 4, 7, 30, tzinfo=UTC)  # a Monday morning


# ---------------------------------------------------------------------------
# 2. Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture()
def clock() -> FakeClock:
    """A clock frozen at T0 until advanced."""
    return FakeClock()


# ---------------------------------------------------------------------------
# 3. Settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> EngineSettings:
    """Default engine settings, independent of the process environment."""
    return EngineSettings()


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop cached settings around each test so env changes don't leak."""
    reset_settings()
    yield
    reset_settings()


# ---------------------------------------------------------------------------
# 4. Builders
# ---------------------------------------------------------------------------


def make_habit(name: str, **kwargs: object) -> Habit:
    """A task habit whose id equals its name, for readable assertions."""
    kwargs.setdefault("id", name)
    return Habit(name=name, **kwargs)  # type: ignore[arg-type]


def make_conditional(
    name: str,
    question: str,
    options: dict[str, list[Habit]],
) -> Habit:
    """A conditional habit; option ids are ``<name>:<text>``."""
    return Habit(
        name=name,
        id=name,
        kind=ConditionalKind(
            question=question,
            options=tuple(
                ConditionalOption(text=text, habits=tuple(habits), id=f"{name}:{text}")
                for text, habits in options.items()
            ),
        ),
    )


def make_template(*habits: Habit, name: str = "Morning", **kwargs: object) -> RoutineTemplate:
    return RoutineTemplate(name=name, habits=habits, **kwargs)  # type: ignore[arg-type]


@pytest.fixture()
def plain_template() -> RoutineTemplate:
    """[H1, H2, H3], none conditional."""
    return make_template(make_habit("H1"), make_habit("H2"), make_habit("H3"))


@pytest.fixture()
def branching_template() -> RoutineTemplate:
    """[H1] where H1 asks a question: Yes -> [H2, H3], No -> []."""
    return make_template(
        make_conditional(
            "H1",
            "Going to the gym?",
            {"Yes": [make_habit("H2"), make_habit("H3")], "No": []},
        )
    )
