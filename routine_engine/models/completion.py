"""
Completion Records for the Routine Engine.

Completion payloads are a tagged union describing *how* a step was
completed:

- Answer(option_id): a conditional habit was answered with an option
- Skip(): a conditional question was dismissed without an answer
- Plain(notes): any other completion, with optional free-text notes

Older callers encode answers in the notes text ("Selected: <option>") and
skips as the literal "Skipped"; ``payload_from_notes`` decodes that form.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from routine_engine.config.engine import SELECTED_PREFIX, SKIPPED_SENTINEL

from .habit import Habit

# =============================================================================
# Completion Payloads
# =============================================================================


@dataclass(frozen=True)
class Answer:
    """A conditional habit answered with the given option."""

    option_id: str


@dataclass(frozen=True)
class Skip:
    """A conditional question dismissed without choosing an option."""


@dataclass(frozen=True)
class Plain:
    """An ordinary completion with optional notes."""

    notes: str | None = None


CompletionPayload = Answer | Skip | Plain


def payload_from_notes(notes: str | None, habit: Habit) -> CompletionPayload:
    """Decode legacy notes text into a completion payload.

    For conditional habits, ``"Selected: <text>"`` matching an option's text
    becomes an Answer and the skip sentinel becomes a Skip. Everything else,
    including an unknown option text, is kept as Plain notes.
    """
    if notes is None:
        return Plain()
    if habit.is_conditional:
        if notes == SKIPPED_SENTINEL:
            return Skip()
        if notes.startswith(SELECTED_PREFIX):
            option = habit.find_option_by_text(notes[len(SELECTED_PREFIX):])
            if option is not None:
                return Answer(option.id)
    return Plain(notes)


def encode_answer_notes(option_text: str) -> str:
    """Render an answer the way legacy notes consumers expect it."""
    return f"{SELECTED_PREFIX}{option_text}"


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class HabitCompletion:
    """One completed or skipped step of a session.

    A session's completions are an append-only log: revisiting a step and
    completing it again adds a second record for the same habit.
    """

    habit_id: str
    completed_at: datetime
    duration: timedelta | None = None
    notes: str | None = None
    is_skipped: bool = False
    selected_option_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class ConditionalResponse:
    """A user's response to a conditional habit's question within a session."""

    habit_id: str
    question: str
    selected_option_id: str | None
    selected_option_text: str
    session_id: str
    timestamp: datetime
    was_skipped: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def skip(
        cls,
        habit_id: str,
        question: str,
        session_id: str,
        timestamp: datetime,
    ) -> ConditionalResponse:
        """Create a response recording that the question was skipped."""
        return cls(
            habit_id=habit_id,
            question=question,
            selected_option_id=None,
            selected_option_text=SKIPPED_SENTINEL,
            session_id=session_id,
            timestamp=timestamp,
            was_skipped=True,
        )


__all__ = [
    "Answer",
    "Skip",
    "Plain",
    "CompletionPayload",
    "payload_from_notes",
    "encode_answer_notes",
    "HabitCompletion",
    "ConditionalResponse",
]
