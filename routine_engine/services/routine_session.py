"""
Routine Session for the Routine Engine.

A session executes one routine template. It owns a live, mutable queue of
habits (seeded once from the template's active habits) and a cursor into
it, and records every completion or skip in an append-only log.

Branch expansion:
    When the current habit is a conditional with at least two options and is
    completed with an Answer, the chosen option's habits are inserted right
    after the cursor:

        queue = queue[:cursor + 1] + option.habits + queue[cursor + 1:]

    The cursor then advances by one, landing on the first inserted habit (or
    on the old next habit when the option has none). Expansion is lazy: a
    conditional inside the inserted habits is expanded only when the user
    reaches and answers it. Navigation never re-triggers expansion.

Change notification:
    Each session owns its listener list. Listeners are called synchronously
    after a mutation, with the kind of change only, and re-read the session
    to get state. A failing listener is logged and the remaining listeners
    still run.

Sessions are single-writer objects: all mutating calls must come from one
control flow (e.g. a UI event loop).
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

import structlog

from routine_engine.config.engine import SKIPPED_SENTINEL, EngineSettings, get_settings
from routine_engine.lib.exceptions import (
    AlreadyFinalizedError,
    IndexOutOfRangeError,
    NestingDepthExceededError,
    NoCurrentHabitError,
    OptionNotFoundError,
)
from routine_engine.models.completion import (
    Answer,
    CompletionPayload,
    HabitCompletion,
    Plain,
    Skip,
    encode_answer_notes,
    payload_from_notes,
)
from routine_engine.models.habit import ConditionalOption, Habit, conditional_depth
from routine_engine.models.template import RoutineTemplate

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionChange(StrEnum):
    """Kinds of change a session broadcasts to its listeners."""

    QUEUE_CHANGED = "queue_changed"
    CURSOR_CHANGED = "cursor_changed"
    FINALIZED = "finalized"
    CANCELLED = "cancelled"


SessionListener = Callable[[SessionChange], None]


@dataclass(frozen=True)
class SessionState:
    """Observable state of a session right after an operation."""

    session_id: str
    cursor: int
    queue_length: int
    current_habit: Habit | None
    progress: float
    is_completed: bool
    is_cancelled: bool


@dataclass(frozen=True)
class SessionSummary:
    """Outcome of a finished (or cancelled) session."""

    session_id: str
    template_id: str
    template_name: str
    started_at: datetime
    completed_at: datetime | None
    elapsed: timedelta
    total_habits: int
    completed_count: int
    skipped_count: int
    progress: float
    was_cancelled: bool


class RoutineSession:
    """Queue/cursor execution of a routine template.

    Args:
        template: The template to run. Only its active habits are copied into
            the live queue; the template itself is never mutated.
        clock: Source of timestamps (defaults to UTC now).
        settings: Engine settings (defaults to get_settings()).
        session_id: Explicit session id (defaults to a new UUID).

    Raises:
        NestingDepthExceededError: If depth validation is enabled and the
            template nests conditional habits too deeply.

    Usage:
        session = RoutineSession(template)
        session.complete_current()
        session.complete_current(payload=Answer(option.id))
        session.finalize_complete()
    """

    def __init__(
        self,
        template: RoutineTemplate,
        *,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        session_id: str | None = None,
    ) -> None:
        self._clock: Clock = clock or utc_now
        self._settings = settings or get_settings()
        self.id = session_id or str(uuid.uuid4())
        self.template = template

        queue = template.active_habits()
        if self._settings.validate_depth_on_start:
            depth = conditional_depth(queue)
            if depth > self._settings.max_conditional_depth:
                logger.warning(
                    "session_rejected_nesting_depth",
                    template_id=template.id,
                    depth=depth,
                    max_depth=self._settings.max_conditional_depth,
                )
                raise NestingDepthExceededError(
                    template.id, depth, self._settings.max_conditional_depth
                )

        self._queue: list[Habit] = queue
        self._cursor = 0
        self._completions: list[HabitCompletion] = []
        self._listeners: list[SessionListener] = []
        self._cancelled = False
        self.started_at: datetime = self._clock()
        self.completed_at: datetime | None = None

        logger.info(
            "session_started",
            session_id=self.id,
            template_id=template.id,
            template_name=template.name,
            queue_length=len(self._queue),
        )

    def __repr__(self) -> str:
        return (
            f"<RoutineSession(id={self.id}, template={self.template.name!r}, "
            f"cursor={self._cursor}/{len(self._queue)})>"
        )

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def queue(self) -> tuple[Habit, ...]:
        """The live execution plan (a copy)."""
        return tuple(self._queue)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def completions(self) -> tuple[HabitCompletion, ...]:
        return tuple(self._completions)

    def current_habit(self) -> Habit | None:
        """The habit at the cursor, or None once the queue is exhausted."""
        if 0 <= self._cursor < len(self._queue):
            return self._queue[self._cursor]
        return None

    def remaining_habits(self) -> list[Habit]:
        """Habits from the cursor to the end of the queue."""
        return self._queue[self._cursor:]

    def has_completion(self, habit_id: str) -> bool:
        """Whether any completion (or skip) was recorded for the habit."""
        return any(c.habit_id == habit_id for c in self._completions)

    def completed_habit_ids(self) -> set[str]:
        """Ids of habits with at least one completion or skip."""
        return {c.habit_id for c in self._completions}

    def progress(self) -> float:
        """Completions over queue length, in [0, 1]; 0 for an empty queue."""
        if not self._queue:
            return 0.0
        return min(1.0, len(self._completions) / len(self._queue))

    def elapsed(self) -> timedelta:
        end = self.completed_at if self.completed_at is not None else self._clock()
        return end - self.started_at

    def is_completed(self) -> bool:
        return self.completed_at is not None

    def is_cancelled(self) -> bool:
        return self._cancelled

    def is_finished(self) -> bool:
        """True once the session was finalized or cancelled."""
        return self.completed_at is not None or self._cancelled

    def state(self) -> SessionState:
        return SessionState(
            session_id=self.id,
            cursor=self._cursor,
            queue_length=len(self._queue),
            current_habit=self.current_habit(),
            progress=self.progress(),
            is_completed=self.is_completed(),
            is_cancelled=self._cancelled,
        )

    def summary(self) -> SessionSummary:
        skipped = sum(1 for c in self._completions if c.is_skipped)
        return SessionSummary(
            session_id=self.id,
            template_id=self.template.id,
            template_name=self.template.name,
            started_at=self.started_at,
            completed_at=self.completed_at,
            elapsed=self.elapsed(),
            total_habits=len(self._queue),
            completed_count=len(self._completions) - skipped,
            skipped_count=skipped,
            progress=self.progress(),
            was_cancelled=self._cancelled,
        )

    # =========================================================================
    # Listeners
    # =========================================================================

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: SessionListener) -> None:
        """Remove a listener; unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, change: SessionChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "session_listener_failed",
                    session_id=self.id,
                    change=change.value,
                )

    # =========================================================================
    # Operations
    # =========================================================================

    def complete_current(
        self,
        duration: timedelta | None = None,
        notes: str | None = None,
        *,
        payload: CompletionPayload | None = None,
    ) -> SessionState:
        """Complete the current habit and advance the cursor.

        Args:
            duration: Time spent on the habit, if measured.
            notes: Free-text notes. Without an explicit payload, notes are
                decoded with payload_from_notes() so "Selected: <option>" still
                answers a conditional habit.
            payload: Answer / Skip / Plain. An Answer on a branching
                conditional expands the chosen option into the queue.

        Raises:
            AlreadyFinalizedError: The session already ended.
            NoCurrentHabitError: The queue is exhausted.
            OptionNotFoundError: The Answer names no option of the habit.
        """
        self._ensure_open()
        habit = self._require_current()

        if payload is None:
            payload = payload_from_notes(notes, habit)

        option: ConditionalOption | None = None
        if isinstance(payload, Answer):
            option = habit.find_option(payload.option_id)
            if option is None:
                raise OptionNotFoundError(
                    f"Habit {habit.id} has no option {payload.option_id}"
                )

        self._completions.append(
            HabitCompletion(
                habit_id=habit.id,
                completed_at=self._clock(),
                duration=duration,
                notes=self._record_notes(payload, notes, option),
                is_skipped=False,
                selected_option_id=option.id if option is not None else None,
            )
        )

        expanded = False
        if option is not None and habit.is_branch_point:
            expanded = self._expand(option)
        self._cursor += 1

        if expanded:
            self._notify(SessionChange.QUEUE_CHANGED)
        self._notify(SessionChange.CURSOR_CHANGED)
        return self.state()

    def skip_current(self) -> SessionState:
        """Skip the current habit. Skipping a question never expands it.

        Raises:
            AlreadyFinalizedError: The session already ended.
            NoCurrentHabitError: The queue is exhausted.
        """
        self._ensure_open()
        habit = self._require_current()

        self._completions.append(
            HabitCompletion(
                habit_id=habit.id,
                completed_at=self._clock(),
                duration=timedelta(0),
                is_skipped=True,
            )
        )
        self._cursor += 1
        self._notify(SessionChange.CURSOR_CHANGED)
        return self.state()

    def go_to_previous(self) -> SessionState:
        """Move back one step. No-op at the first step; completions are kept."""
        self._ensure_open()
        if self._cursor > 0:
            self._cursor -= 1
            self._notify(SessionChange.CURSOR_CHANGED)
        return self.state()

    def go_to(self, index: int) -> SessionState:
        """Jump to a queue position.

        Raises:
            AlreadyFinalizedError: The session already ended.
            IndexOutOfRangeError: ``index`` is outside [0, len(queue)).
        """
        self._ensure_open()
        if not 0 <= index < len(self._queue):
            raise IndexOutOfRangeError(index, len(self._queue))
        if index != self._cursor:
            self._cursor = index
            self._notify(SessionChange.CURSOR_CHANGED)
        return self.state()

    def finalize_complete(self) -> SessionState:
        """Mark the session completed. Finishing early is allowed.

        Raises:
            AlreadyFinalizedError: The session was already finalized or cancelled.
        """
        self._ensure_open()
        self.completed_at = self._clock()
        logger.info(
            "session_finalized",
            session_id=self.id,
            template_id=self.template.id,
            completions=len(self._completions),
            queue_length=len(self._queue),
            elapsed_seconds=self.elapsed().total_seconds(),
        )
        self._notify(SessionChange.FINALIZED)
        return self.state()

    def cancel(self) -> SessionState:
        """Abandon the session. Recorded completions are discarded.

        Raises:
            AlreadyFinalizedError: The session was already finalized or cancelled.
        """
        self._ensure_open()
        logger.info(
            "session_cancelled",
            session_id=self.id,
            template_id=self.template.id,
            progress=self.progress(),
            completed_habits=sum(1 for c in self._completions if not c.is_skipped),
            queue_length=len(self._queue),
        )
        self._cancelled = True
        self._completions.clear()
        self._notify(SessionChange.CANCELLED)
        return self.state()

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_open(self) -> None:
        if self.completed_at is not None:
            raise AlreadyFinalizedError(f"Session {self.id} is already completed")
        if self._cancelled:
            raise AlreadyFinalizedError(f"Session {self.id} was cancelled")

    def _require_current(self) -> Habit:
        habit = self.current_habit()
        if habit is None:
            raise NoCurrentHabitError(
                f"Session {self.id} has no habit at position {self._cursor} "
                f"(queue length {len(self._queue)})"
            )
        return habit

    def _expand(self, option: ConditionalOption) -> bool:
        """Insert the option's habits right after the cursor."""
        if not option.habits:
            return False
        insert_at = self._cursor + 1
        self._queue[insert_at:insert_at] = option.habits
        logger.info(
            "branch_expanded",
            session_id=self.id,
            option_id=option.id,
            option_text=option.text,
            inserted=len(option.habits),
            queue_length=len(self._queue),
        )
        return True

    @staticmethod
    def _record_notes(
        payload: CompletionPayload,
        notes: str | None,
        option: ConditionalOption | None,
    ) -> str | None:
        if notes is not None:
            return notes
        if option is not None:
            return encode_answer_notes(option.text)
        if isinstance(payload, Skip):
            return SKIPPED_SENTINEL
        if isinstance(payload, Plain):
            return payload.notes
        return None


__all__ = [
    "Clock",
    "SessionChange",
    "SessionListener",
    "SessionState",
    "SessionSummary",
    "RoutineSession",
    "utc_now",
]
