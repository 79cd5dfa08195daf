"""
Routine Session Controller for the Routine Engine.

The controller is the single owner of the active routine session. A UI
layer holds one controller and drives everything through it; there is no
process-wide "current session".

Lifecycle:
    start(template)        -> a new session (replaces any active one)
    complete/skip/go_to... -> delegated to the active session
    finalize_complete()    -> session completed and released
    cancel()               -> session abandoned and released
    add_mood_rating(...)   -> optional rating of a session that ended

A session finalized or cancelled directly (through ``active_session``) is
released as well: the controller listens for those changes itself.

Conditional answers and skips are recorded in the controller's
ConditionalResponseLog as they happen. Every start stamps a last-used time
for the template, which drives ``last_used_template``.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

import structlog

from routine_engine.config.engine import EngineSettings
from routine_engine.lib.exceptions import NoActiveSessionError, UnknownSessionError
from routine_engine.models.completion import (
    Answer,
    CompletionPayload,
    ConditionalResponse,
    Skip,
    payload_from_notes,
)
from routine_engine.models.context import ContextSnapshot
from routine_engine.models.habit import ConditionalKind
from routine_engine.models.mood import Mood, MoodRating
from routine_engine.models.template import RoutineTemplate

from .conditional_responses import ConditionalResponseLog
from .context_selector import select
from .routine_session import (
    Clock,
    RoutineSession,
    SessionChange,
    SessionListener,
    SessionState,
    SessionSummary,
    utc_now,
)

logger = structlog.get_logger(__name__)


class RoutineSessionController:
    """Holds at most one active RoutineSession.

    Args:
        clock: Timestamp source passed to every session.
        settings: Engine settings passed to every session.
        responses: Response log to record conditional answers into.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        responses: ConditionalResponseLog | None = None,
    ) -> None:
        self._clock = clock
        self._settings = settings
        self.responses = responses if responses is not None else ConditionalResponseLog()
        self._session: RoutineSession | None = None
        self._listeners: list[SessionListener] = []
        self._ended: dict[str, SessionSummary] = {}
        self._mood_ratings: list[MoodRating] = []
        self._last_used: dict[str, datetime] = {}

    @property
    def active_session(self) -> RoutineSession | None:
        return self._session

    @property
    def has_active_session(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener on the active session and every later one."""
        self._listeners.append(listener)
        if self._session is not None:
            self._session.subscribe(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if self._session is not None:
                self._session.unsubscribe(listener)

        return unsubscribe

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, template: RoutineTemplate) -> RoutineSession:
        """Start a session for ``template``, discarding any active session.

        Raises:
            NestingDepthExceededError: The template nests conditionals too deeply.
        """
        session = RoutineSession(template, clock=self._clock, settings=self._settings)
        if self._session is not None:
            logger.warning(
                "session_replaced",
                previous_session_id=self._session.id,
                previous_template_id=self._session.template.id,
                session_id=session.id,
            )
        session.subscribe(self._release_when_ended(session))
        for listener in self._listeners:
            session.subscribe(listener)
        self._session = session
        self._last_used[template.id] = session.started_at
        return session

    def start_for_context(
        self,
        snapshot: ContextSnapshot,
        templates: Sequence[RoutineTemplate],
    ) -> RoutineSession | None:
        """Start the best matching template; None when nothing matches."""
        template = select(snapshot, templates)
        if template is None:
            logger.info("no_template_for_context", **snapshot.as_dict())
            return None
        return self.start(template)

    def finalize_complete(self) -> SessionSummary:
        """Complete the active session and release it.

        Raises:
            NoActiveSessionError: No session is active.
        """
        session = self._require_session()
        session.finalize_complete()
        return self._ended[session.id]

    def cancel(self) -> SessionSummary:
        """Cancel the active session and release it.

        Raises:
            NoActiveSessionError: No session is active.
        """
        session = self._require_session()
        session.cancel()
        return self._ended[session.id]

    # =========================================================================
    # Session operations
    # =========================================================================

    def complete_current(
        self,
        duration: timedelta | None = None,
        notes: str | None = None,
        *,
        payload: CompletionPayload | None = None,
    ) -> SessionState:
        """Complete the current habit of the active session.

        Raises:
            NoActiveSessionError: No session is active.
        """
        session = self._require_session()
        with structlog.contextvars.bound_contextvars(session_id=session.id):
            habit = session.current_habit()
            if habit is not None and payload is None:
                payload = payload_from_notes(notes, habit)

            state = session.complete_current(duration, notes, payload=payload)

            if habit is not None and isinstance(habit.kind, ConditionalKind):
                if isinstance(payload, Answer):
                    option = habit.find_option(payload.option_id)
                    if option is not None:
                        self._record_response(
                            session, habit.id, habit.kind, option.id, option.text
                        )
                elif isinstance(payload, Skip):
                    self._record_response(session, habit.id, habit.kind)
        return state

    def skip_current(self) -> SessionState:
        """Skip the current habit of the active session.

        Raises:
            NoActiveSessionError: No session is active.
        """
        session = self._require_session()
        with structlog.contextvars.bound_contextvars(session_id=session.id):
            habit = session.current_habit()
            state = session.skip_current()
            if habit is not None and isinstance(habit.kind, ConditionalKind):
                self._record_response(session, habit.id, habit.kind)
        return state

    def go_to_previous(self) -> SessionState:
        return self._require_session().go_to_previous()

    def go_to(self, index: int) -> SessionState:
        return self._require_session().go_to(index)

    # =========================================================================
    # Mood ratings and usage
    # =========================================================================

    @property
    def mood_ratings(self) -> tuple[MoodRating, ...]:
        return tuple(self._mood_ratings)

    def add_mood_rating(
        self,
        session_id: str,
        mood: Mood,
        notes: str | None = None,
    ) -> MoodRating:
        """Rate how the user feels after a session that ended under this controller.

        Raises:
            UnknownSessionError: ``session_id`` is not a finalized or cancelled
                session of this controller.
        """
        if session_id not in self._ended:
            raise UnknownSessionError(f"No ended session with id {session_id}")
        rating = MoodRating(
            session_id=session_id,
            rating=mood,
            recorded_at=(self._clock or utc_now)(),
            notes=notes,
        )
        self._mood_ratings.append(rating)
        logger.info("mood_rated", session_id=session_id, mood=mood.name.lower())
        return rating

    def summary_for(self, session_id: str) -> SessionSummary | None:
        """Summary of a session that ended under this controller."""
        return self._ended.get(session_id)

    def last_used_at(self, template_id: str) -> datetime | None:
        return self._last_used.get(template_id)

    def last_used_template(
        self, templates: Sequence[RoutineTemplate]
    ) -> RoutineTemplate | None:
        """The template among ``templates`` that was started most recently."""
        used = [t for t in templates if t.id in self._last_used]
        if not used:
            return None
        return max(used, key=lambda t: self._last_used[t.id])

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_session(self) -> RoutineSession:
        if self._session is None:
            raise NoActiveSessionError("No routine session is active")
        return self._session

    def _release_when_ended(self, session: RoutineSession) -> SessionListener:
        def listener(change: SessionChange) -> None:
            if change not in (SessionChange.FINALIZED, SessionChange.CANCELLED):
                return
            self._ended[session.id] = session.summary()
            if self._session is session:
                self._session = None

        return listener

    def _record_response(
        self,
        session: RoutineSession,
        habit_id: str,
        kind: ConditionalKind,
        option_id: str | None = None,
        option_text: str | None = None,
    ) -> None:
        """Log an answer, or a skip when no option is given."""
        timestamp = session.completions[-1].completed_at
        if option_id is None or option_text is None:
            response = ConditionalResponse.skip(
                habit_id=habit_id,
                question=kind.question,
                session_id=session.id,
                timestamp=timestamp,
            )
        else:
            response = ConditionalResponse(
                habit_id=habit_id,
                question=kind.question,
                selected_option_id=option_id,
                selected_option_text=option_text,
                session_id=session.id,
                timestamp=timestamp,
            )
        self.responses.record(response)


__all__ = ["RoutineSessionController"]
